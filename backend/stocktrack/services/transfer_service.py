# backend/stocktrack/services/transfer_service.py
"""
Inter-warehouse transfer requests.

LIFECYCLE:
1. PENDING: created by the manager of the source warehouse
2. COMPLETED: approved by an admin; approval moves the stock in the same
   unit (TRANSFER_OUT at source, TRANSFER_IN at destination per line)
3. REJECTED: refused by an admin
4. CANCELLED: withdrawn by its creator (or any admin) while PENDING

Only PENDING requests transition. The status flush happens before any
ledger write so a concurrent transition of the same request fails its
version check and, on retry, sees the terminal state.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..errors import Forbidden, InvalidRequest, InvalidState, NotFound
from ..models import TransferLineItem, TransferRequest, TransferStatus
from ..permissions import Actor, Role, require_capability
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_atomic
from .document_service import TRANSFER_REQUEST, next_document_number
from .inventory_service import (
    check_available,
    ensure_item,
    ensure_warehouse,
    normalize_lines,
    transfer_in,
    transfer_out,
)


def _load_request(request_id: int, *, lock: bool = False) -> TransferRequest:
    query = db.session.query(TransferRequest).filter_by(id=request_id)
    if lock:
        query = lock_for_update(query)
    request = query.first()
    if request is None:
        raise NotFound(f"Transfer request {request_id} not found", details={"transfer_request_id": request_id})
    return request


def _require_pending(request: TransferRequest, verb: str) -> None:
    if request.status != TransferStatus.PENDING:
        raise InvalidState(
            f"Cannot {verb} request with status: {request.status}",
            details={"transfer_request_id": request.id, "status": request.status},
        )


def _manager_warehouse(actor: Actor) -> int:
    if actor.warehouse_id is None:
        raise InvalidRequest("Manager not assigned to any warehouse")
    return actor.warehouse_id


def _touches(request: TransferRequest, warehouse_id: int) -> bool:
    return warehouse_id in (request.from_warehouse_id, request.to_warehouse_id)


def create_transfer(
    actor: Actor,
    *,
    from_warehouse_id: int,
    to_warehouse_id: int,
    lines,
    reason: str | None = None,
) -> TransferRequest:
    """
    Create a PENDING request to move stock out of the manager's warehouse.

    The stock check here is advisory; approval re-checks and is binding.
    """
    require_capability(actor, "CREATE_TRANSFER")
    if actor.warehouse_id is None or from_warehouse_id != actor.warehouse_id:
        raise Forbidden(
            "You can only create transfer requests from your assigned warehouse",
            details={"from_warehouse_id": from_warehouse_id},
        )
    if from_warehouse_id == to_warehouse_id:
        raise InvalidRequest("Source and destination warehouses cannot be the same")
    pairs = normalize_lines(lines)

    def _op():
        ensure_warehouse(from_warehouse_id, require_active=True)
        ensure_warehouse(to_warehouse_id, require_active=True)
        for item_id, _ in pairs:
            ensure_item(item_id, require_active=True)
        check_available(from_warehouse_id, pairs)

        request = TransferRequest(
            request_number=next_document_number(TRANSFER_REQUEST),
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            status=TransferStatus.PENDING,
            reason=reason,
            created_by_user_id=actor.user_id,
        )
        for position, (item_id, quantity) in enumerate(pairs):
            request.lines.append(TransferLineItem(item_id=item_id, quantity=quantity, position=position))

        db.session.add(request)
        db.session.flush()
        return request

    request = run_atomic(_op)
    current_app.logger.info(
        "Transfer request %s created by user %s", request.request_number, actor.user_id
    )
    return request


def approve_transfer(actor: Actor, request_id: int) -> TransferRequest:
    """
    Approve a PENDING request and execute it in the same unit.

    Any short line (first in submission order) raises InsufficientStock and
    leaves the request PENDING with no ledger effect.
    """
    require_capability(actor, "APPROVE_TRANSFER")

    def _op():
        request = _load_request(request_id, lock=True)
        _require_pending(request, "approve")

        source = ensure_warehouse(request.from_warehouse_id, require_active=True)
        destination = ensure_warehouse(request.to_warehouse_id, require_active=True)
        lines = list(request.lines)
        check_available(source.id, [(line.item_id, line.quantity) for line in lines])

        request.status = TransferStatus.COMPLETED
        request.approved_by_user_id = actor.user_id
        request.approved_at = utcnow()
        db.session.flush()

        for line in lines:
            transfer_out(
                warehouse_id=source.id,
                item_id=line.item_id,
                quantity=line.quantity,
                user_id=actor.user_id,
                request_number=request.request_number,
                destination_name=destination.name,
            )
            transfer_in(
                warehouse_id=destination.id,
                item_id=line.item_id,
                quantity=line.quantity,
                user_id=actor.user_id,
                request_number=request.request_number,
                source_name=source.name,
            )
        return request

    request = run_atomic(_op)
    current_app.logger.info(
        "Transfer request %s approved and completed by user %s", request.request_number, actor.user_id
    )
    return request


def reject_transfer(actor: Actor, request_id: int, reason: str | None = None) -> TransferRequest:
    """Reject a PENDING request. A supplied reason replaces the stored one."""
    require_capability(actor, "APPROVE_TRANSFER")

    def _op():
        request = _load_request(request_id, lock=True)
        _require_pending(request, "reject")
        request.status = TransferStatus.REJECTED
        request.approved_by_user_id = actor.user_id
        request.approved_at = utcnow()
        if reason:
            request.reason = reason
        db.session.flush()
        return request

    request = run_atomic(_op)
    current_app.logger.info("Transfer request %s rejected by user %s", request.request_number, actor.user_id)
    return request


def cancel_transfer(actor: Actor, request_id: int) -> TransferRequest:
    """Cancel a PENDING request: its creator, or any admin."""
    require_capability(actor, "CANCEL_TRANSFER")

    def _op():
        request = _load_request(request_id, lock=True)
        _require_pending(request, "cancel")
        if actor.role is Role.MANAGER and request.created_by_user_id != actor.user_id:
            raise Forbidden(
                "You can only cancel your own transfer requests",
                details={"transfer_request_id": request.id},
            )
        request.status = TransferStatus.CANCELLED
        request.cancelled_by_user_id = actor.user_id
        request.cancelled_at = utcnow()
        db.session.flush()
        return request

    request = run_atomic(_op)
    current_app.logger.info("Transfer request %s cancelled by user %s", request.request_number, actor.user_id)
    return request


def get_transfer(actor: Actor, request_id: int) -> TransferRequest:
    require_capability(actor, "VIEW_TRANSFERS")
    request = _load_request(request_id)
    if actor.role is Role.MANAGER and not _touches(request, _manager_warehouse(actor)):
        raise Forbidden("Access denied to this transfer request", details={"transfer_request_id": request_id})
    return request


def _scoped_query(actor: Actor, warehouse_id: int | None = None):
    query = db.session.query(TransferRequest)
    if actor.role is Role.MANAGER:
        own = _manager_warehouse(actor)
        if warehouse_id is not None and warehouse_id != own:
            raise Forbidden("Access denied to this warehouse", details={"warehouse_id": warehouse_id})
        warehouse_id = own
    if warehouse_id is not None:
        query = query.filter(or_(
            TransferRequest.from_warehouse_id == warehouse_id,
            TransferRequest.to_warehouse_id == warehouse_id,
        ))
    return query


def list_transfers(
    actor: Actor,
    *,
    status: str | None = None,
    warehouse_id: int | None = None,
) -> list[TransferRequest]:
    """Newest first. Managers only see requests touching their warehouse."""
    require_capability(actor, "VIEW_TRANSFERS")
    if status is not None and status not in TransferStatus.ALL:
        raise InvalidRequest(f"Unknown transfer status: {status}", details={"status": status})

    query = _scoped_query(actor, warehouse_id)
    if status is not None:
        query = query.filter(TransferRequest.status == status)
    return query.order_by(TransferRequest.created_at.desc(), TransferRequest.id.desc()).all()


def transfer_stats(actor: Actor) -> dict:
    require_capability(actor, "VIEW_TRANSFERS")
    rows = (
        _scoped_query(actor)
        .with_entities(TransferRequest.status, func.count(TransferRequest.id))
        .group_by(TransferRequest.status)
        .all()
    )
    counts = {status.lower(): 0 for status in TransferStatus.ALL}
    for status, count in rows:
        counts[status.lower()] = count
    counts["total"] = sum(count for _, count in rows)
    return counts
