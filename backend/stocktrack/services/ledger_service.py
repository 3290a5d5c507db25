# Overview: Quantity ledger; the only writer of stock balances and the movement log.

from __future__ import annotations

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InsufficientStock, InvalidQuantity, InvalidRequest
from ..models import MovementAction, MovementLogEntry, StockBalance
from .concurrency import RetryableConflict, run_atomic
"""
StockTrack Ledger Invariants (authoritative)

- A (warehouse, item) balance is never negative. A missing row is 0.
- Every balance change appends exactly one MovementLogEntry in the same unit:
    quantity = |delta|, new_qty - previous_qty = delta.
- The log is append-only; replaying it from 0 reproduces every balance.
- Balance writes are guarded conditional updates
    (quantity = quantity + delta WHERE quantity + delta >= 0),
  so concurrent debits of the same pair are ordered by the database and can
  never both act on a stale read.
"""


def _balance_filter(warehouse_id: int, item_id: int):
    return (
        StockBalance.warehouse_id == warehouse_id,
        StockBalance.item_id == item_id,
    )


def get_balance(warehouse_id: int, item_id: int) -> int:
    """Current quantity of the pair; 0 when no balance row exists."""
    quantity = db.session.execute(
        select(StockBalance.quantity).where(*_balance_filter(warehouse_id, item_id))
    ).scalar_one_or_none()
    return int(quantity or 0)


def _apply_delta(
    *,
    warehouse_id: int,
    item_id: int,
    delta: int,
    user_id: int,
    action: str,
    remarks: str | None = None,
) -> dict:
    """
    Apply one signed change inside the current unit. Does not commit.

    Raises InsufficientStock (nothing written) when the result would be
    negative, and RetryableConflict when the balance row was created by a
    concurrent unit between our update and our insert.
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise InvalidQuantity("Quantity change must be a non-zero integer", details={"delta": delta})
    if action not in MovementAction.ALL:
        raise InvalidRequest(f"Unknown movement action: {action}", details={"action": action})
    if action in MovementAction.DEBITS and delta > 0:
        raise InvalidQuantity(f"{action} must decrease stock", details={"delta": delta})
    if action in MovementAction.CREDITS and delta < 0:
        raise InvalidQuantity(f"{action} must increase stock", details={"delta": delta})

    stmt = (
        update(StockBalance)
        .where(*_balance_filter(warehouse_id, item_id))
        .where(StockBalance.quantity + delta >= 0)
        .values(quantity=StockBalance.quantity + delta)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if result.rowcount:
        new_qty = db.session.execute(
            select(StockBalance.quantity).where(*_balance_filter(warehouse_id, item_id))
        ).scalar_one()
    else:
        current = db.session.execute(
            select(StockBalance.quantity).where(*_balance_filter(warehouse_id, item_id))
        ).scalar_one_or_none()
        if current is not None or delta < 0:
            raise InsufficientStock(
                warehouse_id=warehouse_id,
                item_id=item_id,
                available=int(current or 0),
                requested=-delta,
            )
        db.session.add(StockBalance(warehouse_id=warehouse_id, item_id=item_id, quantity=delta))
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise RetryableConflict(
                f"balance row for warehouse {warehouse_id} item {item_id} created concurrently"
            ) from exc
        new_qty = delta

    previous_qty = new_qty - delta
    db.session.add(MovementLogEntry(
        item_id=item_id,
        warehouse_id=warehouse_id,
        action=action,
        quantity=abs(delta),
        previous_qty=previous_qty,
        new_qty=new_qty,
        remarks=remarks,
        user_id=user_id,
    ))

    return {"previous_qty": previous_qty, "new_qty": new_qty}


def apply_delta(
    *,
    warehouse_id: int,
    item_id: int,
    delta: int,
    user_id: int,
    action: str,
    remarks: str | None = None,
) -> dict:
    """Apply a single change as its own atomic unit."""
    def _op():
        return _apply_delta(
            warehouse_id=warehouse_id,
            item_id=item_id,
            delta=delta,
            user_id=user_id,
            action=action,
            remarks=remarks,
        )

    return run_atomic(_op)


def list_movements(
    *,
    warehouse_id: int | None = None,
    item_id: int | None = None,
    action: str | None = None,
    limit: int | None = None,
) -> list[MovementLogEntry]:
    """Newest-first read of the movement log."""
    if action is not None and action not in MovementAction.ALL:
        raise InvalidRequest(f"Unknown movement action: {action}", details={"action": action})

    max_limit = current_app.config.get("MOVEMENT_LIST_LIMIT", 200)
    if limit is None or limit > max_limit:
        limit = max_limit
    if limit < 1:
        limit = 1

    query = db.session.query(MovementLogEntry)
    if warehouse_id is not None:
        query = query.filter(MovementLogEntry.warehouse_id == warehouse_id)
    if item_id is not None:
        query = query.filter(MovementLogEntry.item_id == item_id)
    if action is not None:
        query = query.filter(MovementLogEntry.action == action)

    return query.order_by(MovementLogEntry.id.desc()).limit(limit).all()


def reconcile_balances() -> list[dict]:
    """
    Replay the movement log against the stored balances.

    Returns one dict per discrepancy; an empty list means every balance is
    exactly what its log chain produces.
    """
    balances = {
        (b.warehouse_id, b.item_id): b.quantity
        for b in db.session.query(StockBalance).all()
    }

    chains: dict[tuple[int, int], list[MovementLogEntry]] = {}
    entries = (
        db.session.query(MovementLogEntry)
        .filter(MovementLogEntry.warehouse_id.isnot(None))
        .order_by(MovementLogEntry.id.asc())
        .all()
    )
    for entry in entries:
        chains.setdefault((entry.warehouse_id, entry.item_id), []).append(entry)

    discrepancies = []
    for key in sorted(set(balances) | set(chains)):
        warehouse_id, item_id = key
        stored = balances.get(key, 0)
        chain = chains.get(key, [])

        running = 0
        for entry in chain:
            if entry.previous_qty != running:
                discrepancies.append({
                    "warehouse_id": warehouse_id,
                    "item_id": item_id,
                    "kind": "BROKEN_CHAIN",
                    "entry_id": entry.id,
                    "expected": running,
                    "actual": entry.previous_qty,
                })
            running = entry.new_qty

        replayed = sum(entry.new_qty - entry.previous_qty for entry in chain)
        if replayed != stored:
            discrepancies.append({
                "warehouse_id": warehouse_id,
                "item_id": item_id,
                "kind": "SUM_MISMATCH",
                "entry_id": None,
                "expected": replayed,
                "actual": stored,
            })
        if chain and chain[-1].new_qty != stored:
            discrepancies.append({
                "warehouse_id": warehouse_id,
                "item_id": item_id,
                "kind": "LAST_ENTRY_MISMATCH",
                "entry_id": chain[-1].id,
                "expected": chain[-1].new_qty,
                "actual": stored,
            })

    return discrepancies
