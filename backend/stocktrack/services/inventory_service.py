# Overview: Named stock mutations over the ledger plus warehouse stock reads.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..errors import InsufficientStock, InvalidQuantity, InvalidRequest, InvalidState, NotFound
from ..models import Item, MovementAction, MovementLogEntry, StockBalance, Warehouse
from ..permissions import Actor, require_capability
from .concurrency import run_atomic
from .ledger_service import _apply_delta, get_balance
"""
StockTrack Stock Mutation Rules

- assign:   +quantity, ADD, item and warehouse must be active.
- adjust:   signed non-zero correction, ADJUSTMENT, allowed on inactive items.
- sell:     -quantity per sale line, SALE (called by sales_service).
- restock:  +quantity per cancelled sale line, ADJUSTMENT.
- transfer: TRANSFER_OUT at source then TRANSFER_IN at destination
            (called by transfer_service on approval).

The public operations (assign_stock, adjust_stock) are atomic units of their
own. The leg helpers never commit; they run inside the caller's unit.
"""


def _require_positive_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidQuantity(f"{field} must be a positive integer", details={field: value})
    return value


def _check_remarks(remarks) -> str | None:
    if remarks is None:
        return None
    if not isinstance(remarks, str):
        raise InvalidRequest("remarks must be a string", details={"field": "remarks"})
    max_len = MovementLogEntry.__table__.c.remarks.type.length
    if len(remarks) > max_len:
        raise InvalidRequest(
            f"remarks exceeds max length {max_len}",
            details={"field": "remarks", "max_length": max_len},
        )
    return remarks


def ensure_item(item_id: int, *, require_active: bool = False) -> Item:
    item = db.session.get(Item, item_id)
    if item is None:
        raise NotFound(f"Item {item_id} not found", details={"item_id": item_id})
    if require_active and not item.is_active:
        raise InvalidState(f"Item {item.sku} is inactive", details={"item_id": item_id})
    return item


def ensure_warehouse(warehouse_id: int, *, require_active: bool = False) -> Warehouse:
    warehouse = db.session.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise NotFound(f"Warehouse {warehouse_id} not found", details={"warehouse_id": warehouse_id})
    if require_active and not warehouse.is_active:
        raise InvalidState(f"Warehouse {warehouse.name} is inactive", details={"warehouse_id": warehouse_id})
    return warehouse


def check_available(warehouse_id: int, lines) -> None:
    """
    Raise InsufficientStock for the first line the warehouse cannot cover.

    lines is an iterable of (item_id, quantity) in submission order.
    Quantities are aggregated per item so repeated items are checked against
    their combined demand.
    """
    required: dict[int, int] = {}
    order: list[int] = []
    for item_id, quantity in lines:
        if item_id not in required:
            order.append(item_id)
            required[item_id] = 0
        required[item_id] += quantity

    for item_id in order:
        available = get_balance(warehouse_id, item_id)
        if available < required[item_id]:
            raise InsufficientStock(
                warehouse_id=warehouse_id,
                item_id=item_id,
                available=available,
                requested=required[item_id],
            )


def normalize_lines(lines) -> list[tuple[int, int]]:
    """
    Validate submitted lines and return (item_id, quantity) pairs in order.

    At least one line, positive integer quantities, each item at most once.
    """
    if not lines:
        raise InvalidRequest("At least one line item is required")

    normalized = []
    seen = set()
    for index, line in enumerate(lines):
        item_id = line.get("item_id")
        quantity = line.get("quantity")
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            raise InvalidRequest("item_id must be an integer", details={"line": index})
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantity(
                "quantity must be a positive integer",
                details={"line": index, "item_id": item_id, "quantity": quantity},
            )
        if item_id in seen:
            raise InvalidRequest(
                f"Item {item_id} appears more than once",
                details={"line": index, "item_id": item_id},
            )
        seen.add(item_id)
        normalized.append((item_id, quantity))
    return normalized


def _movement_result(warehouse_id: int, item_id: int, outcome: dict) -> dict:
    return {"warehouse_id": warehouse_id, "item_id": item_id, **outcome}


def assign_stock(actor: Actor, *, warehouse_id: int, item_id: int, quantity: int) -> dict:
    """Add stock of an item to a warehouse."""
    require_capability(actor, "ASSIGN_STOCK")
    _require_positive_int(quantity, "quantity")

    def _op():
        item = ensure_item(item_id, require_active=True)
        warehouse = ensure_warehouse(warehouse_id, require_active=True)
        outcome = _apply_delta(
            warehouse_id=warehouse.id,
            item_id=item.id,
            delta=quantity,
            user_id=actor.user_id,
            action=MovementAction.ADD,
            remarks=f"Added {quantity} {item.unit} to {warehouse.name}",
        )
        return _movement_result(warehouse.id, item.id, outcome)

    return run_atomic(_op)


def adjust_stock(
    actor: Actor,
    *,
    warehouse_id: int,
    item_id: int,
    quantity_delta: int,
    remarks: str | None = None,
) -> dict:
    """Apply a signed correction to a warehouse balance."""
    require_capability(actor, "ADJUST_STOCK")
    if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int) or quantity_delta == 0:
        raise InvalidQuantity(
            "quantity_delta must be a non-zero integer",
            details={"quantity_delta": quantity_delta},
        )
    remarks = _check_remarks(remarks)

    def _op():
        item = ensure_item(item_id)
        warehouse = ensure_warehouse(warehouse_id)
        sign = "+" if quantity_delta > 0 else ""
        outcome = _apply_delta(
            warehouse_id=warehouse.id,
            item_id=item.id,
            delta=quantity_delta,
            user_id=actor.user_id,
            action=MovementAction.ADJUSTMENT,
            remarks=remarks or f"Adjusted by {sign}{quantity_delta} {item.unit}",
        )
        return _movement_result(warehouse.id, item.id, outcome)

    return run_atomic(_op)


# Non-committing legs used inside transfer and sale units

def sell(*, warehouse_id: int, item_id: int, quantity: int, user_id: int, sale_number: str) -> dict:
    return _apply_delta(
        warehouse_id=warehouse_id,
        item_id=item_id,
        delta=-_require_positive_int(quantity, "quantity"),
        user_id=user_id,
        action=MovementAction.SALE,
        remarks=f"Sale: {sale_number}",
    )


def restock_cancelled_sale(*, warehouse_id: int, item_id: int, quantity: int, user_id: int, sale_number: str) -> dict:
    return _apply_delta(
        warehouse_id=warehouse_id,
        item_id=item_id,
        delta=_require_positive_int(quantity, "quantity"),
        user_id=user_id,
        action=MovementAction.ADJUSTMENT,
        remarks=f"Sale cancelled: {sale_number}",
    )


def transfer_out(
    *, warehouse_id: int, item_id: int, quantity: int, user_id: int, request_number: str, destination_name: str
) -> dict:
    return _apply_delta(
        warehouse_id=warehouse_id,
        item_id=item_id,
        delta=-_require_positive_int(quantity, "quantity"),
        user_id=user_id,
        action=MovementAction.TRANSFER_OUT,
        remarks=f"Transfer to {destination_name} - Request #{request_number}",
    )


def transfer_in(
    *, warehouse_id: int, item_id: int, quantity: int, user_id: int, request_number: str, source_name: str
) -> dict:
    return _apply_delta(
        warehouse_id=warehouse_id,
        item_id=item_id,
        delta=_require_positive_int(quantity, "quantity"),
        user_id=user_id,
        action=MovementAction.TRANSFER_IN,
        remarks=f"Transfer from {source_name} - Request #{request_number}",
    )


# Reads

def warehouse_stock(actor: Actor, warehouse_id: int) -> dict:
    """Balance rows of a warehouse with item details and stock value in cents."""
    require_capability(actor, "VIEW_INVENTORY")
    warehouse = ensure_warehouse(warehouse_id)

    rows = (
        db.session.query(StockBalance, Item)
        .join(Item, Item.id == StockBalance.item_id)
        .filter(StockBalance.warehouse_id == warehouse.id)
        .order_by(Item.name.asc())
        .all()
    )

    items = []
    total_quantity = 0
    total_purchase = 0
    total_selling = 0
    for balance, item in rows:
        purchase_value = balance.quantity * item.purchase_price_cents
        selling_value = balance.quantity * item.selling_price_cents
        total_quantity += balance.quantity
        total_purchase += purchase_value
        total_selling += selling_value
        items.append({
            "item": item.to_dict(),
            "quantity": balance.quantity,
            "purchase_value_cents": purchase_value,
            "selling_value_cents": selling_value,
            "potential_profit_cents": selling_value - purchase_value,
        })

    return {
        "warehouse": warehouse.to_dict(),
        "items": items,
        "total_quantity": total_quantity,
        "total_purchase_value_cents": total_purchase,
        "total_selling_value_cents": total_selling,
    }


def low_stock_items(actor: Actor) -> list[dict]:
    """Active items whose quantity across all warehouses is at or below min_stock."""
    require_capability(actor, "VIEW_INVENTORY")

    totals = (
        db.session.query(
            Item,
            func.coalesce(func.sum(StockBalance.quantity), 0).label("total_quantity"),
        )
        .outerjoin(StockBalance, StockBalance.item_id == Item.id)
        .filter(Item.is_active.is_(True))
        .group_by(Item.id)
        .order_by(Item.id.asc())
        .all()
    )

    alerts = []
    for item, total_quantity in totals:
        total_quantity = int(total_quantity)
        if total_quantity <= item.min_stock:
            alerts.append({
                "item": item.to_dict(),
                "total_quantity": total_quantity,
                "min_stock": item.min_stock,
                "deficit": item.min_stock - total_quantity,
            })
    return alerts
