# Overview: Sale fulfilment and cancellation over the quantity ledger.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import Forbidden, InvalidRequest, InvalidState, NotFound
from ..models import DiscountType, PaymentMethod, Sale, SaleLineItem, SaleStatus
from ..permissions import Actor, Role, require_capability
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_atomic
from .document_service import SALE, next_document_number
from .inventory_service import (
    check_available,
    ensure_item,
    ensure_warehouse,
    normalize_lines,
    restock_cancelled_sale,
    sell,
)


def _non_negative_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidRequest(f"{field} must be a non-negative integer", details={field: value})
    return value


def _choice(value, field: str) -> str:
    if not isinstance(value, str):
        raise InvalidRequest(f"{field} must be a string", details={field: value})
    return value.strip().upper()


def compute_discount_cents(subtotal_cents: int, discount_type: str, discount_value: int) -> int:
    """
    Resolve the discount amount in cents.

    FIXED: discount_value is cents.
    PERCENTAGE: discount_value is basis points of the subtotal (1000 = 10%),
    rounded half-up to the nearest cent.
    """
    if discount_type == DiscountType.FIXED:
        return discount_value
    if discount_type == DiscountType.PERCENTAGE:
        if discount_value > 10000:
            raise InvalidRequest(
                "Percentage discount cannot exceed 100%",
                details={"discount_value": discount_value},
            )
        return (subtotal_cents * discount_value + 5000) // 10000
    raise InvalidRequest(f"Unknown discount type: {discount_type}", details={"discount_type": discount_type})


def _require_staff_scope(actor: Actor, warehouse_id: int, message: str) -> None:
    if actor.role is Role.STAFF and actor.warehouse_id != warehouse_id:
        raise Forbidden(message, details={"warehouse_id": warehouse_id})


def create_sale(
    actor: Actor,
    *,
    warehouse_id: int,
    lines,
    discount_type: str = DiscountType.FIXED,
    discount_value: int = 0,
    tax_cents: int = 0,
    payment_method: str = PaymentMethod.CASH,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    customer_email: str | None = None,
    customer_address: str | None = None,
    remarks: str | None = None,
) -> Sale:
    """
    Record a completed sale and debit every line from the warehouse.

    Each line is {"item_id", "quantity", "unit_price_cents"?}; the unit price
    defaults to the item's selling price. Totals are computed here, never
    taken from the caller. Every line is checked before any stock moves.
    """
    require_capability(actor, "CREATE_SALE")
    _require_staff_scope(actor, warehouse_id, "You can only make sales for your assigned warehouse")

    pairs = normalize_lines(lines)
    discount_type = _choice(discount_type or DiscountType.FIXED, "discount_type")
    payment_method = _choice(payment_method or PaymentMethod.CASH, "payment_method")
    if discount_type not in DiscountType.ALL:
        raise InvalidRequest(f"Unknown discount type: {discount_type}", details={"discount_type": discount_type})
    if payment_method not in PaymentMethod.ALL:
        raise InvalidRequest(f"Unknown payment method: {payment_method}", details={"payment_method": payment_method})
    _non_negative_int(discount_value, "discount_value")
    _non_negative_int(tax_cents, "tax_cents")

    requested_prices = []
    for line in lines:
        price = line.get("unit_price_cents")
        if price is not None:
            _non_negative_int(price, "unit_price_cents")
        requested_prices.append(price)

    def _op():
        warehouse = ensure_warehouse(warehouse_id, require_active=True)
        items = [ensure_item(item_id, require_active=True) for item_id, _ in pairs]
        check_available(warehouse.id, pairs)

        sale_lines = []
        subtotal = 0
        for position, ((item_id, quantity), item, price) in enumerate(zip(pairs, items, requested_prices)):
            unit_price = item.selling_price_cents if price is None else price
            line_total = unit_price * quantity
            subtotal += line_total
            sale_lines.append(SaleLineItem(
                item_id=item_id,
                quantity=quantity,
                unit_price_cents=unit_price,
                line_total_cents=line_total,
                position=position,
            ))

        discount = compute_discount_cents(subtotal, discount_type, discount_value)
        total = subtotal - discount + tax_cents
        if total < 0:
            raise InvalidRequest(
                "Sale total cannot be negative",
                details={"subtotal_cents": subtotal, "discount_cents": discount, "tax_cents": tax_cents},
            )

        sale = Sale(
            sale_number=next_document_number(SALE),
            warehouse_id=warehouse.id,
            subtotal_cents=subtotal,
            discount_cents=discount,
            discount_type=discount_type,
            discount_value=discount_value,
            tax_cents=tax_cents,
            total_cents=total,
            currency=current_app.config.get("DEFAULT_CURRENCY", "INR"),
            payment_method=payment_method,
            customer_name=customer_name,
            customer_phone=customer_phone,
            customer_email=customer_email,
            customer_address=customer_address,
            remarks=remarks,
            status=SaleStatus.COMPLETED,
            created_by_user_id=actor.user_id,
        )
        sale.lines.extend(sale_lines)
        db.session.add(sale)
        db.session.flush()

        for line in sale_lines:
            sell(
                warehouse_id=warehouse.id,
                item_id=line.item_id,
                quantity=line.quantity,
                user_id=actor.user_id,
                sale_number=sale.sale_number,
            )
        return sale

    sale = run_atomic(_op)
    current_app.logger.info(
        "Sale %s completed by user %s (total %s cents)", sale.sale_number, actor.user_id, sale.total_cents
    )
    return sale


def _load_sale(sale_id: int, *, lock: bool = False) -> Sale:
    query = db.session.query(Sale).filter_by(id=sale_id)
    if lock:
        query = lock_for_update(query)
    sale = query.first()
    if sale is None:
        raise NotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def cancel_sale(actor: Actor, sale_id: int, reason: str | None = None) -> Sale:
    """Cancel a sale and credit every line back to its warehouse. One-way."""
    require_capability(actor, "CANCEL_SALE")

    def _op():
        sale = _load_sale(sale_id, lock=True)
        if sale.status == SaleStatus.CANCELLED:
            raise InvalidState("Sale is already cancelled", details={"sale_id": sale.id})

        sale.status = SaleStatus.CANCELLED
        sale.cancelled_by_user_id = actor.user_id
        sale.cancelled_at = utcnow()
        sale.cancellation_reason = reason or "No reason provided"
        db.session.flush()

        for line in sale.lines:
            restock_cancelled_sale(
                warehouse_id=sale.warehouse_id,
                item_id=line.item_id,
                quantity=line.quantity,
                user_id=actor.user_id,
                sale_number=sale.sale_number,
            )
        return sale

    sale = run_atomic(_op)
    current_app.logger.info("Sale %s cancelled by user %s", sale.sale_number, actor.user_id)
    return sale


def get_sale(actor: Actor, sale_id: int) -> Sale:
    require_capability(actor, "VIEW_SALES")
    sale = _load_sale(sale_id)
    _require_staff_scope(actor, sale.warehouse_id, "You can only view sales from your warehouse")
    return sale


def list_sales(
    actor: Actor,
    *,
    warehouse_id: int | None = None,
    status: str | None = None,
    start=None,
    end=None,
) -> list[Sale]:
    """
    Newest first. Staff always see only their own warehouse.

    start and end are UTC-naive datetimes, both inclusive.
    """
    require_capability(actor, "VIEW_SALES")
    if status is not None and status not in SaleStatus.ALL:
        raise InvalidRequest(f"Unknown sale status: {status}", details={"status": status})

    query = db.session.query(Sale)
    if actor.role is Role.STAFF:
        query = query.filter(Sale.warehouse_id == actor.warehouse_id)
    elif warehouse_id is not None:
        query = query.filter(Sale.warehouse_id == warehouse_id)
    if status is not None:
        query = query.filter(Sale.status == status)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
