from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class SaleStatus:
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    ALL = (COMPLETED, CANCELLED)


class DiscountType:
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"

    ALL = (FIXED, PERCENTAGE)


class PaymentMethod:
    CASH = "CASH"
    CARD = "CARD"
    UPI = "UPI"
    NET_BANKING = "NET_BANKING"
    OTHER = "OTHER"

    ALL = (CASH, CARD, UPI, NET_BANKING, OTHER)


class PaymentStatus:
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"

    ALL = (PENDING, COMPLETED, FAILED, REFUNDED)


class Sale(db.Model):
    """
    Completed sale from a single warehouse.

    Sales are created already COMPLETED (stock debited in the same unit) and
    can only move to CANCELLED, which credits every line back. All amounts
    are in cents.

    discount_value is what the caller asked for: cents for FIXED, basis
    points for PERCENTAGE. discount_cents is the resolved amount.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_warehouse_status_created", "warehouse_id", "status", "created_at"),
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "SALE-20240101-0001"
    sale_number = db.Column(db.String(32), nullable=False, unique=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_type = db.Column(db.String(16), nullable=False, default=DiscountType.FIXED)
    discount_value = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(8), nullable=False, default="INR")

    payment_method = db.Column(db.String(16), nullable=False, default=PaymentMethod.CASH)
    payment_status = db.Column(db.String(16), nullable=False, default=PaymentStatus.COMPLETED)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_address = db.Column(db.Text, nullable=True)
    remarks = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=SaleStatus.COMPLETED, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # Cancellation audit trail
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    warehouse = db.relationship("Warehouse", backref=db.backref("sales", lazy=True))
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    cancelled_by = db.relationship("User", foreign_keys=[cancelled_by_user_id])

    lines = db.relationship(
        "SaleLineItem",
        back_populates="sale",
        order_by="SaleLineItem.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} {self.sale_number} status={self.status}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "warehouse_id": self.warehouse_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "customer_address": self.customer_address,
            "remarks": self.remarks,
            "status": self.status,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "cancelled_at": to_utc_z(self.cancelled_at),
            "cancellation_reason": self.cancellation_reason,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLineItem(db.Model):
    __tablename__ = "sale_line_items"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "item_id", name="uq_sale_line_items_sale_item"),
        db.CheckConstraint("quantity > 0", name="ck_sale_line_items_quantity_pos"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_sale_line_items_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    sale = db.relationship("Sale", back_populates="lines")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "position": self.position,
        }
