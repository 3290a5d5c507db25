from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z


class MovementAction:
    """Kinds of quantity movement recorded in the log."""
    ADD = "ADD"
    REMOVE = "REMOVE"
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"
    ADJUSTMENT = "ADJUSTMENT"
    SALE = "SALE"

    ALL = (ADD, REMOVE, TRANSFER_OUT, TRANSFER_IN, ADJUSTMENT, SALE)

    # Actions whose delta must be strictly negative / positive
    DEBITS = (REMOVE, TRANSFER_OUT, SALE)
    CREDITS = (ADD, TRANSFER_IN)


class StockBalance(db.Model):
    """
    Authoritative quantity of one item in one warehouse.

    Created lazily by the first positive movement; a missing row means 0.
    Only services.ledger_service writes this table.
    """
    __tablename__ = "stock_balances"
    __table_args__ = (
        db.UniqueConstraint("warehouse_id", "item_id", name="uq_stock_balances_warehouse_item"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_balances_quantity_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    warehouse = db.relationship("Warehouse", backref=db.backref("stock_balances", lazy=True))
    item = db.relationship("Item", backref=db.backref("stock_balances", lazy=True))

    def __repr__(self) -> str:
        return f"<StockBalance warehouse_id={self.warehouse_id} item_id={self.item_id} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "updated_at": to_utc_z(self.updated_at),
        }


class MovementLogEntry(db.Model):
    """
    Append-only audit record of one balance change.

    quantity is the magnitude of the change; new_qty - previous_qty carries
    the sign. Entries are never updated or deleted (enforced by the mapper
    events below), so the log is the only way to replay a balance history.
    """
    __tablename__ = "movement_log"
    __table_args__ = (
        db.Index("ix_movement_log_warehouse_item", "warehouse_id", "item_id", "id"),
        db.CheckConstraint("quantity > 0", name="ck_movement_log_quantity_pos"),
        db.CheckConstraint("previous_qty >= 0 AND new_qty >= 0", name="ck_movement_log_qty_nonneg"),
        db.CheckConstraint(
            "new_qty - previous_qty = quantity OR previous_qty - new_qty = quantity",
            name="ck_movement_log_delta_magnitude",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    # Nullable for movements that are not scoped to a warehouse
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True, index=True)

    action = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    previous_qty = db.Column(db.Integer, nullable=False)
    new_qty = db.Column(db.Integer, nullable=False)
    remarks = db.Column(db.String(255), nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    item = db.relationship("Item")
    warehouse = db.relationship("Warehouse")
    user = db.relationship("User")

    @property
    def delta(self) -> int:
        return self.new_qty - self.previous_qty

    def __repr__(self) -> str:
        return (
            f"<MovementLogEntry id={self.id} {self.action} item_id={self.item_id} "
            f"warehouse_id={self.warehouse_id} {self.previous_qty}->{self.new_qty}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "warehouse_id": self.warehouse_id,
            "action": self.action,
            "quantity": self.quantity,
            "previous_qty": self.previous_qty,
            "new_qty": self.new_qty,
            "remarks": self.remarks,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(MovementLogEntry, "before_update")
def _refuse_log_update(mapper, connection, target):
    raise ValueError("movement log entries are immutable")


@event.listens_for(MovementLogEntry, "before_delete")
def _refuse_log_delete(mapper, connection, target):
    raise ValueError("movement log entries cannot be deleted")
