from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class TransferStatus:
    PENDING = "PENDING"
    # Part of the vocabulary only: approval executes the transfer in the same
    # unit, so a request moves from PENDING straight to COMPLETED.
    APPROVED = "APPROVED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    ALL = (PENDING, APPROVED, COMPLETED, REJECTED, CANCELLED)


class TransferRequest(db.Model):
    """
    Request to move stock from one warehouse to another.

    LIFECYCLE:
    1. PENDING: created by the source warehouse's manager
    2. COMPLETED: approved by an admin; both ledger legs applied
    3. REJECTED: refused by an admin; no ledger effect
    4. CANCELLED: withdrawn before a decision; no ledger effect

    Terminal states never change again. version_id serializes concurrent
    transitions of the same request.
    """
    __tablename__ = "transfer_requests"
    __table_args__ = (
        db.CheckConstraint("from_warehouse_id <> to_warehouse_id", name="ck_transfer_requests_distinct_warehouses"),
        db.Index("ix_transfer_requests_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "TR-20240101-0001"
    request_number = db.Column(db.String(32), nullable=False, unique=True)

    from_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    to_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=TransferStatus.PENDING, index=True)
    reason = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # Set on approval and on rejection
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    from_warehouse = db.relationship("Warehouse", foreign_keys=[from_warehouse_id])
    to_warehouse = db.relationship("Warehouse", foreign_keys=[to_warehouse_id])
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    approved_by = db.relationship("User", foreign_keys=[approved_by_user_id])
    cancelled_by = db.relationship("User", foreign_keys=[cancelled_by_user_id])

    lines = db.relationship(
        "TransferLineItem",
        back_populates="transfer_request",
        order_by="TransferLineItem.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<TransferRequest id={self.id} {self.request_number} status={self.status}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "request_number": self.request_number,
            "from_warehouse_id": self.from_warehouse_id,
            "to_warehouse_id": self.to_warehouse_id,
            "status": self.status,
            "reason": self.reason,
            "created_by_user_id": self.created_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "approved_at": to_utc_z(self.approved_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class TransferLineItem(db.Model):
    __tablename__ = "transfer_line_items"
    __table_args__ = (
        db.UniqueConstraint("transfer_request_id", "item_id", name="uq_transfer_line_items_request_item"),
        db.CheckConstraint("quantity > 0", name="ck_transfer_line_items_quantity_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transfer_request_id = db.Column(db.Integer, db.ForeignKey("transfer_requests.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    # Order the lines were submitted in; approval walks them in this order
    position = db.Column(db.Integer, nullable=False, default=0)

    transfer_request = db.relationship("TransferRequest", back_populates="lines")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_request_id": self.transfer_request_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "position": self.position,
        }


class DocumentSequence(db.Model):
    """
    Per-day counters behind request and sale numbers.

    One row per (document_type, period); period is YYYYMMDD in UTC.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "period", name="uq_document_sequences_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    period = db.Column(db.String(8), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "period": self.period,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
