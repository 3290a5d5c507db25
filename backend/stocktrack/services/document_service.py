# Overview: Per-day document number allocation for transfer requests and sales.

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import period_key
from .concurrency import RetryableConflict


TRANSFER_REQUEST = "TRANSFER_REQUEST"
SALE = "SALE"

PREFIXES = {
    TRANSFER_REQUEST: "TR",
    SALE: "SALE",
}


def next_document_number(document_type: str, *, period: str | None = None, pad: int = 4) -> str:
    """
    Allocate the next number for (document_type, period) inside the current unit.

    Formats as PREFIX-YYYYMMDD-NNNN. The counter row is bumped with a single
    UPDATE so concurrent units are ordered by the store; a lost race on the
    first insert of the day surfaces as RetryableConflict and the enclosing
    run_atomic starts over. Does not commit.
    """
    if document_type not in PREFIXES:
        raise ValueError(f"unknown document type: {document_type}")
    period = period or period_key()

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = db.session.execute(
            select(DocumentSequence.next_number).where(
                DocumentSequence.document_type == document_type,
                DocumentSequence.period == period,
            )
        ).scalar_one()
        number = current - 1
    else:
        db.session.add(DocumentSequence(document_type=document_type, period=period, next_number=2))
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise RetryableConflict(f"document sequence {document_type}/{period} created concurrently") from exc
        number = 1

    return f"{PREFIXES[document_type]}-{period}-{number:0{pad}d}"
