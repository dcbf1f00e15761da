# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import today
from .concurrency import run_with_retry


# Sequence keys
BATCH = "BATCH"
ORDER = "ORDER"
PURCHASE_ORDER = "PURCHASE_ORDER"
INVOICE = "INVOICE"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def format_document_number(prefix: str, year: int, number: int, pad: int = 3) -> str:
    return f"{prefix}-{year}-{number:0{pad}d}"


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    year: int | None = None,
    pad: int = 3,
) -> str:
    """
    Atomically allocate the next document number for a type/year.

    e.g. BP-2026-001, ORD-2026-014. Sequences restart every calendar year.
    The first allocation for a new year inserts the row inside a savepoint so
    a concurrent insert of the same key only rolls back that savepoint, not
    the caller's pending work. Lock retries are scoped the same way: the
    allocation runs in its own savepoint and only that is retried.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not prefix:
        raise DocumentSequenceError("prefix is required")
    year = year or today().year

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.year == year,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    def _current() -> int:
        return (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type, year=year)
            .scalar()
        )

    def _op() -> str:
        result = db.session.execute(stmt)
        if result.rowcount:
            next_num = _current() - 1
        else:
            try:
                with db.session.begin_nested():
                    db.session.add(
                        DocumentSequence(document_type=document_type, year=year, next_number=2)
                    )
                next_num = 1
            except IntegrityError:
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise
                next_num = _current() - 1

        return format_document_number(prefix, year, next_num, pad)

    return run_with_retry(_op, savepoint=True)
