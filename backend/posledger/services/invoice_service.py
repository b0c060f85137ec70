# Overview: Invoice number allocation (INV-YYYYMMDD-NNNN) backed by a per-day DB counter.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InvoiceSequence, Transaction
from .errors import InvoiceCollision


INVOICE_PREFIX = "INV"


def format_invoice_number(invoice_date: str, number: int) -> str:
    return f"{INVOICE_PREFIX}-{invoice_date}-{number:04d}"


def highest_issued_number(invoice_date: str) -> int:
    """Largest sequence already used by a stored transaction on invoice_date, or 0."""
    prefix = f"{INVOICE_PREFIX}-{invoice_date}-"
    # Longest first so 10000 sorts above 9999
    invoice_no = (
        db.session.query(Transaction.invoice_no)
        .filter(Transaction.invoice_no.like(f"{prefix}%"))
        .order_by(func.length(Transaction.invoice_no).desc(), Transaction.invoice_no.desc())
        .limit(1)
        .scalar()
    )
    if not invoice_no:
        return 0
    try:
        return int(invoice_no[len(prefix):])
    except ValueError:
        return 0


def next_invoice_number(now: datetime) -> str:
    """
    Allocate the next invoice number for now's UTC calendar day.

    The counter row is bumped with a single UPDATE inside the caller's DB
    transaction, so numbers are not reused across instances and a rolled-back
    sale gives its number back. The number never falls at or below one that a
    stored transaction already carries: a missing or lagging counter (imported
    rows, out-of-band inserts) is moved past the day's highest invoice. A
    first-of-day race on the counter row surfaces as InvoiceCollision; callers
    retry the whole unit of work, which then sees the winner's row.

    Does not commit.
    """
    invoice_date = now.strftime("%Y%m%d")
    floor = highest_issued_number(invoice_date)

    stmt = (
        update(InvoiceSequence)
        .where(InvoiceSequence.invoice_date == invoice_date)
        .values(next_number=InvoiceSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        number = (
            db.session.query(InvoiceSequence.next_number)
            .filter_by(invoice_date=invoice_date)
            .scalar()
        ) - 1
        if number <= floor:
            number = floor + 1
            db.session.execute(
                update(InvoiceSequence)
                .where(InvoiceSequence.invoice_date == invoice_date)
                .values(next_number=number + 1)
                .execution_options(synchronize_session=False)
            )
        return format_invoice_number(invoice_date, number)

    number = floor + 1
    db.session.add(InvoiceSequence(invoice_date=invoice_date, next_number=number + 1))
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise InvoiceCollision(
            "Invoice number already taken, retry",
            details={"invoice_date": invoice_date},
        ) from exc
    return format_invoice_number(invoice_date, number)
