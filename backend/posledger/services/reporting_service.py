# Overview: Read-only sales rollups over the transaction ledger.

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func

from posledger.extensions import db
from posledger.models import Transaction, TransactionItem
from posledger.models.transactions import STATUS_COMPLETED, STATUS_CANCELED
from posledger.time_utils import parse_iso_datetime, utcnow, to_utc_z


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[datetime, datetime]:
    """Defaults to the last 7 days. A date-only end includes that whole day."""
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ReportError("start and end must be ISO-8601 dates")

    if end_dt is None:
        end_dt = utcnow()
    elif end and len(end.strip()) == 10:
        end_dt = end_dt + timedelta(days=1)
    if start_dt is None:
        start_dt = end_dt - timedelta(days=7)
    if start_dt > end_dt:
        raise ReportError("start must be before end")
    return start_dt, end_dt


def sales_summary(*, start: str | None = None, end: str | None = None, top: int = 5) -> dict:
    """
    Revenue, counts and best sellers for COMPLETED transactions in [start, end).

    Canceled transactions are only counted, never summed into revenue.
    """
    start_dt, end_dt = _parse_range(start, end)
    in_range = (Transaction.created_at >= start_dt, Transaction.created_at < end_dt)

    totals = db.session.query(
        func.count(Transaction.id).label("transactions"),
        func.coalesce(func.sum(Transaction.total_amount), 0).label("revenue"),
        func.coalesce(func.sum(Transaction.discount_amount), 0).label("order_discounts"),
    ).filter(Transaction.status == STATUS_COMPLETED, *in_range).one()

    items = db.session.query(
        func.coalesce(func.sum(TransactionItem.quantity), 0).label("items_sold"),
        func.coalesce(func.sum(TransactionItem.discount_amount), 0).label("item_discounts"),
    ).join(Transaction, TransactionItem.transaction_id == Transaction.id).filter(
        Transaction.status == STATUS_COMPLETED, *in_range
    ).one()

    canceled = db.session.query(func.count(Transaction.id)).filter(
        Transaction.status == STATUS_CANCELED, *in_range
    ).scalar()

    day = func.strftime("%Y-%m-%d", Transaction.created_at)
    if db.engine.dialect.name != "sqlite":
        day = func.to_char(Transaction.created_at, "YYYY-MM-DD")
    daily_rows = db.session.query(
        day.label("day"),
        func.count(Transaction.id).label("transactions"),
        func.coalesce(func.sum(Transaction.total_amount), 0).label("revenue"),
    ).filter(Transaction.status == STATUS_COMPLETED, *in_range).group_by("day").order_by("day").all()

    top_rows = db.session.query(
        TransactionItem.product_id,
        TransactionItem.product_name,
        func.sum(TransactionItem.quantity).label("quantity"),
        func.sum(TransactionItem.subtotal).label("revenue"),
    ).join(Transaction, TransactionItem.transaction_id == Transaction.id).filter(
        Transaction.status == STATUS_COMPLETED, *in_range
    ).group_by(
        TransactionItem.product_id, TransactionItem.product_name
    ).order_by(func.sum(TransactionItem.quantity).desc()).limit(top).all()

    transactions = int(totals.transactions or 0)
    revenue = int(totals.revenue or 0)
    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "transactions": transactions,
        "canceledTransactions": int(canceled or 0),
        "revenue": revenue,
        "averageTransaction": revenue // transactions if transactions else 0,
        "itemsSold": int(items.items_sold or 0),
        "discountTotal": int(totals.order_discounts or 0) + int(items.item_discounts or 0),
        "daily": [
            {"date": row.day, "transactions": int(row.transactions), "revenue": int(row.revenue)}
            for row in daily_rows
        ],
        "topProducts": [
            {
                "productId": row.product_id,
                "productName": row.product_name,
                "quantity": int(row.quantity or 0),
                "revenue": int(row.revenue or 0),
            }
            for row in top_rows
        ],
    }
