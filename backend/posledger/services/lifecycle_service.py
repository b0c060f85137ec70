# Overview: Service-layer operations for transaction cancellation and stock reversal.

"""
Cancellation

A transaction may be canceled while it is PENDING or COMPLETED, provided it
was created no more than CANCEL_WINDOW_HOURS (24h) ago. The window is only
checked when a cancel is requested; nothing expires transactions on a timer.

Cancel is one DB transaction: every item's quantity goes back to stock, the
transaction becomes CANCELED with canceled_at/canceled_by, and exactly one
TransactionCancelLog row is appended.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import Transaction, TransactionCancelLog, User
from ..models.transactions import STATUS_CANCELED
from posledger.time_utils import utcnow
from .activity_service import record_stock_changes
from .concurrency import lock_for_update, run_with_retry
from .errors import (
    AlreadyCanceled,
    CancelWindowExpired,
    ReasonRequired,
    TransactionError,
    TransactionNotFound,
)
from .inventory_service import StockChange, increment


DEFAULT_CANCEL_WINDOW_HOURS = 24


def cancel_window() -> timedelta:
    hours = current_app.config.get("CANCEL_WINDOW_HOURS", DEFAULT_CANCEL_WINDOW_HOURS)
    return timedelta(hours=hours)


def is_within_cancel_window(tx: Transaction, now: datetime | None = None) -> bool:
    now = now or utcnow()
    return now - tx.created_at <= cancel_window()


def restore_stock(
    tx: Transaction,
    *,
    note: str,
    user_id: int | None = None,
    user_name: str | None = None,
) -> list[StockChange]:
    """Put every item's quantity back. Does not commit."""
    return [
        increment(item.product_id, item.quantity, note=note, user_id=user_id, user_name=user_name)
        for item in tx.items
    ]


def mark_canceled(
    tx: Transaction,
    *,
    reason: str,
    now: datetime,
    actor_id: int | None = None,
) -> TransactionCancelLog:
    """Flip status and append the audit row. Does not commit."""
    tx.status = STATUS_CANCELED
    tx.canceled_at = now
    tx.canceled_by_id = actor_id

    log = TransactionCancelLog(
        transaction_id=tx.id,
        reason=reason,
        canceled_by_id=actor_id,
        canceled_at=now,
    )
    db.session.add(log)
    return log


def cancel_transaction(
    transaction_id: int,
    reason: str | None,
    actor_id: int,
    *,
    now: datetime | None = None,
) -> Transaction:
    """
    Cancel a transaction and restore its stock.

    Raises:
        ReasonRequired: reason missing or blank
        TransactionNotFound: unknown id
        AlreadyCanceled: status is already CANCELED
        CancelWindowExpired: created more than the cancel window ago
    """
    if not isinstance(reason, str) or not reason.strip():
        raise ReasonRequired("Cancellation reason is required")
    reason = reason.strip()

    def _op():
        current = now or utcnow()
        try:
            tx = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
            if not tx:
                raise TransactionNotFound("Transaction not found", details={"transaction_id": transaction_id})

            if tx.status == STATUS_CANCELED:
                raise AlreadyCanceled(
                    "Transaction has already been canceled",
                    details={"canceled_at": tx.canceled_at.isoformat() if tx.canceled_at else None},
                )

            if not is_within_cancel_window(tx, current):
                raise CancelWindowExpired(
                    f"Transactions older than {int(cancel_window().total_seconds() // 3600)} hours cannot be canceled",
                    details={"created_at": tx.created_at.isoformat()},
                )

            actor = db.session.query(User).filter_by(id=actor_id).first()
            changes = restore_stock(
                tx,
                note=f"Cancel {tx.invoice_no}: {reason}",
                user_id=actor_id,
                user_name=actor.name if actor else None,
            )
            mark_canceled(tx, reason=reason, now=current, actor_id=actor_id)

            db.session.commit()
            return tx, changes
        except TransactionError:
            db.session.rollback()
            raise

    tx, changes = run_with_retry(_op)
    record_stock_changes(changes)
    return tx
