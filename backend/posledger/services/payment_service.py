# Overview: Service-layer operations for gateway payments; sessions, notifications and status polling.

"""
Gateway payment state machine

Transaction.status moves only while PENDING:

    mapped PAID     -> COMPLETED (paid_at = now), unless fraud_status is
                       "challenge": payment_status PAID, status stays PENDING
    mapped FAILED   -> CANCELED, stock restored, one cancel log
    mapped EXPIRED  -> CANCELED, stock restored, one cancel log
    mapped PENDING  -> payment_status only

Once a transaction is COMPLETED or CANCELED, gateway events only refresh the
Payment row; COMPLETED -> CANCELED happens through lifecycle_service alone.
Cash sales never belong to the gateway: events naming their invoice are
logged and ignored, leaving the settlement Payment untouched.

The Payment row is upserted by transaction_id, so duplicate webhook
deliveries and repeated status polls rewrite the same fields and never add a
second payment, credit twice, or touch stock twice.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Payment, Transaction
from ..models.transactions import (
    STATUS_PENDING,
    STATUS_COMPLETED,
    PAYMENT_PENDING,
    PAYMENT_PAID,
    PAYMENT_FAILED,
    PAYMENT_EXPIRED,
)
from posledger.time_utils import utcnow, parse_gateway_time
from .activity_service import record_stock_changes
from .concurrency import lock_for_update, run_with_retry
from .errors import (
    InvalidCart,
    InvalidWebhookSignature,
    NotEligibleForPayment,
    TransactionError,
    TransactionNotFound,
)
from .lifecycle_service import mark_canceled, restore_stock
from .midtrans_client import CustomerDetails, MidtransClient, SnapSession, map_gateway_status
from .payment_methods import PaymentMethod


FRAUD_CHALLENGE = "challenge"

DEFAULT_CUSTOMER_NAME = "Customer"
DEFAULT_CUSTOMER_EMAIL = "customer@example.com"
DEFAULT_CUSTOMER_PHONE = "08123456789"


def _upsert_payment(tx: Transaction, gateway_status: str, payload: dict) -> Payment:
    payment = db.session.query(Payment).filter_by(transaction_id=tx.id).first()
    if payment is None:
        payment = Payment(
            transaction_id=tx.id,
            amount=tx.total_amount,
            payment_type="MIDTRANS",
        )
        db.session.add(payment)

    payment.payment_status = gateway_status
    if payload.get("payment_type"):
        payment.payment_method = payload["payment_type"]
    payment.fraud_status = payload.get("fraud_status")
    payment.transaction_time = parse_gateway_time(payload.get("transaction_time"))
    payment.gateway_transaction_id = payload.get("transaction_id")
    payment.status_code = payload.get("status_code")
    payment.status_message = payload.get("status_message")
    payment.raw_response = payload
    return payment


def apply_payment_event(
    order_id: str,
    gateway_status: str,
    fraud_status: str | None = None,
    *,
    payload: dict | None = None,
    now: datetime | None = None,
) -> Transaction | None:
    """
    Reconcile one gateway status report with the ledger.

    Returns the transaction, or None when order_id matches no invoice.
    """
    payload = dict(payload or {})
    payload.setdefault("order_id", order_id)
    payload.setdefault("transaction_status", gateway_status)
    if fraud_status is not None:
        payload.setdefault("fraud_status", fraud_status)
    mapped = map_gateway_status(gateway_status)

    def _op():
        current = now or utcnow()
        tx = lock_for_update(db.session.query(Transaction).filter_by(invoice_no=order_id)).first()
        if not tx:
            return None, []

        if tx.payment_type == PaymentMethod.CASH.value:
            current_app.logger.warning(
                "Ignoring gateway status %s for cash transaction %s", gateway_status, order_id
            )
            db.session.commit()
            return tx, []

        _upsert_payment(tx, gateway_status, payload)

        changes = []
        if tx.status == STATUS_PENDING:
            if mapped == PAYMENT_PAID:
                tx.payment_status = PAYMENT_PAID
                if fraud_status != FRAUD_CHALLENGE:
                    tx.status = STATUS_COMPLETED
                    tx.paid_at = current
            elif mapped in (PAYMENT_FAILED, PAYMENT_EXPIRED):
                tx.payment_status = mapped
                changes = restore_stock(tx, note=f"Payment {mapped.lower()} for {tx.invoice_no}")
                mark_canceled(
                    tx,
                    reason=f"Payment {mapped.lower()} ({gateway_status})",
                    now=current,
                )
            else:
                tx.payment_status = mapped

        db.session.commit()
        return tx, changes

    tx, changes = run_with_retry(_op)
    record_stock_changes(changes)
    return tx


def handle_notification(payload: dict, client: MidtransClient | None = None) -> Transaction | None:
    """
    Verify and apply a gateway push notification.

    Raises InvalidWebhookSignature before touching any state.
    """
    client = client or MidtransClient.from_app()
    if not client.verify_signature(payload):
        raise InvalidWebhookSignature("Invalid signature")

    return apply_payment_event(
        str(payload.get("order_id", "")),
        payload.get("transaction_status") or "",
        payload.get("fraud_status"),
        payload=payload,
    )


def poll_status(order_id: str, client: MidtransClient | None = None) -> tuple[Transaction, dict, str]:
    """
    Ask the gateway for the order's status and apply it like a notification.

    Returns (transaction, raw gateway status, mapped payment status).
    """
    if not db.session.query(Transaction.id).filter_by(invoice_no=order_id).first():
        raise TransactionNotFound("Transaction not found", details={"order_id": order_id})

    client = client or MidtransClient.from_app()
    status = client.get_status(order_id)
    gateway_status = status.get("transaction_status") or ""
    tx = apply_payment_event(
        order_id,
        gateway_status,
        status.get("fraud_status"),
        payload=status,
    )
    return tx, status, map_gateway_status(gateway_status)


def _customer_for(tx: Transaction, customer_details: dict | None) -> CustomerDetails:
    details = customer_details or {}
    cashier = tx.cashier
    return CustomerDetails(
        name=details.get("name") or (cashier.name if cashier else None) or DEFAULT_CUSTOMER_NAME,
        email=details.get("email") or (cashier.email if cashier else None) or DEFAULT_CUSTOMER_EMAIL,
        phone=details.get("phone") or DEFAULT_CUSTOMER_PHONE,
    )


def _callback_urls(invoice_no: str) -> dict:
    base = current_app.config.get("APP_URL", "http://localhost:3000").rstrip("/")
    return {
        outcome: f"{base}/cashier?payment_status={status}&order_id={invoice_no}"
        for outcome, status in (("finish", "success"), ("error", "error"), ("pending", "pending"))
    }


def open_gateway_session(
    transaction_id: int,
    payment_method,
    customer_details: dict | None = None,
    client: MidtransClient | None = None,
) -> SnapSession:
    """
    Open a hosted payment page for a PENDING transaction.

    A gateway failure raises GatewaySessionError and leaves the transaction
    PENDING so the cashier can retry or cancel it.
    """
    method = PaymentMethod.parse(payment_method)
    if not method.is_gateway:
        raise InvalidCart("Cash transactions do not use the payment gateway")

    tx = db.session.query(Transaction).filter_by(id=transaction_id).first()
    if not tx:
        raise TransactionNotFound("Transaction not found", details={"transaction_id": transaction_id})
    if tx.status != STATUS_PENDING or tx.payment_status != PAYMENT_PENDING:
        raise NotEligibleForPayment(
            "Transaction is not eligible for payment",
            details={"status": tx.status, "payment_status": tx.payment_status},
        )

    client = client or MidtransClient.from_app()
    session = client.create_session(
        tx.invoice_no,
        tx.total_amount,
        _customer_for(tx, customer_details),
        enabled_payments=method.enabled_payments,
        callbacks=_callback_urls(tx.invoice_no),
    )

    def _op():
        try:
            locked = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
            if locked.status != STATUS_PENDING:
                raise NotEligibleForPayment(
                    "Transaction is not eligible for payment",
                    details={"status": locked.status},
                )
            locked.payment_type = method.value
            locked.snap_token = session.token
            locked.snap_redirect_url = session.redirect_url

            payment = db.session.query(Payment).filter_by(transaction_id=locked.id).first()
            if payment is None:
                payment = Payment(transaction_id=locked.id, amount=locked.total_amount, payment_type="MIDTRANS")
                db.session.add(payment)
            payment.payment_method = method.channel
            payment.payment_status = "pending"

            db.session.commit()
        except TransactionError:
            db.session.rollback()
            raise

    run_with_retry(_op)
    return session
