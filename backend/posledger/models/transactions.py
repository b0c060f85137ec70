from __future__ import annotations

from ..extensions import db
from posledger.time_utils import to_utc_z


# Transaction.status
STATUS_PENDING = "PENDING"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELED = "CANCELED"

# Transaction.payment_status
PAYMENT_PENDING = "PENDING"
PAYMENT_PAID = "PAID"
PAYMENT_FAILED = "FAILED"
PAYMENT_EXPIRED = "EXPIRED"


class Transaction(db.Model):
    """
    A sale.

    Lifecycle: PENDING -> COMPLETED | CANCELED, COMPLETED -> CANCELED
    (explicit cancel inside the cancellation window only). CANCELED is terminal.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("invoice_no", name="uq_transactions_invoice_no"),
        db.Index("ix_transactions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-facing identifier, also the gateway order_id: INV-YYYYMMDD-NNNN
    invoice_no = db.Column(db.String(32), nullable=False)

    subtotal_amount = db.Column(db.Integer, nullable=False)
    total_amount = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, index=True)
    payment_type = db.Column(db.String(32), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_PENDING, index=True)

    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    canceled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    canceled_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    # Transaction-level discount
    discount_type = db.Column(db.String(16), nullable=True)
    discount_value = db.Column(db.Numeric(12, 2), nullable=True)
    discount_amount = db.Column(db.Integer, nullable=False, default=0)

    # Hosted payment page handle (gateway methods only)
    snap_token = db.Column(db.String(255), nullable=True)
    snap_redirect_url = db.Column(db.String(512), nullable=True)

    cashier = db.relationship("User", foreign_keys=[cashier_id])
    canceled_by = db.relationship("User", foreign_keys=[canceled_by_id])
    items = db.relationship(
        "TransactionItem",
        back_populates="transaction",
        order_by="TransactionItem.id",
        lazy=True,
    )
    payment = db.relationship("Payment", uselist=False, back_populates="transaction")
    cancel_logs = db.relationship(
        "TransactionCancelLog",
        back_populates="transaction",
        order_by="TransactionCancelLog.canceled_at.desc()",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} invoice_no={self.invoice_no!r} status={self.status}>"

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "invoiceNo": self.invoice_no,
            "totalAmount": self.total_amount,
            "status": self.status,
            "paymentStatus": self.payment_status,
            "createdAt": to_utc_z(self.created_at),
        }

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoiceNo": self.invoice_no,
            "subtotalAmount": self.subtotal_amount,
            "totalAmount": self.total_amount,
            "status": self.status,
            "paymentType": self.payment_type,
            "paymentStatus": self.payment_status,
            "cashierId": self.cashier_id,
            "createdAt": to_utc_z(self.created_at),
            "paidAt": to_utc_z(self.paid_at),
            "canceledAt": to_utc_z(self.canceled_at),
            "canceledBy": self.canceled_by_id,
            "discountType": self.discount_type,
            "discountValue": float(self.discount_value) if self.discount_value is not None else None,
            "discountAmount": self.discount_amount,
            "snapRedirectUrl": self.snap_redirect_url,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["payment"] = self.payment.to_dict() if self.payment else None
            data["cancelLogs"] = [log.to_dict() for log in self.cancel_logs]
        return data


class TransactionItem(db.Model):
    """Line item; product name and price are snapshots taken at sale time."""
    __tablename__ = "transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    discount_type = db.Column(db.String(16), nullable=True)
    discount_value = db.Column(db.Numeric(12, 2), nullable=True)
    # Unit price after the line discount, floored; subtotal is authoritative
    discount_price = db.Column(db.Integer, nullable=False)
    discount_amount = db.Column(db.Integer, nullable=False, default=0)
    subtotal = db.Column(db.Integer, nullable=False)

    transaction = db.relationship("Transaction", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "productId": self.product_id,
            "productName": self.product_name,
            "price": self.price,
            "quantity": self.quantity,
            "discountType": self.discount_type,
            "discountValue": float(self.discount_value) if self.discount_value is not None else None,
            "discountPrice": self.discount_price,
            "discountAmount": self.discount_amount,
            "subtotal": self.subtotal,
        }


class Payment(db.Model):
    """
    Settlement record, one per transaction.

    payment_status keeps the gateway's raw vocabulary (settlement, pending,
    expire, ...); the mapped value lives on Transaction.payment_status.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", name="uq_payments_transaction"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False)

    amount = db.Column(db.Integer, nullable=False)
    payment_type = db.Column(db.String(32), nullable=False)  # CASH, MIDTRANS
    payment_method = db.Column(db.String(64), nullable=True)  # cash, qris, gopay, bca_va, ...
    payment_status = db.Column(db.String(32), nullable=False, index=True)
    fraud_status = db.Column(db.String(32), nullable=True)
    transaction_time = db.Column(db.DateTime(timezone=True), nullable=True)

    gateway_transaction_id = db.Column(db.String(128), nullable=True)
    status_code = db.Column(db.String(8), nullable=True)
    status_message = db.Column(db.String(255), nullable=True)
    raw_response = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    transaction = db.relationship("Transaction", back_populates="payment")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "amount": self.amount,
            "paymentType": self.payment_type,
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "fraudStatus": self.fraud_status,
            "transactionTime": to_utc_z(self.transaction_time),
            "gatewayTransactionId": self.gateway_transaction_id,
            "statusCode": self.status_code,
            "statusMessage": self.status_message,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class TransactionCancelLog(db.Model):
    """Append-only audit row, written exactly once per cancellation."""
    __tablename__ = "transaction_cancel_logs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    reason = db.Column(db.Text, nullable=False)

    # NULL when the gateway (deny/cancel/expire) canceled the transaction
    canceled_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    canceled_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    transaction = db.relationship("Transaction", back_populates="cancel_logs")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "reason": self.reason,
            "canceledBy": self.canceled_by_id,
            "canceledAt": to_utc_z(self.canceled_at),
        }


class InvoiceSequence(db.Model):
    """Per-day invoice counter; next_number is the number the next sale gets."""
    __tablename__ = "invoice_sequences"
    __table_args__ = (
        db.UniqueConstraint("invoice_date", name="uq_invoice_sequences_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_date = db.Column(db.String(8), nullable=False)  # YYYYMMDD
    next_number = db.Column(db.Integer, nullable=False, default=1)
