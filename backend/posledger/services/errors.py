# Overview: Domain error taxonomy for the checkout core; each error knows its HTTP status.

from __future__ import annotations


class TransactionError(Exception):
    """Base class for checkout / payment / cancellation failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InvalidCart(TransactionError):
    """Empty cart, bad quantity, duplicate product, bad discount or mismatched totals."""


class ProductUnavailable(TransactionError):
    """Product missing or inactive."""


class InsufficientStock(TransactionError):
    """Requested quantity exceeds on-hand stock. Retryable once stock changes."""
    status_code = 409


class InvoiceCollision(TransactionError):
    """Two sales were assigned the same invoice number. Retryable."""
    status_code = 409


class TransactionNotFound(TransactionError):
    status_code = 404


class AlreadyCanceled(TransactionError):
    pass


class CancelWindowExpired(TransactionError):
    pass


class ReasonRequired(TransactionError):
    pass


class InvalidWebhookSignature(TransactionError):
    status_code = 403


class NotEligibleForPayment(TransactionError):
    """Gateway session requested for a transaction that is no longer awaiting payment."""


class GatewaySessionError(TransactionError):
    """Upstream payment gateway failure."""
    status_code = 502


class InvalidFilter(TransactionError):
    """Bad status, date or paging parameter on a listing."""
