# Overview: Midtrans Snap gateway adapter (hosted sessions, status polling, notification signatures).

"""
Midtrans Snap integration

- create_session: POST /snap/v1/transactions -> token + redirect_url
- get_status:     GET  /v2/{order_id}/status
- verify_signature: notification signature_key is
      sha512(order_id + status_code + gross_amount + server_key)

map_gateway_status translates Midtrans transaction_status values into the
payment statuses stored on Transaction. It is the only place the gateway's
vocabulary leaks into the core.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

import httpx
from flask import current_app

from ..models.transactions import PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED, PAYMENT_EXPIRED
from .errors import GatewaySessionError


SNAP_SANDBOX_URL = "https://app.sandbox.midtrans.com/snap/v1/transactions"
SNAP_PRODUCTION_URL = "https://app.midtrans.com/snap/v1/transactions"
API_SANDBOX_URL = "https://api.sandbox.midtrans.com/v2"
API_PRODUCTION_URL = "https://api.midtrans.com/v2"

GATEWAY_STATUS_MAP = {
    "capture": PAYMENT_PAID,
    "settlement": PAYMENT_PAID,
    "pending": PAYMENT_PENDING,
    "authorize": PAYMENT_PENDING,
    "deny": PAYMENT_FAILED,
    "cancel": PAYMENT_FAILED,
    "expire": PAYMENT_EXPIRED,
}


def map_gateway_status(gateway_status: str | None) -> str:
    """Unknown or missing statuses are treated as still pending."""
    return GATEWAY_STATUS_MAP.get((gateway_status or "").lower(), PAYMENT_PENDING)


@dataclass(frozen=True)
class CustomerDetails:
    name: str
    email: str
    phone: str

    def to_snap(self) -> dict:
        parts = self.name.strip().split(" ")
        return {
            "first_name": parts[0] or "Customer",
            "last_name": " ".join(parts[1:]),
            "email": self.email,
            "phone": self.phone,
        }


@dataclass(frozen=True)
class SnapSession:
    token: str
    redirect_url: str


class MidtransClient:
    def __init__(
        self,
        server_key: str,
        *,
        is_production: bool = False,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.server_key = server_key
        self.is_production = is_production
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_app(cls) -> "MidtransClient":
        config = current_app.config
        return cls(
            config.get("MIDTRANS_SERVER_KEY", ""),
            is_production=bool(config.get("MIDTRANS_IS_PRODUCTION")),
            timeout=float(config.get("GATEWAY_TIMEOUT_SECONDS", 15)),
            transport=config.get("MIDTRANS_TRANSPORT"),
        )

    @property
    def snap_url(self) -> str:
        return SNAP_PRODUCTION_URL if self.is_production else SNAP_SANDBOX_URL

    @property
    def api_url(self) -> str:
        return API_PRODUCTION_URL if self.is_production else API_SANDBOX_URL

    def _client(self) -> httpx.Client:
        if not self.server_key:
            raise GatewaySessionError("MIDTRANS_SERVER_KEY is not configured")
        return httpx.Client(
            auth=(self.server_key, ""),
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=self.timeout,
            transport=self._transport,
        )

    def create_session(
        self,
        order_id: str,
        gross_amount: int,
        customer: CustomerDetails,
        *,
        enabled_payments: list[str] | None = None,
        callbacks: dict | None = None,
    ) -> SnapSession:
        body = {
            "transaction_details": {"order_id": order_id, "gross_amount": gross_amount},
            "credit_card": {"secure": True},
            "customer_details": customer.to_snap(),
        }
        if enabled_payments:
            body["enabled_payments"] = enabled_payments
        if callbacks:
            body["callbacks"] = {k: v for k, v in callbacks.items() if v}

        try:
            with self._client() as client:
                response = client.post(self.snap_url, json=body)
        except httpx.HTTPError as exc:
            raise GatewaySessionError("Payment gateway unreachable", details={"reason": str(exc)}) from exc

        if response.status_code >= 400:
            raise GatewaySessionError(
                "Payment gateway rejected the session request",
                details={"status": response.status_code, "body": response.text[:500]},
            )

        data = response.json()
        if not data.get("token"):
            raise GatewaySessionError("Payment gateway returned no token", details={"body": data})
        return SnapSession(token=data["token"], redirect_url=data.get("redirect_url", ""))

    def get_status(self, order_id: str) -> dict:
        try:
            with self._client() as client:
                response = client.get(f"{self.api_url}/{order_id}/status")
        except httpx.HTTPError as exc:
            raise GatewaySessionError("Payment gateway unreachable", details={"reason": str(exc)}) from exc

        if response.status_code >= 400:
            raise GatewaySessionError(
                "Payment gateway status request failed",
                details={"status": response.status_code, "body": response.text[:500]},
            )

        data = response.json()
        # Core API reports unknown orders as HTTP 200 with status_code "404" in the body
        body_status = str(data.get("status_code") or "")
        if body_status.isdigit() and int(body_status) >= 400:
            raise GatewaySessionError(
                data.get("status_message") or "Payment gateway status request failed",
                details={"status": int(body_status), "body": data},
            )
        return data

    def signature_for(self, order_id: str, status_code: str, gross_amount: str) -> str:
        raw = f"{order_id}{status_code}{gross_amount}{self.server_key}"
        return hashlib.sha512(raw.encode("utf-8")).hexdigest()

    def verify_signature(self, payload: dict) -> bool:
        if not self.server_key or not isinstance(payload, dict):
            return False
        signature = payload.get("signature_key")
        if not isinstance(signature, str):
            return False
        expected = self.signature_for(
            str(payload.get("order_id", "")),
            str(payload.get("status_code", "")),
            str(payload.get("gross_amount", "")),
        )
        return hmac.compare_digest(expected, signature.lower())
