# Overview: Closed set of payment methods accepted at checkout.

from __future__ import annotations

from enum import Enum

from .errors import InvalidCart


_EWALLETS = ["gopay", "shopeepay", "ovo", "dana", "linkaja"]
_VIRTUAL_ACCOUNTS = ["bca_va", "bni_va", "bri_va", "mandiri_va", "permata_va", "cimb_va"]


class PaymentMethod(str, Enum):
    CASH = "CASH"
    MIDTRANS_QRIS = "MIDTRANS_QRIS"
    MIDTRANS_EWALLET = "MIDTRANS_EWALLET"
    MIDTRANS_BANK_TRANSFER = "MIDTRANS_BANK_TRANSFER"
    MIDTRANS_ALL = "MIDTRANS_ALL"

    @classmethod
    def parse(cls, value, default: "PaymentMethod | None" = None) -> "PaymentMethod":
        if value is None or value == "":
            if default is None:
                raise InvalidCart("paymentMethod required")
            return default
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidCart(
                f"Invalid payment method: {value}",
                details={"allowed": [m.value for m in cls]},
            )

    @property
    def is_gateway(self) -> bool:
        return self is not PaymentMethod.CASH

    @property
    def channel(self) -> str:
        """Short lowercase name stored on Payment.payment_method."""
        if self is PaymentMethod.CASH:
            return "cash"
        return self.value.lower().replace("midtrans_", "")

    @property
    def enabled_payments(self) -> list[str]:
        """Snap channels offered on the hosted payment page."""
        if self is PaymentMethod.CASH:
            return []
        if self is PaymentMethod.MIDTRANS_QRIS:
            return ["qris"]
        if self is PaymentMethod.MIDTRANS_EWALLET:
            return list(_EWALLETS)
        if self is PaymentMethod.MIDTRANS_BANK_TRANSFER:
            return list(_VIRTUAL_ACCOUNTS)
        return ["credit_card"] + _EWALLETS + ["qris"] + _VIRTUAL_ACCOUNTS[:5]
