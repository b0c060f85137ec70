# Overview: Pure discount arithmetic for line items and whole transactions.

"""
Discounts are expressed in whole currency units.

- PERCENTAGE: discount = round_half_up(base * value / 100)
- NOMINAL:    discount = value
- Both are clamped to [0, base], so a discount can never push an amount
  below zero. A value <= 0 means "no discount".

Checkout applies the calculator twice: once per line (unit price x quantity)
and once on the sum of discounted lines.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import InvalidCart


KIND_NONE = "NONE"
KIND_PERCENTAGE = "PERCENTAGE"
KIND_NOMINAL = "NOMINAL"

VALID_KINDS = (KIND_NONE, KIND_PERCENTAGE, KIND_NOMINAL)


@dataclass(frozen=True)
class DiscountSpec:
    kind: str = KIND_NONE
    value: Decimal = Decimal(0)

    @property
    def is_none(self) -> bool:
        return self.kind == KIND_NONE

    @classmethod
    def none(cls) -> "DiscountSpec":
        return cls()

    @classmethod
    def of(cls, kind: str | None, value) -> "DiscountSpec":
        """Normalize kind/value; non-positive values collapse to NONE."""
        kind = (kind or KIND_NONE).upper()
        if kind not in VALID_KINDS:
            raise InvalidCart(
                f"Invalid discount type: {kind}",
                details={"allowed": list(VALID_KINDS)},
            )
        if kind == KIND_NONE or value is None or isinstance(value, bool):
            return cls()
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise InvalidCart("Discount value must be a number", details={"value": value})
        if not amount.is_finite():
            raise InvalidCart("Discount value must be a number", details={"value": value})
        if amount <= 0:
            return cls()
        return cls(kind=kind, value=amount)

    @classmethod
    def from_payload(cls, payload: dict | None) -> "DiscountSpec":
        """Accepts {"type": ..., "value": ...} (or "kind" instead of "type")."""
        if not payload:
            return cls()
        if not isinstance(payload, dict):
            raise InvalidCart("Discount must be an object")
        return cls.of(payload.get("type") or payload.get("kind"), payload.get("value"))


@dataclass(frozen=True)
class DiscountResult:
    base_amount: int
    discount_amount: int
    final_amount: int
    spec: DiscountSpec


def apply_discount(base_amount: int, spec: DiscountSpec | None) -> DiscountResult:
    """Apply a discount to base_amount. Never returns a negative final amount."""
    spec = spec or DiscountSpec.none()
    base = max(int(base_amount), 0)

    if spec.kind == KIND_PERCENTAGE:
        raw = (Decimal(base) * spec.value / Decimal(100)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        discount = int(raw)
    elif spec.kind == KIND_NOMINAL:
        discount = int(spec.value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    else:
        discount = 0

    discount = min(max(discount, 0), base)
    return DiscountResult(
        base_amount=base,
        discount_amount=discount,
        final_amount=base - discount,
        spec=spec,
    )
