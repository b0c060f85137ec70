"""
Discount calculator tests.

Verifies:
- Percentage discounts round half-up to whole units
- Nominal discounts are clamped to the base amount
- Non-positive values mean no discount
"""

from decimal import Decimal

import pytest

from posledger.services.discount_service import (
    DiscountSpec,
    KIND_NOMINAL,
    KIND_PERCENTAGE,
    apply_discount,
)
from posledger.services.errors import InvalidCart


class TestApplyDiscount:

    def test_percentage(self):
        result = apply_discount(50000, DiscountSpec.of("PERCENTAGE", 10))
        assert result.discount_amount == 5000
        assert result.final_amount == 45000

    def test_percentage_rounds_half_up(self):
        result = apply_discount(12345, DiscountSpec.of("PERCENTAGE", 10))
        assert result.discount_amount == 1235
        assert result.final_amount == 11110

    def test_fractional_percentage(self):
        result = apply_discount(10000, DiscountSpec.of("PERCENTAGE", "2.5"))
        assert result.discount_amount == 250

    def test_nominal(self):
        result = apply_discount(30000, DiscountSpec.of("NOMINAL", 5000))
        assert result.discount_amount == 5000
        assert result.final_amount == 25000

    def test_nominal_larger_than_base_is_clamped(self):
        result = apply_discount(10000, DiscountSpec.of("NOMINAL", 15000))
        assert result.discount_amount == 10000
        assert result.final_amount == 0

    def test_percentage_over_hundred_never_goes_negative(self):
        result = apply_discount(10000, DiscountSpec.of("PERCENTAGE", 150))
        assert result.final_amount == 0

    def test_no_discount(self):
        result = apply_discount(10000, None)
        assert result.discount_amount == 0
        assert result.final_amount == 10000
        assert result.spec.is_none


class TestDiscountSpec:

    @pytest.mark.parametrize("value", [0, -5, None])
    def test_non_positive_value_is_none(self, value):
        assert DiscountSpec.of("PERCENTAGE", value).is_none

    def test_kind_is_case_insensitive(self):
        spec = DiscountSpec.of("nominal", 2000)
        assert spec.kind == KIND_NOMINAL
        assert spec.value == Decimal("2000")

    def test_invalid_kind(self):
        with pytest.raises(InvalidCart):
            DiscountSpec.of("BOGO", 10)

    def test_invalid_value(self):
        with pytest.raises(InvalidCart):
            DiscountSpec.of("PERCENTAGE", "ten")

    def test_from_payload(self):
        spec = DiscountSpec.from_payload({"type": "PERCENTAGE", "value": 15})
        assert spec.kind == KIND_PERCENTAGE
        assert spec.value == Decimal("15")

    def test_from_payload_accepts_kind_key(self):
        assert DiscountSpec.from_payload({"kind": "NOMINAL", "value": 100}).kind == KIND_NOMINAL

    def test_from_empty_payload(self):
        assert DiscountSpec.from_payload(None).is_none
        assert DiscountSpec.from_payload({}).is_none

    def test_from_non_object_payload(self):
        with pytest.raises(InvalidCart):
            DiscountSpec.from_payload("10%")
