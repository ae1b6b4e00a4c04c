"""Tests for purchase parameter validation."""

from decimal import Decimal

import pytest

from neurolex_api.blockchain.errors import (
    ErrorCategory,
    PurchaseParameterError,
    RejectionReason,
)
from neurolex_api.purchases.validator import parse_price, validate_purchase_params


def _reason(units, price, policy):
    with pytest.raises(PurchaseParameterError) as exc_info:
        validate_purchase_params(units, price, policy)
    return exc_info.value.reason


class TestValidatePurchaseParams:
    """Validation order and outcomes."""

    def test_valid_purchase_returns_expected_price(self, policy):
        assert validate_purchase_params(100, "0.1", policy) == Decimal("0.100000")

    def test_bounds_are_inclusive(self, policy):
        assert validate_purchase_params(10, "0.01", policy) == Decimal("0.010000")
        assert validate_purchase_params(10000, "10", policy) == Decimal("10.000000")

    def test_below_minimum(self, policy):
        assert _reason(5, "0.005", policy) == RejectionReason.BELOW_MINIMUM

    def test_above_maximum(self, policy):
        assert _reason(10001, "10.001", policy) == RejectionReason.ABOVE_MAXIMUM

    @pytest.mark.parametrize("units", [0, -5, 10.5, "10", None, True, float("nan"), float("inf")])
    def test_not_a_positive_integer(self, policy, units):
        assert _reason(units, "0.01", policy) == RejectionReason.NOT_A_POSITIVE_INTEGER

    def test_integral_float_is_accepted(self, policy):
        assert validate_purchase_params(20.0, "0.02", policy) == Decimal("0.020000")

    def test_price_within_tolerance(self, policy):
        # 0.1 expected, 0.0001 tolerance
        assert validate_purchase_params(100, "0.1001", policy) == Decimal("0.100000")
        assert validate_purchase_params(100, "0.0999", policy) == Decimal("0.100000")

    def test_price_outside_tolerance(self, policy):
        assert _reason(100, "0.2", policy) == RejectionReason.PRICE_MISMATCH
        assert _reason(100, "0.1002", policy) == RejectionReason.PRICE_MISMATCH

    @pytest.mark.parametrize("price", ["abc", "", None, "NaN", "Infinity", True])
    def test_unparseable_price(self, policy, price):
        assert _reason(100, price, policy) == RejectionReason.PRICE_MISMATCH

    @pytest.mark.parametrize("price", ["1e999999999", "-1e999999999", "1e-999999999"])
    def test_extreme_exponent_is_price_mismatch(self, policy, price):
        assert _reason(100, price, policy) == RejectionReason.PRICE_MISMATCH

    def test_quantity_checked_before_price(self, policy):
        # A wrong price does not mask an out-of-range quantity
        assert _reason(5, "garbage", policy) == RejectionReason.BELOW_MINIMUM

    def test_messages_name_limits(self, policy):
        with pytest.raises(PurchaseParameterError) as exc_info:
            validate_purchase_params(5, "0.005", policy)
        assert "10" in str(exc_info.value)

        with pytest.raises(PurchaseParameterError) as exc_info:
            validate_purchase_params(100, "0.5", policy)
        assert "0.100000" in str(exc_info.value)

    def test_rejections_are_client_input(self, policy):
        with pytest.raises(PurchaseParameterError) as exc_info:
            validate_purchase_params(5, "0.005", policy)
        assert exc_info.value.category == ErrorCategory.CLIENT_INPUT
        assert exc_info.value.retryable is False


class TestParsePrice:
    """Claimed price parsing."""

    def test_parses_decimal_strings(self):
        assert parse_price("0.1") == Decimal("0.1")
        assert parse_price(" 1.5 ") == Decimal("1.5")
        assert parse_price(2) == Decimal("2")

    def test_rejects_non_finite(self):
        assert parse_price("NaN") is None
        assert parse_price("-Infinity") is None

    @pytest.mark.parametrize("price", ["1e999999999", "-1e999999999", "1e-999999999", "1e19"])
    def test_rejects_out_of_range_magnitude(self, price):
        assert parse_price(price) is None

    def test_accepts_magnitude_bounds(self):
        assert parse_price("1e-18") == Decimal("1e-18")
        assert parse_price("1e18") == Decimal("1e18")


class TestPolicyQuotes:
    """Price quoting helpers."""

    def test_quote_price_rounds_to_six_places(self, policy):
        assert policy.quote_price(1) == Decimal("0.001000")
        assert policy.quote_price(123) == Decimal("0.123000")

    def test_units_for_price_floors(self, policy):
        assert policy.units_for_price("0.0259") == 25
        assert policy.units_for_price(Decimal("1")) == 1000
