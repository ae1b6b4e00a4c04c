"""Local validation of purchase claims before any chain lookup."""

import math
from decimal import Decimal, InvalidOperation

from neurolex_api.blockchain.errors import PurchaseParameterError, RejectionReason
from neurolex_api.purchases.policy import PurchasePolicy

# Claimed prices are ether amounts; anything outside 1e-18 .. 1e18 is not a price
MIN_PRICE_EXPONENT = -18
MAX_PRICE_EXPONENT = 18


def parse_price(value) -> Decimal | None:
    """Parse a claimed ether amount; None when it is not a finite decimal of sane magnitude."""
    if isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or not MIN_PRICE_EXPONENT <= price.adjusted() <= MAX_PRICE_EXPONENT:
        return None
    return price


def validate_purchase_params(
    desired_units,
    claimed_price,
    policy: PurchasePolicy,
) -> Decimal:
    """
    Check a claimed unit quantity and ether price against purchase policy.

    Pure and deterministic. Returns the expected price on success, raises
    PurchaseParameterError with the specific reason otherwise.
    """
    if isinstance(desired_units, bool) or not isinstance(desired_units, (int, Decimal, float)):
        raise PurchaseParameterError(
            RejectionReason.NOT_A_POSITIVE_INTEGER,
            "TA amount must be a positive whole number",
        )
    if isinstance(desired_units, (Decimal, float)):
        finite = desired_units.is_finite() if isinstance(desired_units, Decimal) else math.isfinite(desired_units)
        if not finite or desired_units != int(desired_units):
            raise PurchaseParameterError(
                RejectionReason.NOT_A_POSITIVE_INTEGER,
                "TA amount must be a positive whole number",
            )
        desired_units = int(desired_units)
    if desired_units <= 0:
        raise PurchaseParameterError(
            RejectionReason.NOT_A_POSITIVE_INTEGER,
            "TA amount must be a positive whole number",
        )

    if desired_units < policy.min_purchase:
        raise PurchaseParameterError(
            RejectionReason.BELOW_MINIMUM,
            f"You must buy at least {policy.min_purchase} TA",
        )
    if desired_units > policy.max_purchase:
        raise PurchaseParameterError(
            RejectionReason.ABOVE_MAXIMUM,
            f"You can buy at most {policy.max_purchase} TA",
        )

    expected = policy.quote_price(desired_units)
    price = parse_price(claimed_price)
    if price is None or not policy.within_tolerance(price, expected):
        raise PurchaseParameterError(
            RejectionReason.PRICE_MISMATCH,
            f"Incorrect ETH amount. {desired_units} TA costs {expected} ETH",
        )

    return expected
