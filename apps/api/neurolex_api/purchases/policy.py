"""Purchase policy constants and price quoting."""

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

# Prices are compared and displayed with six decimal places of ether.
PRICE_QUANTUM = Decimal("0.000001")


@dataclass(frozen=True)
class PurchasePolicy:
    """Bounds and pricing for TA token purchases."""

    unit_price: Decimal
    min_purchase: int
    max_purchase: int
    tolerance: Decimal
    receiving_address: str

    def quote_price(self, units: int) -> Decimal:
        """Price in ether for a number of units, rounded to six places."""
        return (Decimal(units) * self.unit_price).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)

    def units_for_price(self, price: Decimal | str) -> int:
        """Whole units a given ether amount buys."""
        units = Decimal(str(price)) / self.unit_price
        return int(units.to_integral_value(rounding=ROUND_DOWN))

    def within_tolerance(self, actual: Decimal, expected: Decimal) -> bool:
        return abs(actual - expected) <= self.tolerance
