"""Cash count reconciliation: pure functions, no I/O.

Amounts are ``Decimal`` quantized to the currency minor unit. A declared
balance reconciles with a counted breakdown when the two differ by at most
one minor unit.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Protocol

MINOR_UNIT = Decimal("0.01")
BALANCE_TOLERANCE = Decimal("0.01")


class CountLine(Protocol):
    denomination_id: int
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    """A counted line with its amount resolved against the catalog."""

    denomination_id: int
    quantity: int
    amount: Decimal


@dataclass(frozen=True)
class BalanceCheck:
    """Outcome of comparing a declared balance with its breakdown."""

    declared: Decimal
    calculated_total: Decimal
    ok: bool

    @property
    def difference(self) -> Decimal:
        return quantize_money(self.declared - self.calculated_total)


def quantize_money(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def price_breakdown(
    breakdown: Iterable[CountLine], catalog_values: Mapping[int, Decimal]
) -> list[PricedLine]:
    """Resolve each line's amount as quantity x denomination value.

    Raises:
        ValueError: unknown denomination id or negative quantity
    """
    priced = []
    for line in breakdown:
        if line.denomination_id not in catalog_values:
            raise ValueError(f"Unknown denomination id: {line.denomination_id}")
        if line.quantity < 0:
            raise ValueError(f"Quantity cannot be negative: {line.quantity}")
        amount = quantize_money(catalog_values[line.denomination_id] * line.quantity)
        priced.append(PricedLine(line.denomination_id, line.quantity, amount))
    return priced


def calculate_total(
    breakdown: Iterable[CountLine], catalog_values: Mapping[int, Decimal]
) -> Decimal:
    """Sum of quantity x value over the breakdown."""
    lines = price_breakdown(breakdown, catalog_values)
    return quantize_money(sum((line.amount for line in lines), Decimal("0")))


def verify_balance(
    declared: Decimal,
    breakdown: Iterable[CountLine],
    catalog_values: Mapping[int, Decimal],
) -> BalanceCheck:
    """Check a declared balance against a counted denomination breakdown.

    ``ok`` is True iff ``|declared - calculated_total| <= 0.01``.
    """
    calculated_total = calculate_total(breakdown, catalog_values)
    declared_amount = Decimal(declared)
    ok = abs(declared_amount - calculated_total) <= BALANCE_TOLERANCE
    return BalanceCheck(
        declared=declared_amount,
        calculated_total=calculated_total,
        ok=ok,
    )


def compute_discrepancy(system_expected: Decimal, calculated_closing: Decimal) -> Decimal:
    """Signed discrepancy: system expected minus counted closing cash.

    Positive = shortage (less cash than expected), negative = surplus.
    """
    return quantize_money(Decimal(system_expected) - Decimal(calculated_closing))
