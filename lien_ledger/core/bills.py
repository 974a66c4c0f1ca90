"""
Medical bill aggregation and reduction summaries.

Totals per-provider bills and applies the flat-rate reduction policy used
for automatically ingested bills.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from .currency import ZERO, to_amount
from .errors import ValidationError

HUNDRED = Decimal("100")

# Share of each bill removed for bills ingested from email (60% retained)
DEFAULT_FLAT_REDUCTION_RATE = Decimal("0.4")


@dataclass(frozen=True)
class RawBill:
    """A provider bill that has not been reduced yet."""
    provider: str
    description: str
    original_amount: Decimal

    def __post_init__(self):
        object.__setattr__(self, "original_amount", to_amount(self.original_amount))


@dataclass(frozen=True)
class BillLineItem:
    """A provider bill with its negotiated reduced amount.

    Callers are expected to keep reduced_amount <= original_amount; the
    aggregation does not enforce it.
    """
    provider: str
    description: str
    original_amount: Decimal
    reduced_amount: Decimal

    def __post_init__(self):
        object.__setattr__(self, "original_amount", to_amount(self.original_amount))
        object.__setattr__(self, "reduced_amount", to_amount(self.reduced_amount))

    @property
    def savings(self) -> Decimal:
        """Amount saved on this bill."""
        return self.original_amount - self.reduced_amount


@dataclass(frozen=True)
class BillSummary:
    """Totals across a list of bills."""
    total_original: Decimal
    total_reduced: Decimal
    total_savings: Decimal
    savings_percentage: Decimal


def summarize_bills(items: Iterable[BillLineItem]) -> BillSummary:
    """Summarize original vs reduced totals for a list of bills.

    An empty list (or a zero original total) yields a zero savings
    percentage instead of a division error.

    Args:
        items: Bills with reduced amounts already set

    Returns:
        BillSummary with totals and savings percentage
    """
    total_original = ZERO
    total_reduced = ZERO
    for item in items:
        total_original += item.original_amount
        total_reduced += item.reduced_amount

    total_savings = total_original - total_reduced
    if total_original > 0:
        savings_percentage = total_savings / total_original * HUNDRED
    else:
        savings_percentage = ZERO

    return BillSummary(
        total_original=total_original,
        total_reduced=total_reduced,
        total_savings=total_savings,
        savings_percentage=savings_percentage,
    )


def apply_flat_reduction(items: Iterable[RawBill], rate) -> List[BillLineItem]:
    """Reduce every bill by the same rate, rounding to whole dollars.

    A rate of 0.4 keeps 60% of each original amount. Halves round up,
    so 0.5 becomes 1.

    Args:
        items: Bills without a reduced amount
        rate: Fraction removed from each bill, between 0 and 1

    Returns:
        New BillLineItem list in the same order

    Raises:
        ValidationError: If rate is outside [0, 1]
    """
    try:
        rate = to_amount(rate)
    except ValueError:
        raise ValidationError(f"invalid reduction rate: {rate!r}", field="rate")
    if rate < 0 or rate > 1:
        raise ValidationError("reduction rate must be between 0 and 1", field="rate")

    retained = Decimal("1") - rate
    return [
        BillLineItem(
            provider=bill.provider,
            description=bill.description,
            original_amount=bill.original_amount,
            reduced_amount=(bill.original_amount * retained).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            ),
        )
        for bill in items
    ]
