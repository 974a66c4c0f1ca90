"""
Lien reduction calculation.

Computes net settlement, reduced lien, client recovery and the lien
reduction percentage from the five monetary inputs of a settlement.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from .currency import AmountLike, ZERO, parse_amount, to_amount
from .errors import ValidationError

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LienCalculationInput:
    """Monetary inputs for a lien reduction calculation.

    Only settlement_amount is required; the remaining amounts default to zero.
    """
    settlement_amount: Decimal
    attorney_fees: Decimal = field(default=ZERO)
    case_expenses: Decimal = field(default=ZERO)
    medical_bills: Decimal = field(default=ZERO)
    lien_amount: Decimal = field(default=ZERO)

    def __post_init__(self):
        """Normalize every amount to Decimal."""
        for name in ("settlement_amount", "attorney_fees", "case_expenses",
                     "medical_bills", "lien_amount"):
            object.__setattr__(self, name, to_amount(getattr(self, name)))


@dataclass(frozen=True)
class LienCalculationResult:
    """Derived lien figures, recomputed from scratch for every input."""
    net_settlement: Decimal
    reduced_lien: Decimal
    client_recovery: Decimal
    lien_reduction_percentage: Decimal


def calculate_lien_reduction(data: LienCalculationInput) -> LienCalculationResult:
    """Calculate the proportional lien reduction for a settlement.

    The reduced lien is the lien scaled by the share the net settlement
    represents of (medical bills + net settlement), capped at the lien
    itself. Net settlement is not clamped, so a negative value flows
    through to the client recovery unchanged.

    No rounding is applied; callers format the result for display.

    Args:
        data: Calculation inputs

    Returns:
        LienCalculationResult with all four figures

    Raises:
        ValidationError: If the settlement amount is not positive, any
            other amount is negative, or medical bills and net settlement
            cancel out (undefined ratio)
    """
    if data.settlement_amount <= 0:
        raise ValidationError("settlement amount required", field="settlement_amount")
    for name in ("attorney_fees", "case_expenses", "medical_bills", "lien_amount"):
        if getattr(data, name) < 0:
            raise ValidationError(f"{name} cannot be negative", field=name)

    net_settlement = data.settlement_amount - data.attorney_fees - data.case_expenses

    reduced_lien = ZERO
    if data.medical_bills > 0:
        denominator = data.medical_bills + net_settlement
        if denominator == 0:
            raise ValidationError(
                "net settlement cancels out medical bills; reduction ratio is undefined",
                field="medical_bills",
            )
        ratio = net_settlement / denominator
        reduced_lien = min(data.lien_amount * ratio, data.lien_amount)

    client_recovery = net_settlement - reduced_lien

    if data.lien_amount > 0:
        percentage = (data.lien_amount - reduced_lien) / data.lien_amount * HUNDRED
    else:
        percentage = ZERO

    return LienCalculationResult(
        net_settlement=net_settlement,
        reduced_lien=reduced_lien,
        client_recovery=client_recovery,
        lien_reduction_percentage=percentage,
    )


def calculate_lien_reduction_from_strings(
    settlement_amount: AmountLike,
    attorney_fees: AmountLike = None,
    case_expenses: AmountLike = None,
    medical_bills: AmountLike = None,
    lien_amount: AmountLike = None,
) -> LienCalculationResult:
    """Parse raw form values with parse_amount and run the calculation."""
    return calculate_lien_reduction(LienCalculationInput(
        settlement_amount=parse_amount(settlement_amount),
        attorney_fees=parse_amount(attorney_fees),
        case_expenses=parse_amount(case_expenses),
        medical_bills=parse_amount(medical_bills),
        lien_amount=parse_amount(lien_amount),
    ))
