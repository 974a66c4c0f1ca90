"""
Settlement distribution and lifecycle.

Splits a settlement between attorney fees, medical liens, expenses and
the client, and tracks the settlement from proposal to finalization.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, Optional

from .currency import AmountLike, ZERO, to_amount
from .errors import InvalidStateError, ValidationError

logger = logging.getLogger(__name__)


class SettlementStatus(Enum):
    """Settlement lifecycle states."""
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FINALIZED = "finalized"


ALLOWED_TRANSITIONS: Dict[SettlementStatus, FrozenSet[SettlementStatus]] = {
    SettlementStatus.PROPOSED: frozenset({
        SettlementStatus.ACCEPTED,
        SettlementStatus.REJECTED,
        SettlementStatus.FINALIZED,
    }),
    SettlementStatus.ACCEPTED: frozenset({SettlementStatus.FINALIZED}),
    SettlementStatus.REJECTED: frozenset(),
    SettlementStatus.FINALIZED: frozenset(),
}


@dataclass(frozen=True)
class Settlement:
    """A proposed or agreed settlement for a case."""
    id: str
    client_id: str
    case_id: str
    total_amount: Decimal
    attorney_fees: Decimal
    medical_liens: Decimal
    expenses: Decimal
    client_amount: Decimal
    status: SettlementStatus
    finalized_at: Optional[datetime] = None


def calculate_client_amount(
    total_amount: AmountLike,
    attorney_fees: AmountLike = None,
    medical_liens: AmountLike = None,
    expenses: AmountLike = None,
) -> Decimal:
    """Client share of a settlement, clamped at zero."""
    remaining = (
        to_amount(total_amount)
        - to_amount(attorney_fees)
        - to_amount(medical_liens)
        - to_amount(expenses)
    )
    return max(ZERO, remaining)


def create_settlement(
    client_id: str,
    case_id: str,
    total_amount: AmountLike,
    attorney_fees: AmountLike,
    medical_liens: AmountLike = None,
    expenses: AmountLike = None,
    settlement_id: Optional[str] = None,
) -> Settlement:
    """Validate fields and build a new proposed settlement.

    Raises:
        ValidationError: Naming the first missing or invalid field
    """
    if not client_id:
        raise ValidationError("client_id is required", field="client_id")
    if not case_id:
        raise ValidationError("case_id is required", field="case_id")

    total = to_amount(total_amount)
    if total <= 0:
        raise ValidationError("total_amount must be > 0", field="total_amount")
    if attorney_fees is None:
        raise ValidationError("attorney_fees is required", field="attorney_fees")

    fees = to_amount(attorney_fees)
    liens = to_amount(medical_liens)
    costs = to_amount(expenses)
    for name, value in (("attorney_fees", fees), ("medical_liens", liens), ("expenses", costs)):
        if value < 0:
            raise ValidationError(f"{name} cannot be negative", field=name)

    return Settlement(
        id=settlement_id or str(uuid.uuid4()),
        client_id=client_id,
        case_id=case_id,
        total_amount=total,
        attorney_fees=fees,
        medical_liens=liens,
        expenses=costs,
        client_amount=calculate_client_amount(total, fees, liens, costs),
        status=SettlementStatus.PROPOSED,
    )


def transition_settlement(
    settlement: Settlement,
    new_status: SettlementStatus,
    at: Optional[datetime] = None,
) -> Settlement:
    """Move a settlement to a new status.

    Raises:
        InvalidStateError: If the transition is not allowed
    """
    if new_status not in ALLOWED_TRANSITIONS[settlement.status]:
        raise InvalidStateError(
            f"Settlement {settlement.id} cannot move from "
            f"{settlement.status.value} to {new_status.value}",
            current=settlement.status.value,
            target=new_status.value,
        )
    logger.info(
        "Settlement %s: %s -> %s", settlement.id, settlement.status.value, new_status.value
    )
    finalized_at = settlement.finalized_at
    if new_status == SettlementStatus.FINALIZED:
        finalized_at = at or datetime.now()
    return replace(settlement, status=new_status, finalized_at=finalized_at)


def finalize_settlement(settlement: Settlement, at: Optional[datetime] = None) -> Settlement:
    """Finalize a proposed or accepted settlement."""
    return transition_settlement(settlement, SettlementStatus.FINALIZED, at)
