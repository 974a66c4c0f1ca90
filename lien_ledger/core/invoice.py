"""
Invoice totals and status lifecycle.

Invoices are created pending and move to paid or cancelled through
explicit actions. Overdue is never stored by a transition here; it is
derived at read time from the due date.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from .currency import ZERO, to_amount
from .errors import InvalidStateError, ValidationError

logger = logging.getLogger(__name__)


class InvoiceStatus(Enum):
    """Invoice lifecycle states."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# States from which an invoice can still be settled or cancelled
OPEN_STATUSES = (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)


@dataclass(frozen=True)
class InvoiceLineItem:
    """A billable line on an invoice."""
    description: str
    amount: Decimal
    quantity: int = 1

    def __post_init__(self):
        object.__setattr__(self, "amount", to_amount(self.amount))

    @property
    def line_total(self) -> Decimal:
        return self.amount * self.quantity


@dataclass(frozen=True)
class Invoice:
    """An invoice issued to a client for a case."""
    id: str
    client_id: str
    case_id: str
    amount: Decimal
    status: InvoiceStatus
    due_date: date
    items: Tuple[InvoiceLineItem, ...] = field(default_factory=tuple)
    paid_at: Optional[datetime] = None


def compute_invoice_total(items: Iterable[InvoiceLineItem]) -> Decimal:
    """Sum amount * quantity over all line items."""
    total = ZERO
    for item in items:
        total += item.line_total
    return total


def create_invoice(
    client_id: str,
    case_id: str,
    due_date: Optional[date],
    items: Sequence[InvoiceLineItem],
    invoice_id: Optional[str] = None,
) -> Invoice:
    """Validate fields and build a new pending invoice.

    Validation stops at the first offending field instead of collecting
    every problem.

    Args:
        client_id: Client being billed
        case_id: Case the work belongs to
        due_date: Payment due date
        items: Line items, at least one
        invoice_id: Optional id; a random one is generated otherwise

    Returns:
        New Invoice in PENDING status

    Raises:
        ValidationError: Naming the first missing or invalid field
    """
    if not client_id:
        raise ValidationError("client_id is required", field="client_id")
    if not case_id:
        raise ValidationError("case_id is required", field="case_id")
    if due_date is None:
        raise ValidationError("due_date is required", field="due_date")
    if not items:
        raise ValidationError("at least one line item is required", field="items")

    for index, item in enumerate(items):
        if not item.description or not item.description.strip():
            raise ValidationError(
                f"items[{index}].description is required",
                field=f"items[{index}].description",
            )
        if item.amount <= 0:
            raise ValidationError(
                f"items[{index}].amount must be > 0",
                field=f"items[{index}].amount",
            )
        if (isinstance(item.quantity, bool) or not isinstance(item.quantity, int)
                or item.quantity < 1):
            raise ValidationError(
                f"items[{index}].quantity must be a positive integer",
                field=f"items[{index}].quantity",
            )

    return Invoice(
        id=invoice_id or str(uuid.uuid4()),
        client_id=client_id,
        case_id=case_id,
        amount=compute_invoice_total(items),
        status=InvoiceStatus.PENDING,
        due_date=due_date,
        items=tuple(items),
    )


def effective_status(invoice: Invoice, today: Optional[date] = None) -> InvoiceStatus:
    """Status as presented to a reader: pending past its due date is overdue."""
    today = today or date.today()
    if invoice.status == InvoiceStatus.PENDING and invoice.due_date < today:
        return InvoiceStatus.OVERDUE
    return invoice.status


def mark_invoice_paid(invoice: Invoice, paid_at: Optional[datetime] = None) -> Invoice:
    """Return a copy of the invoice transitioned to PAID.

    Raises:
        InvalidStateError: If the invoice is already paid or cancelled
    """
    if invoice.status not in OPEN_STATUSES:
        raise InvalidStateError(
            f"Invoice {invoice.id} is {invoice.status.value} and cannot be marked as paid",
            current=invoice.status.value,
            target=InvoiceStatus.PAID.value,
        )
    logger.info("Invoice %s marked as paid", invoice.id)
    return replace(invoice, status=InvoiceStatus.PAID, paid_at=paid_at or datetime.now())


def cancel_invoice(invoice: Invoice) -> Invoice:
    """Return a copy of the invoice transitioned to CANCELLED.

    Raises:
        InvalidStateError: If the invoice is already paid or cancelled
    """
    if invoice.status not in OPEN_STATUSES:
        raise InvalidStateError(
            f"Invoice {invoice.id} is {invoice.status.value} and cannot be cancelled",
            current=invoice.status.value,
            target=InvoiceStatus.CANCELLED.value,
        )
    logger.info("Invoice %s cancelled", invoice.id)
    return replace(invoice, status=InvoiceStatus.CANCELLED)


def filter_invoices(
    invoices: Iterable[Invoice],
    client_id: Optional[str] = None,
    case_id: Optional[str] = None,
    status: Optional[InvoiceStatus] = None,
    today: Optional[date] = None,
) -> List[Invoice]:
    """Filter invoices by client, case and effective status."""
    result = []
    for invoice in invoices:
        if client_id and invoice.client_id != client_id:
            continue
        if case_id and invoice.case_id != case_id:
            continue
        if status is not None and effective_status(invoice, today) != status:
            continue
        result.append(invoice)
    return result


def outstanding_balance(invoices: Iterable[Invoice]) -> Decimal:
    """Total amount of invoices that are still open."""
    return sum(
        (invoice.amount for invoice in invoices if invoice.status in OPEN_STATUSES),
        ZERO,
    )
