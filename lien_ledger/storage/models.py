"""
Data models for storage layer.

Defines the stored document envelope and converts domain objects to and
from plain document data.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from lien_ledger.core.invoice import Invoice, InvoiceLineItem, InvoiceStatus
from lien_ledger.core.settlement import Settlement, SettlementStatus

INVOICES = "invoices"
SETTLEMENTS = "settlements"


@dataclass(frozen=True)
class StoredDocument:
    """A document as kept by a store.

    The store stamps id, created_at and updated_at; data holds only
    JSON-compatible values.
    """
    id: str
    collection: str
    data: Dict[str, Any]
    created_at: datetime
    updated_at: datetime


def _optional_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def invoice_to_document(invoice: Invoice) -> Dict[str, Any]:
    """Serialize an invoice; amounts are kept as strings to stay exact."""
    return {
        "client_id": invoice.client_id,
        "case_id": invoice.case_id,
        "amount": str(invoice.amount),
        "status": invoice.status.value,
        "due_date": invoice.due_date.isoformat(),
        "paid_at": invoice.paid_at.isoformat() if invoice.paid_at else None,
        "items": [
            {
                "description": item.description,
                "amount": str(item.amount),
                "quantity": item.quantity,
            }
            for item in invoice.items
        ],
    }


def invoice_from_document(document: StoredDocument) -> Invoice:
    data = document.data
    return Invoice(
        id=document.id,
        client_id=data["client_id"],
        case_id=data["case_id"],
        amount=Decimal(data["amount"]),
        status=InvoiceStatus(data["status"]),
        due_date=date.fromisoformat(data["due_date"]),
        items=tuple(
            InvoiceLineItem(
                description=item["description"],
                amount=Decimal(item["amount"]),
                quantity=int(item["quantity"]),
            )
            for item in data.get("items", [])
        ),
        paid_at=_optional_datetime(data.get("paid_at")),
    )


def settlement_to_document(settlement: Settlement) -> Dict[str, Any]:
    return {
        "client_id": settlement.client_id,
        "case_id": settlement.case_id,
        "total_amount": str(settlement.total_amount),
        "attorney_fees": str(settlement.attorney_fees),
        "medical_liens": str(settlement.medical_liens),
        "expenses": str(settlement.expenses),
        "client_amount": str(settlement.client_amount),
        "status": settlement.status.value,
        "finalized_at": settlement.finalized_at.isoformat() if settlement.finalized_at else None,
    }


def settlement_from_document(document: StoredDocument) -> Settlement:
    data = document.data
    return Settlement(
        id=document.id,
        client_id=data["client_id"],
        case_id=data["case_id"],
        total_amount=Decimal(data["total_amount"]),
        attorney_fees=Decimal(data["attorney_fees"]),
        medical_liens=Decimal(data["medical_liens"]),
        expenses=Decimal(data["expenses"]),
        client_amount=Decimal(data["client_amount"]),
        status=SettlementStatus(data["status"]),
        finalized_at=_optional_datetime(data.get("finalized_at")),
    )
