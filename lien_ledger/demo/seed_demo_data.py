# lien_ledger/demo/seed_demo_data.py

from datetime import date, datetime, timedelta
from typing import List, Tuple

from lien_ledger.core.invoice import (
    Invoice,
    InvoiceLineItem,
    create_invoice,
    mark_invoice_paid
)
from lien_ledger.core.settlement import (
    Settlement,
    SettlementStatus,
    create_settlement,
    transition_settlement
)
from lien_ledger.storage.models import (
    INVOICES,
    SETTLEMENTS,
    invoice_to_document,
    settlement_to_document
)
from lien_ledger.storage.repository import DocumentStore


def build_demo_invoices(today: date) -> List[Invoice]:
    """Three invoices: one pending, one paid, one past due."""
    pending = create_invoice(
        "client1", "case1", today + timedelta(days=15),
        [InvoiceLineItem("Initial consultation", 500),
         InvoiceLineItem("Case preparation", 2000)],
        invoice_id="invoice1"
    )
    paid = mark_invoice_paid(
        create_invoice(
            "client2", "case2", today - timedelta(days=5),
            [InvoiceLineItem("Document preparation", 800),
             InvoiceLineItem("Court appearance", 1000)],
            invoice_id="invoice2"
        ),
        paid_at=datetime.combine(today - timedelta(days=10), datetime.min.time())
    )
    overdue = create_invoice(
        "client3", "case3", today - timedelta(days=10),
        [InvoiceLineItem("Research", 1200),
         InvoiceLineItem("Deposition preparation", 2000)],
        invoice_id="invoice3"
    )
    return [pending, paid, overdue]


def build_demo_settlements(today: date) -> List[Settlement]:
    proposed = create_settlement(
        "client1", "case1", 50000, 16500, expenses=500, settlement_id="settlement1"
    )
    finalized = transition_settlement(
        create_settlement(
            "client2", "case2", 75000, 25000, expenses=1250, settlement_id="settlement2"
        ),
        SettlementStatus.FINALIZED,
        at=datetime.combine(today - timedelta(days=15), datetime.min.time())
    )
    accepted = transition_settlement(
        create_settlement(
            "client3", "case3", 100000, 33000, expenses=2000, settlement_id="settlement3"
        ),
        SettlementStatus.ACCEPTED
    )
    return [proposed, finalized, accepted]


def seed_demo_data(store: DocumentStore) -> Tuple[List[Invoice], List[Settlement]]:
    """Insert demo invoices and settlements into a store."""
    today = date.today()
    invoices = build_demo_invoices(today)
    settlements = build_demo_settlements(today)
    for invoice in invoices:
        store.create(INVOICES, invoice_to_document(invoice), document_id=invoice.id)
    for settlement in settlements:
        store.create(SETTLEMENTS, settlement_to_document(settlement), document_id=settlement.id)
    return invoices, settlements


if __name__ == "__main__":
    from lien_ledger.storage.repository import get_store, initialize_schema

    initialize_schema()
    seed_demo_data(get_store())
    print("Demo billing data inserted")
