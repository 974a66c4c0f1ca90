"""
Unit tests for invoice totals and the invoice lifecycle.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from lien_ledger.core.errors import InvalidStateError, ValidationError
from lien_ledger.core.invoice import (
    Invoice,
    InvoiceLineItem,
    InvoiceStatus,
    cancel_invoice,
    compute_invoice_total,
    create_invoice,
    effective_status,
    filter_invoices,
    mark_invoice_paid,
    outstanding_balance
)

TODAY = date(2024, 6, 15)


def _invoice(status=InvoiceStatus.PENDING, due=date(2024, 7, 1), client="client1", case="case1"):
    return Invoice(
        id=f"{client}-{status.value}-{due.isoformat()}",
        client_id=client,
        case_id=case,
        amount=Decimal("100"),
        status=status,
        due_date=due,
        items=(InvoiceLineItem("Research", 100),)
    )


class TestInvoiceTotal:
    """Test invoice total computation."""

    def test_amount_times_quantity(self):
        """Verify totals multiply by quantity."""
        items = [InvoiceLineItem("Court appearance", 100, 2), InvoiceLineItem("Filing", 50, 1)]
        assert compute_invoice_total(items) == Decimal("250")

    def test_empty(self):
        """Verify an empty invoice totals zero."""
        assert compute_invoice_total([]) == Decimal("0")

    def test_additive(self):
        """Verify total(A + B) == total(A) + total(B)."""
        a = [InvoiceLineItem("Consultation", "500.10", 1), InvoiceLineItem("Copies", "0.15", 40)]
        b = [InvoiceLineItem("Deposition", "1999.99", 3)]
        assert compute_invoice_total(a + b) == compute_invoice_total(a) + compute_invoice_total(b)

    def test_exact_cents(self):
        """Verify no float drift across many small items."""
        items = [InvoiceLineItem("Copy", 0.1, 1)] * 10
        assert compute_invoice_total(items) == Decimal("1.0")


class TestCreateInvoice:
    """Test invoice creation and validation."""

    def test_creates_pending_invoice(self):
        """Verify a valid invoice starts pending with its computed total."""
        invoice = create_invoice(
            "client1", "case1", date(2024, 7, 1),
            [InvoiceLineItem("Initial consultation", 500), InvoiceLineItem("Case preparation", 2000)]
        )
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.amount == Decimal("2500")
        assert invoice.id
        assert invoice.paid_at is None
        assert len(invoice.items) == 2

    def test_explicit_id(self):
        """Verify a caller-supplied id is kept."""
        invoice = create_invoice("c", "k", TODAY, [InvoiceLineItem("x", 1)], invoice_id="inv-1")
        assert invoice.id == "inv-1"

    @pytest.mark.parametrize("client,case,due,field", [
        ("", "case1", TODAY, "client_id"),
        ("client1", "", TODAY, "case_id"),
        ("client1", "case1", None, "due_date"),
    ])
    def test_missing_header_fields(self, client, case, due, field):
        """Verify missing header fields are reported by name."""
        with pytest.raises(ValidationError) as excinfo:
            create_invoice(client, case, due, [InvoiceLineItem("x", 1)])
        assert excinfo.value.field == field

    def test_no_items(self):
        """Verify an invoice needs at least one item."""
        with pytest.raises(ValidationError) as excinfo:
            create_invoice("client1", "case1", TODAY, [])
        assert excinfo.value.field == "items"

    def test_blank_description(self):
        """Verify items need a description."""
        with pytest.raises(ValidationError, match="description") as excinfo:
            create_invoice("client1", "case1", TODAY, [InvoiceLineItem("  ", 100)])
        assert excinfo.value.field == "items[0].description"

    def test_non_positive_amount(self):
        """Verify items need a positive amount."""
        with pytest.raises(ValidationError) as excinfo:
            create_invoice(
                "client1", "case1", TODAY,
                [InvoiceLineItem("Research", 100), InvoiceLineItem("Filing", 0)]
            )
        assert excinfo.value.field == "items[1].amount"

    def test_non_positive_quantity(self):
        """Verify items need a positive quantity."""
        with pytest.raises(ValidationError) as excinfo:
            create_invoice("client1", "case1", TODAY, [InvoiceLineItem("Research", 100, 0)])
        assert excinfo.value.field == "items[0].quantity"

    @pytest.mark.parametrize("quantity", [True, 1.5, "2"])
    def test_quantity_must_be_an_integer(self, quantity):
        """Verify booleans and non-integers are not accepted as quantities."""
        with pytest.raises(ValidationError) as excinfo:
            create_invoice("client1", "case1", TODAY, [InvoiceLineItem("Research", 100, quantity)])
        assert excinfo.value.field == "items[0].quantity"

    def test_fails_fast_on_first_violation(self):
        """Verify only the first problem is reported."""
        with pytest.raises(ValidationError) as excinfo:
            create_invoice(
                "", "case1", None,
                [InvoiceLineItem("", 0)]
            )
        assert excinfo.value.field == "client_id"


class TestInvoiceLifecycle:
    """Test status transitions."""

    def test_mark_pending_paid(self):
        """Verify pending invoices can be paid."""
        paid_at = datetime(2024, 6, 20, 10, 0)
        invoice = _invoice()
        paid = mark_invoice_paid(invoice, paid_at=paid_at)
        assert paid.status == InvoiceStatus.PAID
        assert paid.paid_at == paid_at
        assert invoice.status == InvoiceStatus.PENDING

    def test_mark_overdue_paid(self):
        """Verify overdue invoices can be paid."""
        paid = mark_invoice_paid(_invoice(status=InvoiceStatus.OVERDUE))
        assert paid.status == InvoiceStatus.PAID
        assert paid.paid_at is not None

    def test_paid_cannot_be_paid_again(self):
        """Verify paying twice is an error."""
        paid = mark_invoice_paid(_invoice())
        with pytest.raises(InvalidStateError) as excinfo:
            mark_invoice_paid(paid)
        assert excinfo.value.current == "paid"
        assert excinfo.value.target == "paid"

    def test_cancelled_cannot_be_paid(self):
        """Verify cancelled invoices cannot be paid."""
        with pytest.raises(InvalidStateError):
            mark_invoice_paid(_invoice(status=InvoiceStatus.CANCELLED))

    def test_cancel_pending(self):
        """Verify open invoices can be cancelled."""
        assert cancel_invoice(_invoice()).status == InvoiceStatus.CANCELLED

    def test_cancel_paid_is_error(self):
        """Verify paid invoices cannot be cancelled."""
        with pytest.raises(InvalidStateError):
            cancel_invoice(_invoice(status=InvoiceStatus.PAID))


class TestEffectiveStatus:
    """Test overdue derivation at read time."""

    def test_pending_past_due_is_overdue(self):
        """Verify a pending invoice past its due date reads as overdue."""
        invoice = _invoice(due=date(2024, 6, 1))
        assert effective_status(invoice, TODAY) == InvoiceStatus.OVERDUE
        assert invoice.status == InvoiceStatus.PENDING

    def test_due_today_is_pending(self):
        """Verify the due date itself is not overdue."""
        assert effective_status(_invoice(due=TODAY), TODAY) == InvoiceStatus.PENDING

    def test_paid_past_due_stays_paid(self):
        """Verify settled invoices never read as overdue."""
        invoice = _invoice(status=InvoiceStatus.PAID, due=date(2024, 1, 1))
        assert effective_status(invoice, TODAY) == InvoiceStatus.PAID


class TestInvoiceQueries:
    """Test filtering and balances."""

    def test_filter_by_client_and_status(self):
        """Verify filters combine and use effective status."""
        invoices = [
            _invoice(client="client1", due=date(2024, 6, 1)),
            _invoice(client="client1", due=date(2024, 7, 1)),
            _invoice(client="client2", due=date(2024, 6, 1)),
        ]
        overdue = filter_invoices(
            invoices, client_id="client1", status=InvoiceStatus.OVERDUE, today=TODAY
        )
        assert len(overdue) == 1
        assert overdue[0].due_date == date(2024, 6, 1)

    def test_filter_by_case(self):
        """Verify case filtering."""
        invoices = [_invoice(case="case1"), _invoice(case="case2")]
        assert [i.case_id for i in filter_invoices(invoices, case_id="case2")] == ["case2"]

    def test_outstanding_balance(self):
        """Verify only open invoices count toward the balance."""
        invoices = [
            _invoice(),
            _invoice(status=InvoiceStatus.OVERDUE),
            _invoice(status=InvoiceStatus.PAID),
            _invoice(status=InvoiceStatus.CANCELLED),
        ]
        assert outstanding_balance(invoices) == Decimal("200")
        assert outstanding_balance([]) == Decimal("0")
