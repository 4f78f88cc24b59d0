"""
Tests for InvoiceService.

Covers:
- Creation and finalization ("YYYY-FNNNNN")
- Every state machine edge through set_status, with side-effect stamps
- Guarded deletion of unused drafts
"""

from datetime import date
from decimal import Decimal
from itertools import product
from uuid import uuid4

import pytest

from billing_kernel.domain.lifecycle import InvoiceStatus
from billing_kernel.exceptions import (
    DeletionForbiddenError,
    DocumentNotFoundError,
    IllegalTransitionError,
)
from billing_kernel.models.invoice import Invoice, InvoiceLine

# Shortest path from DRAFT to each status
PATHS = {
    InvoiceStatus.DRAFT: [],
    InvoiceStatus.SENT: [InvoiceStatus.SENT],
    InvoiceStatus.VALIDATED: [InvoiceStatus.SENT, InvoiceStatus.VALIDATED],
    InvoiceStatus.REFUSED: [InvoiceStatus.SENT, InvoiceStatus.REFUSED],
    InvoiceStatus.CANCELLED: [InvoiceStatus.SENT, InvoiceStatus.CANCELLED],
}

ALLOWED = {
    (InvoiceStatus.DRAFT, InvoiceStatus.SENT),
    (InvoiceStatus.SENT, InvoiceStatus.VALIDATED),
    (InvoiceStatus.SENT, InvoiceStatus.REFUSED),
    (InvoiceStatus.SENT, InvoiceStatus.CANCELLED),
    (InvoiceStatus.VALIDATED, InvoiceStatus.CANCELLED),
    (InvoiceStatus.REFUSED, InvoiceStatus.CANCELLED),
}


@pytest.fixture
def draft(invoice_service, client, consulting_line):
    return invoice_service.create_invoice(
        client.id, [consulting_line], due_date=date(2025, 2, 14)
    )


class TestCreateAndFinalize:

    def test_create(self, draft):
        assert draft.status is InvoiceStatus.DRAFT
        assert draft.number is None
        assert draft.due_date == date(2025, 2, 14)
        assert draft.grand_total == Decimal("240.00")

    def test_finalize(self, invoice_service, draft):
        invoice = invoice_service.finalize(draft.id)

        assert invoice.number == "2025-F00001"
        assert invoice.issue_date == date(2025, 1, 15)

    def test_finalize_recomputes_totals_from_lines(self, session, invoice_service, draft):
        # Corrupt the header totals; finalize must restore them from the lines
        row = session.get(Invoice, draft.id)
        row.grand_total = Decimal("0.00")
        session.flush()

        invoice = invoice_service.finalize(draft.id)

        assert invoice.grand_total == Decimal("240.00")
        assert invoice.sub_total + invoice.tax_total == invoice.grand_total

    def test_finalize_twice_consumes_one_number(self, invoice_service, client, consulting_line, draft):
        invoice_service.finalize(draft.id)
        invoice_service.finalize(draft.id)
        other = invoice_service.create_invoice(client.id, [consulting_line])

        assert invoice_service.finalize(other.id).number == "2025-F00002"

    def test_quote_and_invoice_sequences_are_separate(
        self, quote_service, invoice_service, client, consulting_line, draft
    ):
        quote = quote_service.create_quote(client.id, [consulting_line])

        assert quote_service.finalize(quote.id).number == "2025-Q00001"
        assert invoice_service.finalize(draft.id).number == "2025-F00001"


class TestInvoiceTransitions:

    @pytest.mark.parametrize(
        "from_status, to_status", list(product(InvoiceStatus, InvoiceStatus))
    )
    def test_every_pair(self, invoice_service, draft, from_status, to_status):
        for step in PATHS[from_status]:
            invoice_service.set_status(draft.id, step)

        if (from_status, to_status) in ALLOWED:
            assert invoice_service.set_status(draft.id, to_status).status is to_status
        else:
            with pytest.raises(IllegalTransitionError):
                invoice_service.set_status(draft.id, to_status)
            assert invoice_service.get(draft.id).status is from_status

    def test_validated_stamps_validated_at(self, invoice_service, draft, clock):
        invoice_service.set_status(draft.id, InvoiceStatus.SENT)
        clock.advance(3600)

        invoice = invoice_service.set_status(draft.id, InvoiceStatus.VALIDATED)

        assert invoice.validated_at == clock.now()
        assert invoice.sent_at is not None

    def test_refused_without_reason(self, invoice_service, draft):
        invoice_service.set_status(draft.id, InvoiceStatus.SENT)

        invoice = invoice_service.set_status(draft.id, InvoiceStatus.REFUSED, "   ")

        assert invoice.refused_at is not None
        assert invoice.status_reason is None

    def test_cancel_with_new_reason_replaces(self, invoice_service, draft):
        invoice_service.set_status(draft.id, InvoiceStatus.SENT)
        invoice_service.set_status(draft.id, InvoiceStatus.REFUSED, "wrong amount")

        invoice = invoice_service.set_status(draft.id, InvoiceStatus.CANCELLED, "reissued")

        assert invoice.status_reason == "reissued"

    def test_logs_status_changed(self, invoice_service, draft, captured_logs):
        invoice_service.set_status(draft.id, InvoiceStatus.SENT)

        record = next(r for r in captured_logs() if r["message"] == "status_changed")
        assert record["from_status"] == "DRAFT"
        assert record["to_status"] == "SENT"
        assert record["document_id"] == str(draft.id)


class TestDeleteInvoice:

    def test_delete_unused_draft(self, session, invoice_service, draft):
        invoice_service.delete_invoice(draft.id)

        assert session.get(Invoice, draft.id) is None
        assert session.query(InvoiceLine).count() == 0

    def test_numbered_invoice_cannot_be_deleted(self, invoice_service, draft):
        invoice_service.finalize(draft.id)

        with pytest.raises(DeletionForbiddenError):
            invoice_service.delete_invoice(draft.id)

    def test_sent_invoice_cannot_be_deleted(self, invoice_service, draft):
        invoice_service.set_status(draft.id, InvoiceStatus.SENT)

        with pytest.raises(DeletionForbiddenError):
            invoice_service.delete_invoice(draft.id)

    def test_unknown_invoice(self, invoice_service):
        with pytest.raises(DocumentNotFoundError):
            invoice_service.delete_invoice(uuid4())
