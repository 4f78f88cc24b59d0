"""
InvoiceService -- invoice (facture) lifecycle engine.

Creates DRAFT invoices, finalizes them into "YYYY-FNNNNN", moves them along
the invoice state machine and deletes unused drafts.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select

from billing_kernel.domain.dtos import InvoiceInfo
from billing_kernel.domain.lifecycle import DocumentKind, InvoiceStatus
from billing_kernel.exceptions import DeletionForbiddenError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.models.invoice import Invoice, InvoiceLine
from billing_kernel.models.quote import Quote, QuoteLine
from billing_kernel.services.document_service import DocumentService, LineSpec

logger = get_logger("services.invoice")


class InvoiceService(DocumentService[Invoice]):
    """Lifecycle engine for invoices."""

    kind = DocumentKind.INVOICE
    model = Invoice
    line_model = InvoiceLine

    def _to_dto(self, invoice: Invoice) -> InvoiceInfo:
        return InvoiceInfo.from_model(invoice)

    def _stamp(self, invoice: Invoice, target: InvoiceStatus, now: datetime) -> None:
        if target is InvoiceStatus.VALIDATED and invoice.validated_at is None:
            invoice.validated_at = now

    def create_invoice(
        self,
        client_id: UUID,
        lines: Iterable[LineSpec],
        due_date: date | None = None,
        notes: str | None = None,
        currency: str | None = None,
    ) -> InvoiceInfo:
        """
        Create a DRAFT invoice with priced lines.

        Raises:
            InvalidLineInputError: No lines, or any line invalid.
            ClientNotFoundError: Unknown client.
            InvalidCurrencyError: Currency not ISO 4217.
        """
        rows = self._build_lines(lines)
        invoice = self._create_draft(
            client_id,
            rows,
            currency,
            notes,
            status=InvoiceStatus.DRAFT,
            due_date=due_date,
        )
        return self._to_dto(invoice)

    def create_from_quote_lines(
        self,
        client_id: UUID,
        quote_lines: Iterable[QuoteLine],
        currency: str,
        notes: str | None,
    ) -> Invoice:
        """
        Create a DRAFT invoice whose lines copy ``quote_lines`` verbatim.

        Stored per-line amounts are copied, not recomputed, so the invoice
        mirrors the quote to the cent.
        """
        rows = [
            InvoiceLine(
                designation=line.designation,
                quantity=line.quantity,
                unit_price=line.unit_price,
                vat_rate=line.vat_rate,
                line_total_ht=line.line_total_ht,
                line_tax=line.line_tax,
                line_total_ttc=line.line_total_ttc,
                position=line.position,
            )
            for line in quote_lines
        ]
        return self._create_draft(
            client_id,
            rows,
            currency,
            notes,
            status=InvoiceStatus.DRAFT,
        )

    def delete_invoice(self, invoice_id: UUID) -> None:
        """
        Delete an unused draft invoice.

        Only a DRAFT that was never numbered and that no quote links to can
        be deleted.  Anything else must be cancelled instead.

        Raises:
            DocumentNotFoundError: Unknown id.
            DeletionForbiddenError: Numbered, not a draft, or linked.
        """
        with LogContext.bind(document_id=str(invoice_id), document_kind=self.kind.value):
            invoice = self._get_for_update(invoice_id)

            if invoice.number is not None:
                raise DeletionForbiddenError(
                    str(invoice_id), f"invoice already numbered {invoice.number}"
                )
            if invoice.status is not InvoiceStatus.DRAFT:
                raise DeletionForbiddenError(
                    str(invoice_id), f"status is {invoice.status.value}"
                )
            linked = self.session.execute(
                select(Quote.id).where(Quote.invoice_id == invoice.id)
            ).scalar_one_or_none()
            if linked is not None:
                raise DeletionForbiddenError(
                    str(invoice_id), f"converted from quote {linked}"
                )

            self.session.delete(invoice)
            self.session.flush()
            logger.info("invoice_deleted")
