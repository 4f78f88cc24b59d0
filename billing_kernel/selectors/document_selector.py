"""
Module: billing_kernel.selectors.document_selector
Responsibility: Read-only access to quotes and invoices: single documents
    with their lines, newest-first listings with the client's display name,
    and the invoice dashboard summary.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only.
    - Listings are ordered by creation time, newest first.
    - Lines inside each DTO are ordered by position.

Failure modes:
    - DocumentNotFoundError from get_quote / get_invoice on an unknown id.
      Listings never raise on absence of data.
"""

from uuid import UUID

from sqlalchemy import func, select

from billing_kernel.domain.dtos import InvoiceInfo, InvoiceSummary, QuoteInfo
from billing_kernel.domain.lifecycle import (
    DocumentKind,
    DocumentStatus,
    InvoiceStatus,
    parse_status,
)
from billing_kernel.exceptions import DocumentNotFoundError
from billing_kernel.models.client import Client
from billing_kernel.models.invoice import Invoice
from billing_kernel.models.quote import Quote
from billing_kernel.selectors.base import BaseSelector

RECENT_INVOICES = 5


class DocumentSelector(BaseSelector[Quote]):
    """Selector for quote and invoice queries."""

    def get_quote(self, quote_id: UUID) -> QuoteInfo:
        row = self.session.execute(
            select(Quote, Client.display_name)
            .join(Client, Client.id == Quote.client_id)
            .where(Quote.id == quote_id)
        ).one_or_none()
        if row is None:
            raise DocumentNotFoundError(DocumentKind.QUOTE.value, str(quote_id))
        quote, client_name = row
        return QuoteInfo.from_model(quote, client_name=client_name)

    def get_invoice(self, invoice_id: UUID) -> InvoiceInfo:
        row = self.session.execute(
            select(Invoice, Client.display_name)
            .join(Client, Client.id == Invoice.client_id)
            .where(Invoice.id == invoice_id)
        ).one_or_none()
        if row is None:
            raise DocumentNotFoundError(DocumentKind.INVOICE.value, str(invoice_id))
        invoice, client_name = row
        return InvoiceInfo.from_model(invoice, client_name=client_name)

    def list_quotes(
        self,
        status: DocumentStatus | str | None = None,
        client_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[QuoteInfo]:
        """
        Quotes, newest first.

        Raises:
            UnknownStatusError: ``status`` is not a quote status.
        """
        query = (
            select(Quote, Client.display_name)
            .join(Client, Client.id == Quote.client_id)
            .order_by(Quote.created_at.desc(), Quote.number.desc())
        )
        if status is not None:
            query = query.where(Quote.status == parse_status(DocumentKind.QUOTE, status))
        if client_id is not None:
            query = query.where(Quote.client_id == client_id)
        if limit is not None:
            query = query.limit(limit)

        return [
            QuoteInfo.from_model(quote, client_name=name)
            for quote, name in self.session.execute(query).all()
        ]

    def list_invoices(
        self,
        status: DocumentStatus | str | None = None,
        client_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[InvoiceInfo]:
        """
        Invoices, newest first.

        Raises:
            UnknownStatusError: ``status`` is not an invoice status.
        """
        query = (
            select(Invoice, Client.display_name)
            .join(Client, Client.id == Invoice.client_id)
            .order_by(Invoice.created_at.desc(), Invoice.number.desc())
        )
        if status is not None:
            query = query.where(Invoice.status == parse_status(DocumentKind.INVOICE, status))
        if client_id is not None:
            query = query.where(Invoice.client_id == client_id)
        if limit is not None:
            query = query.limit(limit)

        return [
            InvoiceInfo.from_model(invoice, client_name=name)
            for invoice, name in self.session.execute(query).all()
        ]

    def invoice_summary(self) -> InvoiceSummary:
        """Invoice count, invoices awaiting payment (SENT) and the latest five."""
        invoice_count = self.session.execute(
            select(func.count()).select_from(Invoice)
        ).scalar_one()
        to_collect = self.session.execute(
            select(func.count())
            .select_from(Invoice)
            .where(Invoice.status == InvoiceStatus.SENT)
        ).scalar_one()
        return InvoiceSummary(
            invoice_count=invoice_count,
            to_collect_count=to_collect,
            recent=tuple(self.list_invoices(limit=RECENT_INVOICES)),
        )
