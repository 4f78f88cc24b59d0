"""
QuoteService -- quote (devis) lifecycle engine.

Creates DRAFT quotes, finalizes them into "YYYY-QNNNNN" and moves them along
the quote state machine.  Conversion to an invoice is a separate operation
(QuoteToInvoiceConverter); ACCEPTED -> invoice is not a status edge.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from uuid import UUID

from billing_kernel.domain.dtos import QuoteInfo
from billing_kernel.domain.lifecycle import DocumentKind, QuoteStatus
from billing_kernel.models.quote import Quote, QuoteLine
from billing_kernel.services.document_service import DocumentService, LineSpec


class QuoteService(DocumentService[Quote]):
    """Lifecycle engine for quotes."""

    kind = DocumentKind.QUOTE
    model = Quote
    line_model = QuoteLine

    def _to_dto(self, quote: Quote) -> QuoteInfo:
        return QuoteInfo.from_model(quote)

    def _stamp(self, quote: Quote, target: QuoteStatus, now: datetime) -> None:
        if target is QuoteStatus.ACCEPTED and quote.accepted_at is None:
            quote.accepted_at = now

    def create_quote(
        self,
        client_id: UUID,
        lines: Iterable[LineSpec],
        notes: str | None = None,
        currency: str | None = None,
        expiry_date: date | None = None,
    ) -> QuoteInfo:
        """
        Create a DRAFT quote with priced lines.

        Raises:
            InvalidLineInputError: No lines, or any line invalid.
            ClientNotFoundError: Unknown client.
            InvalidCurrencyError: Currency not ISO 4217.
        """
        rows = self._build_lines(lines)
        quote = self._create_draft(
            client_id,
            rows,
            currency,
            notes,
            status=QuoteStatus.DRAFT,
            expiry_date=expiry_date,
        )
        return self._to_dto(quote)

    def lock(self, quote_id: UUID) -> Quote:
        """Load the quote under a row lock (used by the converter)."""
        return self._get_for_update(quote_id)
