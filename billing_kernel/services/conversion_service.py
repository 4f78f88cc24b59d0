"""
QuoteToInvoiceConverter -- turns an ACCEPTED quote into a numbered invoice.

Responsibility:
    Creates the invoice for an accepted quote, copies its lines verbatim,
    finalizes the invoice and links the quote to it, all within the caller's
    transaction.

Architecture position:
    Kernel > Services.  Composes QuoteService and InvoiceService on one
    session so that either every step is committed or none is.

Invariants enforced:
    - A quote yields at most one invoice.  The existing link is checked
      BEFORE the status precondition, so a retried conversion returns the
      invoice produced by the first one instead of failing.
    - The quote row is locked for the whole conversion; two concurrent
      conversions of the same quote serialize and the second one sees the
      link written by the first.
    - The invoice mirrors the quote: same client, currency and lines
      (including stored per-line amounts).

Failure modes:
    - DocumentNotFoundError: Unknown quote.
    - InvalidConversionStateError: Quote not ACCEPTED and not yet converted.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from billing_kernel.domain.clock import Clock
from billing_kernel.domain.dtos import InvoiceInfo
from billing_kernel.domain.lifecycle import DocumentKind, QuoteStatus
from billing_kernel.exceptions import InvalidConversionStateError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.services.invoice_service import InvoiceService
from billing_kernel.services.quote_service import QuoteService

logger = get_logger("services.conversion")

CONVERSION_NOTE_PREFIX = "Issue du devis"


def conversion_note(quote_number: str | None) -> str:
    """Notes written on an invoice produced from a quote."""
    return f"{CONVERSION_NOTE_PREFIX} {quote_number or ''}".strip()


class QuoteToInvoiceConverter:
    """
    Converts accepted quotes into finalized invoices.

    Usage:
        with session_scope() as session:
            converter = QuoteToInvoiceConverter(quotes, invoices)
            invoice = converter.convert(quote_id)
    """

    def __init__(self, quotes: QuoteService, invoices: InvoiceService):
        self._quotes = quotes
        self._invoices = invoices

    @classmethod
    def for_session(cls, session: Session, clock: Clock | None = None) -> QuoteToInvoiceConverter:
        return cls(QuoteService(session, clock), InvoiceService(session, clock))

    def convert(self, quote_id: UUID) -> InvoiceInfo:
        """
        Convert the quote and return the (finalized) invoice.

        Idempotent: an already converted quote returns its existing invoice
        unchanged.

        Raises:
            DocumentNotFoundError: Unknown quote.
            InvalidConversionStateError: Quote status is not ACCEPTED.
        """
        with LogContext.bind(document_id=str(quote_id), document_kind=DocumentKind.QUOTE.value):
            quote = self._quotes.lock(quote_id)

            if quote.invoice_id is not None:
                logger.info(
                    "conversion_idempotent",
                    extra={"invoice_id": str(quote.invoice_id)},
                )
                return self._invoices.get(quote.invoice_id)

            if quote.status is not QuoteStatus.ACCEPTED:
                raise InvalidConversionStateError(str(quote_id), quote.status.value)

            invoice = self._invoices.create_from_quote_lines(
                quote.client_id,
                quote.lines,
                quote.currency,
                conversion_note(quote.number),
            )
            finalized = self._invoices.finalize(invoice.id)

            quote.invoice_id = invoice.id
            quote.updated_at = self._quotes.clock.now()
            self._quotes.session.flush()

            logger.info(
                "quote_converted",
                extra={
                    "quote_number": quote.number,
                    "invoice_id": str(finalized.id),
                    "invoice_number": finalized.number,
                },
            )
            return finalized
