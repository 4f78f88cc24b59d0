"""
billing_services.billing_orchestrator -- DI container for kernel services.

Responsibility:
    Creates every kernel service and selector exactly once for one session
    and wires them together.  The converter receives the quote and invoice
    services built here, so a conversion and the finalize it triggers share
    one session.

Architecture position:
    Services -- orchestration over the kernel.  Sits above billing_kernel and
    billing_config.

Invariants enforced:
    - Single-instance lifecycle: one QuoteService, one InvoiceService, one
      converter per session, all sharing the same Session and Clock.
    - Does NOT manage transaction boundaries (BackOffice / caller's job).

Usage:
    with session_scope() as session:
        orchestrator = BillingOrchestrator(session, clock=clock)
        orchestrator.quotes.finalize(quote_id)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from billing_config import BillingConfig
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.selectors.client_selector import ClientSelector
from billing_kernel.selectors.document_selector import DocumentSelector
from billing_kernel.services.client_service import ClientService
from billing_kernel.services.conversion_service import QuoteToInvoiceConverter
from billing_kernel.services.invoice_service import InvoiceService
from billing_kernel.services.quote_service import QuoteService
from billing_kernel.services.sequence_service import SequenceAllocator


class BillingOrchestrator:
    """Central factory for kernel services bound to one session."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: BillingConfig | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        config = config or BillingConfig()

        document_settings = {
            "default_currency": config.default_currency,
            "notes_max_length": config.notes_max_length,
        }

        # Write side
        self.clients = ClientService(session, self._clock)
        self.sequences = SequenceAllocator(session)
        self.quotes = QuoteService(session, self._clock, **document_settings)
        self.invoices = InvoiceService(session, self._clock, **document_settings)
        self.converter = QuoteToInvoiceConverter(self.quotes, self.invoices)

        # Read side
        self.documents = DocumentSelector(session)
        self.client_directory = ClientSelector(session)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock
