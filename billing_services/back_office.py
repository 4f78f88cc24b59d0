"""
billing_services.back_office -- external operations of the billing back office.

Responsibility:
    The API an HTTP layer or a script calls.  Every operation runs in its own
    short transaction (``session_scope``): it builds a BillingOrchestrator on
    the session, calls one engine, and returns frozen DTOs.

Architecture position:
    Services -- outermost layer of this package.

Invariants enforced:
    - One operation, one transaction.  Any exception rolls back everything
      the operation did, including a sequence increment.
    - Store-level aborts (lock timeout, deadlock, serialization failure,
      stale row) surface as PersistenceConflictError; nothing is swallowed.
    - Integrity violations are not retryable and propagate as IntegrityError,
      except the unique email race, which becomes ConflictingUniqueFieldError.
      The sequence counter creation race is resolved inside SequenceAllocator.
    - with_retry() only retries idempotent operations (finalize, convert).

Failure modes:
    - Every BillingKernelError subclass raised by the kernel propagates
      unchanged.
    - PersistenceConflictError for store aborts.
    - ConflictingUniqueFieldError for a duplicate client email detected by
      the database.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from billing_config import BillingConfig, get_active_config
from billing_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.dtos import ClientInfo, InvoiceInfo, InvoiceSummary, QuoteInfo
from billing_kernel.domain.lifecycle import DocumentStatus
from billing_kernel.exceptions import ConflictingUniqueFieldError, PersistenceConflictError
from billing_kernel.logging_config import LogContext, configure_logging, get_logger
from billing_kernel.services.document_service import LineSpec
from billing_services.billing_orchestrator import BillingOrchestrator

logger = get_logger("services.back_office")

T = TypeVar("T")

IDEMPOTENT_OPERATIONS = frozenset({
    "finalize_quote",
    "finalize_invoice",
    "convert_quote_to_invoice",
})


def _is_unique_email_violation(exc: IntegrityError) -> bool:
    """SQLite names the column, PostgreSQL the constraint (uq_client_email)."""
    return "email" in str(getattr(exc, "orig", None) or exc)


class BackOffice:
    """
    Transactional facade over the billing kernel.

    Usage:
        office = build_back_office()
        client = office.create_client("ACME")
        quote = office.create_quote(client.id, [{"designation": "Consulting",
            "quantity": "2", "unit_price": "100.00", "vat_rate": "20"}])
        quote = office.finalize_quote(quote.id)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        config: BillingConfig | None = None,
    ) -> None:
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()

    @property
    def config(self) -> BillingConfig:
        return self._config

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _run(self, operation: str, work: Callable[[BillingOrchestrator], T]) -> T:
        with LogContext.bind(correlation_id=str(uuid4())):
            try:
                with session_scope(self._session_factory) as session:
                    return work(BillingOrchestrator(session, self._clock, self._config))
            except (OperationalError, StaleDataError) as exc:
                detail = str(getattr(exc, "orig", None) or exc)
                logger.warning(
                    "persistence_conflict",
                    extra={"operation": operation, "detail": detail},
                )
                raise PersistenceConflictError(operation, detail) from exc

    def with_retry(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """
        Run an idempotent operation, retrying on PersistenceConflictError.

        At most ``config.max_retries`` retries follow the first attempt.
        The last PersistenceConflictError is re-raised when they are
        exhausted.

        Raises:
            ValueError: ``operation`` is not an idempotent operation.
        """
        if operation not in IDEMPOTENT_OPERATIONS:
            raise ValueError(f"{operation} is not idempotent and cannot be retried")
        method = getattr(self, operation)

        attempt = 0
        while True:
            try:
                return method(*args, **kwargs)
            except PersistenceConflictError:
                if attempt >= self._config.max_retries:
                    raise
                attempt += 1
                logger.info(
                    "operation_retry",
                    extra={"operation": operation, "attempt": attempt},
                )

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def create_client(self, display_name: str, **fields: str | None) -> ClientInfo:
        try:
            return self._run(
                "create_client",
                lambda o: o.clients.create_client(display_name, **fields),
            )
        except IntegrityError as exc:
            # A concurrent insert won the unique email race
            if fields.get("email") and _is_unique_email_violation(exc):
                raise ConflictingUniqueFieldError(
                    "client", "email", fields["email"].strip()
                ) from exc
            raise

    def list_clients(self) -> list[ClientInfo]:
        return self._run("list_clients", lambda o: o.client_directory.list_clients())

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    def create_quote(
        self,
        client_id: UUID,
        lines: Iterable[LineSpec],
        notes: str | None = None,
        currency: str | None = None,
        expiry_date: date | None = None,
    ) -> QuoteInfo:
        return self._run(
            "create_quote",
            lambda o: o.quotes.create_quote(
                client_id, lines, notes=notes, currency=currency, expiry_date=expiry_date
            ),
        )

    def finalize_quote(self, quote_id: UUID) -> QuoteInfo:
        return self._run("finalize_quote", lambda o: o.quotes.finalize(quote_id))

    def set_quote_status(
        self,
        quote_id: UUID,
        status: DocumentStatus | str,
        reason: str | None = None,
    ) -> QuoteInfo:
        return self._run(
            "set_quote_status",
            lambda o: o.quotes.set_status(quote_id, status, reason),
        )

    def convert_quote_to_invoice(self, quote_id: UUID) -> InvoiceInfo:
        return self._run(
            "convert_quote_to_invoice",
            lambda o: o.converter.convert(quote_id),
        )

    def get_quote(self, quote_id: UUID) -> QuoteInfo:
        return self._run("get_quote", lambda o: o.documents.get_quote(quote_id))

    def list_quotes(self, status: DocumentStatus | str | None = None) -> list[QuoteInfo]:
        return self._run("list_quotes", lambda o: o.documents.list_quotes(status=status))

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def create_invoice(
        self,
        client_id: UUID,
        lines: Iterable[LineSpec],
        due_date: date | None = None,
        notes: str | None = None,
        currency: str | None = None,
    ) -> InvoiceInfo:
        return self._run(
            "create_invoice",
            lambda o: o.invoices.create_invoice(
                client_id, lines, due_date=due_date, notes=notes, currency=currency
            ),
        )

    def finalize_invoice(self, invoice_id: UUID) -> InvoiceInfo:
        return self._run("finalize_invoice", lambda o: o.invoices.finalize(invoice_id))

    def set_invoice_status(
        self,
        invoice_id: UUID,
        status: DocumentStatus | str,
        reason: str | None = None,
    ) -> InvoiceInfo:
        return self._run(
            "set_invoice_status",
            lambda o: o.invoices.set_status(invoice_id, status, reason),
        )

    def delete_invoice(self, invoice_id: UUID) -> None:
        self._run("delete_invoice", lambda o: o.invoices.delete_invoice(invoice_id))

    def get_invoice(self, invoice_id: UUID) -> InvoiceInfo:
        return self._run("get_invoice", lambda o: o.documents.get_invoice(invoice_id))

    def list_invoices(self, status: DocumentStatus | str | None = None) -> list[InvoiceInfo]:
        return self._run("list_invoices", lambda o: o.documents.list_invoices(status=status))

    def invoice_summary(self) -> InvoiceSummary:
        return self._run("invoice_summary", lambda o: o.documents.invoice_summary())


def build_back_office(
    config: BillingConfig | None = None,
    clock: Clock | None = None,
    create_schema: bool = False,
) -> BackOffice:
    """
    Wire logging, engine and session factory from configuration.

    Args:
        config: Defaults to ``get_active_config()``.
        clock: Defaults to SystemClock.
        create_schema: Create missing tables (local runs and tests).
    """
    config = config or get_active_config()
    configure_logging(level=config.log_level)
    init_engine_from_url(
        config.database_url,
        echo=config.echo,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        sqlite_busy_timeout=config.sqlite_busy_timeout,
    )
    if create_schema:
        create_tables()
    return BackOffice(get_session_factory(), clock=clock, config=config)
