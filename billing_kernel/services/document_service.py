"""
DocumentService -- shared create / finalize / status engine for quotes and
invoices.

Responsibility:
    Implements the lifecycle operations common to both document kinds:
    validated creation of a DRAFT with priced lines, idempotent finalization
    (number + issue date + totals), and guarded status changes with their
    timestamp side effects.  QuoteService and InvoiceService bind it to a
    model, a line model and a DocumentKind.

Architecture position:
    Kernel > Services -- imperative shell.  Pure decisions are delegated to
    domain/money_math.py, domain/lifecycle.py and domain/numbering.py.
    Flush-only; the caller owns the transaction.

Invariants enforced:
    - Every line is validated before anything is written; one invalid line
      rejects the whole document.
    - A number, once written, is never changed.  finalize() on a numbered
      document returns it untouched and consumes no sequence value.
    - Status changes follow the kind's state machine; no existing status
      timestamp is ever overwritten.
    - Documents are loaded with ``SELECT ... FOR UPDATE`` before mutation so
      two writers of the same document serialize.

Failure modes:
    - DocumentNotFoundError, ClientNotFoundError.
    - InvalidLineInputError, InvalidCurrencyError.
    - IllegalTransitionError, UnknownStatusError.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, ClassVar, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from billing_kernel.db.base import Base
from billing_kernel.db.types import validate_currency
from billing_kernel.domain.clock import Clock
from billing_kernel.domain.lifecycle import (
    DocumentKind,
    DocumentStatus,
    require_transition,
)
from billing_kernel.domain.money_math import (
    LineInput,
    compute_line,
    sum_lines,
    validate_line,
)
from billing_kernel.domain.numbering import format_document_number
from billing_kernel.exceptions import DocumentNotFoundError, InvalidLineInputError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.services.base import BaseService
from billing_kernel.services.client_service import ClientService
from billing_kernel.services.sequence_service import SequenceAllocator

logger = get_logger("services.document")

DEFAULT_CURRENCY = "EUR"
DEFAULT_NOTES_MAX_LENGTH = 10_000

DocumentType = TypeVar("DocumentType", bound=Base)

LineSpec = LineInput | Mapping[str, Any]


def normalize_notes(notes: str | None, max_length: int = DEFAULT_NOTES_MAX_LENGTH) -> str | None:
    """Trim notes, store blank as NULL, truncate to ``max_length``."""
    if notes is None:
        return None
    notes = str(notes).strip()
    if not notes:
        return None
    return notes[:max_length]


def clean_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    reason = reason.strip()
    return reason or None


def prepare_lines(lines: Iterable[LineSpec] | None) -> list[LineInput]:
    """
    Validate every raw line.

    Accepts LineInput instances or mappings with ``designation``,
    ``quantity``, ``unit_price`` and ``vat_rate`` keys.

    Raises:
        InvalidLineInputError: if there are no lines or any line is invalid.
    """
    prepared: list[LineInput] = []
    for index, raw in enumerate(lines or ()):
        if isinstance(raw, LineInput):
            raw = {
                "designation": raw.designation,
                "quantity": raw.quantity,
                "unit_price": raw.unit_price,
                "vat_rate": raw.vat_rate,
            }
        if not isinstance(raw, Mapping):
            raise InvalidLineInputError("line", raw, "must be a mapping or LineInput", index)
        prepared.append(
            validate_line(
                raw.get("designation"),
                raw.get("quantity"),
                raw.get("unit_price"),
                raw.get("vat_rate"),
                line_index=index,
            )
        )
    if not prepared:
        raise InvalidLineInputError("lines", [], "at least one line is required")
    return prepared


class DocumentService(BaseService[DocumentType]):
    """
    Lifecycle engine for one document kind.

    Subclasses set ``kind``, ``model`` and ``line_model`` and implement
    ``_to_dto`` and ``_stamp``.
    """

    kind: ClassVar[DocumentKind]
    model: ClassVar[type]
    line_model: ClassVar[type]

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        default_currency: str = DEFAULT_CURRENCY,
        notes_max_length: int = DEFAULT_NOTES_MAX_LENGTH,
    ):
        super().__init__(session, clock)
        self.default_currency = default_currency
        self.notes_max_length = notes_max_length
        self._clients = ClientService(session, self.clock)
        self._sequences = SequenceAllocator(session)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _to_dto(self, document: Any) -> Any:
        raise NotImplementedError

    def _stamp(self, document: Any, target: DocumentStatus, now: datetime) -> None:
        """Apply kind-specific timestamps for entering ``target``."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _get_for_update(self, document_id: UUID) -> Any:
        """Load a document under a row lock, raising if not found."""
        document = self.session.execute(
            select(self.model)
            .where(self.model.id == document_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if document is None:
            raise DocumentNotFoundError(self.kind.value, str(document_id))
        return document

    def get(self, document_id: UUID) -> Any:
        document = self.session.get(self.model, document_id)
        if document is None:
            raise DocumentNotFoundError(self.kind.value, str(document_id))
        return self._to_dto(document)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _create_draft(
        self,
        client_id: UUID,
        lines: list[Any],
        currency: str | None,
        notes: str | None,
        **attributes: Any,
    ) -> Any:
        """Persist a DRAFT with already-built line rows and derived totals."""
        self._clients.require_client(client_id)
        totals = sum_lines(lines)
        now = self.clock.now()

        document = self.model(
            client_id=client_id,
            currency=validate_currency(currency or self.default_currency),
            notes=normalize_notes(notes, self.notes_max_length),
            sub_total=totals.sub_total,
            tax_total=totals.tax_total,
            grand_total=totals.grand_total,
            lines=lines,
            created_at=now,
            updated_at=now,
            **attributes,
        )
        self.session.add(document)
        self.session.flush()

        logger.info(
            "document_created",
            extra={
                "document_kind": self.kind.value,
                "document_id": str(document.id),
                "client_id": str(client_id),
                "line_count": len(lines),
                "grand_total": totals.grand_total,
                "currency": document.currency,
            },
        )
        return document

    def _build_lines(self, lines: Iterable[LineSpec] | None) -> list[Any]:
        rows = []
        for position, line in enumerate(prepare_lines(lines)):
            amounts = compute_line(line.quantity, line.unit_price, line.vat_rate)
            rows.append(
                self.line_model(
                    designation=line.designation,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    vat_rate=line.vat_rate,
                    line_total_ht=amounts.line_total_ht,
                    line_tax=amounts.line_tax,
                    line_total_ttc=amounts.line_total_ttc,
                    position=position,
                )
            )
        return rows

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------

    def finalize(self, document_id: UUID) -> Any:
        """
        Give the document its permanent number.

        Idempotent: a numbered document is returned unchanged and no sequence
        value is consumed.  Otherwise totals are recomputed from the stored
        lines, the next (kind, current year) number is allocated and number,
        issue_date and totals are written in one flush.

        Raises:
            DocumentNotFoundError: Unknown id.
        """
        with LogContext.bind(document_id=str(document_id), document_kind=self.kind.value):
            document = self._get_for_update(document_id)

            if document.number is not None:
                logger.info(
                    "finalize_idempotent",
                    extra={"number": document.number},
                )
                return self._to_dto(document)

            totals = sum_lines(document.lines)
            now = self.clock.now()
            year = now.year
            sequence = self._sequences.next_number(self.kind, year)
            number = format_document_number(self.kind, year, sequence)

            document.number = number
            document.issue_date = now.date()
            document.sub_total = totals.sub_total
            document.tax_total = totals.tax_total
            document.grand_total = totals.grand_total
            document.updated_at = now
            self.session.flush()

            logger.info(
                "document_finalized",
                extra={
                    "number": number,
                    "sequence": sequence,
                    "year": year,
                    "grand_total": totals.grand_total,
                },
            )
            return self._to_dto(document)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def set_status(
        self,
        document_id: UUID,
        target: DocumentStatus | str,
        reason: str | None = None,
    ) -> Any:
        """
        Move the document along its state machine.

        Entering SENT stamps sent_at; entering REFUSED stamps refused_at and
        sets status_reason to the trimmed reason (or None); entering CANCELLED
        keeps the previous reason unless a new one is given.  Existing
        timestamps are never overwritten.

        Raises:
            DocumentNotFoundError: Unknown id.
            UnknownStatusError: ``target`` is not a status of this kind.
            IllegalTransitionError: The edge does not exist.
        """
        with LogContext.bind(document_id=str(document_id), document_kind=self.kind.value):
            document = self._get_for_update(document_id)
            previous = document.status
            status = require_transition(self.kind, previous, target)

            now = self.clock.now()
            document.status = status
            if status.value == "SENT" and document.sent_at is None:
                document.sent_at = now
            if status.value == "REFUSED":
                if document.refused_at is None:
                    document.refused_at = now
                document.status_reason = clean_reason(reason)
            elif status.value == "CANCELLED":
                new_reason = clean_reason(reason)
                if new_reason is not None:
                    document.status_reason = new_reason
            self._stamp(document, status, now)
            document.updated_at = now
            self.session.flush()

            logger.info(
                "status_changed",
                extra={
                    "from_status": previous.value,
                    "to_status": status.value,
                    "number": document.number,
                },
            )
            return self._to_dto(document)
