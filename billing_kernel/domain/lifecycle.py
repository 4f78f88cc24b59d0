"""
Lifecycle -- quote and invoice status state machines.

Responsibility:
    Defines the document kinds, their statuses, and decides whether a
    requested status change is an edge of the kind's state machine.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The engines
    (QuoteService, InvoiceService) call ``require_transition`` and apply the
    side-effect timestamps themselves.

State machines:
    Invoice:  DRAFT -> SENT -> {VALIDATED, REFUSED, CANCELLED}
              VALIDATED -> CANCELLED
              REFUSED   -> CANCELLED
              CANCELLED is terminal.
    Quote:    DRAFT -> SENT -> {ACCEPTED, REFUSED, CANCELLED}
              {ACCEPTED, REFUSED} -> CANCELLED
              CANCELLED is terminal.
              (ACCEPTED -> invoice is a conversion, not a status edge.)

    No self-loops exist, so no state is ever re-entered.

Invariants enforced:
    - can_transition() is total: any pair not listed above (including
      statuses of the other kind and unknown strings) is False.
    - Each edge function matches every status of its kind; the
      ``assert_never`` arm makes a type checker flag a status added to the
      enum but not to the match.
"""

from __future__ import annotations

from enum import Enum
from typing import Union, assert_never

from billing_kernel.exceptions import IllegalTransitionError, UnknownStatusError


class DocumentKind(str, Enum):
    """Kind of numbered billing document."""

    QUOTE = "quote"
    INVOICE = "invoice"


class QuoteStatus(str, Enum):
    """Quote lifecycle status."""

    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REFUSED = "REFUSED"
    CANCELLED = "CANCELLED"


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "DRAFT"
    SENT = "SENT"
    VALIDATED = "VALIDATED"
    REFUSED = "REFUSED"
    CANCELLED = "CANCELLED"


DocumentStatus = Union[QuoteStatus, InvoiceStatus]

_STATUS_ENUMS: dict[DocumentKind, type[QuoteStatus] | type[InvoiceStatus]] = {
    DocumentKind.QUOTE: QuoteStatus,
    DocumentKind.INVOICE: InvoiceStatus,
}


def _invoice_edge(from_status: InvoiceStatus, to_status: InvoiceStatus) -> bool:
    match from_status:
        case InvoiceStatus.DRAFT:
            return to_status is InvoiceStatus.SENT
        case InvoiceStatus.SENT:
            return to_status in (
                InvoiceStatus.VALIDATED,
                InvoiceStatus.REFUSED,
                InvoiceStatus.CANCELLED,
            )
        case InvoiceStatus.VALIDATED | InvoiceStatus.REFUSED:
            return to_status is InvoiceStatus.CANCELLED
        case InvoiceStatus.CANCELLED:
            return False
        case _:
            assert_never(from_status)


def _quote_edge(from_status: QuoteStatus, to_status: QuoteStatus) -> bool:
    match from_status:
        case QuoteStatus.DRAFT:
            return to_status is QuoteStatus.SENT
        case QuoteStatus.SENT:
            return to_status in (
                QuoteStatus.ACCEPTED,
                QuoteStatus.REFUSED,
                QuoteStatus.CANCELLED,
            )
        case QuoteStatus.ACCEPTED | QuoteStatus.REFUSED:
            return to_status is QuoteStatus.CANCELLED
        case QuoteStatus.CANCELLED:
            return False
        case _:
            assert_never(from_status)


def _coerce(kind: DocumentKind, status: DocumentStatus | str) -> DocumentStatus | None:
    enum_cls = _STATUS_ENUMS[kind]
    if isinstance(status, enum_cls):
        return status
    if isinstance(status, (QuoteStatus, InvoiceStatus)):
        # A status of the other document kind
        return None
    if isinstance(status, str):
        try:
            return enum_cls(status.strip().upper())
        except ValueError:
            return None
    return None


def parse_status(kind: DocumentKind | str, status: DocumentStatus | str) -> DocumentStatus:
    """
    Resolve a status name (case-insensitive, trimmed) for the given kind.

    Raises:
        UnknownStatusError: if the name is not a status of ``kind``.
    """
    kind = DocumentKind(kind)
    resolved = _coerce(kind, status)
    if resolved is None:
        raise UnknownStatusError(kind.value, str(getattr(status, "value", status)))
    return resolved


def can_transition(
    kind: DocumentKind | str,
    from_status: DocumentStatus | str,
    to_status: DocumentStatus | str,
) -> bool:
    """Is ``from_status -> to_status`` an edge of ``kind``'s state machine?"""
    try:
        kind = DocumentKind(kind)
    except ValueError:
        return False
    source = _coerce(kind, from_status)
    target = _coerce(kind, to_status)
    if source is None or target is None:
        return False

    match kind:
        case DocumentKind.INVOICE:
            return _invoice_edge(source, target)
        case DocumentKind.QUOTE:
            return _quote_edge(source, target)
        case _:
            assert_never(kind)


def require_transition(
    kind: DocumentKind | str,
    from_status: DocumentStatus | str,
    to_status: DocumentStatus | str,
) -> DocumentStatus:
    """
    Validate an edge and return the resolved target status.

    Raises:
        UnknownStatusError: if ``to_status`` is not a status of ``kind``.
        IllegalTransitionError: if the edge does not exist.
    """
    kind = DocumentKind(kind)
    target = parse_status(kind, to_status)
    source = parse_status(kind, from_status)
    if not can_transition(kind, source, target):
        raise IllegalTransitionError(kind.value, source.value, target.value)
    return target


def allowed_targets(kind: DocumentKind | str, from_status: DocumentStatus | str) -> frozenset[DocumentStatus]:
    """Every status reachable in one step from ``from_status``."""
    kind = DocumentKind(kind)
    return frozenset(
        target for target in _STATUS_ENUMS[kind]
        if can_transition(kind, from_status, target)
    )


def is_terminal(kind: DocumentKind | str, status: DocumentStatus | str) -> bool:
    """A status with no outgoing edge."""
    return not allowed_targets(kind, status)
