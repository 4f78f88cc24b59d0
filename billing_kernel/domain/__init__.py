"""
Pure domain layer.

Money math, lifecycle state machines, document numbering, the clock and the
immutable DTOs.  Nothing here touches the ORM, the database or I/O.
"""

from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from billing_kernel.domain.dtos import (
    ClientInfo,
    InvoiceInfo,
    InvoiceSummary,
    LineInfo,
    QuoteInfo,
)
from billing_kernel.domain.lifecycle import (
    DocumentKind,
    DocumentStatus,
    InvoiceStatus,
    QuoteStatus,
    allowed_targets,
    can_transition,
    is_terminal,
    parse_status,
    require_transition,
)
from billing_kernel.domain.money_math import (
    DocumentTotals,
    LineAmounts,
    LineInput,
    compute_line,
    sum_lines,
    validate_line,
)
from billing_kernel.domain.numbering import (
    DocumentNumber,
    format_document_number,
    parse_document_number,
)

__all__ = [
    "ClientInfo",
    "Clock",
    "DeterministicClock",
    "DocumentKind",
    "DocumentNumber",
    "DocumentStatus",
    "DocumentTotals",
    "InvoiceInfo",
    "InvoiceStatus",
    "InvoiceSummary",
    "LineAmounts",
    "LineInfo",
    "LineInput",
    "QuoteInfo",
    "QuoteStatus",
    "SystemClock",
    "allowed_targets",
    "can_transition",
    "compute_line",
    "format_document_number",
    "is_terminal",
    "parse_document_number",
    "parse_status",
    "require_transition",
    "sum_lines",
    "validate_line",
]
