"""
Document numbering -- canonical number strings.

Responsibility:
    Formats (kind, year, sequence) into the document number printed on
    quotes and invoices, and parses such numbers back.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Format (external contract, must never change once adopted):
    "{YYYY}-{K}{NNNNN}"
        YYYY   calendar year of finalization
        K      Q for quotes, F for invoices
        NNNNN  sequence within (kind, year), zero-padded to at least 5 digits

    e.g. 2025-Q00001, 2025-F00042
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from billing_kernel.domain.lifecycle import DocumentKind
from billing_kernel.exceptions import InvalidDocumentNumberError

KIND_LETTERS: dict[DocumentKind, str] = {
    DocumentKind.QUOTE: "Q",
    DocumentKind.INVOICE: "F",
}

_LETTER_KINDS = {letter: kind for kind, letter in KIND_LETTERS.items()}

SEQUENCE_WIDTH = 5

_NUMBER_RE = re.compile(r"^(?P<year>\d{4})-(?P<letter>[A-Z])(?P<seq>\d{5,})$")


@dataclass(frozen=True)
class DocumentNumber:
    """Parsed components of a document number."""

    kind: DocumentKind
    year: int
    sequence: int

    def __str__(self) -> str:
        return format_document_number(self.kind, self.year, self.sequence)


def format_document_number(kind: DocumentKind | str, year: int, sequence: int) -> str:
    """
    Format a document number.  Deterministic.

    Raises:
        InvalidDocumentNumberError: if year is not a 4-digit year or
            sequence < 1.
    """
    kind = DocumentKind(kind)
    if not 1000 <= year <= 9999:
        raise InvalidDocumentNumberError(str(year), "year must have 4 digits")
    if sequence < 1:
        raise InvalidDocumentNumberError(str(sequence), "sequence must be >= 1")
    return f"{year}-{KIND_LETTERS[kind]}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_document_number(value: str) -> DocumentNumber:
    """
    Parse a canonical document number.

    Raises:
        InvalidDocumentNumberError: if ``value`` is not in canonical form.
    """
    match = _NUMBER_RE.match(value or "")
    if match is None:
        raise InvalidDocumentNumberError(value, "expected YYYY-KNNNNN")
    kind = _LETTER_KINDS.get(match["letter"])
    if kind is None:
        raise InvalidDocumentNumberError(value, f"unknown kind letter {match['letter']!r}")
    number = DocumentNumber(kind=kind, year=int(match["year"]), sequence=int(match["seq"]))
    # Reject non-canonical padding such as 2025-F000001
    if str(number) != value:
        raise InvalidDocumentNumberError(value, "non-canonical zero padding")
    return number
