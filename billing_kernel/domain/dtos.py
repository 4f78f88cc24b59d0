"""
Immutable DTOs returned by every billing operation.

Services and selectors never hand ORM rows to callers.  Each DTO is built
from a model instance through ``from_model``; the conversion reads plain
attributes only, so this module does not import the ORM layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from billing_kernel.domain.lifecycle import DocumentKind, InvoiceStatus, QuoteStatus


@dataclass(frozen=True)
class ClientInfo:
    """Immutable view of a client."""

    id: UUID
    display_name: str
    email: str | None = None
    phone: str | None = None
    vat_number: str | None = None
    siret: str | None = None
    billing_street: str | None = None
    billing_zip: str | None = None
    billing_city: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, client: Any) -> ClientInfo:
        return cls(
            id=client.id,
            display_name=client.display_name,
            email=client.email,
            phone=client.phone,
            vat_number=client.vat_number,
            siret=client.siret,
            billing_street=client.billing_street,
            billing_zip=client.billing_zip,
            billing_city=client.billing_city,
            created_at=client.created_at,
        )


@dataclass(frozen=True)
class LineInfo:
    """Immutable view of a priced document line."""

    position: int
    designation: str
    quantity: Decimal
    unit_price: Decimal
    vat_rate: Decimal
    line_total_ht: Decimal
    line_tax: Decimal
    line_total_ttc: Decimal

    @classmethod
    def from_model(cls, line: Any) -> LineInfo:
        return cls(
            position=line.position,
            designation=line.designation,
            quantity=line.quantity,
            unit_price=line.unit_price,
            vat_rate=line.vat_rate,
            line_total_ht=line.line_total_ht,
            line_tax=line.line_tax,
            line_total_ttc=line.line_total_ttc,
        )


@dataclass(frozen=True)
class QuoteInfo:
    """Immutable view of a quote and its lines."""

    id: UUID
    client_id: UUID
    status: QuoteStatus
    number: str | None
    issue_date: date | None
    expiry_date: date | None
    currency: str
    notes: str | None
    sub_total: Decimal
    tax_total: Decimal
    grand_total: Decimal
    invoice_id: UUID | None = None
    sent_at: datetime | None = None
    accepted_at: datetime | None = None
    refused_at: datetime | None = None
    status_reason: str | None = None
    created_at: datetime | None = None
    client_name: str | None = None
    lines: tuple[LineInfo, ...] = field(default_factory=tuple)

    kind = DocumentKind.QUOTE

    @property
    def is_finalized(self) -> bool:
        return self.number is not None

    @property
    def is_converted(self) -> bool:
        return self.invoice_id is not None

    @classmethod
    def from_model(cls, quote: Any, client_name: str | None = None) -> QuoteInfo:
        return cls(
            id=quote.id,
            client_id=quote.client_id,
            status=QuoteStatus(quote.status),
            number=quote.number,
            issue_date=quote.issue_date,
            expiry_date=quote.expiry_date,
            currency=quote.currency,
            notes=quote.notes,
            sub_total=quote.sub_total,
            tax_total=quote.tax_total,
            grand_total=quote.grand_total,
            invoice_id=quote.invoice_id,
            sent_at=quote.sent_at,
            accepted_at=quote.accepted_at,
            refused_at=quote.refused_at,
            status_reason=quote.status_reason,
            created_at=quote.created_at,
            client_name=client_name,
            lines=tuple(LineInfo.from_model(line) for line in quote.lines),
        )


@dataclass(frozen=True)
class InvoiceInfo:
    """Immutable view of an invoice and its lines."""

    id: UUID
    client_id: UUID
    status: InvoiceStatus
    number: str | None
    issue_date: date | None
    due_date: date | None
    currency: str
    notes: str | None
    sub_total: Decimal
    tax_total: Decimal
    grand_total: Decimal
    sent_at: datetime | None = None
    validated_at: datetime | None = None
    refused_at: datetime | None = None
    status_reason: str | None = None
    created_at: datetime | None = None
    client_name: str | None = None
    lines: tuple[LineInfo, ...] = field(default_factory=tuple)

    kind = DocumentKind.INVOICE

    @property
    def is_finalized(self) -> bool:
        return self.number is not None

    @classmethod
    def from_model(cls, invoice: Any, client_name: str | None = None) -> InvoiceInfo:
        return cls(
            id=invoice.id,
            client_id=invoice.client_id,
            status=InvoiceStatus(invoice.status),
            number=invoice.number,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            currency=invoice.currency,
            notes=invoice.notes,
            sub_total=invoice.sub_total,
            tax_total=invoice.tax_total,
            grand_total=invoice.grand_total,
            sent_at=invoice.sent_at,
            validated_at=invoice.validated_at,
            refused_at=invoice.refused_at,
            status_reason=invoice.status_reason,
            created_at=invoice.created_at,
            client_name=client_name,
            lines=tuple(LineInfo.from_model(line) for line in invoice.lines),
        )


@dataclass(frozen=True)
class InvoiceSummary:
    """Dashboard figures over all invoices."""

    invoice_count: int
    to_collect_count: int
    recent: tuple[InvoiceInfo, ...]
