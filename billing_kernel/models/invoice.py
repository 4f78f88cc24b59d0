"""
Module: billing_kernel.models.invoice
Responsibility: ORM persistence for invoices (factures) and their lines.
Architecture position: Kernel > Models.  May import from db/ and the status
    enums in domain/lifecycle.py.

Invariants enforced:
    - number is NULL while the invoice is a draft and, once set by
      InvoiceService.finalize, never changes (uq_invoice_number).
    - Totals equal the sums of the stored line amounts.
    - The quote -> invoice link is held by Quote.invoice_id only; an invoice
      does not point back at its quote.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, Enum, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import Base, TimestampedBase, UUIDString
from billing_kernel.db.types import Currency, Money
from billing_kernel.domain.lifecycle import InvoiceStatus
from billing_kernel.models.client import Client
from billing_kernel.models.line_item import LineItemColumns


class Invoice(TimestampedBase):
    """
    Invoice header.

    Contract:
        Created as DRAFT with no number, either directly or by converting an
        ACCEPTED quote.  Finalization stamps number and issue_date exactly
        once.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("number", name="uq_invoice_number"),
        Index("idx_invoice_client", "client_id"),
        Index("idx_invoice_status", "status"),
        Index("idx_invoice_created_at", "created_at"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, native_enum=False, length=16, name="invoice_status"),
        default=InvoiceStatus.DRAFT,
        nullable=False,
    )

    # "YYYY-FNNNNN", assigned at finalization
    number: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )

    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    currency: Mapped[Currency] = mapped_column(nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    sub_total: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0.00"))
    tax_total: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0.00"))
    grand_total: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0.00"))

    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    validated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    refused_at: Mapped[datetime | None] = mapped_column(nullable=True)
    status_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["InvoiceLine"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceLine.position",
    )

    client: Mapped[Client] = relationship()

    def __repr__(self) -> str:
        return f"<Invoice {self.id} {self.number or 'draft'} status={self.status.value}>"

    @property
    def is_finalized(self) -> bool:
        return self.number is not None


class InvoiceLine(LineItemColumns, Base):
    """A priced line of an invoice."""

    __tablename__ = "invoice_lines"

    __table_args__ = (
        Index("idx_invoice_line_invoice", "invoice_id", "position"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )

    invoice: Mapped["Invoice"] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<InvoiceLine {self.position} {self.designation!r} ht={self.line_total_ht}>"
