"""
Module: billing_kernel.models.quote
Responsibility: ORM persistence for quotes (devis) and their lines.
Architecture position: Kernel > Models.  May import from db/ and the status
    enums in domain/lifecycle.py.  MUST NOT import from services/ or
    selectors/.

Invariants enforced:
    - number is NULL while the quote is a draft and, once set by
      QuoteService.finalize, never changes (uq_quote_number).
    - invoice_id is set at most once by the converter (uq_quote_invoice), so
      a quote yields at most one invoice.
    - sub_total / tax_total / grand_total equal the sums of the stored line
      amounts (written by the engine, never by callers).

Failure modes:
    - IntegrityError on a duplicate number or a second link to the same
      invoice.  Either indicates a bug in the allocator or converter.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, Enum, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import Base, TimestampedBase, UUIDString
from billing_kernel.db.types import Currency, Money
from billing_kernel.domain.lifecycle import QuoteStatus
from billing_kernel.models.line_item import LineItemColumns

if TYPE_CHECKING:
    from billing_kernel.models.client import Client
    from billing_kernel.models.invoice import Invoice


class Quote(TimestampedBase):
    """
    Quote header.

    Contract:
        Created as DRAFT with no number.  Finalization stamps number and
        issue_date exactly once.  Status moves only along the quote state
        machine (domain/lifecycle.py).
    """

    __tablename__ = "quotes"

    __table_args__ = (
        UniqueConstraint("number", name="uq_quote_number"),
        UniqueConstraint("invoice_id", name="uq_quote_invoice"),
        Index("idx_quote_client", "client_id"),
        Index("idx_quote_status", "status"),
        Index("idx_quote_created_at", "created_at"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    status: Mapped[QuoteStatus] = mapped_column(
        Enum(QuoteStatus, native_enum=False, length=16, name="quote_status"),
        default=QuoteStatus.DRAFT,
        nullable=False,
    )

    # "YYYY-QNNNNN", assigned at finalization
    number: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )

    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Invoice produced by conversion
    invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("invoices.id"),
        nullable=True,
    )

    currency: Mapped[Currency] = mapped_column(nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    sub_total: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0.00"))
    tax_total: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0.00"))
    grand_total: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0.00"))

    # Status side-effect stamps
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    refused_at: Mapped[datetime | None] = mapped_column(nullable=True)
    status_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    lines: Mapped[list["QuoteLine"]] = relationship(
        back_populates="quote",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="QuoteLine.position",
    )

    client: Mapped["Client"] = relationship()

    invoice: Mapped["Invoice | None"] = relationship(foreign_keys=[invoice_id])

    def __repr__(self) -> str:
        return f"<Quote {self.id} {self.number or 'draft'} status={self.status.value}>"

    @property
    def is_finalized(self) -> bool:
        return self.number is not None


class QuoteLine(LineItemColumns, Base):
    """A priced line of a quote."""

    __tablename__ = "quote_lines"

    __table_args__ = (
        Index("idx_quote_line_quote", "quote_id", "position"),
    )

    quote_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
    )

    quote: Mapped["Quote"] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<QuoteLine {self.position} {self.designation!r} ht={self.line_total_ht}>"
