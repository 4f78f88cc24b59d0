"""
Module: billing_kernel.models.client
Responsibility: ORM persistence for the customers quotes and invoices are
    addressed to.  The engine only reads the client's identity; contact and
    billing fields are carried for the outer layers (PDF, UI).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - display_name is required.
    - email is unique when present (uq_client_email); a duplicate surfaces as
      ConflictingUniqueFieldError from ClientService.
    - Quotes and invoices reference a client by id, never embed it.
"""

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TimestampedBase


class Client(TimestampedBase):
    """A billed customer."""

    __tablename__ = "clients"

    __table_args__ = (
        UniqueConstraint("email", name="uq_client_email"),
        Index("idx_client_display_name", "display_name"),
    )

    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Tax identification (intra-community VAT number, SIRET)
    vat_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    siret: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Billing address
    billing_street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    billing_zip: Mapped[str | None] = mapped_column(String(20), nullable=True)
    billing_city: Mapped[str | None] = mapped_column(String(120), nullable=True)

    def __repr__(self) -> str:
        return f"<Client {self.id} {self.display_name!r}>"
