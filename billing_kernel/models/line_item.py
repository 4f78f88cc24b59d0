"""
Module: billing_kernel.models.line_item
Responsibility: Column set shared by quote lines and invoice lines.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - The three stored amounts are derived by money_math.compute_line at
      write time and are never recomputed on read.
    - Every line belongs to exactly one parent document (FK declared on the
      concrete line class, NOT NULL, ON DELETE CASCADE).
    - position orders lines within their document, starting at 0.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.types import Money, Quantity, UnitPrice, VatRate


class LineItemColumns:
    """Mixin with the columns of a priced document line."""

    designation: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    quantity: Mapped[Quantity] = mapped_column(nullable=False)
    unit_price: Mapped[UnitPrice] = mapped_column(nullable=False)
    vat_rate: Mapped[VatRate] = mapped_column(nullable=False)

    # Stored amounts (2 decimals, rounded per line)
    line_total_ht: Mapped[Money] = mapped_column(nullable=False)
    line_tax: Mapped[Money] = mapped_column(nullable=False)
    line_total_ttc: Mapped[Money] = mapped_column(nullable=False)

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
