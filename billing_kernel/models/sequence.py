"""
Module: billing_kernel.models.sequence
Responsibility: Persistent per-(document kind, year) counters backing
    document numbering.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per (kind, year) (uq_sequence_kind_year); created lazily on
      first use in a year.
    - last_number >= 0 (ck_sequence_non_negative), only ever incremented.
    - The row is mutated exclusively by SequenceAllocator under a row lock.
"""

from sqlalchemy import BigInteger, CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row holds the last number issued for a (kind, year) pair.  Gaps
    are acceptable (a rolled-back finalize returns its value), duplicates
    are not.
    """

    __tablename__ = "sequence_counters"

    __table_args__ = (
        UniqueConstraint("kind", "year", name="uq_sequence_kind_year"),
        CheckConstraint("last_number >= 0", name="ck_sequence_non_negative"),
    )

    # "quote" or "invoice"
    kind: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )

    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    last_number: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.kind}/{self.year} last={self.last_number}>"
