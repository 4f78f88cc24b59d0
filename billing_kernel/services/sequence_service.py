"""
SequenceAllocator -- per-(kind, year) document number allocation.

Responsibility:
    Hands out the next integer of a (document kind, calendar year) sequence.
    Each pair is backed by one row of ``sequence_counters`` that is
    incremented in place, inside the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by
    QuoteService.finalize and InvoiceService.finalize.

Invariants enforced:
    - No two committed callers ever receive the same value for a pair.
      The counter row is the only source of truth: the value is obtained by
      incrementing the row, never by aggregating max(number) + 1.
    - Transactional: the increment is visible only once the caller commits.
      A rollback returns the value (gaps are acceptable, duplicates are not).
    - PostgreSQL: ``SELECT ... FOR UPDATE`` on the counter row serializes
      allocations for the same pair.  SQLite: the engine opens every
      transaction with ``BEGIN IMMEDIATE`` so writers are serialized by the
      database lock.

Failure modes:
    - IntegrityError during lazy creation of a counter (two callers creating
      the first number of a year concurrently).  Handled with a savepoint
      rollback and a retry on the now-existing row.
    - OperationalError on lock timeout.  Propagated; BackOffice reports it as
      PersistenceConflictError.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from billing_kernel.domain.lifecycle import DocumentKind
from billing_kernel.logging_config import get_logger
from billing_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceAllocator:
    """
    Allocates document sequence numbers.

    Usage:
        with session_scope() as session:
            n = SequenceAllocator(session).next_number(DocumentKind.INVOICE, 2025)
            # If the transaction rolls back, n is not consumed
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, kind: str, year: int) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.kind == kind, SequenceCounter.year == year)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_number(self, kind: DocumentKind | str, year: int) -> int:
        """
        Increment the (kind, year) counter and return the new value.

        Preconditions:
            - The caller is inside an active transaction.

        Postconditions:
            - Returns an integer >= 1, strictly greater than every value
              previously committed for this (kind, year).
            - The counter row stays locked until the transaction ends.
        """
        kind = DocumentKind(kind).value

        counter = self._locked_counter(kind, year)

        if counter is None:
            # First number of the year: create the row under a savepoint so a
            # concurrent creator only costs us the savepoint, not the caller's
            # pending work.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(kind=kind, year=year, last_number=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.info(
                    "sequence_allocated",
                    extra={"kind": kind, "year": year, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"kind": kind, "year": year},
                )
                savepoint.rollback()
                counter = self._locked_counter(kind, year)
                if counter is None:
                    raise

        counter.last_number += 1
        self._session.flush()
        logger.info(
            "sequence_allocated",
            extra={"kind": kind, "year": year, "value": counter.last_number},
        )
        return counter.last_number

    def current_number(self, kind: DocumentKind | str, year: int) -> int:
        """Last value allocated for (kind, year), 0 if none yet.  No increment."""
        kind = DocumentKind(kind).value
        value = self._session.execute(
            select(SequenceCounter.last_number)
            .where(SequenceCounter.kind == kind, SequenceCounter.year == year)
        ).scalar_one_or_none()
        return value or 0
