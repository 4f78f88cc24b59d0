"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session contract for every write service in the
    kernel.  Services receive a SQLAlchemy ``Session`` and persist with
    ``session.flush()``, never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.  The caller (BackOffice, or a
    test harness) owns commit and rollback, which is what lets finalize and
    quote conversion run as one all-or-nothing transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from billing_kernel.db.base import Base
from billing_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - Time comes from the injected ``Clock`` only.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
