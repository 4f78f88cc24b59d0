"""Database layer - engine, base classes and column types."""

from billing_kernel.db.base import UUID, Base, TimestampedBase, UUIDString
from billing_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from billing_kernel.db.types import Currency, Money, Quantity, UnitPrice, VatRate

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Currency",
    "Quantity",
    "UnitPrice",
    "VatRate",
]
