"""
Billing Kernel - document lifecycle and numbering engine.

A transactional billing core with:
- Per-line money math on Decimal (round per line, then sum)
- Quote and invoice state machines
- Gap-tolerant, duplicate-free per-year document numbering
- Atomic, idempotent quote-to-invoice conversion
"""

__version__ = "0.1.0"
