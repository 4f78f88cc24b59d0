"""Persistence models for the billing kernel."""

from billing_kernel.models.client import Client
from billing_kernel.models.invoice import Invoice, InvoiceLine
from billing_kernel.models.quote import Quote, QuoteLine
from billing_kernel.models.sequence import SequenceCounter

__all__ = [
    "Client",
    "Invoice",
    "InvoiceLine",
    "Quote",
    "QuoteLine",
    "SequenceCounter",
]
