"""Services for the billing kernel (write side)."""

from billing_kernel.services.client_service import ClientService
from billing_kernel.services.conversion_service import QuoteToInvoiceConverter
from billing_kernel.services.invoice_service import InvoiceService
from billing_kernel.services.quote_service import QuoteService
from billing_kernel.services.sequence_service import SequenceAllocator

__all__ = [
    "ClientService",
    "InvoiceService",
    "QuoteService",
    "QuoteToInvoiceConverter",
    "SequenceAllocator",
]
