"""Read-only selectors for the billing kernel."""

from billing_kernel.selectors.client_selector import ClientSelector
from billing_kernel.selectors.document_selector import DocumentSelector

__all__ = [
    "ClientSelector",
    "DocumentSelector",
]
