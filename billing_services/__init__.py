"""Orchestration and the transactional back-office API."""

from billing_services.back_office import BackOffice, build_back_office
from billing_services.billing_orchestrator import BillingOrchestrator

__all__ = [
    "BackOffice",
    "BillingOrchestrator",
    "build_back_office",
]
