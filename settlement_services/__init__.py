"""Transactional service layer over the settlement kernel."""

from settlement_services.orchestrator import MarketplaceOrchestrator

__all__ = [
    "MarketplaceOrchestrator",
]
