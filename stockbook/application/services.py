"""
Service factory functions for dependency injection.

This module provides factory functions that wire infrastructure
implementations to core services. Use cases should import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from typing import TYPE_CHECKING

from stockbook.config import get_settings
from stockbook.core.services import PurchaseReconciler

if TYPE_CHECKING:
    from stockbook.core.interfaces import IPurchaseStore, IUnitOfWork


# Singleton service instances
_purchase_reconciler: PurchaseReconciler | None = None


async def get_purchase_reconciler(
    unit_of_work: "IUnitOfWork | None" = None,
    purchase_store: "IPurchaseStore | None" = None,
) -> PurchaseReconciler:
    """
    Get or create the PurchaseReconciler.

    Creates SQLite dependencies if not provided. Only the default wiring is
    cached as a singleton.

    Args:
        unit_of_work: Optional unit of work override
        purchase_store: Optional purchase store override

    Returns:
        Configured PurchaseReconciler
    """
    global _purchase_reconciler

    overridden = unit_of_work is not None or purchase_store is not None
    if _purchase_reconciler is not None and not overridden:
        return _purchase_reconciler

    # Lazy import infrastructure to avoid circular imports
    from stockbook.infrastructure.storage.sqlite import (
        get_purchase_store,
        get_unit_of_work,
    )

    settings = get_settings()
    service = PurchaseReconciler(
        unit_of_work=unit_of_work or await get_unit_of_work(),
        purchase_store=purchase_store or await get_purchase_store(),
        strict_stock=settings.reconciler.strict_stock,
        invoice_prefix=settings.reconciler.invoice_prefix,
    )

    if not overridden:
        _purchase_reconciler = service
    return service


def reset_services() -> None:
    """Reset all service singletons (for testing)."""
    global _purchase_reconciler
    _purchase_reconciler = None
