"""
Core business logic services.

Layer-pure services that depend only on:
- stockbook/core/entities/*
- stockbook/core/interfaces/*
- stockbook/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from stockbook.core.services.pricing import (
    additional_cost_per_unit,
    compute_prices,
    compute_weighted_average_prices,
    direct_overwrite_prices,
    resolve_price_mode,
)
from stockbook.core.services.purchase_reconciler import (
    BulkDeleteResult,
    PurchaseReconciler,
)

__all__ = [
    # Pricing
    "additional_cost_per_unit",
    "compute_prices",
    "compute_weighted_average_prices",
    "direct_overwrite_prices",
    "resolve_price_mode",
    # Reconciler
    "BulkDeleteResult",
    "PurchaseReconciler",
]
