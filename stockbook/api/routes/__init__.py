"""API route modules."""

from stockbook.api.routes.catalog import router as catalog_router
from stockbook.api.routes.health import router as health_router
from stockbook.api.routes.purchases import router as purchases_router
from stockbook.api.routes.stock_history import router as stock_history_router

__all__ = [
    "health_router",
    "purchases_router",
    "stock_history_router",
    "catalog_router",
]
