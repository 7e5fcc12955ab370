"""
Dependency injection container for FastAPI.

Provides the acting user, stores and use cases to route handlers.
"""

from functools import lru_cache

from fastapi import Request

from stockbook.application.use_cases import (
    AdjustStockUseCase,
    BulkDeletePurchasesUseCase,
    CreatePurchaseUseCase,
    DeletePurchaseUseCase,
    ImportPurchasesUseCase,
    UpdatePurchaseStatusUseCase,
)
from stockbook.config import Settings, bind_request_context, get_settings
from stockbook.core.exceptions import AuthenticationRequiredError
from stockbook.infrastructure.storage.sqlite import (
    SQLiteCatalogStore,
    SQLitePurchaseStore,
    SQLiteStockHistoryStore,
    get_catalog_store,
    get_purchase_store,
    get_stock_history_store,
)


@lru_cache
def get_app_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


# Acting user
async def get_current_user_id(request: Request) -> str:
    """
    Resolve the acting user from the authentication header.

    Session handling lives in front of this service; it forwards the
    authenticated user id in a header.
    """
    header = get_app_settings().api.user_header
    user_id = (request.headers.get(header) or "").strip()
    if not user_id:
        raise AuthenticationRequiredError()
    bind_request_context(user_id=user_id)
    return user_id


# Store dependencies
async def get_purch_store() -> SQLitePurchaseStore:
    """Get purchase store."""
    return await get_purchase_store()


async def get_cat_store() -> SQLiteCatalogStore:
    """Get catalog store."""
    return await get_catalog_store()


async def get_history_store() -> SQLiteStockHistoryStore:
    """Get stock history store."""
    return await get_stock_history_store()


# Purchase use case dependencies
def get_create_purchase_use_case() -> CreatePurchaseUseCase:
    """Get create purchase use case."""
    return CreatePurchaseUseCase()


def get_update_purchase_status_use_case() -> UpdatePurchaseStatusUseCase:
    """Get update purchase status use case."""
    return UpdatePurchaseStatusUseCase()


def get_delete_purchase_use_case() -> DeletePurchaseUseCase:
    """Get delete purchase use case."""
    return DeletePurchaseUseCase()


def get_bulk_delete_purchases_use_case() -> BulkDeletePurchasesUseCase:
    """Get bulk delete purchases use case."""
    return BulkDeletePurchasesUseCase()


def get_import_purchases_use_case() -> ImportPurchasesUseCase:
    """Get import purchases use case."""
    return ImportPurchasesUseCase()


# Stock use case dependency
def get_adjust_stock_use_case() -> AdjustStockUseCase:
    """Get adjust stock use case."""
    return AdjustStockUseCase()
