"""Data Transfer Objects for API layer.

Request DTOs: Validate and parse incoming API requests.
Response DTOs: Structure and serialize API responses.

These are the ONLY contracts between API handlers and use cases.
"""

from stockbook.application.dto.requests import (
    AdditionalCostRequest,
    AdjustStockRequest,
    BulkDeletePurchasesRequest,
    CreateMaterialRequest,
    CreateProductRequest,
    CreatePurchaseRequest,
    ImportPurchaseRow,
    ImportPurchasesRequest,
    PurchaseItemRequest,
    UpdatePurchaseStatusRequest,
)
from stockbook.application.dto.responses import (
    AdditionalCostResponse,
    AdjustStockResponse,
    BulkDeletePurchasesResponse,
    DatabaseHealthResponse,
    DeletePurchaseResponse,
    ErrorResponse,
    HealthResponse,
    ImportPurchasesResponse,
    ImportRowErrorResponse,
    MaterialListResponse,
    MaterialResponse,
    PaginationMeta,
    ProductListResponse,
    ProductResponse,
    PurchaseItemResponse,
    PurchaseListResponse,
    PurchaseResponse,
    StockHistoryListResponse,
    StockHistoryResponse,
)

__all__ = [
    # Requests
    "AdditionalCostRequest",
    "AdjustStockRequest",
    "BulkDeletePurchasesRequest",
    "CreateMaterialRequest",
    "CreateProductRequest",
    "CreatePurchaseRequest",
    "ImportPurchaseRow",
    "ImportPurchasesRequest",
    "PurchaseItemRequest",
    "UpdatePurchaseStatusRequest",
    # Responses
    "AdditionalCostResponse",
    "AdjustStockResponse",
    "BulkDeletePurchasesResponse",
    "DatabaseHealthResponse",
    "DeletePurchaseResponse",
    "ErrorResponse",
    "HealthResponse",
    "ImportPurchasesResponse",
    "ImportRowErrorResponse",
    "MaterialListResponse",
    "MaterialResponse",
    "PaginationMeta",
    "ProductListResponse",
    "ProductResponse",
    "PurchaseItemResponse",
    "PurchaseListResponse",
    "PurchaseResponse",
    "StockHistoryListResponse",
    "StockHistoryResponse",
]
