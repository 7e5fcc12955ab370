"""Application use cases."""

from stockbook.application.use_cases.adjust_stock import AdjustStockUseCase
from stockbook.application.use_cases.create_purchase import CreatePurchaseUseCase
from stockbook.application.use_cases.delete_purchase import (
    BulkDeletePurchasesUseCase,
    DeletePurchaseUseCase,
)
from stockbook.application.use_cases.import_purchases import ImportPurchasesUseCase
from stockbook.application.use_cases.update_purchase_status import (
    UpdatePurchaseStatusUseCase,
)

__all__ = [
    "AdjustStockUseCase",
    "BulkDeletePurchasesUseCase",
    "CreatePurchaseUseCase",
    "DeletePurchaseUseCase",
    "ImportPurchasesUseCase",
    "UpdatePurchaseStatusUseCase",
]
