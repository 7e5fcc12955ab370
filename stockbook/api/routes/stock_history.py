"""Stock history (ledger) endpoints."""

import math
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from stockbook.api.dependencies import (
    get_adjust_stock_use_case,
    get_current_user_id,
    get_history_store,
)
from stockbook.application.dto.mappers import stock_history_to_response
from stockbook.application.dto.requests import AdjustStockRequest
from stockbook.application.dto.responses import (
    AdjustStockResponse,
    ErrorResponse,
    PaginationMeta,
    StockHistoryListResponse,
)
from stockbook.application.use_cases import AdjustStockUseCase
from stockbook.core.entities import MovementType, StockHistoryFilter
from stockbook.infrastructure.storage.sqlite import SQLiteStockHistoryStore

router = APIRouter(prefix="/api/stock-history", tags=["stock-history"])


@router.get("", response_model=StockHistoryListResponse)
async def list_stock_history(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    item_type: str | None = Query(default=None, pattern="^(material|product)$"),
    type: MovementType | None = None,
    material_id: str | None = None,
    product_id: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    store: SQLiteStockHistoryStore = Depends(get_history_store),
) -> StockHistoryListResponse:
    """List the user's stock movements, newest first."""
    query = StockHistoryFilter(
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        item_type=item_type,
        type=type,
        material_id=material_id,
        product_id=product_id,
        limit=limit,
        offset=(page - 1) * limit,
    )
    rows = await store.list_history(query)
    total = await store.count_history(query)

    return StockHistoryListResponse(
        data=[stock_history_to_response(row) for row in rows],
        meta=PaginationMeta(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.post(
    "",
    response_model=AdjustStockResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def adjust_stock(
    request: AdjustStockRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: AdjustStockUseCase = Depends(get_adjust_stock_use_case),
) -> AdjustStockResponse:
    """Record a manual stock movement."""
    result = await use_case.execute(request, user_id)
    return use_case.to_response(result)
