"""Purchase endpoints."""

from fastapi import APIRouter, Depends, status

from stockbook.api.dependencies import (
    get_bulk_delete_purchases_use_case,
    get_create_purchase_use_case,
    get_current_user_id,
    get_delete_purchase_use_case,
    get_import_purchases_use_case,
    get_purch_store,
    get_update_purchase_status_use_case,
)
from stockbook.application.dto.mappers import purchase_to_response
from stockbook.application.dto.requests import (
    BulkDeletePurchasesRequest,
    CreatePurchaseRequest,
    ImportPurchasesRequest,
    UpdatePurchaseStatusRequest,
)
from stockbook.application.dto.responses import (
    BulkDeletePurchasesResponse,
    DeletePurchaseResponse,
    ErrorResponse,
    ImportPurchasesResponse,
    PurchaseListResponse,
    PurchaseResponse,
)
from stockbook.application.use_cases import (
    BulkDeletePurchasesUseCase,
    CreatePurchaseUseCase,
    DeletePurchaseUseCase,
    ImportPurchasesUseCase,
    UpdatePurchaseStatusUseCase,
)
from stockbook.core.exceptions import PurchaseAccessDeniedError, PurchaseNotFoundError
from stockbook.infrastructure.storage.sqlite import SQLitePurchaseStore

router = APIRouter(prefix="/api/purchases", tags=["purchases"])

STATUS_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("", response_model=PurchaseListResponse)
async def list_purchases(
    limit: int = 100,
    offset: int = 0,
    user_id: str = Depends(get_current_user_id),
    store: SQLitePurchaseStore = Depends(get_purch_store),
) -> PurchaseListResponse:
    """List the user's purchases, newest first. ``total`` counts all of them."""
    purchases = await store.list_purchases(user_id, limit=limit, offset=offset)
    return PurchaseListResponse(
        purchases=[purchase_to_response(p) for p in purchases],
        total=await store.count_purchases(user_id),
    )


@router.get("/suppliers", response_model=list[str], responses=STATUS_ERRORS)
async def list_suppliers(
    user_id: str = Depends(get_current_user_id),
    store: SQLitePurchaseStore = Depends(get_purch_store),
) -> list[str]:
    """Supplier names the user has bought from, for autocomplete."""
    return await store.list_suppliers(user_id)


@router.post(
    "",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    responses=STATUS_ERRORS,
)
async def create_purchase(
    request: CreatePurchaseRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: CreatePurchaseUseCase = Depends(get_create_purchase_use_case),
) -> PurchaseResponse:
    """Create a purchase. A completed purchase credits stock immediately."""
    result = await use_case.execute(request, user_id)
    return use_case.to_response(result)


@router.post(
    "/bulk-delete",
    response_model=BulkDeletePurchasesResponse,
    responses=STATUS_ERRORS,
)
async def bulk_delete_purchases(
    request: BulkDeletePurchasesRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: BulkDeletePurchasesUseCase = Depends(get_bulk_delete_purchases_use_case),
) -> BulkDeletePurchasesResponse:
    """Delete several purchases in one transaction."""
    result = await use_case.execute(request, user_id)
    return use_case.to_response(result)


@router.post(
    "/import",
    response_model=ImportPurchasesResponse,
    responses=STATUS_ERRORS,
)
async def import_purchases(
    request: ImportPurchasesRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: ImportPurchasesUseCase = Depends(get_import_purchases_use_case),
) -> ImportPurchasesResponse:
    """Import purchases from parsed spreadsheet rows."""
    result = await use_case.execute(request, user_id)
    return use_case.to_response(result)


@router.get(
    "/{purchase_id}",
    response_model=PurchaseResponse,
    responses=STATUS_ERRORS,
)
async def get_purchase(
    purchase_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SQLitePurchaseStore = Depends(get_purch_store),
) -> PurchaseResponse:
    """Get one purchase."""
    purchase = await store.get_purchase(purchase_id)
    if purchase is None:
        raise PurchaseNotFoundError(purchase_id)
    if purchase.user_id != user_id:
        raise PurchaseAccessDeniedError(purchase_id, user_id)
    return purchase_to_response(purchase)


@router.patch(
    "/{purchase_id}",
    response_model=PurchaseResponse,
    responses=STATUS_ERRORS,
)
async def update_purchase(
    purchase_id: str,
    request: UpdatePurchaseStatusRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: UpdatePurchaseStatusUseCase = Depends(get_update_purchase_status_use_case),
) -> PurchaseResponse:
    """Change a purchase status (same as PATCH /{purchase_id}/status)."""
    result = await use_case.execute(purchase_id, request, user_id)
    return use_case.to_response(result)


@router.patch(
    "/{purchase_id}/status",
    response_model=PurchaseResponse,
    responses=STATUS_ERRORS,
)
async def update_purchase_status(
    purchase_id: str,
    request: UpdatePurchaseStatusRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: UpdatePurchaseStatusUseCase = Depends(get_update_purchase_status_use_case),
) -> PurchaseResponse:
    """Change a purchase status, applying stock and price effects."""
    result = await use_case.execute(purchase_id, request, user_id)
    return use_case.to_response(result)


@router.delete(
    "/{purchase_id}",
    response_model=DeletePurchaseResponse,
    responses=STATUS_ERRORS,
)
async def delete_purchase(
    purchase_id: str,
    user_id: str = Depends(get_current_user_id),
    use_case: DeletePurchaseUseCase = Depends(get_delete_purchase_use_case),
) -> DeletePurchaseResponse:
    """Delete a purchase, reversing stock if it was completed."""
    result = await use_case.execute(purchase_id, user_id)
    return use_case.to_response(result)
