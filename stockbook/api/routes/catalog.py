"""Catalog endpoints for materials and products."""

from fastapi import APIRouter, Depends, status

from stockbook.api.dependencies import get_cat_store, get_current_user_id
from stockbook.application.dto.mappers import material_to_response, product_to_response
from stockbook.application.dto.requests import CreateMaterialRequest, CreateProductRequest
from stockbook.application.dto.responses import (
    ErrorResponse,
    MaterialListResponse,
    MaterialResponse,
    ProductListResponse,
    ProductResponse,
)
from stockbook.config import get_logger
from stockbook.core.entities import Material, Product
from stockbook.core.exceptions import ValidationError
from stockbook.infrastructure.storage.sqlite import SQLiteCatalogStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.get("/materials", response_model=MaterialListResponse)
async def list_materials(
    limit: int = 100,
    offset: int = 0,
    user_id: str = Depends(get_current_user_id),
    store: SQLiteCatalogStore = Depends(get_cat_store),
) -> MaterialListResponse:
    """List the user's materials."""
    materials = await store.list_materials(user_id, limit=limit, offset=offset)
    return MaterialListResponse(
        materials=[material_to_response(m) for m in materials],
        total=len(materials),
    )


@router.post(
    "/materials",
    response_model=MaterialResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_material(
    request: CreateMaterialRequest,
    user_id: str = Depends(get_current_user_id),
    store: SQLiteCatalogStore = Depends(get_cat_store),
) -> MaterialResponse:
    """Create a material."""
    if await store.get_material_by_code(user_id, request.code) is not None:
        raise ValidationError("code", "Material code already exists", request.code)
    material = await store.create_material(
        Material(user_id=user_id, **request.model_dump())
    )
    return material_to_response(material)


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    limit: int = 100,
    offset: int = 0,
    user_id: str = Depends(get_current_user_id),
    store: SQLiteCatalogStore = Depends(get_cat_store),
) -> ProductListResponse:
    """List the user's products."""
    products = await store.list_products(user_id, limit=limit, offset=offset)
    return ProductListResponse(
        products=[product_to_response(p) for p in products],
        total=len(products),
    )


@router.post(
    "/products",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_product(
    request: CreateProductRequest,
    user_id: str = Depends(get_current_user_id),
    store: SQLiteCatalogStore = Depends(get_cat_store),
) -> ProductResponse:
    """Create a product."""
    if await store.get_product_by_sku(user_id, request.sku) is not None:
        raise ValidationError("sku", "Product SKU already exists", request.sku)
    product = await store.create_product(
        Product(user_id=user_id, **request.model_dump())
    )
    return product_to_response(product)
