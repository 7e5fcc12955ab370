"""Entity to response DTO conversions shared by use cases and routes."""

from stockbook.application.dto.responses import (
    AdditionalCostResponse,
    MaterialResponse,
    ProductResponse,
    PurchaseItemResponse,
    PurchaseResponse,
    StockHistoryResponse,
)
from stockbook.core.entities import Material, Product, Purchase, StockHistory


def purchase_to_response(purchase: Purchase) -> PurchaseResponse:
    return PurchaseResponse(
        id=purchase.id or "",
        invoice_number=purchase.invoice_number,
        supplier=purchase.supplier,
        reference=purchase.reference,
        notes=purchase.notes,
        order_type=purchase.order_type.value,
        status=purchase.status.value,
        discount=purchase.discount,
        discount_type=purchase.discount_type.value,
        subtotal=purchase.subtotal or 0.0,
        total=purchase.total or 0.0,
        auto_update_price=purchase.auto_update_price,
        version=purchase.version,
        items=[
            PurchaseItemResponse(
                id=item.id,
                type=item.type.value,
                material_id=item.material_id,
                product_id=item.product_id,
                target_code=item.target.code if item.target else None,
                target_name=item.target.name if item.target else None,
                quantity=item.quantity,
                unit=item.unit,
                price=item.price,
                item_discount=item.item_discount,
                item_discount_type=item.item_discount_type.value,
                total_price=item.total_price or 0.0,
            )
            for item in purchase.items
        ],
        additional_costs=[
            AdditionalCostResponse(
                id=cost.id,
                description=cost.description,
                amount=cost.amount,
            )
            for cost in purchase.additional_costs
        ],
        created_at=purchase.created_at,
        updated_at=purchase.updated_at,
    )


def stock_history_to_response(row: StockHistory) -> StockHistoryResponse:
    return StockHistoryResponse(
        id=row.id or 0,
        material_id=row.material_id,
        product_id=row.product_id,
        type=row.type.value,
        quantity=row.quantity,
        description=row.description,
        reference=row.reference,
        created_at=row.created_at,
    )


def material_to_response(material: Material) -> MaterialResponse:
    return MaterialResponse(
        id=material.id or "",
        code=material.code,
        name=material.name,
        unit=material.unit,
        stock=material.stock,
        price=material.price,
        min_stock=material.min_stock,
        stock_value=material.stock_value,
        created_at=material.created_at,
        updated_at=material.updated_at,
    )


def product_to_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id or "",
        sku=product.sku,
        name=product.name,
        unit=product.unit,
        stock=product.stock,
        price=product.price,
        min_stock=product.min_stock,
        stock_value=product.stock_value,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )
