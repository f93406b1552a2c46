# stockledger/routers/inventory/product_router.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.db import get_db
from stockledger.core.exceptions import NotFoundError
from stockledger.constants.error_codes import ErrorCode
from stockledger.schemas.inventory.product_schemas import (
    ImportProductSchema,
    TransferProductSchema,
    ExportProductSchema,
    UpdateProductInventorySchema,
    SetStockQuantitySchema,
    ProductPricingUpdate,
    ProductOut,
    ProductListData,
)
from stockledger.services.inventory.product_service import (
    find_by_parts_number,
    get_product,
    list_products,
    list_products_by_location,
    update_product_pricing,
)
from stockledger.services.inventory.inventory_operations_service import (
    import_product,
    transfer_product,
    export_product,
    update_product_and_inventory,
    set_stock_quantity,
)
from stockledger.utils.get_actor import get_actor_id
from stockledger.utils.response import APIResponse, success_response
from stockledger.utils.logger import get_logger

router = APIRouter(prefix="/products", tags=["Products"])
logger = get_logger(__name__)


# =====================================================
# WORKFLOWS
# =====================================================
@router.post("/import", response_model=APIResponse[ProductOut])
async def import_product_api(
    payload: ImportProductSchema,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    logger.info("Import product", extra={"parts_number": payload.parts_number})
    product = await import_product(db, payload, actor_id)
    return success_response("Product imported successfully", product)


@router.post("/{product_id}/transfer", response_model=APIResponse[ProductOut])
async def transfer_product_api(
    product_id: int,
    payload: TransferProductSchema,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    product = await transfer_product(db, product_id, payload, actor_id)
    return success_response("Product transferred successfully", product)


@router.post("/{product_id}/export", response_model=APIResponse[ProductOut])
async def export_product_api(
    product_id: int,
    payload: ExportProductSchema,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    product = await export_product(db, product_id, payload, actor_id)
    return success_response("Product exported successfully", product)


@router.post("/{product_id}/inventory", response_model=APIResponse[ProductOut])
async def update_product_inventory_api(
    product_id: int,
    payload: UpdateProductInventorySchema,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    product = await update_product_and_inventory(db, product_id, payload, actor_id)
    return success_response("Product inventory updated successfully", product)


@router.put(
    "/{product_id}/locations/{location_id}/quantity",
    response_model=APIResponse[ProductOut],
)
async def set_stock_quantity_api(
    product_id: int,
    location_id: int,
    payload: SetStockQuantitySchema,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    product = await set_stock_quantity(db, product_id, location_id, payload, actor_id)
    return success_response("Stock quantity updated successfully", product)


# =====================================================
# QUERIES
# =====================================================
@router.get("/", response_model=APIResponse[ProductListData])
async def list_products_api(
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
    search: str | None = Query(None, description="Search by description or parts number"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_products(db, search=search, page=page, page_size=page_size)
    return success_response("Products fetched successfully", data)


@router.get(
    "/by-parts-number/{parts_number}",
    response_model=APIResponse[ProductOut],
)
async def find_by_parts_number_api(
    parts_number: str,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    product = await find_by_parts_number(db, parts_number)
    if product is None:
        raise NotFoundError(
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"parts_number": parts_number},
        )
    return success_response("Product fetched successfully", product)


@router.get(
    "/by-location/{location_id}",
    response_model=APIResponse[list[ProductOut]],
)
async def list_products_by_location_api(
    location_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    products = await list_products_by_location(db, location_id)
    return success_response("Products fetched successfully", products)


@router.get("/{product_id}", response_model=APIResponse[ProductOut])
async def get_product_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    product = await get_product(db, product_id)
    return success_response("Product fetched successfully", product)


@router.patch("/{product_id}", response_model=APIResponse[ProductOut])
async def update_product_pricing_api(
    product_id: int,
    payload: ProductPricingUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    product = await update_product_pricing(db, product_id, payload, actor_id)
    return success_response("Product updated successfully", product)
