# stockledger/services/inventory/product_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from stockledger.models.inventory.product_models import Product, StockEntry
from stockledger.schemas.inventory.product_schemas import (
    ProductOut,
    ProductListData,
    ProductPricingUpdate,
    StockEntryOut,
    PriceComparisonOut,
)
from stockledger.core.exceptions import NotFoundError
from stockledger.constants.error_codes import ErrorCode
from stockledger.models.base.mixins import utc_now
from stockledger.services.inventory import stock_map
from stockledger.services.inventory.reference_service import (
    resolve_location_names,
    resolve_origin_names,
    require_origins,
)
from stockledger.services.inventory.transaction import locked_transaction
from stockledger.utils.tristate import patch_from_model
from stockledger.utils.logger import get_logger

logger = get_logger(__name__)


# =====================================================
# LOADERS
# =====================================================
async def load_product(
    db: AsyncSession,
    product_id: int,
    *,
    for_update: bool = False,
) -> Product:
    stmt = (
        select(Product)
        .where(Product.id == product_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    product = await db.scalar(stmt)
    if not product:
        raise NotFoundError(
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"product_id": product_id},
        )
    return product


async def load_product_by_parts_number(
    db: AsyncSession,
    parts_number: str,
    *,
    for_update: bool = False,
) -> Product | None:
    stmt = (
        select(Product)
        .where(Product.parts_number == parts_number)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    return await db.scalar(stmt)


async def parts_numbers_for(
    db: AsyncSession,
    product_ids: set[int],
) -> dict[int, str]:
    """Lock keys for products. Parts numbers are immutable, so no lock is needed to read them."""
    rows = await db.execute(
        select(Product.id, Product.parts_number).where(Product.id.in_(product_ids))
    )
    return {r.id: r.parts_number for r in rows.all()}


async def lock_key_for(db: AsyncSession, product_id: int) -> str:
    keys = await parts_numbers_for(db, {product_id})
    if product_id not in keys:
        raise NotFoundError(
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"product_id": product_id},
        )
    return keys[product_id]


def touch_product(product: Product, actor_id: str) -> None:
    # Always dirty the product row so the version check runs on commit,
    # even when only its stock entries changed.
    product.updated_by = actor_id
    product.updated_at = utc_now()


# =====================================================
# MAPPER
# =====================================================
def _map_product(
    product: Product,
    location_names: dict[int, str],
    origin_names: dict[int, str],
) -> ProductOut:
    return ProductOut(
        id=product.id,
        parts_number=product.parts_number,
        description=product.description,
        cost_price=product.cost_price,
        selling_price=product.selling_price,
        import_origin_id=product.import_origin_id,
        import_origin_name=origin_names.get(product.import_origin_id),
        total_quantity=stock_map.total_quantity(product),
        stock_entries=[
            StockEntryOut(
                location_id=e.location_id,
                location_name=location_names.get(e.location_id),
                quantity=e.quantity,
                unit_price_at_location=e.unit_price_at_location,
            )
            for e in product.stock_entries
        ],
        price_comparisons=[
            PriceComparisonOut(
                origin_id=pc.origin_id,
                origin_name=origin_names.get(pc.origin_id),
                price=pc.price,
            )
            for pc in product.price_comparisons
        ],
        version=product.version,
        created_by=product.created_by,
        updated_by=product.updated_by,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


async def map_products(db: AsyncSession, products: list[Product]) -> list[ProductOut]:
    location_ids = {e.location_id for p in products for e in p.stock_entries}
    origin_ids = {p.import_origin_id for p in products}
    origin_ids.update(pc.origin_id for p in products for pc in p.price_comparisons)

    location_names = await resolve_location_names(db, location_ids)
    origin_names = await resolve_origin_names(db, origin_ids)

    return [_map_product(p, location_names, origin_names) for p in products]


async def map_product(db: AsyncSession, product: Product) -> ProductOut:
    return (await map_products(db, [product]))[0]


# ---------------- FIND BY PARTS NUMBER ----------------
async def find_by_parts_number(db: AsyncSession, parts_number: str) -> ProductOut | None:
    product = await load_product_by_parts_number(db, parts_number)
    if product is None:
        return None
    return await map_product(db, product)


# ---------------- GET ----------------
async def get_product(db: AsyncSession, product_id: int) -> ProductOut:
    return await map_product(db, await load_product(db, product_id))


# ---------------- LIST ----------------
async def list_products(
    db: AsyncSession,
    *,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> ProductListData:
    filters = []
    if search:
        filters.append(
            or_(
                Product.description.ilike(f"%{search}%"),
                Product.parts_number.ilike(f"%{search}%"),
            )
        )

    total = await db.scalar(
        select(func.count()).select_from(
            select(Product.id).where(*filters).subquery()
        )
    )

    products = (
        await db.execute(
            select(Product)
            .where(*filters)
            .order_by(Product.parts_number.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .execution_options(populate_existing=True)
        )
    ).scalars().all()

    return ProductListData(
        total=total or 0,
        items=await map_products(db, list(products)),
    )


# ---------------- BY LOCATION ----------------
async def list_products_by_location(
    db: AsyncSession,
    location_id: int,
) -> list[ProductOut]:
    """Products that have (or had) a stock entry at the location, zero included."""
    products = (
        await db.execute(
            select(Product)
            .where(
                Product.id.in_(
                    select(StockEntry.product_id).where(StockEntry.location_id == location_id)
                )
            )
            .order_by(Product.parts_number.asc())
            .execution_options(populate_existing=True)
        )
    ).scalars().all()

    return await map_products(db, list(products))


# ---------------- UPDATE PRICING ----------------
async def update_product_pricing(
    db: AsyncSession,
    product_id: int,
    payload: ProductPricingUpdate,
    actor_id: str,
) -> ProductOut:
    comparisons = None
    if payload.price_comparisons is not None:
        comparisons = [(pc.origin_id, pc.price) for pc in payload.price_comparisons]
        await require_origins(db, *[origin_id for origin_id, _ in comparisons])

    key = await lock_key_for(db, product_id)

    async with locked_transaction(db, [key]):
        product = await load_product(db, product_id, for_update=True)

        stock_map.apply_pricing(
            product,
            description=payload.description,
            cost_price=payload.cost_price,
            selling_price=patch_from_model(payload, "selling_price"),
            price_comparisons=comparisons,
        )
        touch_product(product, actor_id)

    logger.info(
        "Product pricing updated",
        extra={"product_id": product_id, "actor_id": actor_id, "version": product.version},
    )
    return await map_product(db, product)
