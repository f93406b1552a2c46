import math
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from stockledger.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationFailedError,
)
from stockledger.constants.error_codes import ErrorCode
from stockledger.constants.movement_type import MovementType
from stockledger.models.inventory.product_models import Product
from stockledger.models.sales.sale_models import Sale, SaleItem
from stockledger.schemas.sales.sale_schemas import (
    SaleCreate,
    SaleItemCreate,
    SaleItemOut,
    SaleOut,
    SaleListData,
    SalesTotalsOut,
)
from stockledger.services.inventory import stock_map
from stockledger.services.inventory.movement_service import record_movement, day_bounds
from stockledger.services.inventory.product_service import (
    load_product,
    parts_numbers_for,
    touch_product,
)
from stockledger.services.inventory.reference_service import resolve_location_names
from stockledger.services.inventory.transaction import locked_transaction
from stockledger.utils.decimal_utils import to_decimal, line_total
from stockledger.utils.logger import get_logger

logger = get_logger(__name__)


# =====================================================
# VALIDATION (phase 1, no writes)
# =====================================================
def _validate_items(
    products: dict[int, Product],
    items: list[SaleItemCreate],
) -> None:
    # Demand is summed per (product, location) so a basket repeating a
    # line cannot pass here and then overdraw during deduction.
    demand: dict[tuple[int, int], int] = {}

    for index, item in enumerate(items):
        product = products[item.product_id]
        entry = stock_map.find_entry(product, item.location_id)

        if entry is None:
            raise ValidationFailedError(
                f'Product "{product.description}" (#{product.parts_number}) is not '
                "available at the selected location",
                ErrorCode.SALE_INVALID_ITEM,
                {
                    "item_index": index,
                    "product_id": item.product_id,
                    "location_id": item.location_id,
                },
            )

        key = (item.product_id, item.location_id)
        demand[key] = demand.get(key, 0) + item.quantity

        if demand[key] > entry.quantity:
            logger.warning(
                "Sale rejected: insufficient stock",
                extra={
                    "item_index": index,
                    "product_id": item.product_id,
                    "location_id": item.location_id,
                    "requested": demand[key],
                    "available": entry.quantity,
                },
            )
            raise InsufficientStockError(
                product_id=item.product_id,
                location_id=item.location_id,
                requested=demand[key],
                available=entry.quantity,
                item_index=index,
            )


def _sale_note(item: SaleItemCreate, notes: str | None) -> str:
    text = f"Sold {item.quantity} units at {to_decimal(item.unit_price)} per unit"
    if notes:
        text += f". Notes: {notes}"
    return text


# =====================================================
# MAPPER
# =====================================================
async def _map_sales(db: AsyncSession, sales: list[Sale]) -> list[SaleOut]:
    product_ids = {i.product_id for s in sales for i in s.items}
    location_ids = {i.location_id for s in sales for i in s.items}

    products = {}
    if product_ids:
        rows = await db.execute(
            select(Product.id, Product.parts_number, Product.description)
            .where(Product.id.in_(product_ids))
        )
        products = {r.id: r for r in rows.all()}
    location_names = await resolve_location_names(db, location_ids)

    out = []
    for sale in sales:
        items = [
            SaleItemOut(
                product_id=i.product_id,
                parts_number=products[i.product_id].parts_number if i.product_id in products else None,
                product_description=products[i.product_id].description if i.product_id in products else None,
                location_id=i.location_id,
                location_name=location_names.get(i.location_id),
                quantity=i.quantity,
                unit_price=i.unit_price,
                line_total=line_total(i.quantity, i.unit_price),
            )
            for i in sale.items
        ]
        out.append(
            SaleOut(
                id=sale.id,
                actor_id=sale.actor_id,
                sold_at=sale.sold_at,
                notes=sale.notes,
                items=items,
                total_quantity=sum(i.quantity for i in items),
                total_amount=to_decimal(sum((i.line_total for i in items), to_decimal(0))),
            )
        )
    return out


# =====================================================
# CREATE
# =====================================================
async def create_sale(
    db: AsyncSession,
    payload: SaleCreate,
    actor_id: str,
) -> SaleOut:
    if not payload.items:
        raise ValidationFailedError(
            "Sale must contain at least one item",
            ErrorCode.SALE_EMPTY_ITEMS,
        )

    product_ids = {i.product_id for i in payload.items}
    keys = await parts_numbers_for(db, product_ids)

    for index, item in enumerate(payload.items):
        if item.product_id not in keys:
            raise ValidationFailedError(
                f"Item {index + 1}: product not found",
                ErrorCode.SALE_INVALID_ITEM,
                {"item_index": index, "product_id": item.product_id},
            )

    async with locked_transaction(db, keys.values()):
        products = {
            pid: await load_product(db, pid, for_update=True)
            for pid in sorted(product_ids)
        }

        # ---------- phase 1: every item, no writes ----------
        _validate_items(products, payload.items)

        # ---------- phase 2: deduct + log per item ----------
        sale = Sale(
            actor_id=actor_id,
            notes=payload.notes or "",
            items=[
                SaleItem(
                    position=index,
                    product_id=item.product_id,
                    location_id=item.location_id,
                    quantity=item.quantity,
                    unit_price=to_decimal(item.unit_price),
                )
                for index, item in enumerate(payload.items)
            ],
        )
        db.add(sale)
        await db.flush()

        for item in payload.items:
            # Same in-session object for repeated products, so later lines
            # see the quantity left by earlier ones
            product = products[item.product_id]
            stock_map.deduct(product, item.location_id, item.quantity)

            await record_movement(
                db,
                product_id=product.id,
                movement_type=MovementType.EXPORT,
                from_location_id=item.location_id,
                quantity=item.quantity,
                unit_price=product.cost_price,
                actor_id=actor_id,
                notes=_sale_note(item, payload.notes),
                sale_id=sale.id,
            )

        for product in products.values():
            touch_product(product, actor_id)

    logger.info(
        "Sale recorded",
        extra={
            "sale_id": sale.id,
            "items": len(payload.items),
            "actor_id": actor_id,
        },
    )
    return (await _map_sales(db, [sale]))[0]


# =====================================================
# GET
# =====================================================
async def get_sale(db: AsyncSession, sale_id: int) -> SaleOut:
    sale = await db.scalar(
        select(Sale)
        .where(Sale.id == sale_id)
        .execution_options(populate_existing=True)
    )
    if not sale:
        raise NotFoundError(
            "Sale not found",
            ErrorCode.SALE_NOT_FOUND,
            {"sale_id": sale_id},
        )
    return (await _map_sales(db, [sale]))[0]


# =====================================================
# LIST
# =====================================================
async def list_sales(
    db: AsyncSession,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 50,
) -> SaleListData:
    filters = []

    start, end = day_bounds(start_date, end_date)
    if start:
        filters.append(Sale.sold_at >= start)
    if end:
        filters.append(Sale.sold_at < end)

    if search:
        filters.append(
            Sale.id.in_(
                select(SaleItem.sale_id)
                .join(Product, Product.id == SaleItem.product_id)
                .where(
                    or_(
                        Product.description.ilike(f"%{search}%"),
                        Product.parts_number.ilike(f"%{search}%"),
                    )
                )
            )
        )

    total = await db.scalar(
        select(func.count()).select_from(
            select(Sale.id).where(*filters).subquery()
        )
    ) or 0

    sales = (
        await db.execute(
            select(Sale)
            .where(*filters)
            .order_by(Sale.sold_at.desc(), Sale.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .execution_options(populate_existing=True)
        )
    ).scalars().all()

    return SaleListData(
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
        items=await _map_sales(db, list(sales)),
    )


async def list_sales_by_location(
    db: AsyncSession,
    location_id: int,
) -> list[SaleOut]:
    sales = (
        await db.execute(
            select(Sale)
            .where(
                Sale.id.in_(
                    select(SaleItem.sale_id).where(SaleItem.location_id == location_id)
                )
            )
            .order_by(Sale.sold_at.desc(), Sale.id.desc())
            .execution_options(populate_existing=True)
        )
    ).scalars().all()

    return await _map_sales(db, list(sales))


# =====================================================
# STATS
# =====================================================
async def _sum_sales(
    db: AsyncSession,
    start: datetime | None,
    end: datetime | None,
):
    filters = []
    if start:
        filters.append(Sale.sold_at >= start)
    if end:
        filters.append(Sale.sold_at < end)

    row = (
        await db.execute(
            select(
                func.coalesce(func.sum(SaleItem.quantity * SaleItem.unit_price), 0),
                func.coalesce(func.sum(SaleItem.quantity), 0),
            )
            .join(Sale, Sale.id == SaleItem.sale_id)
            .where(*filters)
        )
    ).one()
    return to_decimal(row[0]), int(row[1])


async def get_sales_totals(
    db: AsyncSession,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> SalesTotalsOut:
    total_sales, total_quantity = await _sum_sales(db, *day_bounds(start_date, end_date))

    today = datetime.now(timezone.utc).date()
    sales_today, _ = await _sum_sales(db, *day_bounds(today, today))

    return SalesTotalsOut(
        total_sales=total_sales,
        total_quantity=total_quantity,
        sales_today=sales_today,
    )
