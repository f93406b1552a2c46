from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from stockledger.constants.error_codes import ErrorCode
from stockledger.constants.movement_type import MovementType
from stockledger.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationFailedError,
)
from stockledger.models import Movement, Sale
from stockledger.schemas.inventory.product_schemas import ImportProductSchema
from stockledger.schemas.sales.sale_schemas import SaleCreate, SaleItemCreate
from stockledger.services.inventory.inventory_operations_service import import_product
from stockledger.services.inventory.product_service import get_product
from stockledger.services.sales.sale_service import (
    create_sale,
    get_sale,
    list_sales,
    list_sales_by_location,
    get_sales_totals,
)

ACTOR = "cashier-1"


async def _stock(session, parts_number: str, location_id: int, quantity: int, cost: str = "5") -> int:
    product = await import_product(
        session,
        ImportProductSchema(
            parts_number=parts_number,
            description=f"Part {parts_number}",
            quantity=quantity,
            cost_price=Decimal(cost),
            location_id=location_id,
        ),
        "stock-clerk",
    )
    return product.id


def _item(product_id: int, location_id: int, quantity: int, price: str = "10") -> SaleItemCreate:
    return SaleItemCreate(
        product_id=product_id,
        location_id=location_id,
        quantity=quantity,
        unit_price=Decimal(price),
    )


async def _export_count(session) -> int:
    return await session.scalar(
        select(func.count(Movement.id)).where(Movement.movement_type == MovementType.EXPORT)
    )


# =====================================================
# CREATE
# =====================================================
@pytest.mark.asyncio
async def test_sale_deducts_every_item_and_logs_exports(session, seed):
    p1 = await _stock(session, "P1", seed["L1"], 10)
    p2 = await _stock(session, "P2", seed["L2"], 4, cost="2.5")

    sale = await create_sale(
        session,
        SaleCreate(
            items=[_item(p1, seed["L1"], 3, "9.99"), _item(p2, seed["L2"], 4, "6")],
            notes="walk-in",
        ),
        ACTOR,
    )

    assert sale.actor_id == ACTOR
    assert sale.total_quantity == 7
    assert sale.total_amount == Decimal("53.97")
    assert [i.line_total for i in sale.items] == [Decimal("29.97"), Decimal("24.00")]
    assert sale.items[0].parts_number == "P1"
    assert sale.items[1].location_name == "Showroom"

    assert (await get_product(session, p1)).quantity_at(seed["L1"]) == 7
    assert (await get_product(session, p2)).quantity_at(seed["L2"]) == 0

    rows = (
        await session.execute(
            select(Movement).where(Movement.sale_id == sale.id).order_by(Movement.id)
        )
    ).scalars().all()
    assert [m.movement_type for m in rows] == [MovementType.EXPORT, MovementType.EXPORT]
    # movement carries cost, the sale line carries the charged price
    assert rows[0].unit_price == Decimal("5.00")
    assert rows[1].unit_price == Decimal("2.50")
    assert rows[0].notes == "Sold 3 units at 9.99 per unit. Notes: walk-in"


@pytest.mark.asyncio
async def test_sale_rejected_entirely_when_second_item_short(session, seed):
    p1 = await _stock(session, "P1", seed["L1"], 10)
    p2 = await _stock(session, "P2", seed["L1"], 1)

    with pytest.raises(InsufficientStockError) as exc:
        await create_sale(
            session,
            SaleCreate(items=[_item(p1, seed["L1"], 2), _item(p2, seed["L1"], 5)]),
            ACTOR,
        )

    assert exc.value.item_index == 1
    assert exc.value.available == 1
    assert isinstance(exc.value, ValidationFailedError)

    assert await _export_count(session) == 0
    assert await session.scalar(select(func.count(Sale.id))) == 0
    assert (await get_product(session, p1)).quantity_at(seed["L1"]) == 10
    assert (await get_product(session, p2)).quantity_at(seed["L1"]) == 1


@pytest.mark.asyncio
async def test_repeated_lines_are_validated_against_combined_demand(session, seed):
    p1 = await _stock(session, "P1", seed["L1"], 5)

    with pytest.raises(InsufficientStockError) as exc:
        await create_sale(
            session,
            SaleCreate(items=[_item(p1, seed["L1"], 3), _item(p1, seed["L1"], 3)]),
            ACTOR,
        )
    assert exc.value.requested == 6
    assert (await get_product(session, p1)).quantity_at(seed["L1"]) == 5

    sale = await create_sale(
        session,
        SaleCreate(items=[_item(p1, seed["L1"], 2), _item(p1, seed["L1"], 3)]),
        ACTOR,
    )
    assert sale.total_quantity == 5
    assert (await get_product(session, p1)).quantity_at(seed["L1"]) == 0


@pytest.mark.asyncio
async def test_sale_item_at_unstocked_location_rejected(session, seed):
    p1 = await _stock(session, "P1", seed["L1"], 5)

    with pytest.raises(ValidationFailedError) as exc:
        await create_sale(session, SaleCreate(items=[_item(p1, seed["L2"], 1)]), ACTOR)

    assert exc.value.error_code == ErrorCode.SALE_INVALID_ITEM
    assert "(#P1)" in exc.value.message


@pytest.mark.asyncio
async def test_sale_with_unknown_product_rejected(session, seed):
    p1 = await _stock(session, "P1", seed["L1"], 5)

    with pytest.raises(ValidationFailedError) as exc:
        await create_sale(
            session,
            SaleCreate(items=[_item(p1, seed["L1"], 1), _item(777, seed["L1"], 1)]),
            ACTOR,
        )
    assert exc.value.error_code == ErrorCode.SALE_INVALID_ITEM
    assert exc.value.details["item_index"] == 1
    assert await _export_count(session) == 0


@pytest.mark.asyncio
async def test_empty_sale_rejected(session, seed):
    payload = SaleCreate.model_construct(items=[], notes=None)
    with pytest.raises(ValidationFailedError) as exc:
        await create_sale(session, payload, ACTOR)
    assert exc.value.error_code == ErrorCode.SALE_EMPTY_ITEMS


# =====================================================
# QUERIES
# =====================================================
@pytest.mark.asyncio
async def test_sale_queries(session, seed):
    p1 = await _stock(session, "P1", seed["L1"], 10)
    p2 = await _stock(session, "GASKET-9", seed["L2"], 10)

    first = await create_sale(session, SaleCreate(items=[_item(p1, seed["L1"], 1)]), ACTOR)
    second = await create_sale(session, SaleCreate(items=[_item(p2, seed["L2"], 2)]), ACTOR)

    fetched = await get_sale(session, first.id)
    assert fetched.items[0].product_id == p1

    listing = await list_sales(session)
    assert listing.total == 2
    assert listing.total_pages == 1
    assert [s.id for s in listing.items] == [second.id, first.id]

    searched = await list_sales(session, search="gasket")
    assert [s.id for s in searched.items] == [second.id]

    paged = await list_sales(session, page=2, page_size=1)
    assert paged.total_pages == 2
    assert [s.id for s in paged.items] == [first.id]

    tomorrow = date.today() + timedelta(days=2)
    assert (await list_sales(session, start_date=tomorrow)).total == 0

    at_l2 = await list_sales_by_location(session, seed["L2"])
    assert [s.id for s in at_l2] == [second.id]
    assert await list_sales_by_location(session, seed["L3"]) == []


@pytest.mark.asyncio
async def test_get_unknown_sale(session, seed):
    with pytest.raises(NotFoundError) as exc:
        await get_sale(session, 1)
    assert exc.value.error_code == ErrorCode.SALE_NOT_FOUND


@pytest.mark.asyncio
async def test_sales_totals(session, seed):
    p1 = await _stock(session, "P1", seed["L1"], 10)

    empty = await get_sales_totals(session)
    assert empty.total_sales == Decimal("0.00")
    assert empty.total_quantity == 0

    await create_sale(session, SaleCreate(items=[_item(p1, seed["L1"], 2, "10.50")]), ACTOR)
    await create_sale(session, SaleCreate(items=[_item(p1, seed["L1"], 1, "4")]), ACTOR)

    totals = await get_sales_totals(session)
    assert totals.total_sales == Decimal("25.00")
    assert totals.total_quantity == 3
    assert totals.sales_today == Decimal("25.00")

    long_ago = date(2000, 1, 1)
    ranged = await get_sales_totals(session, start_date=long_ago, end_date=long_ago)
    assert ranged.total_sales == Decimal("0.00")
    assert ranged.sales_today == Decimal("25.00")
