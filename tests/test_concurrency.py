import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockledger.core.db import Base
from stockledger.core.exceptions import ConflictError, InsufficientStockError
from stockledger.models import InventoryLocation
from stockledger.schemas.inventory.product_schemas import (
    ImportProductSchema,
    TransferProductSchema,
    ExportProductSchema,
)
from stockledger.schemas.sales.sale_schemas import SaleCreate, SaleItemCreate
from stockledger.services.inventory import inventory_operations_service as ops
from stockledger.services.inventory.product_service import (
    get_product,
    load_product,
    touch_product,
)
from stockledger.services.sales.sale_service import create_sale
from stockledger.services.inventory.transaction import locked_transaction

from conftest import make_engine


# =========================================
# File-backed database: each session gets its own connection
# =========================================
@pytest_asyncio.fixture
async def file_maker(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(
            engine, class_=AsyncSession, autoflush=False, expire_on_commit=False
        )
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def stocked(file_maker):
    async with file_maker() as sess:
        l1 = InventoryLocation(code="L1", name="Main Warehouse")
        l2 = InventoryLocation(code="L2", name="Showroom")
        sess.add_all([l1, l2])
        await sess.commit()

        product = await ops.import_product(
            sess,
            ImportProductSchema(
                parts_number="P1",
                description="Brake pad",
                quantity=15,
                cost_price=Decimal("5"),
                location_id=l1.id,
            ),
            "seed",
        )
        return {"product_id": product.id, "L1": l1.id, "L2": l2.id}


@pytest.mark.asyncio
async def test_concurrent_transfers_never_overdraw(file_maker, stocked):
    payload = TransferProductSchema(
        from_location_id=stocked["L1"], to_location_id=stocked["L2"], quantity=10
    )

    async def attempt(actor: str):
        async with file_maker() as sess:
            return await ops.transfer_product(sess, stocked["product_id"], payload, actor)

    results = await asyncio.gather(attempt("a"), attempt("b"), return_exceptions=True)

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStockError)

    async with file_maker() as sess:
        product = await get_product(sess, stocked["product_id"])
    assert product.quantity_at(stocked["L1"]) == 5
    assert product.quantity_at(stocked["L2"]) == 10


@pytest.mark.asyncio
async def test_concurrent_sale_and_export_stay_consistent(file_maker, stocked):
    async def sell():
        async with file_maker() as sess:
            return await create_sale(
                sess,
                SaleCreate(items=[
                    SaleItemCreate(
                        product_id=stocked["product_id"],
                        location_id=stocked["L1"],
                        quantity=9,
                        unit_price=Decimal("8"),
                    )
                ]),
                "cashier",
            )

    async def export():
        async with file_maker() as sess:
            return await ops.export_product(
                sess,
                stocked["product_id"],
                ExportProductSchema(location_id=stocked["L1"], quantity=9),
                "clerk",
            )

    results = await asyncio.gather(sell(), export(), return_exceptions=True)
    assert sum(isinstance(r, InsufficientStockError) for r in results) == 1

    async with file_maker() as sess:
        product = await get_product(sess, stocked["product_id"])
    assert product.quantity_at(stocked["L1"]) == 6


@pytest.mark.asyncio
async def test_stale_version_is_reported_as_conflict(file_maker, stocked):
    async with file_maker() as stale, file_maker() as fresh:
        # stale session reads the row first
        held = await load_product(stale, stocked["product_id"])

        await ops.export_product(
            fresh,
            stocked["product_id"],
            ExportProductSchema(location_id=stocked["L1"], quantity=1),
            "clerk",
        )

        touch_product(held, "late-writer")

        with pytest.raises(ConflictError):
            async with locked_transaction(stale, ["P1"]):
                pass
