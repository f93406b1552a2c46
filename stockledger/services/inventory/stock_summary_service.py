from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from stockledger.models.inventory.inventory_location_models import InventoryLocation
from stockledger.models.inventory.product_models import Product, StockEntry
from stockledger.schemas.inventory.stock_summary_schemas import LocationStockSummary
from stockledger.utils.decimal_utils import to_decimal
from stockledger.utils.logger import get_logger

logger = get_logger(__name__)


async def get_stock_by_location_summary(db: AsyncSession) -> list[LocationStockSummary]:
    """
    Quantity and cost valuation per location, summed over every product's
    stock entry there. Locations that never held stock are left out.
    """
    logger.info("Build stock summary by location")

    rows = await db.execute(
        select(
            InventoryLocation.id,
            InventoryLocation.code,
            InventoryLocation.name,
            func.coalesce(func.sum(StockEntry.quantity), 0).label("total_quantity"),
            func.coalesce(
                func.sum(StockEntry.quantity * Product.cost_price), 0
            ).label("total_value"),
        )
        .join(StockEntry, StockEntry.location_id == InventoryLocation.id)
        .join(Product, Product.id == StockEntry.product_id)
        .group_by(InventoryLocation.id, InventoryLocation.code, InventoryLocation.name)
        .order_by(InventoryLocation.name.asc())
    )

    return [
        LocationStockSummary(
            location_id=r.id,
            location_code=r.code,
            location_name=r.name,
            total_quantity=int(r.total_quantity),
            total_value=to_decimal(r.total_value),
        )
        for r in rows.all()
    ]
