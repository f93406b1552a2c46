from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.db import get_db
from stockledger.schemas.inventory.stock_summary_schemas import LocationStockSummary
from stockledger.services.inventory.stock_summary_service import get_stock_by_location_summary
from stockledger.utils.get_actor import get_actor_id
from stockledger.utils.response import APIResponse, success_response

router = APIRouter(prefix="/inventory", tags=["Inventory Summary"])


@router.get("/summary", response_model=APIResponse[list[LocationStockSummary]])
async def stock_summary_api(
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    data = await get_stock_by_location_summary(db)
    return success_response("Stock summary fetched successfully", data)
