from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.db import get_db
from stockledger.constants.movement_type import MovementType
from stockledger.schemas.inventory.movement_schemas import MovementOut, MovementListData
from stockledger.services.inventory.movement_service import (
    list_movements,
    list_movements_by_product,
)
from stockledger.utils.get_actor import get_actor_id
from stockledger.utils.response import APIResponse, success_response

router = APIRouter(prefix="/movements", tags=["Movements"])


@router.get("/", response_model=APIResponse[MovementListData])
async def list_movements_api(
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    search: str | None = Query(None, description="Search by description or parts number"),
    movement_type: MovementType | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    data = await list_movements(
        db,
        start_date=start_date,
        end_date=end_date,
        search=search,
        movement_type=movement_type,
        page=page,
        page_size=page_size,
    )
    return success_response("Movements fetched successfully", data)


@router.get("/product/{product_id}", response_model=APIResponse[list[MovementOut]])
async def list_movements_by_product_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    data = await list_movements_by_product(db, product_id)
    return success_response("Movements fetched successfully", data)
