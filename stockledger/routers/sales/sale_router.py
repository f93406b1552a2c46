# stockledger/routers/sales/sale_router.py

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.db import get_db
from stockledger.schemas.sales.sale_schemas import (
    SaleCreate,
    SaleOut,
    SaleListData,
    SalesTotalsOut,
)
from stockledger.services.sales.sale_service import (
    create_sale,
    get_sale,
    list_sales,
    list_sales_by_location,
    get_sales_totals,
)
from stockledger.utils.get_actor import get_actor_id
from stockledger.utils.response import APIResponse, success_response
from stockledger.utils.logger import get_logger

router = APIRouter(prefix="/sales", tags=["Sales"])
logger = get_logger(__name__)


@router.post("/", response_model=APIResponse[SaleOut])
async def create_sale_api(
    payload: SaleCreate,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    logger.info("Create sale", extra={"items": len(payload.items)})
    sale = await create_sale(db, payload, actor_id)
    return success_response("Sale recorded successfully", sale)


@router.get("/", response_model=APIResponse[SaleListData])
async def list_sales_api(
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    search: str | None = Query(None, description="Search by description or parts number"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    data = await list_sales(
        db,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        page_size=page_size,
    )
    return success_response("Sales fetched successfully", data)


# Declared before /{sale_id} so the literal path wins
@router.get("/stats/total", response_model=APIResponse[SalesTotalsOut])
async def sales_totals_api(
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
):
    data = await get_sales_totals(db, start_date=start_date, end_date=end_date)
    return success_response("Sales totals fetched successfully", data)


@router.get("/location/{location_id}", response_model=APIResponse[list[SaleOut]])
async def list_sales_by_location_api(
    location_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    data = await list_sales_by_location(db, location_id)
    return success_response("Sales fetched successfully", data)


@router.get("/{sale_id}", response_model=APIResponse[SaleOut])
async def get_sale_api(
    sale_id: int,
    db: AsyncSession = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
):
    sale = await get_sale(db, sale_id)
    return success_response("Sale fetched successfully", sale)
