from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime


# ==============================
# INPUT
# ==============================
class SaleItemCreate(BaseModel):
    product_id: int
    location_id: int
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0, description="Price charged per unit")


class SaleCreate(BaseModel):
    items: List[SaleItemCreate] = Field(min_length=1)
    notes: Optional[str] = None


# ==============================
# OUTPUT
# ==============================
class SaleItemOut(BaseModel):
    product_id: int
    parts_number: Optional[str]
    product_description: Optional[str]
    location_id: int
    location_name: Optional[str]
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class SaleOut(BaseModel):
    id: int
    actor_id: str
    sold_at: datetime
    notes: str
    items: List[SaleItemOut]
    total_quantity: int
    total_amount: Decimal


class SaleListData(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int
    items: List[SaleOut]


class SalesTotalsOut(BaseModel):
    total_sales: Decimal
    total_quantity: int
    sales_today: Decimal
