from pydantic import BaseModel
from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from stockledger.constants.movement_type import MovementType


class MovementOut(BaseModel):
    id: int
    product_id: int
    parts_number: Optional[str] = None
    product_description: Optional[str] = None

    from_location_id: Optional[int]
    from_location_name: Optional[str] = None
    to_location_id: Optional[int]
    to_location_name: Optional[str] = None

    quantity: int
    unit_price: Decimal
    movement_type: MovementType
    actor_id: str
    timestamp: datetime
    notes: str
    sale_id: Optional[int] = None

    class Config:
        from_attributes = True


class MovementListData(BaseModel):
    total: int
    page: int
    page_size: int
    items: List[MovementOut]
