from pydantic import BaseModel
from decimal import Decimal


class LocationStockSummary(BaseModel):
    location_id: int
    location_code: str
    location_name: str
    total_quantity: int
    total_value: Decimal
