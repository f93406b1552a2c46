# stockledger/schemas/inventory/product_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime


# ==============================
# WORKFLOW INPUTS
# ==============================
class ImportProductSchema(BaseModel):
    parts_number: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    quantity: int = Field(gt=0)
    cost_price: Decimal = Field(ge=0)
    location_id: int
    import_origin_id: Optional[int] = None
    selling_price: Optional[Decimal] = Field(default=None, ge=0)


class TransferProductSchema(BaseModel):
    from_location_id: int
    to_location_id: int
    quantity: int = Field(gt=0)
    # Falls back to the product cost price when omitted
    unit_price: Optional[Decimal] = Field(default=None, ge=0)


class ExportProductSchema(BaseModel):
    location_id: int
    quantity: int = Field(gt=0)
    notes: Optional[str] = None


class UpdateProductInventorySchema(BaseModel):
    cost_price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)
    location_id: int
    selling_price: Optional[Decimal] = Field(default=None, ge=0)
    import_origin_id: Optional[int] = None


class SetStockQuantitySchema(BaseModel):
    # Sign is checked by the stock map so the caller gets InvalidOperation, not a 422
    quantity: int
    notes: Optional[str] = None


class PriceComparisonSchema(BaseModel):
    origin_id: int
    price: Decimal = Field(ge=0)


class ProductPricingUpdate(BaseModel):
    """
    Partial update. For selling_price an omitted key leaves the value
    alone while an explicit null clears it.
    """

    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    cost_price: Optional[Decimal] = Field(default=None, ge=0)
    selling_price: Optional[Decimal] = Field(default=None, ge=0)
    price_comparisons: Optional[List[PriceComparisonSchema]] = None


# ==============================
# OUTPUT
# ==============================
class StockEntryOut(BaseModel):
    location_id: int
    location_name: Optional[str]
    quantity: int
    unit_price_at_location: Optional[Decimal]


class PriceComparisonOut(BaseModel):
    origin_id: int
    origin_name: Optional[str]
    price: Decimal


class ProductOut(BaseModel):
    id: int
    parts_number: str
    description: str
    cost_price: Decimal
    selling_price: Optional[Decimal]

    import_origin_id: Optional[int]
    import_origin_name: Optional[str]

    total_quantity: int
    stock_entries: List[StockEntryOut]
    price_comparisons: List[PriceComparisonOut]

    version: int
    created_by: Optional[str]
    updated_by: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True

    def quantity_at(self, location_id: int) -> int | None:
        for entry in self.stock_entries:
            if entry.location_id == location_id:
                return entry.quantity
        return None


class ProductListData(BaseModel):
    total: int
    items: List[ProductOut]
