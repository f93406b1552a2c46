# stockledger/services/inventory/stock_map.py
#
# Per-location quantity rules for a loaded Product. Nothing here touches the
# session; callers own locking, flushing and committing. Every quantity
# change goes through upsert_stock so the non-negative rule lives in one place.

from decimal import Decimal
from typing import Iterable

from stockledger.constants.error_codes import ErrorCode
from stockledger.constants.movement_type import StockUpdateMode
from stockledger.core.exceptions import (
    InsufficientStockError,
    InvalidOperationError,
    NotFoundError,
    ValidationFailedError,
)
from stockledger.models.inventory.product_models import Product, StockEntry, PriceComparison
from stockledger.utils.decimal_utils import to_decimal
from stockledger.utils.tristate import FieldPatch, UNSET, Clear, SetTo


def find_entry(product: Product, location_id: int) -> StockEntry | None:
    for entry in product.stock_entries:
        if entry.location_id == location_id:
            return entry
    return None


def available_at(product: Product, location_id: int) -> int:
    # absent and depleted both mean nothing to deduct
    entry = find_entry(product, location_id)
    return entry.quantity if entry else 0


def total_quantity(product: Product) -> int:
    return sum(e.quantity for e in product.stock_entries)


def require_entry(product: Product, location_id: int) -> StockEntry:
    entry = find_entry(product, location_id)
    if entry is None:
        raise NotFoundError(
            "Product not found at specified location",
            ErrorCode.STOCK_ENTRY_NOT_FOUND,
            {"product_id": product.id, "location_id": location_id},
        )
    return entry


def upsert_stock(
    product: Product,
    location_id: int,
    amount: int,
    mode: StockUpdateMode = StockUpdateMode.INCREMENT,
    *,
    unit_price: Decimal | None = None,
) -> StockEntry:
    """
    INCREMENT adds ``amount`` (negative to deduct), creating a zero entry
    first when the product was never stocked at the location. SET replaces
    the quantity outright. Returns the touched entry.
    """
    entry = find_entry(product, location_id)

    if mode == StockUpdateMode.SET:
        if amount < 0:
            raise InvalidOperationError(
                "Stock quantity cannot be set below zero",
                {"product_id": product.id, "location_id": location_id, "quantity": amount},
            )
        new_quantity = amount

    else:
        current = entry.quantity if entry else 0
        new_quantity = current + amount
        if new_quantity < 0:
            raise InsufficientStockError(
                product_id=product.id,
                location_id=location_id,
                requested=-amount,
                available=current,
            )

    if entry is None:
        entry = StockEntry(location_id=location_id, quantity=0)
        product.stock_entries.append(entry)

    entry.quantity = new_quantity
    if unit_price is not None:
        entry.unit_price_at_location = to_decimal(unit_price)

    return entry


def deduct(product: Product, location_id: int, quantity: int) -> StockEntry:
    require_entry(product, location_id)
    return upsert_stock(product, location_id, -quantity)


def apply_pricing(
    product: Product,
    *,
    description: str | None = None,
    cost_price: Decimal | None = None,
    selling_price: FieldPatch[Decimal] = UNSET,
    price_comparisons: Iterable[tuple[int, Decimal]] | None = None,
) -> None:
    if description is not None:
        product.description = description

    if cost_price is not None:
        product.cost_price = to_decimal(cost_price)

    if isinstance(selling_price, Clear):
        product.selling_price = None
    elif isinstance(selling_price, SetTo):
        product.selling_price = to_decimal(selling_price.value)

    if price_comparisons is not None:
        _replace_price_comparisons(product, list(price_comparisons))


def _replace_price_comparisons(product: Product, wanted: list[tuple[int, Decimal]]) -> None:
    origin_ids = [origin_id for origin_id, _ in wanted]
    duplicates = sorted({o for o in origin_ids if origin_ids.count(o) > 1})
    if duplicates:
        raise ValidationFailedError(
            "Each import origin may appear only once in price comparisons",
            ErrorCode.PRODUCT_DUPLICATE_PRICE_ORIGIN,
            {"origin_ids": duplicates},
        )

    # Update rows in place: re-inserting a kept origin would hit the
    # (product, origin) unique key before the old row is deleted.
    existing = {pc.origin_id: pc for pc in product.price_comparisons}
    for origin_id, price in wanted:
        row = existing.pop(origin_id, None)
        if row is None:
            product.price_comparisons.append(
                PriceComparison(origin_id=origin_id, price=to_decimal(price))
            )
        else:
            row.price = to_decimal(price)

    for row in existing.values():
        product.price_comparisons.remove(row)
