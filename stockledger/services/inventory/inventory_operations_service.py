# stockledger/services/inventory/inventory_operations_service.py
#
# Stock-mutating workflows. Each one follows the same shape:
#
#   lock product -> load (FOR UPDATE) -> validate -> mutate stock
#   -> stage movement -> single commit -> return refreshed product
#
# The stock change and its movement row share one transaction, so the
# audit trail cannot miss a committed change.

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core import config
from stockledger.core.exceptions import ConflictError, ValidationFailedError
from stockledger.constants.error_codes import ErrorCode
from stockledger.constants.movement_type import MovementType, StockUpdateMode
from stockledger.models.inventory.product_models import Product
from stockledger.schemas.inventory.product_schemas import (
    ImportProductSchema,
    TransferProductSchema,
    ExportProductSchema,
    UpdateProductInventorySchema,
    SetStockQuantitySchema,
    ProductOut,
)
from stockledger.services.inventory import stock_map
from stockledger.services.inventory.movement_service import record_movement
from stockledger.services.inventory.product_service import (
    load_product,
    load_product_by_parts_number,
    lock_key_for,
    map_product,
    touch_product,
)
from stockledger.services.inventory.reference_service import require_locations, require_origins
from stockledger.services.inventory.transaction import locked_transaction
from stockledger.utils.decimal_utils import to_decimal
from stockledger.utils.tristate import SetTo, UNSET
from stockledger.utils.logger import get_logger

logger = get_logger(__name__)


def _selling_price_patch(value):
    return UNSET if value is None else SetTo(value)


# =====================================================
# IMPORT
# =====================================================
async def import_product(
    db: AsyncSession,
    payload: ImportProductSchema,
    actor_id: str,
) -> ProductOut:
    await require_locations(db, payload.location_id)
    if payload.import_origin_id is not None:
        await require_origins(db, payload.import_origin_id)

    async with locked_transaction(db, [payload.parts_number]):
        product = await load_product_by_parts_number(
            db, payload.parts_number, for_update=True
        )
        created = product is None

        if created:
            product = Product(
                parts_number=payload.parts_number,
                description=payload.description,
                cost_price=to_decimal(payload.cost_price),
                selling_price=(
                    to_decimal(payload.selling_price)
                    if payload.selling_price is not None else None
                ),
                import_origin_id=payload.import_origin_id,
                stock_entries=[],
                price_comparisons=[],
                created_by=actor_id,
                updated_by=actor_id,
            )
            db.add(product)
        else:
            stock_map.apply_pricing(
                product,
                cost_price=payload.cost_price,
                selling_price=_selling_price_patch(payload.selling_price),
            )
            if payload.import_origin_id is not None:
                product.import_origin_id = payload.import_origin_id
            touch_product(product, actor_id)

        stock_map.upsert_stock(
            product,
            payload.location_id,
            payload.quantity,
            unit_price=payload.cost_price,
        )

        # product id is needed by the movement row
        try:
            await db.flush()
        except IntegrityError:
            if not created:
                raise
            # another writer (other process) inserted the same parts number first
            raise ConflictError(
                "A product with this parts number already exists, retry the import",
                ErrorCode.PRODUCT_PARTS_NUMBER_EXISTS,
                {"parts_number": payload.parts_number},
            )

        await record_movement(
            db,
            product_id=product.id,
            movement_type=MovementType.IMPORT,
            to_location_id=payload.location_id,
            quantity=payload.quantity,
            unit_price=product.cost_price,
            actor_id=actor_id,
            notes="Product imported",
        )

    logger.info(
        "Product imported",
        extra={
            "product_id": product.id,
            "parts_number": product.parts_number,
            "is_new": created,
            "location_id": payload.location_id,
            "quantity": payload.quantity,
            "actor_id": actor_id,
        },
    )
    return await map_product(db, product)


# =====================================================
# TRANSFER
# =====================================================
async def transfer_product(
    db: AsyncSession,
    product_id: int,
    payload: TransferProductSchema,
    actor_id: str,
) -> ProductOut:
    same_location = payload.from_location_id == payload.to_location_id
    if same_location and not config.ALLOW_SAME_LOCATION_TRANSFER:
        raise ValidationFailedError(
            "Source and destination locations must differ",
            ErrorCode.STOCK_TRANSFER_SAME_LOCATION,
            {"location_id": payload.from_location_id},
        )

    key = await lock_key_for(db, product_id)
    await require_locations(db, payload.to_location_id)

    async with locked_transaction(db, [key]):
        product = await load_product(db, product_id, for_update=True)

        stock_map.deduct(product, payload.from_location_id, payload.quantity)

        unit_price = (
            payload.unit_price
            if payload.unit_price is not None
            else product.cost_price
        )
        stock_map.upsert_stock(
            product,
            payload.to_location_id,
            payload.quantity,
            unit_price=unit_price,
        )
        touch_product(product, actor_id)

        await record_movement(
            db,
            product_id=product.id,
            movement_type=MovementType.TRANSFER,
            from_location_id=payload.from_location_id,
            to_location_id=payload.to_location_id,
            quantity=payload.quantity,
            unit_price=unit_price,
            actor_id=actor_id,
            notes="Product transferred between locations",
        )

    logger.info(
        "Product transferred",
        extra={
            "product_id": product_id,
            "from_location_id": payload.from_location_id,
            "to_location_id": payload.to_location_id,
            "quantity": payload.quantity,
            "actor_id": actor_id,
        },
    )
    return await map_product(db, product)


# =====================================================
# EXPORT
# =====================================================
async def export_product(
    db: AsyncSession,
    product_id: int,
    payload: ExportProductSchema,
    actor_id: str,
) -> ProductOut:
    key = await lock_key_for(db, product_id)

    async with locked_transaction(db, [key]):
        product = await load_product(db, product_id, for_update=True)

        stock_map.deduct(product, payload.location_id, payload.quantity)
        touch_product(product, actor_id)

        await record_movement(
            db,
            product_id=product.id,
            movement_type=MovementType.EXPORT,
            from_location_id=payload.location_id,
            quantity=payload.quantity,
            unit_price=product.cost_price,
            actor_id=actor_id,
            notes=payload.notes or "Product exported/removed from inventory",
        )

    logger.info(
        "Product exported",
        extra={
            "product_id": product_id,
            "location_id": payload.location_id,
            "quantity": payload.quantity,
            "actor_id": actor_id,
        },
    )
    return await map_product(db, product)


# =====================================================
# UPDATE PRODUCT + INVENTORY
# =====================================================
async def update_product_and_inventory(
    db: AsyncSession,
    product_id: int,
    payload: UpdateProductInventorySchema,
    actor_id: str,
) -> ProductOut:
    """Price correction plus stock addition on a known product id."""
    key = await lock_key_for(db, product_id)
    await require_locations(db, payload.location_id)
    if payload.import_origin_id is not None:
        await require_origins(db, payload.import_origin_id)

    async with locked_transaction(db, [key]):
        product = await load_product(db, product_id, for_update=True)

        stock_map.apply_pricing(
            product,
            cost_price=payload.cost_price,
            selling_price=_selling_price_patch(payload.selling_price),
        )
        if payload.import_origin_id is not None:
            product.import_origin_id = payload.import_origin_id

        stock_map.upsert_stock(
            product,
            payload.location_id,
            payload.quantity,
            unit_price=payload.cost_price,
        )
        touch_product(product, actor_id)

        await record_movement(
            db,
            product_id=product.id,
            movement_type=MovementType.IMPORT,
            to_location_id=payload.location_id,
            quantity=payload.quantity,
            unit_price=product.cost_price,
            actor_id=actor_id,
            notes="Product inventory updated",
        )

    logger.info(
        "Product inventory updated",
        extra={
            "product_id": product_id,
            "location_id": payload.location_id,
            "quantity": payload.quantity,
            "actor_id": actor_id,
        },
    )
    return await map_product(db, product)


# =====================================================
# SET QUANTITY (count correction)
# =====================================================
async def set_stock_quantity(
    db: AsyncSession,
    product_id: int,
    location_id: int,
    payload: SetStockQuantitySchema,
    actor_id: str,
) -> ProductOut:
    key = await lock_key_for(db, product_id)
    await require_locations(db, location_id)

    async with locked_transaction(db, [key]):
        product = await load_product(db, product_id, for_update=True)

        previous = stock_map.available_at(product, location_id)
        delta = payload.quantity - previous

        # zero at a never-stocked location: no entry, no movement
        never_stocked = stock_map.find_entry(product, location_id) is None
        if not (never_stocked and payload.quantity == 0):
            stock_map.upsert_stock(product, location_id, payload.quantity, StockUpdateMode.SET)
            touch_product(product, actor_id)

        # Corrections are still quantity changes: log the delta
        if delta:
            await record_movement(
                db,
                product_id=product.id,
                movement_type=MovementType.IMPORT if delta > 0 else MovementType.EXPORT,
                to_location_id=location_id if delta > 0 else None,
                from_location_id=location_id if delta < 0 else None,
                quantity=abs(delta),
                unit_price=product.cost_price,
                actor_id=actor_id,
                notes=payload.notes or "Stock count correction",
            )

    logger.info(
        "Stock quantity set",
        extra={
            "product_id": product_id,
            "location_id": location_id,
            "previous": previous,
            "quantity": payload.quantity,
            "actor_id": actor_id,
        },
    )
    return await map_product(db, product)
