from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from stockledger.models.inventory.movement_models import Movement
from stockledger.models.inventory.product_models import Product
from stockledger.constants.movement_type import MovementType
from stockledger.constants.error_codes import ErrorCode
from stockledger.core.exceptions import NotFoundError, ValidationFailedError
from stockledger.schemas.inventory.movement_schemas import MovementOut, MovementListData
from stockledger.services.inventory.reference_service import resolve_location_names
from stockledger.utils.decimal_utils import to_decimal
from stockledger.utils.logger import get_logger

logger = get_logger(__name__)


# =====================================================
# SHAPE RULES
# =====================================================
# (from_location required, to_location required)
MOVEMENT_SHAPES = {
    MovementType.IMPORT: (False, True),
    MovementType.EXPORT: (True, False),
    MovementType.TRANSFER: (True, True),
}


def _check_shape(
    movement_type: MovementType,
    from_location_id: int | None,
    to_location_id: int | None,
) -> None:
    needs_from, needs_to = MOVEMENT_SHAPES[movement_type]

    if needs_from != (from_location_id is not None) or needs_to != (to_location_id is not None):
        raise ValidationFailedError(
            f"{movement_type.value} movement has invalid source/destination",
            ErrorCode.MOVEMENT_INVALID_SHAPE,
            {
                "movement_type": movement_type.value,
                "from_location_id": from_location_id,
                "to_location_id": to_location_id,
            },
        )


# =====================================================
# APPEND
# =====================================================
async def record_movement(
    db: AsyncSession,
    *,
    product_id: int,
    movement_type: MovementType,
    quantity: int,
    unit_price: Decimal,
    actor_id: str,
    from_location_id: int | None = None,
    to_location_id: int | None = None,
    notes: str = "",
    sale_id: int | None = None,
) -> Movement:
    """
    Stage one ledger row in the caller's transaction. The caller commits it
    together with the stock change it describes; nothing is committed here.
    """
    if quantity <= 0:
        raise ValidationFailedError(
            "Movement quantity must be positive",
            details={"quantity": quantity},
        )

    _check_shape(movement_type, from_location_id, to_location_id)

    movement = Movement(
        product_id=product_id,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        quantity=quantity,
        unit_price=to_decimal(unit_price),
        actor_id=actor_id,
        movement_type=movement_type,
        notes=notes or "",
        sale_id=sale_id,
    )
    db.add(movement)
    return movement


# =====================================================
# MAPPER
# =====================================================
def _map_movement(
    m: Movement,
    names: dict[int, str],
    parts_number: str | None = None,
    description: str | None = None,
) -> MovementOut:
    return MovementOut(
        id=m.id,
        product_id=m.product_id,
        parts_number=parts_number,
        product_description=description,
        from_location_id=m.from_location_id,
        from_location_name=names.get(m.from_location_id),
        to_location_id=m.to_location_id,
        to_location_name=names.get(m.to_location_id),
        quantity=m.quantity,
        unit_price=m.unit_price,
        movement_type=m.movement_type,
        actor_id=m.actor_id,
        timestamp=m.timestamp,
        notes=m.notes,
        sale_id=m.sale_id,
    )


def day_bounds(
    start_date: date | None,
    end_date: date | None,
) -> tuple[datetime | None, datetime | None]:
    """Inclusive calendar-day range as [start, end) UTC datetimes."""
    start = (
        datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        if start_date else None
    )
    end = (
        datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        if end_date else None
    )
    return start, end


# =====================================================
# LIST (date range / search / type, paged)
# =====================================================
async def list_movements(
    db: AsyncSession,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
    movement_type: MovementType | None = None,
    page: int = 1,
    page_size: int = 50,
) -> MovementListData:
    filters = []

    start, end = day_bounds(start_date, end_date)
    if start:
        filters.append(Movement.timestamp >= start)
    if end:
        filters.append(Movement.timestamp < end)

    if movement_type:
        filters.append(Movement.movement_type == movement_type)

    if search:
        filters.append(
            or_(
                Product.description.ilike(f"%{search}%"),
                Product.parts_number.ilike(f"%{search}%"),
            )
        )

    base = (
        select(Movement, Product.parts_number, Product.description)
        .join(Product, Product.id == Movement.product_id)
        .where(*filters)
    )

    total = await db.scalar(
        select(func.count()).select_from(base.subquery())
    )

    rows = (
        await db.execute(
            base.order_by(Movement.timestamp.desc(), Movement.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
    ).all()

    location_ids = set()
    for m, _, _ in rows:
        location_ids.update((m.from_location_id, m.to_location_id))
    names = await resolve_location_names(db, location_ids)

    return MovementListData(
        total=total or 0,
        page=page,
        page_size=page_size,
        items=[
            _map_movement(m, names, parts_number, description)
            for m, parts_number, description in rows
        ],
    )


# =====================================================
# BY PRODUCT
# =====================================================
async def list_movements_by_product(
    db: AsyncSession,
    product_id: int,
) -> list[MovementOut]:
    product = await db.scalar(
        select(Product.id).where(Product.id == product_id)
    )
    if not product:
        raise NotFoundError(
            "Product not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"product_id": product_id},
        )

    rows = (
        await db.execute(
            select(Movement)
            .where(Movement.product_id == product_id)
            .order_by(Movement.timestamp.desc(), Movement.id.desc())
        )
    ).scalars().all()

    location_ids = set()
    for m in rows:
        location_ids.update((m.from_location_id, m.to_location_id))
    names = await resolve_location_names(db, location_ids)

    return [_map_movement(m, names) for m in rows]
