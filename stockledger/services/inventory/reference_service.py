# stockledger/services/inventory/reference_service.py
#
# Read-only access to reference data owned by other services
# (locations, import origins): existence checks and display names.

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.constants.error_codes import ErrorCode
from stockledger.core.exceptions import NotFoundError
from stockledger.models.inventory.inventory_location_models import InventoryLocation
from stockledger.models.inventory.import_origin_models import ImportOrigin


async def resolve_location_names(
    db: AsyncSession,
    location_ids: Iterable[int | None],
) -> dict[int, str]:
    ids = {i for i in location_ids if i is not None}
    if not ids:
        return {}

    rows = await db.execute(
        select(InventoryLocation.id, InventoryLocation.name)
        .where(InventoryLocation.id.in_(ids))
    )
    return {r.id: r.name for r in rows.all()}


async def resolve_origin_names(
    db: AsyncSession,
    origin_ids: Iterable[int | None],
) -> dict[int, str]:
    ids = {i for i in origin_ids if i is not None}
    if not ids:
        return {}

    rows = await db.execute(
        select(ImportOrigin.id, ImportOrigin.name)
        .where(ImportOrigin.id.in_(ids))
    )
    return {r.id: r.name for r in rows.all()}


async def require_locations(db: AsyncSession, *location_ids: int) -> None:
    wanted = set(location_ids)
    rows = await db.execute(
        select(InventoryLocation.id).where(
            InventoryLocation.id.in_(wanted),
            InventoryLocation.is_active.is_(True),
        )
    )
    missing = wanted - set(rows.scalars().all())

    if missing:
        raise NotFoundError(
            f"Invalid or inactive location(s): {sorted(missing)}",
            ErrorCode.LOCATION_NOT_FOUND,
            {"location_ids": sorted(missing)},
        )


async def require_origins(db: AsyncSession, *origin_ids: int) -> None:
    wanted = set(origin_ids)
    if not wanted:
        return

    rows = await db.execute(
        select(ImportOrigin.id).where(ImportOrigin.id.in_(wanted))
    )
    missing = wanted - set(rows.scalars().all())

    if missing:
        raise NotFoundError(
            f"Import origin(s) not found: {sorted(missing)}",
            ErrorCode.IMPORT_ORIGIN_NOT_FOUND,
            {"origin_ids": sorted(missing)},
        )
