# stockledger/services/inventory/transaction.py

from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from stockledger.core.exceptions import ConflictError
from stockledger.core.locks import product_locks
from stockledger.utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def locked_transaction(
    db: AsyncSession,
    product_keys: Iterable[str],
) -> AsyncIterator[None]:
    """
    Hold the per-product locks for ``product_keys`` and commit everything
    staged in the block as one transaction: stock changes, movements and
    sale rows land together or not at all.
    """
    keys = sorted(set(product_keys))

    async with product_locks.hold(keys):
        try:
            yield
            await db.commit()

        except StaleDataError:
            await db.rollback()
            logger.warning("Optimistic version check failed", extra={"product_keys": keys})
            raise ConflictError(details={"product_keys": keys})

        except IntegrityError:
            await db.rollback()
            logger.exception("Integrity error while committing stock change")
            raise ConflictError(details={"product_keys": keys})

        except Exception:
            await db.rollback()
            raise
