from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now
    )


class ActorMixin:
    # Actor ids are opaque strings issued by the auth service; no FK.
    created_by = Column(String(128), nullable=True, index=True)
    updated_by = Column(String(128), nullable=True, index=True)
