from sqlalchemy import Column, Integer, String, Boolean, Index
from stockledger.core.db import Base
from stockledger.models.base.mixins import TimestampMixin


class InventoryLocation(Base, TimestampMixin):
    """Reference data: maintained by the locations admin, read-only here."""

    __tablename__ = "inventory_locations"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), nullable=False, unique=True, index=True)  # business identifier (warehouse, showroom, etc.)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("ix_inventory_location_active", "is_active"),)

    def __repr__(self):
        return f"<InventoryLocation id={self.id} code={self.code} active={self.is_active}>"
