from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, Enum, CheckConstraint, ForeignKey, Index
from stockledger.core.db import Base
from stockledger.constants.movement_type import MovementType
from stockledger.models.base.mixins import utc_now


class Movement(Base):
    """Append-only audit record. Rows are inserted once and never updated."""

    __tablename__ = "movements"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    from_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=True, index=True)
    to_location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    actor_id = Column(String(128), nullable=False, index=True)
    movement_type = Column(Enum(MovementType, name="movement_type", native_enum=False, length=16), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    notes = Column(Text, nullable=False, default="")
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="RESTRICT"), nullable=True, index=True)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_movement_unit_price_non_negative"),
        CheckConstraint(
            "(movement_type = 'IMPORT' AND from_location_id IS NULL AND to_location_id IS NOT NULL)"
            " OR (movement_type = 'EXPORT' AND from_location_id IS NOT NULL AND to_location_id IS NULL)"
            " OR (movement_type = 'TRANSFER' AND from_location_id IS NOT NULL AND to_location_id IS NOT NULL)",
            name="ck_movement_location_shape",
        ),
        Index("ix_movement_product_timestamp", "product_id", "timestamp"),
    )

    def __repr__(self):
        return (
            f"<Movement id={self.id} {self.movement_type} product_id={self.product_id} "
            f"{self.from_location_id}->{self.to_location_id} qty={self.quantity}>"
        )
