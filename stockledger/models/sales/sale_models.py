from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from stockledger.core.db import Base
from stockledger.models.base.mixins import utc_now


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True)
    actor_id = Column(String(128), nullable=False, index=True)
    sold_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    notes = Column(Text, nullable=False, default="")

    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.position",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Sale id={self.id} items={len(self.items)} sold_at={self.sold_at}>"


class SaleItem(Base):
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)

    sale = relationship("Sale", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_item_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_sale_item_unit_price_non_negative"),
        Index("ix_sale_item_location", "location_id"),
    )

    def __repr__(self):
        return f"<SaleItem sale_id={self.sale_id} product_id={self.product_id} qty={self.quantity}>"
