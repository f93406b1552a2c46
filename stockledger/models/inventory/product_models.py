from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from stockledger.core.db import Base
from stockledger.models.base.mixins import TimestampMixin, ActorMixin


class Product(Base, TimestampMixin, ActorMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    parts_number = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=False)
    cost_price = Column(Numeric(12, 2), nullable=False)
    selling_price = Column(Numeric(12, 2), nullable=True)
    import_origin_id = Column(Integer, ForeignKey("import_origins.id", ondelete="SET NULL"), nullable=True, index=True)
    version = Column(Integer, nullable=False)

    stock_entries = relationship(
        "StockEntry",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="StockEntry.id",
        lazy="selectin",
    )
    price_comparisons = relationship(
        "PriceComparison",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="PriceComparison.id",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("cost_price >= 0", name="ck_product_cost_price_non_negative"),
        CheckConstraint("selling_price IS NULL OR selling_price >= 0", name="ck_product_selling_price_non_negative"),
    )

    # UPDATE ... WHERE version = :expected; a concurrent writer raises StaleDataError
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Product id={self.id} parts_number={self.parts_number} v={self.version}>"


class StockEntry(Base, TimestampMixin):
    __tablename__ = "stock_entries"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("inventory_locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    unit_price_at_location = Column(Numeric(12, 2), nullable=True)

    product = relationship("Product", back_populates="stock_entries")

    __table_args__ = (
        UniqueConstraint("product_id", "location_id", name="uq_stock_entry_product_location"),
        CheckConstraint("quantity >= 0", name="ck_stock_entry_quantity_non_negative"),
        CheckConstraint(
            "unit_price_at_location IS NULL OR unit_price_at_location >= 0",
            name="ck_stock_entry_unit_price_non_negative",
        ),
        Index("ix_stock_entry_location_product", "location_id", "product_id"),
    )

    def __repr__(self):
        return f"<StockEntry product_id={self.product_id} location_id={self.location_id} qty={self.quantity}>"


class PriceComparison(Base):
    __tablename__ = "price_comparisons"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    origin_id = Column(Integer, ForeignKey("import_origins.id", ondelete="CASCADE"), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    product = relationship("Product", back_populates="price_comparisons")

    __table_args__ = (
        UniqueConstraint("product_id", "origin_id", name="uq_price_comparison_product_origin"),
        CheckConstraint("price >= 0", name="ck_price_comparison_price_non_negative"),
    )

    def __repr__(self):
        return f"<PriceComparison product_id={self.product_id} origin_id={self.origin_id} price={self.price}>"
