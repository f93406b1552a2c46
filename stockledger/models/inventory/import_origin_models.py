from sqlalchemy import Column, Integer, String
from stockledger.core.db import Base
from stockledger.models.base.mixins import TimestampMixin


class ImportOrigin(Base, TimestampMixin):
    """Where a part is sourced from (supplier country / market). Reference data."""

    __tablename__ = "import_origins"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    country = Column(String(100), nullable=True)
    description = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<ImportOrigin id={self.id} name={self.name}>"
