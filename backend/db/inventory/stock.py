from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from ..database import Base

# Largest value the 32-bit Integer quantity columns hold
MAX_QUANTITY = 2**31 - 1


class InventoryState(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)

    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    quantity = Column(Integer, nullable=False, default=0)
    # Advisory thresholds: read by the low-stock query, never enforced on write
    min_stock_level = Column(Integer, nullable=False, default=0)
    max_stock_level = Column(Integer, nullable=False, default=1000)
    location = Column(String(255), nullable=True)

    updated_at = Column(DateTime, nullable=False, server_default=func.now())
