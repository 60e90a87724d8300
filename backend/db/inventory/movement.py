import enum

import structlog
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, event
from sqlalchemy.sql import func

from core.errors import ImmutableRecordError
from ..database import Base

logger = structlog.get_logger(__name__)


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class StockMovement(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (
        CheckConstraint(
            "movement_type IN ('IN', 'OUT', 'ADJUSTMENT')",
            name="ck_stock_movements_movement_type",
        ),
        Index("ix_stock_movements_product_created", "product_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Opaque actor id supplied by the identity collaborator
    user_id = Column(String(255), nullable=True)

    movement_type = Column(String(50), nullable=False)
    # Magnitude for IN/OUT, absolute target for ADJUSTMENT
    quantity = Column(Integer, nullable=False)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)


@event.listens_for(StockMovement, "before_update")
def _block_movement_update(mapper, connection, target):
    logger.error("immutability_violation_blocked", entity_type="StockMovement", entity_id=target.id, operation="UPDATE")
    raise ImmutableRecordError("StockMovement", target.id, "UPDATE")


@event.listens_for(StockMovement, "before_delete")
def _block_movement_delete(mapper, connection, target):
    logger.error("immutability_violation_blocked", entity_type="StockMovement", entity_id=target.id, operation="DELETE")
    raise ImmutableRecordError("StockMovement", target.id, "DELETE")
