"""
Inventory ledger engine.

Every change to a product's quantity goes through LedgerEngine.adjust, which
updates the InventoryState row and appends one StockMovement inside a single
transaction. Either both writes commit or neither does.

Same-product adjustments are serialised by locking the InventoryState row
(SELECT ... FOR UPDATE on Postgres, BEGIN IMMEDIATE on SQLite) before the
current quantity is read.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import func

from core.config import settings
from core.errors import InsufficientStock, InvalidRequest, LedgerError, NotFound, StorageError
from db.inventory.movement import MovementType, StockMovement
from db.inventory.stock import MAX_QUANTITY, InventoryState

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AdjustmentResult:
    product_id: int
    movement_type: MovementType
    old_quantity: int
    new_quantity: int
    movement_id: int


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_movement_type(value: Any) -> MovementType:
    if isinstance(value, MovementType):
        return value
    try:
        return MovementType(value)
    except (ValueError, TypeError):
        raise InvalidRequest("Invalid movement type")


def parse_quantity(value: Any, movement_type: MovementType) -> int:
    """Coerce the submitted quantity to an int and check its sign.

    IN/OUT carry a magnitude and must be > 0; ADJUSTMENT carries the new
    absolute quantity and must be >= 0. Both are capped at MAX_QUANTITY.
    """
    if isinstance(value, bool):
        raise InvalidRequest("Quantity must be an integer")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, float) and value.is_integer():
        qty = int(value)
    elif isinstance(value, str):
        try:
            qty = int(value.strip())
        except ValueError:
            raise InvalidRequest("Quantity must be an integer")
    else:
        raise InvalidRequest("Quantity must be an integer")

    if movement_type is MovementType.ADJUSTMENT:
        if qty < 0:
            raise InvalidRequest("Adjustment quantity must be >= 0")
    elif qty <= 0:
        raise InvalidRequest("Quantity must be > 0")
    if qty > MAX_QUANTITY:
        raise InvalidRequest(f"Quantity must be <= {MAX_QUANTITY}")
    return qty


def apply_movement(current: int, movement_type: MovementType, quantity: int) -> int:
    """Candidate new quantity. May be negative; the caller decides whether to reject it."""
    if movement_type is MovementType.IN:
        return current + quantity
    if movement_type is MovementType.OUT:
        return current - quantity
    if movement_type is MovementType.ADJUSTMENT:
        return quantity
    raise InvalidRequest("Invalid movement type")


class LedgerEngine:
    """Owns the transaction scope of each adjustment: one session per call,
    released (and rolled back unless committed) on every exit path."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], timeout: Optional[float] = None):
        self._session_maker = session_maker
        self._timeout = settings.ledger_timeout_seconds if timeout is None else timeout

    async def adjust(
        self,
        product_id: int,
        movement_type: Any,
        quantity: Any,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> AdjustmentResult:
        # Rejected before any transaction is opened
        if _is_missing(quantity) or _is_missing(movement_type):
            raise InvalidRequest("Quantity and movement type are required")
        mtype = parse_movement_type(movement_type)
        qty = parse_quantity(quantity, mtype)

        log = logger.bind(product_id=product_id, movement_type=mtype.value, quantity=qty, actor_id=actor_id)
        try:
            result = await asyncio.wait_for(
                self._commit(product_id, mtype, qty, reference_number, notes, actor_id),
                timeout=self._timeout or None,
            )
        except LedgerError as exc:
            log.info("inventory_adjust_rejected", code=exc.code, reason=exc.message)
            raise
        except asyncio.TimeoutError as exc:
            log.error("inventory_adjust_timed_out", timeout=self._timeout)
            raise StorageError("Inventory adjustment timed out", cause=exc) from exc
        except (SQLAlchemyError, OSError) as exc:
            log.exception("inventory_adjust_failed")
            raise StorageError(cause=exc) from exc

        log.info(
            "inventory_adjusted",
            old_quantity=result.old_quantity,
            new_quantity=result.new_quantity,
            movement_id=result.movement_id,
        )
        return result

    async def _commit(
        self,
        product_id: int,
        movement_type: MovementType,
        quantity: int,
        reference_number: Optional[str],
        notes: Optional[str],
        actor_id: Optional[str],
    ) -> AdjustmentResult:
        async with self._session_maker() as session:
            async with session.begin():
                state = await self._load_for_update(session, product_id)
                if state is None:
                    raise NotFound("Product inventory not found")

                old_quantity = int(state.quantity)
                new_quantity = apply_movement(old_quantity, movement_type, quantity)
                if new_quantity < 0:
                    raise InsufficientStock(product_id, available=old_quantity, requested=quantity)
                if new_quantity > MAX_QUANTITY:
                    raise InvalidRequest(f"Resulting quantity must be <= {MAX_QUANTITY}")

                await self._write_state(session, state, new_quantity)
                movement = await self._append_movement(
                    session,
                    StockMovement(
                        product_id=product_id,
                        user_id=actor_id,
                        movement_type=movement_type.value,
                        quantity=quantity,
                        reference_number=reference_number,
                        notes=notes,
                    ),
                )
                movement_id = movement.id

            return AdjustmentResult(
                product_id=product_id,
                movement_type=movement_type,
                old_quantity=old_quantity,
                new_quantity=new_quantity,
                movement_id=movement_id,
            )

    async def _load_for_update(self, session: AsyncSession, product_id: int) -> Optional[InventoryState]:
        res = await session.execute(
            select(InventoryState)
            .where(InventoryState.product_id == product_id)
            .with_for_update()
        )
        return res.scalar_one_or_none()

    async def _write_state(self, session: AsyncSession, state: InventoryState, new_quantity: int) -> None:
        state.quantity = new_quantity
        state.updated_at = func.now()
        await session.flush()

    async def _append_movement(self, session: AsyncSession, movement: StockMovement) -> StockMovement:
        session.add(movement)
        await session.flush()
        return movement
