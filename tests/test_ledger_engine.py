import asyncio
import random

import pytest
from sqlalchemy.exc import IntegrityError

from core.errors import InsufficientStock, InvalidRequest, NotFound, StorageError
from db.inventory.movement import MovementType
from db.inventory.stock import MAX_QUANTITY
from services.ledger import AdjustmentResult, LedgerEngine

pytestmark = pytest.mark.anyio


class TestScenarios:
    async def test_in_on_empty_stock(self, ledger, make_product, read_quantity, read_movements):
        pid = await make_product(initial_quantity=0)

        result = await ledger.adjust(pid, "IN", 50)

        assert (result.old_quantity, result.new_quantity) == (0, 50)
        assert await read_quantity(pid) == 50
        movements = await read_movements(pid)
        assert len(movements) == 1
        assert movements[0].movement_type == "IN"
        assert movements[0].quantity == 50
        assert movements[0].id == result.movement_id

    async def test_out_beyond_stock_is_rejected(self, ledger, make_product, read_quantity, read_movements):
        pid = await make_product(initial_quantity=50)
        before = await read_movements(pid)

        with pytest.raises(InsufficientStock) as excinfo:
            await ledger.adjust(pid, "OUT", 60)

        assert excinfo.value.available == 50
        assert excinfo.value.requested == 60
        assert await read_quantity(pid) == 50
        assert len(await read_movements(pid)) == len(before)

    async def test_adjustment_sets_absolute_value(self, ledger, make_product, read_quantity, read_movements):
        pid = await make_product(initial_quantity=50)

        result = await ledger.adjust(pid, "ADJUSTMENT", 30)

        assert (result.old_quantity, result.new_quantity) == (50, 30)
        assert await read_quantity(pid) == 30
        last = (await read_movements(pid))[-1]
        assert last.movement_type == "ADJUSTMENT"
        assert last.quantity == 30

    async def test_out_to_exactly_zero(self, ledger, make_product, read_quantity):
        pid = await make_product(initial_quantity=7)

        result = await ledger.adjust(pid, MovementType.OUT, 7)

        assert result.new_quantity == 0
        assert await read_quantity(pid) == 0


class TestRejections:
    async def test_repeated_out_is_rejected_once_stock_runs_out(self, ledger, make_product, read_quantity):
        pid = await make_product(initial_quantity=10)

        first = await ledger.adjust(pid, "OUT", 6, reference_number="SO-1")
        assert first.new_quantity == 4

        with pytest.raises(InsufficientStock):
            await ledger.adjust(pid, "OUT", 6, reference_number="SO-1")
        assert await read_quantity(pid) == 4

    async def test_unknown_product(self, ledger):
        with pytest.raises(NotFound, match="Product inventory not found"):
            await ledger.adjust(9999, "IN", 1)

    @pytest.mark.parametrize(
        "movement_type, quantity, message",
        [
            (None, 5, "required"),
            ("IN", None, "required"),
            ("  ", 5, "required"),
            ("TRANSFER", 5, "Invalid movement type"),
            ("IN", "five", "integer"),
            ("OUT", 0, "> 0"),
            ("ADJUSTMENT", -2, ">= 0"),
        ],
    )
    async def test_invalid_requests_never_touch_storage(
        self, ledger, make_product, read_quantity, read_movements, movement_type, quantity, message
    ):
        pid = await make_product(initial_quantity=5)

        with pytest.raises(InvalidRequest, match=message):
            await ledger.adjust(pid, movement_type, quantity)

        assert await read_quantity(pid) == 5
        assert len(await read_movements(pid)) == 1

    @pytest.mark.parametrize("quantity", [2**63, 1e30])
    async def test_oversized_quantity_is_an_invalid_request(self, ledger, make_product, read_quantity, quantity):
        pid = await make_product(initial_quantity=5)

        with pytest.raises(InvalidRequest, match="Quantity must be <="):
            await ledger.adjust(pid, "IN", quantity)

        assert await read_quantity(pid) == 5

    async def test_in_past_column_range_is_rejected(self, ledger, make_product, read_quantity, read_movements):
        pid = await make_product(initial_quantity=MAX_QUANTITY - 5)

        with pytest.raises(InvalidRequest, match="Resulting quantity"):
            await ledger.adjust(pid, "IN", 10)

        assert await read_quantity(pid) == MAX_QUANTITY - 5
        assert len(await read_movements(pid)) == 1

        result = await ledger.adjust(pid, "IN", 5)
        assert result.new_quantity == MAX_QUANTITY


class TestMovementRecord:
    async def test_records_requested_values_and_actor(self, ledger, make_product, read_movements):
        pid = await make_product(initial_quantity=20)

        await ledger.adjust(pid, "OUT", "3", reference_number="SO-77", notes="counter sale", actor_id="user-42")

        last = (await read_movements(pid))[-1]
        assert last.movement_type == "OUT"
        assert last.quantity == 3
        assert last.reference_number == "SO-77"
        assert last.notes == "counter sale"
        assert last.user_id == "user-42"
        assert last.created_at is not None

    async def test_actor_is_optional(self, ledger, make_product, read_movements):
        pid = await make_product()

        await ledger.adjust(pid, "IN", 1)

        assert (await read_movements(pid))[-1].user_id is None


class TestInvariants:
    async def test_quantity_never_negative_over_random_sequence(self, ledger, make_product, read_quantity):
        pid = await make_product(initial_quantity=10)
        rng = random.Random(20240601)
        expected = 10

        for _ in range(40):
            mtype = rng.choice(["IN", "OUT", "OUT", "ADJUSTMENT"])
            qty = rng.randint(1, 15) if mtype != "ADJUSTMENT" else rng.randint(0, 15)
            try:
                result = await ledger.adjust(pid, mtype, qty)
            except InsufficientStock:
                assert mtype == "OUT" and qty > expected
            else:
                assert result.old_quantity == expected
                expected = result.new_quantity
            assert expected >= 0
            assert await read_quantity(pid) == expected

    async def test_failed_movement_insert_rolls_back_state(self, session_maker, make_product, read_quantity, read_movements):
        class FailingInsertLedger(LedgerEngine):
            async def _append_movement(self, session, movement):
                raise IntegrityError("INSERT INTO stock_movements", {}, Exception("forced failure"))

        pid = await make_product(initial_quantity=10)
        failing = FailingInsertLedger(session_maker, timeout=5)

        with pytest.raises(StorageError) as excinfo:
            await failing.adjust(pid, "OUT", 4)

        assert isinstance(excinfo.value.cause, IntegrityError)
        assert await read_quantity(pid) == 10
        assert len(await read_movements(pid)) == 1

    async def test_timeout_leaves_no_partial_effect(self, session_maker, make_product, read_quantity, read_movements):
        class SlowLedger(LedgerEngine):
            async def _append_movement(self, session, movement):
                await asyncio.sleep(2)
                return await super()._append_movement(session, movement)

        pid = await make_product(initial_quantity=10)
        slow = SlowLedger(session_maker, timeout=0.2)

        with pytest.raises(StorageError, match="timed out"):
            await slow.adjust(pid, "IN", 5)

        assert await read_quantity(pid) == 10
        assert len(await read_movements(pid)) == 1


class TestConcurrency:
    async def test_concurrent_outs_on_same_product_serialise(self, ledger, make_product, read_quantity, read_movements):
        pid = await make_product(initial_quantity=10)

        outcomes = await asyncio.gather(
            ledger.adjust(pid, "OUT", 6),
            ledger.adjust(pid, "OUT", 6),
            return_exceptions=True,
        )

        successes = [o for o in outcomes if isinstance(o, AdjustmentResult)]
        rejections = [o for o in outcomes if isinstance(o, InsufficientStock)]
        assert len(successes) == 1
        assert len(rejections) == 1
        assert (successes[0].old_quantity, successes[0].new_quantity) == (10, 4)
        assert rejections[0].available == 4
        assert await read_quantity(pid) == 4
        assert [m.movement_type for m in await read_movements(pid)] == ["IN", "OUT"]

    async def test_different_products_both_commit(self, ledger, make_product, read_quantity):
        p1 = await make_product(initial_quantity=10)
        p2 = await make_product(initial_quantity=10)

        r1, r2 = await asyncio.gather(
            ledger.adjust(p1, "OUT", 6),
            ledger.adjust(p2, "OUT", 6),
        )

        assert r1.new_quantity == 4
        assert r2.new_quantity == 4
        assert await read_quantity(p1) == 4
        assert await read_quantity(p2) == 4

    async def test_many_concurrent_ins_are_not_lost(self, ledger, make_product, read_quantity):
        pid = await make_product(initial_quantity=0)

        await asyncio.gather(*(ledger.adjust(pid, "IN", 1) for _ in range(8)))

        assert await read_quantity(pid) == 8
