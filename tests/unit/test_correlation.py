"""Unit tests for CorrelationTable and Waiter."""

import asyncio
import gc

import pytest

from cdp_client.codec import Response
from cdp_client.correlation import CorrelationTable
from cdp_client.exceptions import ConnectionClosedError, DuplicateCommandIdError


@pytest.mark.unit
@pytest.mark.asyncio
class TestCorrelationTable:
    async def test_register(self):
        table = CorrelationTable()
        waiter = table.register(1, "DOM.enable")

        assert 1 in table
        assert len(table) == 1
        assert waiter.command_id == 1
        assert waiter.method == "DOM.enable"
        assert not waiter.done()

    async def test_duplicate_id(self):
        table = CorrelationTable()
        table.register(1)

        with pytest.raises(DuplicateCommandIdError) as exc_info:
            table.register(1)
        assert exc_info.value.command_id == 1

    async def test_fulfill_delivers_to_matching_waiter(self):
        table = CorrelationTable()
        first = table.register(1)
        second = table.register(2)

        assert table.fulfill(Response(id=2, result={"value": "b"}))

        assert second.done()
        assert not first.done()
        assert (await second.wait()).result == {"value": "b"}
        assert table.ids() == [1]

    async def test_fulfill_unknown_id_is_discarded(self):
        table = CorrelationTable()
        waiter = table.register(1)

        assert table.fulfill(Response(id=42, result={})) is False
        assert not waiter.done()
        assert len(table) == 1

    async def test_id_reusable_after_fulfill(self):
        table = CorrelationTable()
        table.register(1)
        table.fulfill(Response(id=1))

        table.register(1)
        assert 1 in table

    async def test_discard(self):
        table = CorrelationTable()
        waiter = table.register(1)

        assert table.discard(1)
        assert not table.discard(1)
        assert table.fulfill(Response(id=1)) is False
        assert not waiter.done()

    async def test_fail_all(self):
        table = CorrelationTable()
        waiters = [table.register(i) for i in range(1, 4)]
        table.fulfill(Response(id=2))

        assert table.fail_all(ConnectionClosedError("gone")) == 2
        assert len(table) == 0

        for waiter in (waiters[0], waiters[2]):
            with pytest.raises(ConnectionClosedError, match="gone"):
                await waiter.wait()
        assert (await waiters[1].wait()).id == 2

    async def test_fail_all_unawaited_waiters_are_silent(self):
        loop = asyncio.get_running_loop()
        reported = []
        loop.set_exception_handler(lambda _loop, context: reported.append(context))
        try:
            table = CorrelationTable()
            table.register(1, "DOM.enable")
            table.register(2, "Network.enable")

            assert table.fail_all(ConnectionClosedError("gone")) == 2
            gc.collect()
        finally:
            loop.set_exception_handler(None)

        assert reported == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestWaiter:
    async def test_settled_once(self):
        table = CorrelationTable()
        waiter = table.register(1)

        assert waiter.resolve(Response(id=1, result={"first": True}))
        assert not waiter.resolve(Response(id=1, result={"second": True}))
        assert not waiter.fail(ConnectionClosedError("late"))
        assert (await waiter.wait()).result == {"first": True}

    async def test_timeout_leaves_waiter_pending(self):
        table = CorrelationTable()
        waiter = table.register(1)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(waiter.wait(), timeout=0.01)

        assert not waiter.done()
        assert waiter.resolve(Response(id=1))
