"""Tests for the in-memory transport pair."""

import asyncio

import pytest

from toolhost.transport.base import TransportClosedError
from toolhost.transport.memory import MemoryTransport


class TestMemoryTransport:
    """Tests for MemoryTransport."""

    @pytest.mark.asyncio
    async def test_messages_arrive_in_order(self):
        server_end, client_end = MemoryTransport.create_pair()
        for i in range(3):
            await client_end.send({"id": i})

        assert [await server_end.get() for _ in range(3)] == [{"id": 0}, {"id": 1}, {"id": 2}]

    @pytest.mark.asyncio
    async def test_disconnect_ends_both_sides(self):
        server_end, client_end = MemoryTransport.create_pair()
        await server_end.send({"id": 1})

        async def collect():
            return [message async for message in server_end.receive()]

        task = asyncio.create_task(collect())
        await client_end.send({"id": 2})
        await client_end.disconnect()

        assert await asyncio.wait_for(task, timeout=1) == [{"id": 2}]
        assert await client_end.get() == {"id": 1}
        assert not server_end.is_connected()
        with pytest.raises(TransportClosedError):
            await server_end.send({"id": 3})

    @pytest.mark.asyncio
    async def test_get_after_close(self):
        server_end, client_end = MemoryTransport.create_pair()
        await server_end.disconnect()
        with pytest.raises(TransportClosedError):
            await client_end.get()

    @pytest.mark.asyncio
    async def test_get_times_out(self):
        _, client_end = MemoryTransport.create_pair()
        with pytest.raises(asyncio.TimeoutError):
            await client_end.get(timeout=0.01)

    @pytest.mark.asyncio
    async def test_unpaired_connect_fails(self):
        with pytest.raises(TransportClosedError):
            await MemoryTransport().connect()
