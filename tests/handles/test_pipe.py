"""
multiprocessing pipe handle tests

Both ends of a real ``multiprocessing.Pipe`` are wrapped in this process, one
handle per end, so messages cross an actual OS pipe.
"""

import asyncio
import multiprocessing

import pytest

from ipc_events import ChannelConfig, EventChannel, IPCChannelNotFoundError, PipeProcessHandle


def wait_for_event(handle, event_name):
    future = asyncio.get_running_loop().create_future()
    handle.once(event_name, lambda *args: future.done() or future.set_result(args))
    return future


class TestPipeProcessHandle:
    """Test the handle on its own"""

    def test_without_connection(self):
        """Test a handle without a connection is not connected"""
        handle = PipeProcessHandle()
        assert handle.connected is False

    def test_send_without_connection(self):
        """Test sending without a channel reports IPCChannelNotFoundError"""
        handle = PipeProcessHandle()
        with pytest.raises(IPCChannelNotFoundError):
            handle.send({"a": 1})

        errors = []
        assert handle.send({"a": 1}, errors.append) is False
        assert isinstance(errors[0], IPCChannelNotFoundError)

    def test_start_without_connection(self):
        """Test a handle without a channel cannot start reading"""
        with pytest.raises(IPCChannelNotFoundError):
            PipeProcessHandle().start()

    @pytest.mark.asyncio
    async def test_message_between_ends(self):
        """Test a message sent on one end arrives as a "message" event on the other"""
        parent_conn, child_conn = multiprocessing.Pipe()
        parent, child = PipeProcessHandle(parent_conn), PipeProcessHandle(child_conn)
        child.start()
        loop = asyncio.get_running_loop()
        try:
            received = wait_for_event(child, "message")
            acknowledged = loop.create_future()

            assert parent.send(
                {"hello": "world"},
                lambda error: loop.call_soon_threadsafe(acknowledged.set_result, error),
            ) is True

            assert await asyncio.wait_for(received, timeout=2) == ({"hello": "world"},)
            assert await asyncio.wait_for(acknowledged, timeout=2) is None
        finally:
            parent.disconnect()
            child.disconnect()

    @pytest.mark.asyncio
    async def test_large_send_does_not_block_loop(self):
        """Test a payload larger than the pipe buffer is written off the loop thread"""
        parent_conn, child_conn = multiprocessing.Pipe()
        parent, child = PipeProcessHandle(parent_conn), PipeProcessHandle(child_conn)
        loop = asyncio.get_running_loop()
        payload = b"x" * (4 * 1024 * 1024)
        acknowledged = loop.create_future()
        try:
            assert parent.send(
                payload,
                lambda error: loop.call_soon_threadsafe(acknowledged.set_result, error),
            ) is True

            # Nobody reads yet, so the write is still pending while the loop runs
            await asyncio.sleep(0.05)
            assert not acknowledged.done()

            received = wait_for_event(child, "message")
            child.start()

            assert await asyncio.wait_for(received, timeout=5) == (payload,)
            assert await asyncio.wait_for(acknowledged, timeout=5) is None
        finally:
            parent.disconnect()
            child.disconnect()

    @pytest.mark.asyncio
    async def test_sends_keep_call_order(self):
        """Test acknowledged sends arrive in the order they were made"""
        parent_conn, child_conn = multiprocessing.Pipe()
        parent, child = PipeProcessHandle(parent_conn), PipeProcessHandle(child_conn)
        child.start()
        received = []
        done = asyncio.Event()

        def on_message(message):
            received.append(message)
            if len(received) == 20:
                done.set()

        child.on("message", on_message)
        try:
            for i in range(20):
                parent.send(i, lambda error: None)

            await asyncio.wait_for(done.wait(), timeout=2)
            assert received == list(range(20))
        finally:
            parent.disconnect()
            child.disconnect()

    @pytest.mark.asyncio
    async def test_peer_close_disconnects(self):
        """Test closing one end emits "disconnect" on the other"""
        parent_conn, child_conn = multiprocessing.Pipe()
        parent, child = PipeProcessHandle(parent_conn), PipeProcessHandle(child_conn)
        child.start()

        disconnected = wait_for_event(child, "disconnect")
        parent.disconnect()

        await asyncio.wait_for(disconnected, timeout=2)
        assert child.connected is False
        child.disconnect()

    @pytest.mark.asyncio
    async def test_local_disconnect(self):
        """Test disconnect closes the connection and notifies listeners"""
        parent_conn, child_conn = multiprocessing.Pipe()
        handle = PipeProcessHandle(parent_conn)
        handle.start()
        events = []
        handle.on("disconnect", lambda: events.append("disconnect"))

        handle.disconnect()
        handle.disconnect()

        assert events == ["disconnect"]
        assert handle.connected is False
        child_conn.close()


class TestChannelsOverPipe:
    """Test EventChannel end to end over a pipe"""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        """Test events travel both ways between two channels"""
        parent_conn, child_conn = multiprocessing.Pipe()
        parent_handle, child_handle = PipeProcessHandle(parent_conn), PipeProcessHandle(child_conn)
        parent_handle.start()
        child_handle.start()
        config = ChannelConfig()
        parent, child = EventChannel(parent_handle, config), EventChannel(child_handle, config)
        loop = asyncio.get_running_loop()
        try:
            reply = loop.create_future()
            parent.on("result", reply.set_result)

            @child.on("job")
            def handle_job(job, blob):
                child.emit("result", {"id": job["id"], "size": len(blob)})

            await parent.emit("job", {"id": 7}, b"\x00" * 16)

            assert await asyncio.wait_for(reply, timeout=2) == {"id": 7, "size": 16}
        finally:
            parent_handle.disconnect()
            child_handle.disconnect()

    @pytest.mark.asyncio
    async def test_foreign_messages_share_the_pipe(self):
        """Test other traffic on the pipe reaches the handle but not the channel"""
        parent_conn, child_conn = multiprocessing.Pipe()
        parent_handle, child_handle = PipeProcessHandle(parent_conn), PipeProcessHandle(child_conn)
        child_handle.start()
        channel = EventChannel(child_handle, ChannelConfig())
        raw, events = [], []
        child_handle.on("message", raw.append)
        channel.on("ping", lambda: events.append("ping"))
        try:
            done = wait_for_event(child_handle, "message")
            parent_handle.send({"cmd": "ping"})
            await asyncio.wait_for(done, timeout=2)

            assert raw == [{"cmd": "ping"}]
            assert events == []
        finally:
            parent_handle.disconnect()
            child_handle.disconnect()

    @pytest.mark.asyncio
    async def test_emit_after_disconnect_fails(self):
        """Test emitting on a closed channel fails the future"""
        parent_conn, child_conn = multiprocessing.Pipe()
        handle = PipeProcessHandle(parent_conn)
        channel = EventChannel(handle, ChannelConfig())
        handle.disconnect()
        child_conn.close()

        with pytest.raises(IPCChannelNotFoundError, match="Channel closed"):
            await channel.emit("late")
