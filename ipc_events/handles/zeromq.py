"""
ZeroMQ handle

Process handle over a ZeroMQ PAIR socket, typically on an ``ipc://`` endpoint
that one process binds and its peer connects to. Messages travel as JSON
frames; receiving runs as a task on the asyncio loop.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import zmq
import zmq.asyncio

from ipc_events.errors import IPCChannelNotFoundError, IPCSendError
from ipc_events.handles.handle_interface import ProcessHandle, SendCallback
from ipc_events.telemetry.metrics import increment_counter

logger = logging.getLogger(__name__)


class ZeroMQProcessHandle(ProcessHandle):
    """
    ZeroMQ PAIR socket handle
    The peer process opens the matching end with ``bind`` inverted
    """

    def __init__(self,
                 endpoint: str = "ipc:///tmp/ipc_events.sock",
                 bind: bool = False,
                 context: Optional[zmq.asyncio.Context] = None):
        """Initialize ZeroMQ handle

        Args:
            endpoint: ZeroMQ endpoint (ipc://, inproc:// or tcp://)
            bind: Bind the endpoint instead of connecting to it
            context: Shared zmq.asyncio.Context, required for inproc:// endpoints
        """
        super().__init__()
        self.endpoint = endpoint
        self._owns_context = context is None
        self.context = context if context is not None else zmq.asyncio.Context()
        self.socket = self.context.socket(zmq.PAIR)
        self.socket.setsockopt(zmq.LINGER, 0)
        if bind:
            self.socket.bind(endpoint)
        else:
            self.socket.connect(endpoint)
        self._reader_task: Optional[asyncio.Task] = None
        self._closed = False
        logger.info(f"ZeroMQ handle {'bound to' if bind else 'connected to'} {endpoint}")

    @property
    def connected(self) -> bool:
        return not self._closed and not self.socket.closed

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Start delivering received frames as "message" events

        Args:
            loop: Loop running the reader task; defaults to the running loop
        """
        if self._reader_task is not None:
            return
        if not self.connected:
            raise IPCChannelNotFoundError()

        loop = loop or asyncio.get_running_loop()
        self._reader_task = loop.create_task(self._read_loop())

    def send(self, message: Any, callback: Optional[SendCallback] = None) -> bool:
        try:
            if not self.connected:
                raise IPCChannelNotFoundError(message="Channel closed")
            pending = self.socket.send_string(json.dumps(message))
        except Exception as e:
            if callback is None:
                raise
            callback(e)
            return False

        def on_done(future):
            if future.cancelled():
                error = IPCSendError(message="Send cancelled")
            else:
                error = future.exception()

            if callback is not None:
                callback(error)
            elif error is not None:
                self._report_error(error)

        pending.add_done_callback(on_done)
        return True

    def disconnect(self) -> None:
        if self._closed:
            return

        self._closed = True
        if self._reader_task is not None:
            self._reader_task.cancel()
            self._reader_task = None
        self.socket.close(linger=0)
        if self._owns_context:
            self.context.term()
        logger.info(f"ZeroMQ handle on {self.endpoint} disconnected")
        self._events.emit("disconnect")

    async def _read_loop(self):
        while True:
            try:
                frame = await self.socket.recv_string()
            except zmq.ZMQError as e:
                if not self._closed:
                    increment_counter("ipc.handle.zeromq.errors", 1, {"type": "recv"})
                    self._report_error(e)
                return

            try:
                message = json.loads(frame)
            except ValueError:
                logger.warning(f"Skipping non-JSON frame on {self.endpoint}: {frame[:100]}")
                increment_counter("ipc.handle.zeromq.errors", 1, {"type": "decode"})
                continue

            self._events.emit("message", message)
