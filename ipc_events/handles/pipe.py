"""
multiprocessing pipe handle

Wraps one end of ``multiprocessing.Pipe()``. The parent keeps one connection
and passes the other to the child process; each side wraps its end in a
PipeProcessHandle. A daemon thread polls the connection and hands every received
object to the event loop, so listeners run on the loop thread. Acknowledged
sends go through a single writer thread so a full pipe never blocks the loop.
"""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from ipc_events.errors import IPCChannelNotFoundError
from ipc_events.handles.handle_interface import ProcessHandle, SendCallback
from ipc_events.telemetry.metrics import increment_counter

logger = logging.getLogger(__name__)


class PipeProcessHandle(ProcessHandle):
    """Process handle over a ``multiprocessing.connection.Connection``"""

    def __init__(self, connection=None, poll_interval: float = 0.05):
        """
        Args:
            connection: Duplex connection end, None for a process without a channel
            poll_interval: Seconds the reader thread waits per poll
        """
        super().__init__()
        self.connection = connection
        self.poll_interval = poll_interval
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reader: Optional[threading.Thread] = None
        self._stopping = threading.Event()
        self._send_lock = threading.Lock()
        self._writer: Optional[ThreadPoolExecutor] = None
        self._peer_closed = False

    @property
    def connected(self) -> bool:
        return self.connection is not None and not self.connection.closed and not self._peer_closed

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Start delivering received messages as "message" events

        Args:
            loop: Loop the events are dispatched on; defaults to the running loop

        Raises:
            IPCChannelNotFoundError: The handle has no open connection
        """
        if self._reader is not None:
            return
        if not self.connected:
            raise IPCChannelNotFoundError()

        self._loop = loop or asyncio.get_running_loop()
        self._reader = threading.Thread(target=self._read_loop, name="ipc-pipe-reader", daemon=True)
        self._reader.start()
        logger.info("Pipe handle reader started")

    def send(self, message: Any, callback: Optional[SendCallback] = None) -> bool:
        """Send one object to the peer

        With a callback the object is written by a single writer thread, in
        call order, and the callback reports the outcome from that thread.
        Without one the write happens on the calling thread and errors raise.
        """
        if callback is None:
            self._write(message)
            return True

        try:
            if not self.connected:
                raise IPCChannelNotFoundError(message="Channel closed")
            if self._writer is None:
                self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ipc-pipe-writer")
            pending = self._writer.submit(self._write, message)
        except Exception as e:
            callback(e)
            return False

        def on_done(done):
            if done.cancelled():
                callback(IPCChannelNotFoundError(message="Channel closed"))
            else:
                callback(done.exception())

        pending.add_done_callback(on_done)
        return True

    def disconnect(self) -> None:
        if self.connection is None or self.connection.closed:
            return

        self._stopping.set()
        if self._writer is not None:
            self._writer.shutdown(wait=False, cancel_futures=True)
            self._writer = None
        if self._reader is not None:
            self._reader.join(timeout=self.poll_interval * 10)
            self._reader = None
        self.connection.close()
        logger.info("Pipe handle disconnected")
        if not self._peer_closed:
            self._events.emit("disconnect")

    def _write(self, message: Any) -> None:
        if not self.connected:
            raise IPCChannelNotFoundError(message="Channel closed")
        with self._send_lock:
            self.connection.send(message)

    def _read_loop(self):
        connection = self.connection
        while not self._stopping.is_set():
            try:
                if not connection.poll(self.poll_interval):
                    continue
                message = connection.recv()
            except (EOFError, OSError):
                break
            except Exception as e:
                # Unpicklable payload from the peer; the stream itself is still usable
                increment_counter("ipc.handle.pipe.errors", 1, {"type": "recv"})
                self._post(self._report_error, e)
                continue

            logger.debug(f"Pipe handle received message of type {type(message).__name__}")
            self._post(self._events.emit, "message", message)

        if not self._stopping.is_set():
            self._post(self._on_peer_closed)

    def _on_peer_closed(self):
        # disconnect() raced the reader and already notified listeners
        if self._stopping.is_set():
            return
        self._peer_closed = True
        self._reader = None
        logger.info("Pipe handle peer closed the channel")
        self._events.emit("disconnect")

    def _post(self, callback, *args):
        try:
            self._loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            logger.debug("Event loop closed, dropping pipe event")
