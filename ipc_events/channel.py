"""
IPC event channel

Named events with structured arguments over the message channel of a process
handle. Every event travels in an envelope tagged with IPC_EVENT_SIGNATURE, so
the channel can be shared with other traffic: messages without the signature
are left alone.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional

from ipc_events.config import ChannelConfig
from ipc_events.emitter import EventEmitter
from ipc_events.errors import InvalidProcessObjectError, IPCChannelNotFoundError
from ipc_events.handles.handle_interface import ProcessHandle
from ipc_events.telemetry.metrics import increment_counter, record_latency
from ipc_events.telemetry.tracer import create_span
from ipc_events.transmit import TransmitterFactory
from ipc_events.utils import serialization

logger = logging.getLogger(__name__)

IPC_EVENT_SIGNATURE = "heXeo-ipc"


def build_envelope(event_name: str, args) -> Dict[str, Any]:
    """Wrap an event and its arguments for the wire

    Args:
        event_name: Event name
        args: Ordered event arguments

    Returns:
        Dict: Envelope with magic, eventName and serialized data

    Raises:
        TypeError: An argument cannot be serialized
    """
    return {
        "magic": IPC_EVENT_SIGNATURE,
        "eventName": event_name,
        "data": serialization.dumps(list(args)),
    }


def is_envelope(message: Any) -> bool:
    """Whether a raw message carries the event signature"""
    return isinstance(message, Mapping) and message.get("magic") == IPC_EVENT_SIGNATURE


class EventChannel:
    """
    Event emitter bound to the channel of one process handle

    ``emit`` sends an event to the peer process and returns a future of the
    send; events received from the peer are dispatched to the listeners
    registered with ``on``/``once``.
    """

    def __init__(self,
                 handle,
                 config: Optional[ChannelConfig] = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """Bind a channel to a process handle

        Args:
            handle: ProcessHandle, or EventEmitter with a ``send`` method
            config: Channel configuration, read from the environment by default
            loop: Loop owning the emit futures; defaults to the running loop

        Raises:
            InvalidProcessObjectError: handle is neither a ProcessHandle nor an EventEmitter
            IPCChannelNotFoundError: handle has no open channel to send through
        """
        if not isinstance(handle, (ProcessHandle, EventEmitter)):
            raise InvalidProcessObjectError()

        if not callable(getattr(handle, "send", None)) or not getattr(handle, "connected", True):
            raise IPCChannelNotFoundError()

        self.config = config or ChannelConfig.default()
        self.process = handle
        self._events = EventEmitter()
        self._transmitter = TransmitterFactory.create(self.config.transmit_mode, handle, loop)
        self.process.on("message", self._on_message)

        logger.debug(f"Event channel bound to {type(handle).__name__} "
                     f"({self.config.transmit_mode.value} transmit mode)")

    def emit(self, event_name: str, *args: Any) -> asyncio.Future:
        """Send an event to the peer process

        Args:
            event_name: Event name
            *args: Event arguments, received positionally by the peer's listeners

        Returns:
            asyncio.Future: Resolves with None once the channel has sent the
            envelope, fails with the error that prevented it
        """
        attributes = {"event_name": event_name}
        with create_span("ipc.channel.emit", {"ipc.event_name": event_name}):
            start_time = time.time()
            try:
                envelope = build_envelope(event_name, args)
            except Exception as e:
                logger.error(f"Cannot serialize arguments of event {event_name}: {e}")
                increment_counter("ipc.channel.events.failed", 1, {**attributes, "type": "encode"})
                loop = self._transmitter.loop or asyncio.get_running_loop()
                future = loop.create_future()
                future.set_exception(e)
                return future

            future = self._transmitter.transmit(envelope)

        def on_settled(settled: asyncio.Future):
            record_latency("ipc.channel.emit.latency", (time.time() - start_time) * 1000, attributes)
            if settled.cancelled():
                return
            error = settled.exception()
            if error is None:
                increment_counter("ipc.channel.events.emitted", 1, attributes)
            else:
                logger.debug(f"Event {event_name} failed to send: {error!r}")
                increment_counter("ipc.channel.events.failed", 1, {**attributes, "type": "send"})

        future.add_done_callback(on_settled)
        return future

    def on(self, event_name: str, listener: Optional[Callable[..., Any]] = None):
        """Register a listener for events received from the peer

        Args:
            event_name: Event to listen for
            listener: Called with the arguments the peer passed to ``emit``

        Returns:
            The listener, or a decorator when no listener is given
        """
        return self._events.on(event_name, listener)

    add_listener = on

    def once(self, event_name: str, listener: Optional[Callable[..., Any]] = None):
        return self._events.once(event_name, listener)

    def off(self, event_name: str, listener: Callable[..., Any]) -> None:
        self._events.off(event_name, listener)

    remove_listener = off

    def remove_all_listeners(self, event_name: str = None) -> None:
        self._events.remove_all_listeners(event_name)

    def listeners(self, event_name: str) -> List[Callable[..., Any]]:
        return self._events.listeners(event_name)

    def listener_count(self, event_name: str) -> int:
        return self._events.listener_count(event_name)

    def event_names(self) -> List[str]:
        return self._events.event_names()

    def _on_message(self, message: Any, *_) -> None:
        if not is_envelope(message):
            logger.debug("Ignoring message without event signature")
            increment_counter("ipc.channel.messages.ignored", 1)
            return

        event_name = message.get("eventName")
        if not isinstance(event_name, str):
            logger.warning(f"Dropping event envelope with invalid eventName: {event_name!r}")
            increment_counter("ipc.channel.messages.malformed", 1, {"type": "event_name"})
            return

        try:
            args = serialization.loads(message.get("data"))
        except (TypeError, ValueError) as e:
            logger.warning(f"Dropping event {event_name}, undecodable data: {e}")
            increment_counter("ipc.channel.messages.malformed", 1, {"type": "data"})
            return

        if not isinstance(args, list):
            logger.warning(f"Dropping event {event_name}, data is not an argument list")
            increment_counter("ipc.channel.messages.malformed", 1, {"type": "data"})
            return

        increment_counter("ipc.channel.events.received", 1, {"event_name": event_name})
        with create_span("ipc.channel.dispatch", {"ipc.event_name": event_name}):
            self._events.emit(event_name, *args)
