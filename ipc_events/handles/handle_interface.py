"""
Process handle interface

Defines the endpoint shape EventChannel accepts besides a plain EventEmitter:
an object that both subscribes local listeners to channel events and sends
messages to the process at the other end of the channel.

Events emitted by every handle:
    message: one raw message received from the peer
    disconnect: the channel was closed, locally or by the peer
    error: a transport failure that had no send callback to report to
"""

import abc
import logging
from typing import Any, Callable, Optional

from ipc_events.emitter import EventEmitter

logger = logging.getLogger(__name__)

SendCallback = Callable[[Optional[BaseException]], None]


class ProcessHandle(abc.ABC):
    """Process handle interface, the channel endpoint of one peer process"""

    def __init__(self):
        self._events = EventEmitter()

    def on(self, event_name: str, listener: Optional[Callable[..., Any]] = None):
        """Register a listener for a handle event ("message", "disconnect", "error")"""
        return self._events.on(event_name, listener)

    add_listener = on

    def once(self, event_name: str, listener: Optional[Callable[..., Any]] = None):
        return self._events.once(event_name, listener)

    def off(self, event_name: str, listener: Callable[..., Any]) -> None:
        self._events.off(event_name, listener)

    remove_listener = off

    def listener_count(self, event_name: str) -> int:
        return self._events.listener_count(event_name)

    @property
    @abc.abstractmethod
    def connected(self) -> bool:
        """Whether the channel is open for sending"""
        pass

    @abc.abstractmethod
    def send(self, message: Any, callback: Optional[SendCallback] = None) -> bool:
        """Send one message to the peer process

        Args:
            message: Structured message
            callback: Called with None once the message is sent, or with the
                error that prevented it

        Returns:
            bool: True if the message was handed to the transport

        Raises:
            Exception: The send failed and no callback was given
        """
        pass

    @abc.abstractmethod
    def disconnect(self) -> None:
        """Close the channel and stop receiving"""
        pass

    def _report_error(self, error: BaseException) -> None:
        if self._events.listener_count("error"):
            self._events.emit("error", error)
        else:
            logger.error(f"{type(self).__name__} transport error: {error!r}")
