"""
Local event emitter

Listener registry with synchronous, in-order dispatch. EventChannel owns one of
these for its local listeners, and test doubles for process handles can be
built from it by attaching a ``send`` method.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from ipc_events.telemetry.metrics import increment_counter

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Listener:
    callback: Callable[..., Any]
    once: bool = False


class EventEmitter:
    """Publish/subscribe registry for named events.

    Several listeners may be registered for one event; they are invoked in
    registration order with the arguments given to ``emit``. A listener that
    raises is logged and does not prevent the following listeners from running.
    """

    def __init__(self):
        self._listeners: Dict[str, List[_Listener]] = {}
        # Pending coroutine listeners, referenced until done
        self._tasks: Set[asyncio.Future] = set()

    def on(self, event_name: str, listener: Optional[Callable[..., Any]] = None):
        """Register a listener for an event

        Args:
            event_name: Event to listen for
            listener: Callable invoked with the event arguments; when omitted
                a decorator registering the decorated function is returned

        Returns:
            The listener, or the decorator
        """
        return self._add(event_name, listener, once=False)

    add_listener = on

    def once(self, event_name: str, listener: Optional[Callable[..., Any]] = None):
        """Register a listener that is removed after its first invocation"""
        return self._add(event_name, listener, once=True)

    def off(self, event_name: str, listener: Callable[..., Any]) -> None:
        """Remove the most recently added registration of a listener

        Args:
            event_name: Event the listener was registered for
            listener: Listener to remove
        """
        entries = self._listeners.get(event_name)
        if not entries:
            return

        for index in range(len(entries) - 1, -1, -1):
            if entries[index].callback == listener:
                del entries[index]
                break

        if not entries:
            del self._listeners[event_name]

    remove_listener = off

    def remove_all_listeners(self, event_name: str = None) -> None:
        """Remove all listeners of one event, or of every event when no name is given"""
        if event_name is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event_name, None)

    def listeners(self, event_name: str) -> List[Callable[..., Any]]:
        return [entry.callback for entry in self._listeners.get(event_name, [])]

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, []))

    def event_names(self) -> List[str]:
        return list(self._listeners)

    def emit(self, event_name: str, *args: Any) -> bool:
        """Dispatch an event to its listeners synchronously

        Args:
            event_name: Event name
            *args: Arguments passed positionally to every listener

        Returns:
            bool: True if the event had listeners
        """
        entries = self._listeners.get(event_name)
        if not entries:
            return False

        # Snapshot so listeners may add or remove registrations while dispatching
        for entry in list(entries):
            if entry.once:
                self._discard(event_name, entry)
            try:
                result = entry.callback(*args)
                if inspect.isawaitable(result):
                    self._schedule(event_name, result)
            except Exception:
                logger.exception(f"Listener for event {event_name} failed")
                increment_counter("ipc.emitter.listener.errors", 1, {"event_name": event_name})

        return True

    def _add(self, event_name: str, listener: Optional[Callable[..., Any]], once: bool):
        if listener is None:
            return lambda func: self._add(event_name, func, once)
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        self._listeners.setdefault(event_name, []).append(_Listener(listener, once))
        logger.debug(f"Listener registered for event: {event_name}")
        return listener

    def _discard(self, event_name: str, entry: _Listener) -> None:
        entries = self._listeners.get(event_name, [])
        if entry in entries:
            entries.remove(entry)
        if not entries:
            self._listeners.pop(event_name, None)

    def _schedule(self, event_name: str, awaitable) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def on_done(done: asyncio.Future):
            self._tasks.discard(done)
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                logger.error(f"Listener for event {event_name} failed", exc_info=error)
                increment_counter("ipc.emitter.listener.errors", 1, {"event_name": event_name})

        task.add_done_callback(on_done)
