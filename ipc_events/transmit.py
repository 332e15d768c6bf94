"""
Envelope transmission strategies

A transmitter hands one envelope to a process handle and returns an
asyncio.Future that settles exactly once with the outcome of the send:

- CallbackTransmitter: ``send(envelope, callback)``, settles when the handle
  reports completion through the callback
- NextTickTransmitter: ``send(envelope)`` on the next loop iteration, for
  handles without acknowledgement; settles from whether the call raised

Which one a channel uses is fixed by configuration, never chosen per call.
"""

import abc
import asyncio
import logging
from typing import Any, Dict, Optional

from ipc_events.config import TransmitMode
from ipc_events.errors import IPCSendError

logger = logging.getLogger(__name__)


def _settle(future: asyncio.Future, error: Any = None) -> None:
    # Cancelled by the caller or already settled by an earlier callback
    if future.done():
        return
    if not error:
        future.set_result(None)
    elif isinstance(error, Exception):
        future.set_exception(error)
    else:
        future.set_exception(IPCSendError(errors=[error], message=f"Send failed: {error!r}"))


class Transmitter(abc.ABC):
    """Base class of the transmission strategies"""

    mode: TransmitMode

    def __init__(self, handle, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            handle: Process handle exposing ``send``
            loop: Loop owning the returned futures; defaults to the running loop
        """
        self.handle = handle
        self.loop = loop

    def transmit(self, envelope: Dict[str, Any]) -> asyncio.Future:
        """Send an envelope through the handle

        Args:
            envelope: Envelope dictionary

        Returns:
            asyncio.Future: Resolves with None once sent, fails with the send error
        """
        loop = self.loop or asyncio.get_running_loop()
        future = loop.create_future()
        self._transmit(envelope, future, loop)
        return future

    @abc.abstractmethod
    def _transmit(self, envelope: Dict[str, Any], future: asyncio.Future, loop: asyncio.AbstractEventLoop) -> None:
        pass


class CallbackTransmitter(Transmitter):
    """Settles the future from the completion callback passed to ``send``"""

    mode = TransmitMode.CALLBACK

    def _transmit(self, envelope, future, loop):
        def on_sent(error=None, *_):
            # The handle may report from its own thread
            loop.call_soon_threadsafe(_settle, future, error)

        try:
            self.handle.send(envelope, on_sent)
        except Exception as e:
            logger.debug(f"send raised before completion: {e!r}")
            _settle(future, e)


class NextTickTransmitter(Transmitter):
    """Sends on the next loop iteration and settles from whether ``send`` raised"""

    mode = TransmitMode.NEXT_TICK

    def _transmit(self, envelope, future, loop):
        loop.call_soon(self._send, envelope, future)

    def _send(self, envelope, future):
        try:
            self.handle.send(envelope)
        except Exception as e:
            _settle(future, e)
            return
        _settle(future)


class TransmitterFactory:
    """Creates the transmitter for a transmit mode"""

    @staticmethod
    def create(mode, handle, loop: Optional[asyncio.AbstractEventLoop] = None) -> Transmitter:
        """Create a transmitter

        Args:
            mode: TransmitMode or its value, "callback" or "next_tick"
            handle: Process handle exposing ``send``
            loop: Loop owning the returned futures

        Returns:
            Transmitter: Transmitter bound to the handle

        Raises:
            ValueError: Unknown transmit mode
        """
        try:
            mode = TransmitMode(mode)
        except ValueError:
            raise ValueError(f"Unsupported transmit mode: {mode}") from None

        if mode == TransmitMode.CALLBACK:
            return CallbackTransmitter(handle, loop)
        return NextTickTransmitter(handle, loop)
