"""
IPC event channels

Named, structured events between a process and its peer over one
message-oriented channel:

1. Envelope: {"magic": "heXeo-ipc", "eventName": ..., "data": ...} tags event
   traffic so it can share the channel with other protocols
2. Emission: EventChannel.emit returns an asyncio.Future settled by the
   channel's send acknowledgement
3. Handles: ProcessHandle endpoints over multiprocessing pipes and ZeroMQ
   sockets, or any EventEmitter with a ``send`` method

Emission and dispatch report OpenTelemetry spans and metrics.
"""

from ipc_events.channel import EventChannel, IPC_EVENT_SIGNATURE, build_envelope, is_envelope
from ipc_events.config import ChannelConfig, TransmitMode
from ipc_events.emitter import EventEmitter
from ipc_events.errors import IPCError, IPCChannelNotFoundError, InvalidProcessObjectError, IPCSendError
from ipc_events.handles import ProcessHandle, PipeProcessHandle, ZeroMQProcessHandle
from ipc_events.utils.serialization import UNDEFINED

__version__ = "0.1.0"

__all__ = [
    "EventChannel",
    "IPC_EVENT_SIGNATURE",
    "build_envelope",
    "is_envelope",
    "ChannelConfig",
    "TransmitMode",
    "EventEmitter",
    "IPCError",
    "IPCChannelNotFoundError",
    "InvalidProcessObjectError",
    "IPCSendError",
    "ProcessHandle",
    "PipeProcessHandle",
    "ZeroMQProcessHandle",
    "UNDEFINED",
]
