"""
Process handles

Channel endpoints an EventChannel can wrap:
- ProcessHandle: interface of process channel endpoints
- PipeProcessHandle: one end of a multiprocessing pipe
- ZeroMQProcessHandle: a ZeroMQ PAIR socket
"""

from ipc_events.handles.handle_interface import ProcessHandle
from ipc_events.handles.pipe import PipeProcessHandle
from ipc_events.handles.zeromq import ZeroMQProcessHandle

__all__ = ["ProcessHandle", "PipeProcessHandle", "ZeroMQProcessHandle"]
