#!/usr/bin/env python
"""
ZeroMQ Example

Same exchange as the pipe example, over a ZeroMQ PAIR socket on an ipc://
endpoint: the parent binds, the worker connects.
"""

import sys
import os
import asyncio
import logging
import multiprocessing
import tempfile

# Add project root directory to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ipc_events import EventChannel, ZeroMQProcessHandle

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def worker_main(endpoint):
    handle = ZeroMQProcessHandle(endpoint)
    handle.start()
    channel = EventChannel(handle)
    stopped = asyncio.Event()

    @channel.on("greet")
    def greet(name):
        channel.emit("greeting", f"Hello, {name}!")

    channel.on("stop", stopped.set)

    await channel.emit("ready")
    await stopped.wait()
    handle.disconnect()


def worker(endpoint):
    asyncio.run(worker_main(endpoint))


async def parent_main():
    endpoint = f"ipc://{os.path.join(tempfile.gettempdir(), f'ipc_events_{os.getpid()}.sock')}"
    handle = ZeroMQProcessHandle(endpoint, bind=True)
    handle.start()
    channel = EventChannel(handle)

    ready = asyncio.Event()
    channel.once("ready", ready.set)
    greeting = asyncio.get_running_loop().create_future()
    channel.once("greeting", greeting.set_result)

    process = multiprocessing.Process(target=worker, args=(endpoint,), daemon=True)
    process.start()

    await asyncio.wait_for(ready.wait(), timeout=10)
    await channel.emit("greet", "parent")
    logger.info(await asyncio.wait_for(greeting, timeout=5))

    await channel.emit("stop")
    await asyncio.get_running_loop().run_in_executor(None, process.join, 5)
    handle.disconnect()


if __name__ == "__main__":
    asyncio.run(parent_main())
