#!/usr/bin/env python
"""
Pipe Example

A parent process starts a worker with multiprocessing, wraps its end of the
pipe in an EventChannel and exchanges events with it.
"""

import sys
import os
import asyncio
import logging
import multiprocessing

# Add project root directory to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ipc_events import ChannelConfig, EventChannel, PipeProcessHandle
from ipc_events.telemetry import setup_telemetry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def worker_main(connection):
    """Worker side: answer every "square" event with a "squared" event"""
    handle = PipeProcessHandle(connection)
    handle.start()
    channel = EventChannel(handle)
    stopped = asyncio.Event()

    @channel.on("square")
    def square(value):
        channel.emit("squared", value, value * value)

    channel.on("stop", stopped.set)
    handle.on("disconnect", stopped.set)

    await channel.emit("ready")
    await stopped.wait()
    handle.disconnect()


def worker(connection):
    asyncio.run(worker_main(connection))


async def parent_main():
    config = ChannelConfig.from_env()
    setup_telemetry(config)

    parent_conn, child_conn = multiprocessing.Pipe()
    process = multiprocessing.Process(target=worker, args=(child_conn,), daemon=True)
    process.start()
    child_conn.close()

    handle = PipeProcessHandle(parent_conn)
    handle.start()
    channel = EventChannel(handle, config)

    ready = asyncio.Event()
    channel.once("ready", ready.set)
    results = asyncio.Queue()
    channel.on("squared", lambda value, square: results.put_nowait((value, square)))

    await asyncio.wait_for(ready.wait(), timeout=10)
    logger.info("Worker ready")

    for value in range(5):
        await channel.emit("square", value)
        value, square = await asyncio.wait_for(results.get(), timeout=5)
        logger.info(f"{value}^2 = {square}")

    await channel.emit("stop")
    await asyncio.get_running_loop().run_in_executor(None, process.join, 5)
    handle.disconnect()


if __name__ == "__main__":
    asyncio.run(parent_main())
