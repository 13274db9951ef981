'''
Newline-delimited JSON over stdio.

Input is read in chunks and framed by LineBuffer; every complete line is
handled in its own task so slow tools do not block later requests. Response
lines are written one at a time under a lock.
'''

import asyncio
import codecs
import json
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from .server import Dispatcher

import logging
logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536


class LineBuffer:
    """Split a character stream into lines, carrying the partial tail over."""

    def __init__(self):
        self._pending = ""

    def feed(self, chunk: str) -> list[str]:
        self._pending += chunk
        *lines, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in lines if line.strip()]

    def flush(self) -> list[str]:
        """Remaining text at end of input, if any."""
        rest, self._pending = self._pending, ""
        return [rest.rstrip("\r")] if rest.strip() else []

    @property
    def pending(self) -> str:
        return self._pending


class StdinReader:
    """Chunked reads of sys.stdin on a dedicated thread.

    Works for pipes, regular files and terminals alike.
    """

    def __init__(self, stream=None):
        self._stream = stream or sys.stdin.buffer
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="stdin")

    async def read(self, n: int = CHUNK_SIZE) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._stream.read1, n)

    def close(self) -> None:
        self._executor.shutdown(wait=False)


class StdoutWriter:
    def __init__(self, stream=None):
        self._stream = stream or sys.stdout.buffer

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    async def drain(self) -> None:
        self._stream.flush()


class LineServer:
    """Feed request lines to a Dispatcher and write back its responses."""

    def __init__(self, dispatcher: Dispatcher, chunk_size: int = CHUNK_SIZE):
        self.dispatcher = dispatcher
        self.chunk_size = chunk_size
        self._write_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    async def run(self, reader: Any, writer: Any) -> int:
        """Serve until end of input; returns the process exit code."""
        buffer = LineBuffer()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        while True:
            chunk = await reader.read(self.chunk_size)
            if not chunk:
                break
            for line in buffer.feed(decoder.decode(chunk)):
                self._spawn(line, writer)

        for line in buffer.feed(decoder.decode(b"", final=True)) + buffer.flush():
            self._spawn(line, writer)

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("End of input, shutting down")
        return 0

    def _spawn(self, line: str, writer: Any) -> None:
        task = asyncio.create_task(self._process(line, writer))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process(self, line: str, writer: Any) -> None:
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as e:
            logger.error(f"Error processing request: {e}: {line[:200]!r}")
            return

        response = await self.dispatcher.handle_raw(raw)
        if response is not None:
            await self._send(writer, response)

    async def _send(self, writer: Any, payload: dict) -> None:
        data = (json.dumps(payload, ensure_ascii=False) + "\n").encode("utf-8")
        async with self._write_lock:
            writer.write(data)
            await writer.drain()


async def serve_stdio(dispatcher: Dispatcher) -> int:
    reader = StdinReader()
    try:
        return await LineServer(dispatcher).run(reader, StdoutWriter())
    finally:
        reader.close()
