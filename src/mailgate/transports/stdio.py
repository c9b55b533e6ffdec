"""Point-to-point transport: newline-delimited JSON-RPC over stdin/stdout."""

import asyncio
import logging
import sys
from typing import TextIO

from mailgate.rpc import (
    EnvelopeError,
    ErrorCode,
    RPCResponse,
    RPCRouter,
    decode_envelope,
)

logger = logging.getLogger(__name__)

# Upper bound on one JSON-RPC line
MAX_LINE_BYTES = 4 * 1024 * 1024
DRAIN_TIMEOUT_SECONDS = 5.0
NOTIFICATION_PREFIX = "notifications/"


async def open_stdin_reader(
    limit: int = MAX_LINE_BYTES,
) -> tuple[asyncio.StreamReader, asyncio.ReadTransport]:
    """Wrap the process's stdin in an asyncio stream.

    The caller owns the returned pipe transport and must close it.
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    pipe, _ = await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader, pipe


def _write_line(output: TextIO, data: str) -> None:
    output.write(data)
    output.flush()


class StdioTransport:
    """Serves one peer over a pair of byte streams.

    Every line is decoded at the boundary and routed on its own task, so a
    slow tool call does not hold up the requests behind it. Replies are
    written whole, one per line, in completion order. End of input ends the
    transport; ``wait_closed`` returns once that happens.
    """

    def __init__(
        self,
        router: RPCRouter,
        *,
        reader: asyncio.StreamReader | None = None,
        output: TextIO | None = None,
        drain_timeout: float = DRAIN_TIMEOUT_SECONDS,
    ):
        self._router = router
        self._reader = reader
        self._output = output
        self._drain_timeout = drain_timeout
        self._write_lock = asyncio.Lock()
        self._pipe: asyncio.ReadTransport | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[RPCResponse | None]] = set()
        self._closed = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._read_task is not None and not self._read_task.done()

    @property
    def closed(self) -> bool:
        """Whether the input stream has ended."""
        return self._closed.is_set()

    async def start(self) -> None:
        if self._read_task is not None:
            raise RuntimeError("Point-to-point transport already started")
        reader = self._reader
        if reader is None:
            reader, self._pipe = await open_stdin_reader()
        self._closed.clear()
        self._read_task = asyncio.create_task(self._read_loop(reader))
        logger.info("Point-to-point transport listening on stdio")

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def stop(self) -> None:
        """Stop reading and let in-flight requests finish briefly."""
        task, self._read_task = self._read_task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._pipe is not None:
            self._pipe.close()
            self._pipe = None

        if self._pending:
            _, still_running = await asyncio.wait(
                set(self._pending), timeout=self._drain_timeout
            )
            for pending in still_running:
                pending.cancel()
            if still_running:
                logger.warning(
                    f"Cancelled {len(still_running)} unfinished stdio requests"
                )
        logger.info("Point-to-point transport stopped")

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        try:
            while True:
                try:
                    line = await reader.readline()
                except ValueError as e:
                    # Line exceeded the stream limit; the rest of it is dropped
                    logger.error(f"Discarded oversized stdio message: {e}")
                    await self._write(
                        RPCResponse.error_response(
                            None,
                            ErrorCode.PARSE_ERROR,
                            "Parse error: message too large",
                        )
                    )
                    continue
                if not line:
                    logger.info("stdin closed")
                    break
                line = line.strip()
                if not line:
                    continue
                task = asyncio.create_task(self.handle_line(line))
                self._pending.add(task)
                task.add_done_callback(self._request_done)
        finally:
            self._closed.set()

    def _request_done(self, task: asyncio.Task[RPCResponse | None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        if exc := task.exception():
            logger.error("Failed to answer stdio request", exc_info=exc)

    async def handle_line(self, line: bytes | str) -> RPCResponse | None:
        """Answer one raw message. Returns the reply written, if any."""
        try:
            request = decode_envelope(line)
        except EnvelopeError as e:
            logger.warning(f"Rejected stdio message: {e}")
            response = RPCResponse.error_response(None, e.code, str(e))
            await self._write(response)
            return response

        if request.notification and request.method.startswith(NOTIFICATION_PREFIX):
            logger.debug(f"Notification received: {request.method}")
            return None

        response = await self._router.route(request)
        await self._write(response)
        return response

    async def _write(self, response: RPCResponse) -> None:
        """Write one reply line without blocking the event loop.

        A reader that drains stdout slowly only delays other replies, never
        the reading of new requests.
        """
        output = self._output or sys.stdout
        data = response.to_json() + "\n"
        async with self._write_lock:
            await asyncio.to_thread(_write_line, output, data)
