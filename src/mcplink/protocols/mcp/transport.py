"""MCP transports — stdio and HTTP communication layers.

Each transport satisfies the :class:`MCPTransport` protocol, providing
``connect``, ``send``, ``receive``, ``close`` and ``is_alive``.  Transports
only move framed messages; matching responses to requests is the client's
job.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from typing import Any, Protocol, runtime_checkable

import httpx

from mcplink.protocols.errors import ProcessDiedError, ProtocolError, TransportError
from mcplink.protocols.mcp.models import SESSION_HEADER

logger = logging.getLogger(__name__)

# 16 MiB; tool results such as file contents can far exceed asyncio's 64 KiB default.
_STREAM_LIMIT = 16 * 1024 * 1024

# How often the exit watcher checks the child, and how long to keep reading
# stdout after it exits (a grandchild may hold the pipe open).
_EXIT_POLL_INTERVAL = 0.05
_EXIT_DRAIN_TIMEOUT = 0.5


@runtime_checkable
class MCPTransport(Protocol):
    """Abstract transport for MCP JSON-RPC communication."""

    async def connect(self) -> None: ...
    async def send(self, data: dict[str, Any]) -> None: ...
    async def receive(self) -> dict[str, Any]: ...
    async def close(self) -> None: ...
    def is_alive(self) -> bool: ...


class StdioTransport:
    """Communicates with an MCP server via subprocess stdin/stdout.

    Sends and receives newline-delimited JSON.  Each stdout line is decoded
    on its own: lines that are not JSON (banners, stray prints) are skipped,
    so the stream resynchronizes on the next line.
    """

    def __init__(
        self,
        command: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
        *,
        kill_timeout: float = 5.0,
    ) -> None:
        self._command = command
        self._args = list(args or [])
        self._env = env
        self._kill_timeout = kill_timeout
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._exit_task: asyncio.Task[None] | None = None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    async def connect(self) -> None:
        """Launch the subprocess."""
        env = {**os.environ, **self._env} if self._env else None
        self._process = await asyncio.create_subprocess_exec(
            self._command,
            *self._args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
            limit=_STREAM_LIMIT,
        )
        logger.debug("Started MCP server %s (pid %s)", self._command, self._process.pid)
        if self._process.stderr is not None:
            self._stderr_task = asyncio.create_task(self._drain_stderr(self._process.stderr))
        self._exit_task = asyncio.create_task(self._watch_exit(self._process))

    def is_alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def send(self, data: dict[str, Any]) -> None:
        """Write a JSON line to stdin."""
        if self._process is None or self._process.stdin is None:
            msg = "Transport not connected"
            raise TransportError(msg)
        if not self.is_alive():
            raise ProcessDiedError(f"exit code {self._process.returncode}")
        line = json.dumps(data, separators=(",", ":")) + "\n"
        try:
            self._process.stdin.write(line.encode())
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise ProcessDiedError(str(exc)) from exc

    async def receive(self) -> dict[str, Any]:
        """Read the next JSON object from stdout.

        Raises:
            ProcessDiedError: stdout reached EOF, or the process exited and
                nothing more arrived on stdout.
            ProtocolError: a line decoded to JSON that is not an object.
        """
        if self._process is None or self._process.stdout is None:
            msg = "Transport not connected"
            raise TransportError(msg)
        while True:
            try:
                raw = await self._readline(self._process.stdout)
            except ValueError as exc:
                # Line longer than the stream limit; the reader has discarded it.
                msg = f"Oversized line from server: {exc}"
                raise ProtocolError(msg) from exc
            if not raw:
                returncode = await self._wait_exit()
                raise ProcessDiedError(f"exit code {returncode}")
            text = raw.decode("utf-8", errors="replace").strip()
            if not text:
                continue
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                logger.warning("Skipping non-JSON line from %s: %.200s", self._command, text)
                continue
            if not isinstance(message, dict):
                msg = f"Expected a JSON object, got {type(message).__name__}"
                raise ProtocolError(msg)
            return message

    async def close(self) -> None:
        """Close stdin and terminate the subprocess, killing it if it lingers."""
        process = self._process
        if process is None:
            return
        self._process = None
        if process.stdin is not None:
            with contextlib.suppress(BrokenPipeError, ConnectionResetError):
                process.stdin.close()
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=self._kill_timeout)
            except asyncio.TimeoutError:
                logger.warning("MCP server %s ignored SIGTERM, killing", self._command)
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
        if self._stderr_task is not None:
            self._stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._stderr_task
            self._stderr_task = None
        if self._exit_task is not None:
            self._exit_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._exit_task
            self._exit_task = None

    async def _readline(self, stdout: asyncio.StreamReader) -> bytes:
        """Read one line, or return ``b""`` once the process has exited and gone quiet."""
        exited = self._exit_task
        if exited is not None and not exited.done():
            read = asyncio.ensure_future(stdout.readline())
            try:
                await asyncio.wait({read, exited}, return_when=asyncio.FIRST_COMPLETED)
            except asyncio.CancelledError:
                read.cancel()
                raise
            if read.done():
                return read.result()
            read.cancel()
            # The stream allows one waiter at a time; let the cancelled read unwind.
            with contextlib.suppress(asyncio.CancelledError):
                await read
            if not read.cancelled():
                return read.result()
        if exited is None:
            return await stdout.readline()
        # Exited: pick up anything it wrote first, without waiting on inherited pipes.
        try:
            return await asyncio.wait_for(stdout.readline(), timeout=_EXIT_DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.debug("%s exited but stdout is still open", self._command)
            return b""

    @staticmethod
    async def _watch_exit(process: asyncio.subprocess.Process) -> None:
        # returncode is set as soon as the child is reaped, even while
        # descendants keep its pipes open.
        while process.returncode is None:
            await asyncio.sleep(_EXIT_POLL_INTERVAL)

    async def _wait_exit(self) -> int | None:
        if self._process is None:
            return None
        if self._process.returncode is not None:
            return self._process.returncode
        try:
            return await asyncio.wait_for(self._process.wait(), timeout=self._kill_timeout)
        except asyncio.TimeoutError:
            # stdout closed but the process lingers; treat it as gone.
            return self._process.returncode

    async def _drain_stderr(self, stream: asyncio.StreamReader) -> None:
        while True:
            raw = await stream.readline()
            if not raw:
                return
            logger.debug("[%s stderr] %s", self._command, raw.decode("utf-8", errors="replace").rstrip())


class HttpTransport:
    """Communicates with an MCP server via HTTP POST.

    Every message is its own POST with a JSON body; responses come back as
    the JSON body and are queued for :meth:`receive`.  The server's
    ``mcp-session-id`` header on the ``initialize`` response is captured
    once and replayed on every later POST until :meth:`close`.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        timeout: float | None = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._session_id: str | None = None
        self._inbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._open = False

    @property
    def session_id(self) -> str | None:
        return self._session_id

    async def connect(self) -> None:
        """Create the HTTP client; no request is made until the first send."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        self._open = True

    def is_alive(self) -> bool:
        return self._open

    async def send(self, data: dict[str, Any]) -> None:
        """POST one JSON-RPC message and queue any JSON response body."""
        if self._client is None or not self._open:
            msg = "Transport not connected"
            raise TransportError(msg)

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
            **self._headers,
        }
        if self._session_id is not None:
            headers[SESSION_HEADER] = self._session_id

        try:
            response = await self._client.post(self._url, json=data, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            msg = f"HTTP {exc.response.status_code} from {self._url}"
            raise TransportError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"HTTP request to {self._url} failed: {exc}"
            raise TransportError(msg) from exc

        if data.get("method") == "initialize" and self._session_id is None:
            self._session_id = response.headers.get(SESSION_HEADER)
            if self._session_id:
                logger.debug("Established MCP session %s with %s", self._session_id, self._url)

        if "id" not in data or not response.content.strip():
            return
        try:
            body = response.json()
        except ValueError as exc:
            msg = f"Non-JSON response body from {self._url}"
            raise ProtocolError(msg) from exc
        if not isinstance(body, dict):
            msg = f"Expected a JSON object from {self._url}, got {type(body).__name__}"
            raise ProtocolError(msg)
        if body.get("id") != data["id"]:
            msg = f"Response id {body.get('id')!r} does not match request id {data['id']!r}"
            raise ProtocolError(msg)
        await self._inbox.put(body)

    async def receive(self) -> dict[str, Any]:
        """Return the next queued response body."""
        return await self._inbox.get()

    async def close(self) -> None:
        """Drop the session and close the HTTP client if this transport owns it."""
        self._open = False
        self._session_id = None
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
