"""Raw stat sources producing line oriented text."""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from asyncio.subprocess import PIPE
from collections.abc import AsyncIterator, Iterable
from contextlib import suppress
import logging
import shutil

from .const import STDERR_TAIL_SIZE
from .exceptions import SourceError

_LOGGER = logging.getLogger(__name__)


def command_available(program: str) -> bool:
    """Return True if program can be found on PATH."""
    return shutil.which(program) is not None


class RawStatSource(ABC):
    """Produce raw stat lines for a single collection pass.

    A source is finite and not restartable. Failure to produce output
    raises SourceError, while a run without matching output simply yields
    nothing.
    """

    @abstractmethod
    def lines(self) -> AsyncIterator[str]:
        """Return an async iterator over the raw lines."""


class CommandSource(RawStatSource):
    """Read the standard output of an external program."""

    def __init__(self, program: str, *args: str) -> None:
        """Initialize command source."""
        self._program = program
        self._args = args

    def __repr__(self) -> str:
        """Return string representation for logger."""
        return f"CommandSource({' '.join((self._program, *self._args))})"

    async def lines(self) -> AsyncIterator[str]:
        """Run the program and yield its output line by line."""
        try:
            process = await asyncio.create_subprocess_exec(
                self._program,
                *self._args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=PIPE,
                stderr=PIPE,
            )
        except OSError as err:
            raise SourceError(f"Can't run {self._program}: {err}") from err

        assert process.stdout is not None
        assert process.stderr is not None
        stderr_task = asyncio.create_task(process.stderr.read())
        try:
            async for raw in process.stdout:
                yield raw.decode("utf-8", errors="replace").rstrip("\r\n")

            stderr = await stderr_task
            returncode = await process.wait()
        finally:
            stderr_task.cancel()
            if process.returncode is None:
                _LOGGER.debug("Kill unfinished %r", self)
                with suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        if returncode != 0:
            tail = stderr[-STDERR_TAIL_SIZE:].decode("utf-8", errors="replace").strip()
            raise SourceError(f"{self._program} exited with {returncode}: {tail}")


class SocketSource(RawStatSource):
    """Send a request over TCP and read the text response."""

    def __init__(
        self,
        host: str,
        port: int,
        request: bytes,
        *,
        end_marker: str | None = None,
        strip_prefix: str | None = None,
    ) -> None:
        """Initialize socket source.

        Args:
            host: address of the service
            port: TCP port of the service
            request: bytes written after connecting
            end_marker: line that terminates the response, otherwise EOF
            strip_prefix: leading token removed from every line
        """
        self._host = host
        self._port = port
        self._request = request
        self._end_marker = end_marker
        self._strip_prefix = f"{strip_prefix} " if strip_prefix else None

    def __repr__(self) -> str:
        """Return string representation for logger."""
        return f"SocketSource({self._host}:{self._port})"

    async def lines(self) -> AsyncIterator[str]:
        """Connect, send the request and yield the response lines."""
        try:
            reader, writer = await asyncio.open_connection(self._host, self._port)
        except OSError as err:
            raise SourceError(f"Can't connect to {self._host}:{self._port}: {err}") from err

        try:
            writer.write(self._request)
            await writer.drain()

            while True:
                try:
                    raw = await reader.readline()
                except OSError as err:
                    raise SourceError(f"Read from {self!r} failed: {err}") from err
                if not raw:
                    break

                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                if line == self._end_marker:
                    break
                if self._strip_prefix and line.startswith(self._strip_prefix):
                    line = line[len(self._strip_prefix) :]
                yield line
        except OSError as err:
            raise SourceError(f"Write to {self!r} failed: {err}") from err
        finally:
            writer.close()
            with suppress(OSError):
                await writer.wait_closed()


class StaticSource(RawStatSource):
    """Serve lines from memory, optionally failing after the last one."""

    def __init__(
        self,
        data: str | Iterable[str],
        error: Exception | None = None,
    ) -> None:
        """Initialize static source."""
        self._lines = data.splitlines() if isinstance(data, str) else list(data)
        self._error = error

    async def lines(self) -> AsyncIterator[str]:
        """Yield the stored lines."""
        for line in self._lines:
            yield line
        if self._error is not None:
            raise self._error
