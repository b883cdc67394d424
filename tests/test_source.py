"""Test raw stat sources."""

import asyncio
from collections.abc import AsyncGenerator
import sys

import pytest
import pytest_asyncio

from tscollect.exceptions import SourceError
from tscollect.source import CommandSource, SocketSource, StaticSource, command_available

MEMCACHED_STATS = (
    b"STAT pid 1\r\n"
    b"STAT curr_items 42\r\n"
    b"STAT bytes_read 1024\r\n"
    b"END\r\n"
)


async def _collect(source: CommandSource | SocketSource | StaticSource) -> list[str]:
    return [line async for line in source.lines()]


@pytest_asyncio.fixture
async def memcached_server() -> AsyncGenerator[tuple[str, int, list[bytes]], None]:
    """Create a TCP server answering the stats command."""
    requests: list[bytes] = []

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        requests.append(await reader.readline())
        # Anything after END must not be read by the source
        writer.write(MEMCACHED_STATS + b"STAT after_end 1\r\n")
        await writer.drain()
        writer.close()

    server = await asyncio.start_server(handle, host="127.0.0.1", port=0)
    port = server.sockets[0].getsockname()[1]

    yield "127.0.0.1", port, requests

    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
async def test_static_source() -> None:
    """Static source serves text and lists."""
    assert await _collect(StaticSource("a 1\nb 2\n")) == ["a 1", "b 2"]
    assert await _collect(StaticSource(["c 3"])) == ["c 3"]
    assert await _collect(StaticSource("")) == []


@pytest.mark.asyncio
async def test_static_source_error_after_lines() -> None:
    """Static source can fail after its lines."""
    lines: list[str] = []

    with pytest.raises(SourceError, match="broken pipe"):
        async for line in StaticSource(["a 1"], error=SourceError("broken pipe")).lines():
            lines.append(line)

    assert lines == ["a 1"]


@pytest.mark.asyncio
async def test_command_source() -> None:
    """Read stdout of a program."""
    source = CommandSource(
        sys.executable,
        "-c",
        "print('curr_items 42'); print('bytes_read 1024')",
    )

    assert await _collect(source) == ["curr_items 42", "bytes_read 1024"]


@pytest.mark.asyncio
async def test_command_source_no_output() -> None:
    """A program without output is not a failure."""
    assert await _collect(CommandSource(sys.executable, "-c", "pass")) == []


@pytest.mark.asyncio
async def test_command_source_exit_code() -> None:
    """A non zero exit is a source failure."""
    source = CommandSource(
        sys.executable,
        "-c",
        "import sys; print('curr_items 1'); "
        "sys.stderr.write('Couldn\\'t connect to 127.0.0.1:11211'); sys.exit(3)",
    )
    lines: list[str] = []

    with pytest.raises(SourceError, match="exited with 3: Couldn't connect"):
        async for line in source.lines():
            lines.append(line)

    assert lines == ["curr_items 1"]


@pytest.mark.asyncio
async def test_command_source_missing_program() -> None:
    """A missing program is a source failure."""
    with pytest.raises(SourceError, match="Can't run"):
        await _collect(CommandSource("/nonexistent/memcached-tool", "stats"))


@pytest.mark.asyncio
async def test_command_source_killed_on_cancel() -> None:
    """Cancelling the read kills the program."""
    source = CommandSource(
        sys.executable,
        "-c",
        "import time; print('curr_items 1', flush=True); time.sleep(60)",
    )

    with pytest.raises(TimeoutError):
        async with asyncio.timeout(0.5):
            await _collect(source)


def test_command_available() -> None:
    """Check PATH lookup."""
    assert command_available(sys.executable)
    assert not command_available("/nonexistent/memcached-tool")


@pytest.mark.asyncio
async def test_socket_source(memcached_server: tuple[str, int, list[bytes]]) -> None:
    """Read the memcached text protocol over TCP."""
    host, port, requests = memcached_server
    source = SocketSource(
        host,
        port,
        b"stats\r\n",
        end_marker="END",
        strip_prefix="STAT",
    )

    assert await _collect(source) == ["pid 1", "curr_items 42", "bytes_read 1024"]
    assert requests == [b"stats\r\n"]


@pytest.mark.asyncio
async def test_socket_source_until_eof(
    memcached_server: tuple[str, int, list[bytes]],
) -> None:
    """Without end marker the source reads until the connection closes."""
    host, port, _ = memcached_server

    lines = await _collect(SocketSource(host, port, b"stats\r\n"))

    assert lines[0] == "STAT pid 1"
    assert lines[-2:] == ["END", "STAT after_end 1"]


@pytest.mark.asyncio
async def test_socket_source_connection_refused() -> None:
    """Connection errors are source failures."""
    server = await asyncio.start_server(lambda r, w: None, host="127.0.0.1", port=0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()

    with pytest.raises(SourceError, match="Can't connect"):
        await _collect(SocketSource("127.0.0.1", port, b"stats\r\n"))
