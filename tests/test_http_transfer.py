"""Tests for the resumable HTTP transfer against a local aiohttp server."""

import asyncio

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from songbox.exceptions import TransferError, TransferPaused
from songbox.media.transfer import HttpTransfer

PAYLOAD = bytes(range(256)) * 1024
STREAM_CHUNK = 16384


def _range_start(request: web.Request) -> int | None:
    header = request.headers.get("Range")
    if not header:
        return None
    return int(header.removeprefix("bytes=").rstrip("-"))


@pytest.fixture
async def server():
    ranges: list[int] = []

    async def full(request):
        return web.Response(body=PAYLOAD)

    async def ranged(request):
        start = _range_start(request)
        if start is not None:
            ranges.append(start)
            return web.Response(status=206, body=PAYLOAD[start:])
        response = web.StreamResponse()
        response.content_length = len(PAYLOAD)
        await response.prepare(request)
        for i in range(0, len(PAYLOAD), STREAM_CHUNK):
            await response.write(PAYLOAD[i : i + STREAM_CHUNK])
            await asyncio.sleep(0.01)
        return response

    async def unsized(request):
        response = web.StreamResponse()
        await response.prepare(request)
        await response.write(PAYLOAD)
        return response

    app = web.Application()
    app.router.add_get("/full.mp3", full)
    app.router.add_get("/ranged.mp3", ranged)
    app.router.add_get("/unsized.mp3", unsized)

    test_server = TestServer(app)
    await test_server.start_server()
    test_server.ranges = ranges
    yield test_server
    await test_server.close()


@pytest.fixture
async def session():
    async with aiohttp.ClientSession() as client_session:
        yield client_session


class TestHttpTransfer:
    """Test downloading, progress reporting, pausing and resuming."""

    async def test_downloads_file(self, server, session, tmp_path):
        """Test that the body lands at the destination and the .part file is gone."""
        destination = tmp_path / "songs" / "1_Song.mp3"
        ticks = []
        transfer = HttpTransfer(
            str(server.make_url("/full.mp3")), destination, ticks.append, session=session
        )

        result = await transfer.start()

        assert result.local_path == destination
        assert destination.read_bytes() == PAYLOAD
        assert not transfer.partial_path.exists()
        assert ticks[-1].total_bytes_written == len(PAYLOAD)
        assert all(t.total_bytes_expected == len(PAYLOAD) for t in ticks)

    async def test_unknown_size(self, server, session, tmp_path):
        """Test that a response without a length reports -1 as expected size."""
        ticks = []
        transfer = HttpTransfer(
            str(server.make_url("/unsized.mp3")), tmp_path / "a.mp3", ticks.append, session=session
        )
        await transfer.start()
        assert ticks
        assert all(t.total_bytes_expected == -1 for t in ticks)

    async def test_http_error(self, server, session, tmp_path):
        """Test that an error status becomes a TransferError."""
        transfer = HttpTransfer(
            str(server.make_url("/missing.mp3")), tmp_path / "a.mp3", session=session
        )
        with pytest.raises(TransferError):
            await transfer.start()
        assert not (tmp_path / "a.mp3").exists()

    async def test_pause_then_resume(self, server, session, tmp_path):
        """Test that a paused transfer resumes from the partial file with a Range request."""
        destination = tmp_path / "1_Song.mp3"
        ticks = []
        transfer = HttpTransfer(
            str(server.make_url("/ranged.mp3")), destination, ticks.append, session=session
        )
        task = asyncio.create_task(transfer.start())

        async def wait_for_bytes():
            while not ticks or ticks[-1].total_bytes_written < 2 * STREAM_CHUNK:
                await asyncio.sleep(0.005)

        await asyncio.wait_for(wait_for_bytes(), timeout=5)
        await transfer.pause()

        with pytest.raises(TransferPaused):
            await task
        assert not destination.exists()
        partial_size = transfer.partial_path.stat().st_size
        assert 0 < partial_size < len(PAYLOAD)

        result = await transfer.start()

        assert result.local_path.read_bytes() == PAYLOAD
        assert server.ranges == [partial_size]
        assert not transfer.partial_path.exists()

    async def test_server_ignoring_range_restarts(self, server, session, tmp_path):
        """Test that a 200 reply to a Range request rewrites the file from zero."""
        destination = tmp_path / "1_Song.mp3"
        transfer = HttpTransfer(str(server.make_url("/full.mp3")), destination, session=session)
        transfer.partial_path.write_bytes(b"stale bytes")

        await transfer.start()

        assert destination.read_bytes() == PAYLOAD

    async def test_pause_when_idle(self, tmp_path):
        """Test that pausing a transfer that never started is harmless."""
        transfer = HttpTransfer("http://127.0.0.1:1/a.mp3", tmp_path / "a.mp3")
        await transfer.pause()
        assert not transfer.is_running
