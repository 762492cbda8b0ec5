"""
Test fixtures and configuration for pytest
"""

import asyncio
from collections import Counter

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from reelcache.models.config import CacheConfig

MEDIA_BYTES = b"\x00\x00\x00\x18ftypmp42" + bytes(range(256)) * 256
HTML_ERROR_PAGE = b"<html><body><h1>404 Not Found</h1></body></html>"


@pytest.fixture
def config(tmp_path):
    """A configuration rooted in a temporary directory with a fast monitor."""
    return CacheConfig(
        media_root=tmp_path / "media",
        index_path=tmp_path / "dlindex.json",
        playback_path=tmp_path / "videopersistance.json",
        progress_interval=0.05,
        probe_timeout=5,
        connect_timeout=5,
        read_timeout=5,
    )


class RecordingReporter:
    """Collects every snapshot a progress monitor reports."""

    def __init__(self):
        self.snapshots = []

    def report(self, snapshot):
        self.snapshots.append(snapshot)


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def media_bytes():
    return MEDIA_BYTES


async def _start_stream(request: web.Request) -> web.StreamResponse:
    response = web.StreamResponse()
    response.content_length = len(MEDIA_BYTES)
    response.content_type = "video/mp4"
    await response.prepare(request)
    return response


async def _serve_media(request: web.Request) -> web.StreamResponse:
    """
    Serves fake media under /{prefix}/{kind}/{series}/{file}.

    File names select the behavior: ``missing*`` answers 404, ``error*`` an
    HTML page, ``slow*`` holds the body until the app's gate is opened,
    ``broken*`` sends half the body and then drops the connection.
    """
    name = request.match_info["file"]
    if request.method == "GET":
        request.app["hits"][name] += 1

    if name.startswith("missing"):
        raise web.HTTPNotFound()
    if name.startswith("error"):
        return web.Response(body=HTML_ERROR_PAGE, content_type="text/html")
    if name.startswith("broken"):
        response = await _start_stream(request)
        if request.method == "HEAD":
            return response
        await response.write(MEDIA_BYTES[: len(MEDIA_BYTES) // 2])
        request.transport.close()
        return response
    if name.startswith("slow"):
        response = await _start_stream(request)
        if request.method == "HEAD":
            return response
        half = len(MEDIA_BYTES) // 2
        await response.write(MEDIA_BYTES[:half])
        await request.app["gate"].wait()
        await response.write(MEDIA_BYTES[half:])
        await response.write_eof()
        return response
    return web.Response(body=MEDIA_BYTES, content_type="video/mp4")


@pytest_asyncio.fixture
async def media_server():
    """A local HTTP server standing in for the media host."""
    app = web.Application()
    app["hits"] = Counter()
    app["gate"] = asyncio.Event()
    app.router.add_get("/{prefix}/{kind}/{series}/{file}", _serve_media)
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        app["gate"].set()
        await server.close()
