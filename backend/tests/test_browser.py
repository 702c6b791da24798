import httpx
import pytest

from clickaudit.browser import PageSession, guess_mime, normalize_url
from clickaudit.errors import InvalidUrlError
from helpers import el, raw_snapshot, text


class FakePage:
    def __init__(self, url="https://example.com/", ids=None):
        self.url = url
        self.ids = ids or {}
        self.handlers = {}

    def on(self, event, callback):
        self.handlers[event] = callback

    async def evaluate(self, script, arg=None):
        return self.ids.get(arg)


class FakeHandle:
    def __init__(self, raw, box=None):
        self.raw = raw
        self.box = box
        self.opts = None

    async def evaluate(self, script, opts=None):
        self.opts = opts
        return self.raw

    async def bounding_box(self):
        return self.box


def handler(request):
    if request.url.path == "/logo.png":
        return httpx.Response(200, content=b"png-bytes", headers={"content-type": "image/png"})
    if request.url.path == "/sprite.svg":
        return httpx.Response(200, content=b"<svg/>")
    return httpx.Response(404)


@pytest.fixture
async def http():
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest.mark.parametrize("raw,expected", [
    ("https://example.com", "https://example.com"),
    ("  example.com/path ", "https://example.com/path"),
    ("http://localhost:8000/", "http://localhost:8000/"),
])
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "ftp://example.com/file", "https://"])
def test_normalize_url_rejects(raw):
    with pytest.raises(InvalidUrlError):
        normalize_url(raw)


def test_guess_mime():
    assert guess_mime("https://x.com/a.SVG?v=2") == "image/svg+xml"
    assert guess_mime("https://x.com/a.jpeg") == "image/jpeg"
    assert guess_mime("https://x.com/a") == "application/octet-stream"


async def test_fetch_returns_bytes_and_type(http, settings):
    session = PageSession(FakePage(), http, settings)
    assert await session.fetch("https://example.com/logo.png") == (b"png-bytes", "image/png")
    assert await session.fetch("https://example.com/sprite.svg") == (b"<svg/>", "image/svg+xml")
    assert await session.fetch_text("https://example.com/sprite.svg") == "<svg/>"


async def test_fetch_failures_return_none(http, settings):
    session = PageSession(FakePage(), http, settings)
    assert await session.fetch("https://example.com/missing.png") is None
    assert await session.fetch_text("https://example.com/missing.svg") is None
    assert await session.fetch("data:broken") is None
    assert await session.fetch("https://example.com/\x00a.png") is None


async def test_fetch_decodes_data_uris(http, settings):
    session = PageSession(FakePage(), http, settings)
    assert await session.fetch("data:image/svg+xml,%3Csvg%2F%3E") == (b"<svg/>", "image/svg+xml")


async def test_snapshot_passes_bounds(http, settings):
    session = PageSession(FakePage(), http, settings)
    handle = FakeHandle(raw_snapshot(el("a", text("Hi"))), box={"x": 0, "y": 5, "width": 10, "height": 2})

    snapshot = await session.snapshot(handle)
    assert snapshot.root.tag == "a"
    assert handle.opts == {
        "maxNodes": settings.max_snapshot_nodes,
        "maxDepth": settings.max_snapshot_depth,
        "maxAncestors": settings.max_ancestor_hops,
    }
    box = await session.bounding_box(handle)
    assert (box.y, box.height) == (5, 2)
    assert await session.bounding_box(FakeHandle({}, box=None)) is None


async def test_id_lookups_and_crash_flag(http, settings):
    page = FakePage(ids={"label": "Name"})
    session = PageSession(page, http, settings)
    assert await session.text_by_id("label") == "Name"
    assert await session.text_by_id("nope") is None

    assert session.crashed is False
    page.handlers["crash"](page)
    assert session.crashed is True
