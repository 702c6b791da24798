import asyncio

import pytest
from fastapi.testclient import TestClient

from clickaudit import main
from clickaudit.errors import InvalidUrlError, NavigationError
from clickaudit.models import ExtractionResult, InteractiveElement, SvgInventory


@pytest.fixture
def client():
    return TestClient(main.app)


def test_status_routes(client):
    assert client.get("/").status_code == 200
    assert client.get("/health").json() == {"status": "ok"}
    status = client.get("/api/status").json()
    assert status["status"] == "success" and "timestamp" in status
    health = client.get("/api/health").json()
    assert health["status"] == "healthy" and health["uptime"] >= 0


def test_test_website_route(client, monkeypatch):
    calls = {}

    async def fake_extract(url, handle_cookies=False, cookie_text="", settings=None):
        calls.update(url=url, handle_cookies=handle_cookies, cookie_text=cookie_text)
        return ExtractionResult(
            original_url="https://example.com",
            final_url="https://example.com/",
            title="Example",
            timestamp="2024-01-01T00:00:00+00:00",
            elements=[InteractiveElement(sequence_id=0, kind_id=1, tag="a", is_button=False, href="N/A")],
        )

    monkeypatch.setattr(main, "extract_interactive_elements", fake_extract)
    resp = client.post("/api/test-website", json={
        "url": "example.com", "handle_cookies": True, "cookie_selector": "OK",
    })

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["elements"][0]["href"] == "N/A"
    assert body["data"]["elements"][0]["figure_context"] == {
        "in_figure": False, "has_caption": None, "caption_text": None,
    }
    assert calls == {"url": "example.com", "handle_cookies": True, "cookie_text": "OK"}


@pytest.mark.parametrize("error,status", [
    (InvalidUrlError("URL is required"), 400),
    (NavigationError("https://x.invalid", "net::ERR_NAME_NOT_RESOLVED"), 502),
    (asyncio.TimeoutError(), 504),
    (RuntimeError("surprise"), 500),
])
def test_test_website_errors(client, monkeypatch, error, status):
    async def failing(*args, **kwargs):
        raise error

    monkeypatch.setattr(main, "extract_interactive_elements", failing)
    resp = client.post("/api/test-website", json={"url": "x.invalid"})
    assert resp.status_code == status
    assert resp.json()["detail"]


def test_extract_svgs_route(client, monkeypatch):
    async def fake_svgs(url, settings=None):
        return SvgInventory(url="https://example.com", timestamp="t", svg_count=0, svgs=[])

    monkeypatch.setattr(main, "extract_page_svgs", fake_svgs)
    resp = client.post("/api/extract-svgs", json={"url": "example.com"})
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "data": {"url": "https://example.com", "timestamp": "t", "svg_count": 0, "svgs": []},
    }


def test_missing_url_is_a_validation_error(client):
    assert client.post("/api/test-website", json={}).status_code == 422
