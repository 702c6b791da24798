from contextlib import asynccontextmanager

import pytest
from playwright.async_api import Error as PlaywrightError

from clickaudit import scraper
from clickaudit.errors import ExtractionError, InvalidUrlError, NavigationError
from helpers import FakeSession, el, raw_snapshot, text


def use_session(monkeypatch, session):
    opened = []

    @asynccontextmanager
    async def fake_open(url, settings=None):
        opened.append(url)
        yield session

    monkeypatch.setattr(scraper, "open_session", fake_open)
    return opened


async def test_extraction_result(monkeypatch, settings):
    session = FakeSession(url="https://example.com/home", elements=[
        ("a", None, raw_snapshot(el("a", text("Home"), attrs={"href": "/about", "aria-label": "About us"}))),
        ("button", None, raw_snapshot(el("button", text("Menu")))),
    ])
    opened = use_session(monkeypatch, session)

    result = await scraper.extract_interactive_elements("example.com/home", settings=settings)

    assert opened == ["https://example.com/home"]
    assert result.original_url == "https://example.com/home"
    assert result.final_url == "https://example.com/home"
    assert result.title == "Example"
    assert result.cookie_handled is False
    assert result.schema_version == 1
    assert [e.accessible_text for e in result.elements] == ["Home", "Menu"]
    assert result.elements[0].is_internal is True


async def test_cookie_routine_runs_when_asked(monkeypatch, settings):
    session = FakeSession()
    session.page = object()
    use_session(monkeypatch, session)
    seen = {}

    async def fake_consent(page, custom_text="", extra_phrases=None, settle_ms=0):
        seen.update(page=page, custom_text=custom_text)
        return True

    monkeypatch.setattr(scraper, "handle_cookie_consent", fake_consent)
    result = await scraper.extract_interactive_elements(
        "https://example.com", handle_cookies=True, cookie_text="Okay", settings=settings
    )
    assert result.cookie_handled is True
    assert seen == {"page": session.page, "custom_text": "Okay"}


async def test_invalid_url_rejected_before_browser(monkeypatch, settings):
    opened = use_session(monkeypatch, FakeSession())
    with pytest.raises(InvalidUrlError):
        await scraper.extract_interactive_elements("   ", settings=settings)
    assert opened == []


async def test_crashed_page_is_a_failure(monkeypatch, settings):
    session = FakeSession()
    session.crashed = True
    use_session(monkeypatch, session)
    with pytest.raises(NavigationError):
        await scraper.extract_interactive_elements("https://example.com", settings=settings)


async def test_page_level_browser_error_is_wrapped(monkeypatch, settings):
    class ClosedPage(FakeSession):
        async def query_all(self, selector):
            raise PlaywrightError("Target page, context or browser has been closed")

    use_session(monkeypatch, ClosedPage())
    with pytest.raises(ExtractionError):
        await scraper.extract_interactive_elements("https://example.com", settings=settings)


# ---------------------------------------------------------------------------
# SVG inventory
# ---------------------------------------------------------------------------

async def test_svg_record_processing(preview_settings, fake_rasterize):
    session = FakeSession(markup={
        "star": '<symbol id="star" viewBox="0 0 20 20"><path d="M10 0l3 7h7"></path></symbol>',
    })
    item = {
        "html": '<svg aria-hidden="true"><title>Rating</title><use href="#star"></use></svg>',
        "ariaHidden": True,
        "role": "none",
        "width": "auto",
        "className": "star-icon",
    }
    record = await scraper.build_svg_record(0, item, session, preview_settings)

    assert record.error is None
    assert record.title_desc == "Rating"
    assert record.has_use_elements and record.use_hrefs == ["#star"]
    assert record.has_aria_hidden and record.has_role_presentation
    assert 'viewBox="0 0 20 20"' in record.processed_svg
    assert 'fill="#888888"' in record.processed_svg
    assert record.class_name == "star-icon"
    assert record.preview_bitmap.startswith("data:image/png;base64,")


async def test_svg_record_processes_computed_colour_markup(settings):
    item = {
        "html": '<svg><path fill="currentColor" d="M0 0"></path></svg>',
        "coloured": '<svg><path fill="rgb(0, 128, 0)" d="M0 0"></path></svg>',
    }
    record = await scraper.build_svg_record(0, item, FakeSession(), settings)
    assert record.original_html == item["html"]
    assert 'fill="rgb(0, 128, 0)"' in record.processed_svg
    assert "#888888" not in record.processed_svg


async def test_svg_record_failure_is_contained(monkeypatch, settings):
    def boom(source, fixed_color="#888888"):
        raise RuntimeError("boom")

    monkeypatch.setattr(scraper, "ensure_fixed_color", boom)
    record = await scraper.build_svg_record(2, {"html": "<svg/>"}, FakeSession(), settings)
    assert record.id == 2
    assert record.error == "boom"
    assert record.original_html == "<svg/>"


async def test_extract_page_svgs(monkeypatch, settings):
    class SvgPage(FakeSession):
        async def svg_elements(self):
            return [{"html": "<svg><title>A</title></svg>"}, {"html": "<svg><desc>B</desc></svg>"}]

    use_session(monkeypatch, SvgPage())
    inventory = await scraper.extract_page_svgs("example.com", settings=settings)

    assert inventory.url == "https://example.com"
    assert inventory.svg_count == 2
    assert [s.id for s in inventory.svgs] == [0, 1]
    assert [s.title_desc for s in inventory.svgs] == ["A", "B"]
