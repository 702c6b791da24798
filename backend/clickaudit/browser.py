"""
Browser side of an extraction: one Chromium page per request, wrapped in a
PageSession that exposes only the calls the pipeline makes.
"""

import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from clickaudit.config import get_settings
from clickaudit.dom import ELEMENT_SNAPSHOT_JS, SVG_COLOURED_MARKUP_JS, ElementSnapshot, snapshot_from_dict
from clickaudit.errors import InvalidUrlError, NavigationError
from clickaudit.image_utils import decode_data_uri
from clickaudit.models import BoundingBox

logger = logging.getLogger(__name__)


def normalize_url(url: str | None) -> str:
    """Validate a user-supplied URL, adding https:// when no scheme is given."""
    url = (url or "").strip()
    if not url:
        raise InvalidUrlError("URL is required")
    if not url.startswith(("http://", "https://")):
        if "://" in url:
            raise InvalidUrlError(f"Unsupported URL scheme: {url}")
        url = f"https://{url}"
    parsed = urlparse(url)
    if not parsed.hostname or " " in parsed.netloc:
        raise InvalidUrlError(f"Invalid URL: {url}")
    return url


def guess_mime(url: str) -> str:
    """Guess an image MIME type from the URL extension."""
    path = url.lower().split("?")[0]
    if path.endswith(".png"):
        return "image/png"
    if path.endswith(".jpg") or path.endswith(".jpeg"):
        return "image/jpeg"
    if path.endswith(".gif"):
        return "image/gif"
    if path.endswith(".svg"):
        return "image/svg+xml"
    if path.endswith(".webp"):
        return "image/webp"
    return "application/octet-stream"


class PageSession:
    """A loaded page plus an HTTP client for image / sprite fetches."""

    def __init__(self, page, http: httpx.AsyncClient, settings):
        self.page = page
        self.http = http
        self.settings = settings
        self.crashed = False
        page.on("crash", self._on_crash)

    def _on_crash(self, *_):
        logger.error(f"[browser] page crashed: {self.page.url}")
        self.crashed = True

    @property
    def url(self) -> str:
        return self.page.url

    async def title(self) -> str:
        return await self.page.title()

    async def query_all(self, selector: str) -> list:
        return await self.page.query_selector_all(selector)

    async def element_kind(self, handle) -> tuple[str, str | None]:
        tag, role = await handle.evaluate('(el) => [el.tagName.toLowerCase(), el.getAttribute("role")]')
        return tag, role

    async def snapshot(self, handle) -> ElementSnapshot:
        raw = await handle.evaluate(ELEMENT_SNAPSHOT_JS, {
            "maxNodes": self.settings.max_snapshot_nodes,
            "maxDepth": self.settings.max_snapshot_depth,
            "maxAncestors": self.settings.max_ancestor_hops,
        })
        return snapshot_from_dict(raw)

    async def bounding_box(self, handle) -> BoundingBox | None:
        box = await handle.bounding_box()
        if not box:
            return None
        return BoundingBox(**box)

    async def text_by_id(self, element_id: str) -> str | None:
        """textContent of document.getElementById(id), None if there is no such element."""
        return await self.page.evaluate(
            '(id) => { const el = document.getElementById(id); return el ? el.textContent : null; }',
            element_id,
        )

    async def markup_by_id(self, element_id: str) -> str | None:
        return await self.page.evaluate(
            '(id) => { const el = document.getElementById(id); return el ? el.outerHTML : null; }',
            element_id,
        )

    async def svg_elements(self) -> list[dict]:
        """outerHTML, computed-colour markup and presentation attributes of every <svg> in the document."""
        return await self.page.evaluate('''() => {
            ''' + SVG_COLOURED_MARKUP_JS + '''
            return Array.from(document.querySelectorAll('svg')).map(svg => ({
                html: svg.outerHTML,
                coloured: colouredMarkup(svg),
                ariaLabel: svg.getAttribute('aria-label') || '',
                ariaLabelledBy: svg.getAttribute('aria-labelledby') || '',
                ariaDescribedBy: svg.getAttribute('aria-describedby') || '',
                ariaHidden: svg.getAttribute('aria-hidden') === 'true',
                role: svg.getAttribute('role') || '',
                width: svg.getAttribute('width') || 'auto',
                height: svg.getAttribute('height') || 'auto',
                viewBox: svg.getAttribute('viewBox') || '',
                className: svg.getAttribute('class') || '',
                style: svg.getAttribute('style') || '',
            }));
        }''')

    async def fetch(self, url: str) -> tuple[bytes, str] | None:
        """Bytes and content type of an image URL (data: URIs included), None on any failure."""
        if url.startswith("data:"):
            try:
                return decode_data_uri(url)
            except ValueError as e:
                logger.debug(f"[browser] bad data URI: {e}")
                return None
        try:
            resp = await self.http.get(url)
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL, httpx.CookieConflict) as e:
            logger.debug(f"[browser] fetch failed {url[:100]}: {e}")
            return None
        content_type = resp.headers.get("content-type") or guess_mime(url)
        return resp.content, content_type

    async def fetch_text(self, url: str) -> str | None:
        fetched = await self.fetch(url)
        if fetched is None:
            return None
        return fetched[0].decode("utf-8", errors="replace")


@asynccontextmanager
async def open_session(url: str, settings=None):
    """
    Launch Chromium, load `url` and yield a PageSession.
    The browser and HTTP client are closed on every exit path.
    Raises NavigationError if the page can't be loaded.
    """
    settings = settings or get_settings()

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=settings.headless)
        try:
            context = await browser.new_context(
                viewport={"width": settings.viewport_width, "height": settings.viewport_height},
                user_agent=settings.user_agent,
            )
            page = await context.new_page()
            page.set_default_timeout(settings.default_timeout)

            try:
                await page.goto(url, wait_until="domcontentloaded", timeout=settings.page_load_timeout)
            except PlaywrightError as e:
                logger.error(f"[browser] navigation failed for {url}: {e}")
                raise NavigationError(url, str(e)) from e

            async with httpx.AsyncClient(
                timeout=settings.fetch_timeout,
                follow_redirects=True,
                headers={"User-Agent": settings.user_agent},
            ) as http:
                yield PageSession(page, http, settings)
        finally:
            await browser.close()
