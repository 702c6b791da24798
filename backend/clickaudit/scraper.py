"""
Request-level orchestration.

    URL ──> normalize ──> open page ──> (cookie banner) ──> walk ──> ExtractionResult

Request-level problems (bad URL) are raised before a browser is launched;
page-level problems raise NavigationError / ExtractionError. Everything
below the page level is absorbed into the records.
"""

import asyncio
import logging
from datetime import datetime, timezone

from playwright.async_api import Error as PlaywrightError

from clickaudit.browser import normalize_url, open_session
from clickaudit.config import get_settings
from clickaudit.cookies import handle_cookie_consent
from clickaudit.errors import ExtractionError, NavigationError
from clickaudit.models import ExtractionResult, SvgInventory, SvgRecord
from clickaudit.svg_preview import (
    ensure_fixed_color,
    render_svg_preview,
    resolve_use_svg,
    sanitize_svg,
    title_and_desc,
    use_hrefs,
)
from clickaudit.walker import walk_page

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def extract_interactive_elements(url: str, handle_cookies: bool = False,
                                       cookie_text: str = "", settings=None) -> ExtractionResult:
    """
    Load `url` and build the inventory of its clickable elements.
    """
    settings = settings or get_settings()
    target = normalize_url(url)
    logger.info(f"[scrape] extracting interactive elements from {target}")

    async with open_session(target, settings) as session:
        cookie_handled = False
        if handle_cookies:
            cookie_handled = await handle_cookie_consent(
                session.page,
                custom_text=cookie_text,
                extra_phrases=settings.cookie_phrases,
                settle_ms=settings.cookie_settle_ms,
            )

        try:
            elements = await walk_page(session, settings)
            title = await session.title()
        except PlaywrightError as e:
            logger.error(f"[scrape] walk failed on {target}: {e}")
            raise ExtractionError(f"Extraction failed on {target}: {e}") from e

        if session.crashed:
            raise NavigationError(target, "page crashed during extraction")

        logger.info(f"[scrape] {len(elements)} elements from {session.url}")
        return ExtractionResult(
            original_url=target,
            final_url=session.url,
            title=title,
            timestamp=_timestamp(),
            cookie_handled=cookie_handled,
            elements=elements,
        )


# ---------------------------------------------------------------------------
# Page-wide SVG inventory
# ---------------------------------------------------------------------------

async def build_svg_record(index: int, item: dict, session, settings) -> SvgRecord:
    html = item.get("html") or ""
    coloured = item.get("coloured") or html
    try:
        hrefs = use_hrefs(coloured)
        processed = sanitize_svg(coloured)
        if hrefs:
            resolved = await resolve_use_svg(coloured, session.markup_by_id, session.fetch_text, session.url)
            if resolved:
                processed = sanitize_svg(resolved)
        processed = ensure_fixed_color(processed, settings.svg_fixed_color)

        preview = None
        if settings.render_previews:
            preview = await asyncio.to_thread(
                render_svg_preview,
                processed,
                settings.svg_fixed_color,
                settings.svg_fit_width,
                settings.svg_extreme_size,
            )

        return SvgRecord(
            id=index,
            original_html=html,
            processed_svg=processed,
            title_desc=title_and_desc(html),
            aria_label=item.get("ariaLabel") or "",
            aria_labelledby=item.get("ariaLabelledBy") or "",
            aria_describedby=item.get("ariaDescribedBy") or "",
            has_aria_hidden=bool(item.get("ariaHidden")),
            has_role_presentation=item.get("role") in ("presentation", "none"),
            has_use_elements=bool(hrefs),
            use_hrefs=hrefs,
            width=item.get("width") or "auto",
            height=item.get("height") or "auto",
            view_box=item.get("viewBox") or "",
            class_name=item.get("className") or "",
            style=item.get("style") or "",
            preview_bitmap=preview,
        )
    except Exception as e:
        logger.warning(f"[scrape] svg {index} failed: {e}")
        return SvgRecord(id=index, original_html=html, error=str(e))


async def extract_page_svgs(url: str, settings=None) -> SvgInventory:
    settings = settings or get_settings()
    target = normalize_url(url)
    logger.info(f"[scrape] extracting svgs from {target}")

    async with open_session(target, settings) as session:
        try:
            items = await session.svg_elements()
        except PlaywrightError as e:
            logger.error(f"[scrape] svg collection failed on {target}: {e}")
            raise ExtractionError(f"SVG extraction failed on {target}: {e}") from e

        svgs = [await build_svg_record(i, item, session, settings) for i, item in enumerate(items)]

    return SvgInventory(url=target, timestamp=_timestamp(), svg_count=len(svgs), svgs=svgs)
