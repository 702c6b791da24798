"""
Image content of a clickable element: nested <img> and <svg> plus the
element's own CSS background image.

Descriptors come back in a fixed order: every <img>, then every <svg>
(image_id counts across both, from 1), then the background if there is one.
Preview failures only ever null the preview.
"""

import asyncio
import logging
import re
from urllib.parse import urljoin

from clickaudit.dom import PIERCE, DomNode, ElementSnapshot, iter_descendants
from clickaudit.image_utils import make_thumbnail, to_data_uri
from clickaudit.models import (
    ALT_DECORATIVE,
    ALT_MISSING,
    BackgroundDescriptor,
    ImgDescriptor,
    SvgDescriptor,
)
from clickaudit.probes import aria_hidden_effective, ancestry_chain, has_presentation_role
from clickaudit.svg_preview import render_svg_preview, resolve_use_svg, use_hrefs
from clickaudit.text_resolvers import collapse_whitespace, resolve_aria_references

logger = logging.getLogger(__name__)

_CSS_URL = re.compile(r"""url\(\s*(['"]?)(.*?)\1\s*\)""")


def alt_text(node: DomNode) -> str:
    alt = node.get("alt")
    if alt is None:
        return ALT_MISSING
    if not alt.strip():
        return ALT_DECORATIVE
    return alt


def svg_title_or_desc(svg: DomNode) -> str:
    """First <title> and <desc> inside the svg, joined with " - " when both exist."""
    parts = []
    for wanted in ("title", "desc"):
        child = next((n for n in iter_descendants(svg) if n.tag == wanted), None)
        if child is not None:
            text = collapse_whitespace(child.text_content())
            if text:
                parts.append(text)
    return " - ".join(parts)


def background_url(background_image: str | None) -> str | None:
    """First url(...) in a computed background-image value."""
    if not background_image or background_image == "none":
        return None
    match = _CSS_URL.search(background_image)
    if not match or not match.group(2):
        return None
    return match.group(2)


def _is_svg(data: bytes, content_type: str) -> bool:
    if "svg" in (content_type or "").lower():
        return True
    head = data[:256].lstrip().lower()
    return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in data[:1024].lower())


def preview_from_bytes(data: bytes, content_type: str, settings) -> str | None:
    """Self-contained preview for fetched image bytes: PNG for SVG, JPEG thumbnail otherwise."""
    if _is_svg(data, content_type):
        return render_svg_preview(
            data.decode("utf-8", errors="replace"),
            fixed_color=settings.svg_fixed_color,
            fit_width=settings.svg_fit_width,
            extreme_size=settings.svg_extreme_size,
        )
    thumb = make_thumbnail(data, settings.preview_max_size, settings.preview_max_size)
    return to_data_uri(thumb, "image/jpeg")


def absolute_url(url: str | None, base: str) -> str | None:
    """`url` resolved against `base`; the raw value when it can't be parsed."""
    if not url or url.startswith("data:"):
        return url
    try:
        return urljoin(base, url)
    except ValueError as e:
        logger.debug(f"[images] unresolvable url {url[:80]}: {e}")
        return url


async def preview_from_url(url: str | None, session, settings) -> str | None:
    if not url or not settings.render_previews:
        return None
    try:
        fetched = await session.fetch(absolute_url(url, session.url))
        if fetched is None:
            return None
        data, content_type = fetched
        return await asyncio.to_thread(preview_from_bytes, data, content_type, settings)
    except Exception as e:
        logger.debug(f"[images] preview failed for {url[:80]}: {e}")
        return None


async def svg_preview(svg: DomNode, session, settings) -> str | None:
    if not settings.render_previews or not svg.markup:
        return None
    try:
        source = svg.markup
        if use_hrefs(source):
            resolved = await resolve_use_svg(source, session.markup_by_id, session.fetch_text, session.url)
            if resolved:
                source = resolved
        return await asyncio.to_thread(
            render_svg_preview,
            source,
            settings.svg_fixed_color,
            settings.svg_fit_width,
            settings.svg_extreme_size,
        )
    except Exception as e:
        logger.debug(f"[images] svg preview failed: {e}")
        return None


async def aria_text(value: str | None, session) -> str:
    try:
        return await resolve_aria_references(value, session.text_by_id)
    except Exception as e:
        logger.warning(f"[images] aria reference lookup failed for {value!r}: {e}")
        return ""


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------

async def describe_img(node: DomNode, snapshot: ElementSnapshot, image_id: int,
                       session, settings) -> ImgDescriptor:
    source = absolute_url(node.src or node.get("src"), session.url)
    return ImgDescriptor(
        image_id=image_id,
        alt_text=alt_text(node),
        title_text=node.get("title"),
        source_url=source,
        aria_hidden_effective=aria_hidden_effective(
            ancestry_chain(node, snapshot), settings.aria_hidden_max_depth
        ),
        presentation_role=has_presentation_role(node),
        preview_bitmap=await preview_from_url(source, session, settings),
    )


async def describe_svg(node: DomNode, snapshot: ElementSnapshot, image_id: int,
                       session, settings) -> SvgDescriptor:
    return SvgDescriptor(
        image_id=image_id,
        title_or_desc=svg_title_or_desc(node),
        aria_label=node.get("aria-label") or "",
        aria_labelled_by_text=await aria_text(node.get("aria-labelledby"), session),
        aria_described_by_text=await aria_text(node.get("aria-describedby"), session),
        aria_hidden_effective=aria_hidden_effective(
            ancestry_chain(node, snapshot), settings.aria_hidden_max_depth
        ),
        presentation_role=has_presentation_role(node),
        preview_bitmap=await svg_preview(node, session, settings),
    )


async def describe_background(root: DomNode, session, settings) -> BackgroundDescriptor | None:
    raw = background_url(root.style.get("backgroundImage"))
    if not raw:
        return None
    return BackgroundDescriptor(
        source_url=raw,
        preview_bitmap=await preview_from_url(raw, session, settings),
    )


async def analyze_images(snapshot: ElementSnapshot, session, settings) -> list:
    root = snapshot.root
    nested = list(iter_descendants(root, PIERCE))
    imgs = [n for n in nested if n.tag == "img"]
    svgs = [n for n in nested if n.tag == "svg"]
    described = [(describe_img, n) for n in imgs] + [(describe_svg, n) for n in svgs]

    # A descriptor that still fails is dropped on its own; its siblings stay
    descriptors = []
    for image_id, (describe, node) in enumerate(described, start=1):
        try:
            descriptors.append(await describe(node, snapshot, image_id, session, settings))
        except Exception as e:
            logger.warning(f"[images] {node.tag} #{image_id} skipped: {e}")

    try:
        background = await describe_background(root, session, settings)
    except Exception as e:
        logger.warning(f"[images] background skipped: {e}")
        background = None
    if background is not None:
        descriptors.append(background)
    return descriptors
