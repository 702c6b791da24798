"""
SVG preview pipeline.

    markup ──> resolve <use> ──> sanitize ──> fixed colour ──> rasterize (PNG)

Every step is best-effort: a step that can't parse its input hands the
input through unchanged, and a render that fails twice yields no preview.
"""

import copy
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable
from urllib.parse import urljoin

from lxml import etree

from clickaudit.image_utils import to_data_uri

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

SHAPE_TAGS = {"path", "rect", "circle", "polygon", "ellipse", "line", "polyline"}
STROKE_ONLY_TAGS = {"line", "polyline"}
AMBIGUOUS_COLORS = {"currentcolor", "inherit", "unset"}

# Elements / attributes dropped for the low-fidelity second render attempt
SIMPLIFY_DROP_TAGS = {"style", "filter", "mask", "clippath", "pattern", "image", "foreignobject", "script"}
SIMPLIFY_DROP_ATTRS = {"filter", "mask", "clip-path", "style", "class"}

SYNTHESIZED_EDGE = 100  # px, longest edge when only a viewBox is known
DEFAULT_USE_SIZE = "24"

_NS_VARIANTS = re.compile(r"""xmlns=["']https?://(www\.)?w3\.org/2000/svg["']""")
_SVG_OPEN = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_STYLE_COLOR = re.compile(r"\b(fill|stroke)\s*:\s*(currentcolor|inherit|unset)\b", re.IGNORECASE)
_NUMBER = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(px)?\s*$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _local(el) -> str:
    if not isinstance(el.tag, str):
        return ""  # comment / processing instruction
    return etree.QName(el).localname.lower()


def _parse(markup: str | bytes | None):
    """Parse SVG/XML leniently. Returns the root element or None."""
    if not markup:
        return None
    data = markup.encode("utf-8") if isinstance(markup, str) else markup
    parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(data, parser)
    except (etree.XMLSyntaxError, ValueError):
        return None


def _fmt(value: float) -> str:
    return f"{value:g}"


def parse_view_box(value: str | None) -> tuple[float, float] | None:
    """(width, height) of a viewBox attribute, or None if unusable."""
    if not value:
        return None
    parts = re.split(r"[\s,]+", value.strip())
    if len(parts) != 4:
        return None
    try:
        width, height = float(parts[2]), float(parts[3])
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return width, height


def _length(value: str | None) -> float | None:
    if not value:
        return None
    match = _NUMBER.match(value)
    if not match:
        return None
    number = float(match.group(1))
    return number if number > 0 else None


def _declare_namespaces(source: str) -> str:
    """Normalize the SVG namespace URL and add missing xmlns / xmlns:xlink declarations."""
    cleaned = _NS_VARIANTS.sub(f'xmlns="{SVG_NS}"', source)
    opening = _SVG_OPEN.search(cleaned)
    if opening and "xmlns=" not in opening.group(0):
        cleaned = cleaned[:opening.start()] + f'<svg xmlns="{SVG_NS}"' + cleaned[opening.start() + 4:]
    if "xlink:" in cleaned and "xmlns:xlink" not in cleaned:
        logger.debug("[svg] xlink used without declaration, adding xmlns:xlink")
        cleaned = re.sub(r"<svg\b", f'<svg xmlns:xlink="{XLINK_NS}"', cleaned, count=1, flags=re.IGNORECASE)
    return cleaned


# ---------------------------------------------------------------------------
# Sanitize
# ---------------------------------------------------------------------------

def sanitize_svg(source: str) -> str:
    """
    Patch common problems that stop an SVG from rendering standalone:
    wrong/missing namespaces, preserveAspectRatio="none", 100% sizes,
    <foreignObject> content and missing pixel dimensions.
    Returns the original source if the markup can't be parsed.
    """
    if not source or not isinstance(source, str):
        return ""
    try:
        cleaned = _declare_namespaces(source)
        root = _parse(cleaned)
        if root is None or _local(root) != "svg":
            logger.debug("[svg] could not parse svg for sanitizing, keeping original")
            return source

        if root.get("preserveAspectRatio") == "none":
            del root.attrib["preserveAspectRatio"]

        view_box = parse_view_box(root.get("viewBox"))
        for attr, index in (("width", 0), ("height", 1)):
            if (root.get(attr) or "").strip() == "100%":
                if view_box:
                    root.set(attr, _fmt(view_box[index]))
                else:
                    del root.attrib[attr]

        for el in [e for e in root.iter() if _local(e) == "foreignobject"]:
            el.getparent().remove(el)

        width, height = _length(root.get("width")), _length(root.get("height"))
        if view_box and not width and not height:
            scale = SYNTHESIZED_EDGE / max(view_box)
            root.set("width", _fmt(round(view_box[0] * scale, 2)))
            root.set("height", _fmt(round(view_box[1] * scale, 2)))
        elif view_box and width and not height:
            root.set("height", _fmt(round(width * view_box[1] / view_box[0], 2)))
        elif view_box and height and not width:
            root.set("width", _fmt(round(height * view_box[0] / view_box[1], 2)))

        return etree.tostring(root, encoding="unicode")
    except Exception as e:
        logger.warning(f"[svg] sanitize failed, keeping original: {e}")
        return source


# ---------------------------------------------------------------------------
# Fixed colour
# ---------------------------------------------------------------------------

def ensure_fixed_color(svg: str, fixed_color: str = "#888888") -> str:
    """
    Replace currentColor / inherit / unset (and missing) fills with one
    visible colour so the shape renders outside its page. Shapes with
    fill="none" get a visible stroke instead. Running it twice changes nothing.
    """
    root = _parse(svg)
    if root is None:
        return svg

    for el in root.iter():
        tag = _local(el)
        if tag not in SHAPE_TAGS:
            continue

        fill = (el.get("fill") or "").strip()
        stroke = (el.get("stroke") or "").strip()
        fill_missing = not fill

        if fill_missing or fill.lower() in AMBIGUOUS_COLORS:
            el.set("fill", fixed_color)

        if stroke.lower() in AMBIGUOUS_COLORS:
            el.set("stroke", fixed_color)
        elif not stroke:
            fill_none = fill.lower() == "none"
            if fill_none or (fill_missing and not el.get("class")) or tag in STROKE_ONLY_TAGS:
                el.set("stroke", fixed_color)

        style = el.get("style")
        if style and _STYLE_COLOR.search(style):
            el.set("style", _STYLE_COLOR.sub(lambda m: f"{m.group(1)}: {fixed_color}", style))

    return etree.tostring(root, encoding="unicode")


# ---------------------------------------------------------------------------
# <use> / <symbol>
# ---------------------------------------------------------------------------

def use_hrefs(svg: str) -> list[str]:
    root = _parse(_declare_namespaces(svg)) if svg else None
    if root is None:
        return []
    hrefs = []
    for el in root.iter():
        if _local(el) == "use":
            href = el.get(f"{{{XLINK_NS}}}href") or el.get("href")
            if href:
                hrefs.append(href)
    return hrefs


def title_and_desc(svg: str) -> str:
    root = _parse(_declare_namespaces(svg)) if svg else None
    if root is None:
        return ""
    parts = []
    for wanted in ("title", "desc"):
        child = next((c for c in root.iter() if _local(c) == wanted), None)
        if child is not None:
            text = " ".join("".join(child.itertext()).split())
            if text:
                parts.append(text)
    return " - ".join(parts)


def _parse_fragment(markup: str):
    """Parse an element's outerHTML taken from an HTML document (no xmlns on it)."""
    wrapped = f'<svg xmlns="{SVG_NS}" xmlns:xlink="{XLINK_NS}">{markup}</svg>'
    root = _parse(wrapped)
    if root is None:
        return None
    return next((c for c in root if isinstance(c.tag, str)), None)


def _find_by_id(root, element_id: str):
    for el in root.iter():
        if isinstance(el.tag, str) and el.get("id") == element_id:
            return el
    return None


def build_standalone_svg(original, referenced) -> str:
    """A fresh <svg> with the original's attributes and the referenced content."""
    svg = etree.Element(f"{{{SVG_NS}}}svg", nsmap={None: SVG_NS, "xlink": XLINK_NS})
    for name, value in original.attrib.items():
        svg.set(name, value)
    if not svg.get("width"):
        svg.set("width", DEFAULT_USE_SIZE)
    if not svg.get("height"):
        svg.set("height", DEFAULT_USE_SIZE)

    if _local(referenced) == "symbol":
        view_box = referenced.get("viewBox")
        if view_box:
            svg.set("viewBox", view_box)
        for child in referenced:
            svg.append(copy.deepcopy(child))
    else:
        svg.append(copy.deepcopy(referenced))
    return etree.tostring(svg, encoding="unicode")


async def resolve_use_svg(
    markup: str,
    lookup_fragment: Callable[[str], Awaitable[str | None]],
    fetch_text: Callable[[str], Awaitable[str | None]],
    base_url: str,
) -> str | None:
    """
    Inline the target of the svg's <use> element.

    `#id` references are looked up in the page via `lookup_fragment(id)`
    (returns the element's outerHTML); `file.svg#id` references are fetched
    with `fetch_text(absolute_url)`. Returns None when the svg has no <use>
    or the reference can't be resolved.
    """
    root = _parse(_declare_namespaces(markup)) if markup else None
    if root is None:
        return None
    use = next((el for el in root.iter() if _local(el) == "use"), None)
    if use is None:
        return None

    href = use.get(f"{{{XLINK_NS}}}href") or use.get("href")
    if not href or "#" not in href:
        return None
    url, _, fragment = href.partition("#")
    if not fragment:
        return None

    if not url:
        referenced_markup = await lookup_fragment(fragment)
        if not referenced_markup:
            logger.debug(f"[svg] <use> target #{fragment} not found in page")
            return None
        referenced = _parse_fragment(referenced_markup)
    else:
        full_url = urljoin(base_url, url)
        document = await fetch_text(full_url)
        external = _parse(document) if document else None
        if external is None:
            logger.debug(f"[svg] could not load sprite {full_url}")
            return None
        referenced = _find_by_id(external, fragment)

    if referenced is None:
        logger.debug(f"[svg] referenced element not found: {href}")
        return None
    return build_standalone_svg(root, referenced)


# ---------------------------------------------------------------------------
# Rasterize
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FitConfig:
    mode: str  # "width" or "height"
    size: int


def svg_dimensions(svg: str) -> tuple[float, float] | None:
    root = _parse(svg)
    if root is None:
        return None
    view_box = parse_view_box(root.get("viewBox"))
    if view_box:
        return view_box
    width, height = _length(root.get("width")), _length(root.get("height"))
    if width and height:
        return width, height
    return None


def choose_fit(dimensions: tuple[float, float] | None, fit_width: int = 200,
               extreme_size: int = 40) -> FitConfig:
    """Fit to width by default; very wide or very tall art gets a small fixed edge."""
    if not dimensions:
        return FitConfig("width", fit_width)
    ratio = dimensions[0] / dimensions[1]
    if ratio > 5:
        return FitConfig("height", extreme_size)
    if ratio < 0.2:
        return FitConfig("width", extreme_size)
    return FitConfig("width", fit_width)


def rasterize(svg_source: str, fit: FitConfig) -> bytes:
    """Render SVG to PNG bytes. Raises on markup the renderer rejects."""
    import cairosvg

    size = {"output_width": fit.size} if fit.mode == "width" else {"output_height": fit.size}
    return cairosvg.svg2png(bytestring=svg_source.encode("utf-8"), unsafe=False, **size)


def simplify_svg(svg: str) -> str:
    """Drop styling, filters, masks and embedded content for a plainer render."""
    root = _parse(svg)
    if root is None:
        return svg
    for el in [e for e in root.iter() if _local(e) in SIMPLIFY_DROP_TAGS]:
        parent = el.getparent()
        if parent is not None:
            parent.remove(el)
    for el in root.iter():
        if not isinstance(el.tag, str):
            continue
        for attr in SIMPLIFY_DROP_ATTRS:
            el.attrib.pop(attr, None)
    return etree.tostring(root, encoding="unicode")


def prepare_svg(svg_source: str, fixed_color: str = "#888888") -> str:
    return ensure_fixed_color(sanitize_svg(svg_source), fixed_color)


def render_svg_preview(svg_source: str, fixed_color: str = "#888888",
                       fit_width: int = 200, extreme_size: int = 40) -> str | None:
    """
    Sanitize, recolour and rasterize an SVG into a PNG data URI.
    One retry with a simplified SVG; None if that fails too.
    """
    if not svg_source:
        return None
    prepared = prepare_svg(svg_source, fixed_color)
    fit = choose_fit(svg_dimensions(prepared), fit_width, extreme_size)

    try:
        png = rasterize(prepared, fit)
    except Exception as e:
        logger.debug(f"[svg] render failed ({e}), retrying simplified")
        try:
            png = rasterize(simplify_svg(prepared), FitConfig(fit.mode, min(fit.size, 100)))
        except Exception as e2:
            logger.warning(f"[svg] render failed after retry: {e2}")
            return None
    return to_data_uri(png, "image/png")
