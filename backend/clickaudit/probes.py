"""
Single-element probes: positioning, link targets, new-window behaviour,
ARIA visibility and figure context. All run over an ElementSnapshot.
"""

from typing import Iterable
from urllib.parse import urljoin, urlsplit

from clickaudit.dom import Ancestor, DomNode, ElementSnapshot, iter_descendants, parents_of
from clickaudit.models import (
    HREF_NO_URL,
    HREF_NOT_APPLICABLE,
    HREF_UNRESOLVED,
    NOT_APPLICABLE,
    FigureContext,
    NestedAriaElement,
)
from clickaudit.text_resolvers import has_pseudo_content

WINDOW_OPEN_CALL = "window.open"
PRESENTATION_ROLES = ("presentation", "none")


def is_button(tag: str, role: str | None) -> bool:
    return tag == "button" or role == "button"


def is_absolutely_positioned(root: DomNode) -> bool:
    if (root.style.get("position") or "") == "absolute":
        return True
    for which in ("before", "after"):
        style = root.pseudo.get(which) or {}
        if style.get("position") == "absolute" and has_pseudo_content(style.get("content")):
            return True
    return False


def nested_aria_elements(root: DomNode) -> list[NestedAriaElement]:
    """Descendants carrying aria-label or aria-labelledby, in document order."""
    found = []
    for node in iter_descendants(root):
        if node.is_text:
            continue
        label = node.get("aria-label")
        labelled_by = node.get("aria-labelledby")
        if label or labelled_by:
            found.append(NestedAriaElement(tag=node.tag, aria_label=label, aria_labelledby=labelled_by))
    return found


def ancestor_link_href(ancestors: list[Ancestor], max_hops: int = 500) -> str | None:
    for hops, ancestor in enumerate(ancestors):
        if hops >= max_hops:
            break
        if ancestor.tag == "a":
            return ancestor.href or None
    return None


def _calls_window_open(handler: str | None) -> bool:
    return bool(handler) and WINDOW_OPEN_CALL in handler


def opens_new_window_script(root: DomNode) -> bool:
    """onclick on the element or one of its direct children opens a window.

    Only one level of children is scanned.
    """
    if _calls_window_open(root.get("onclick")):
        return True
    return any(
        _calls_window_open(child.get("onclick"))
        for child in root.children
        if not child.is_text
    )


def has_presentation_role(node) -> bool:
    return node.get("role") in PRESENTATION_ROLES


def aria_hidden_effective(chain: Iterable, max_depth: int = 10) -> bool:
    """True once any node in `chain` (self first, then ancestors) has aria-hidden="true".

    The walk stops after `max_depth` parent hops.
    """
    for depth, node in enumerate(chain):
        if depth > max_depth:
            break
        if node.get("aria-hidden") == "true":
            return True
    return False


def ancestry_chain(node: DomNode, snapshot: ElementSnapshot) -> list:
    """`node`, its parents inside the snapshot, then the element's page ancestors."""
    chain = [node, *parents_of(node)]
    return chain + list(snapshot.ancestors)


def figure_context(ancestors: list[Ancestor], root: DomNode | None = None) -> FigureContext:
    """Nearest <figure> around the element (the element itself included)."""
    if root is not None and root.tag == "figure":
        caption = next((n for n in iter_descendants(root) if n.tag == "figcaption"), None)
        return FigureContext(
            in_figure=True,
            has_caption=caption is not None,
            caption_text=caption.text_content().strip() if caption is not None else "",
        )
    for ancestor in ancestors:
        if ancestor.tag == "figure":
            return FigureContext(
                in_figure=True,
                has_caption=ancestor.caption is not None,
                caption_text=(ancestor.caption or "").strip(),
            )
    return FigureContext(in_figure=False)


def resolve_href(tag: str, href: str | None, page_url: str) -> tuple[str, bool | str]:
    """Return (absolute link URL or sentinel, is_internal or "N/A")."""
    if tag != "a":
        return HREF_NO_URL, NOT_APPLICABLE
    if not href or " " in href:
        return HREF_NOT_APPLICABLE, NOT_APPLICABLE
    try:
        resolved = urljoin(page_url, href.strip())
        parts = urlsplit(resolved)
        parts.port  # raises ValueError on a malformed port
        if parts.scheme in ("http", "https") and not parts.hostname:
            raise ValueError(f"no host in {resolved!r}")
        page_host = urlsplit(page_url).hostname
    except ValueError:
        return HREF_UNRESOLVED, NOT_APPLICABLE
    return resolved, parts.hostname == page_host
