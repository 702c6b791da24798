"""
Text sources for an element's accessible name.

Each resolver looks at one source only and returns a whitespace-collapsed
string, or "" when the source is absent.
"""

import re
from typing import Awaitable, Callable

from clickaudit.dom import DomNode, LIGHT, SHADOW, SLOT, iter_descendants, iter_nodes
from clickaudit.models import ARIA_MISMATCH

# <svg> titles and <style> rules are not part of the visible label
DIRECT_TEXT_EXCLUDES = frozenset({"svg", "style"})
SHADOW_TEXT_EXCLUDES = frozenset({"style"})
SLOT_TEXT_EXCLUDES = frozenset({"style"})

_WS = re.compile(r"\s+")
_EMPTY_CONTENT = {"", "none", "normal", '""', "''"}


def collapse_whitespace(text: str | None) -> str:
    if not text:
        return ""
    return _WS.sub(" ", text).strip()


def collect_text(root: DomNode, exclude=DIRECT_TEXT_EXCLUDES, mode: str = LIGHT) -> str:
    """Join every non-empty text node under `root` with single spaces.

    Elements whose tag is in `exclude` are skipped together with their subtree.
    `mode` picks which children are followed (see dom.child_nodes).
    """
    def skip(node):
        return not node.is_text and node.tag in exclude

    parts = []
    for node in iter_nodes(root, mode, skip=skip):
        if node.is_text:
            piece = node.text.strip()
            if piece:
                parts.append(piece)
    return collapse_whitespace(" ".join(parts))


def direct_text(root: DomNode, exclude=DIRECT_TEXT_EXCLUDES) -> str:
    return collect_text(root, exclude=exclude, mode=LIGHT)


def has_shadow_root(root: DomNode) -> bool:
    """True if the element or any light-DOM descendant hosts a shadow root."""
    return any(n.shadow is not None for n in iter_nodes(root, LIGHT) if not n.is_text)


def shadow_text(root: DomNode, exclude=SHADOW_TEXT_EXCLUDES) -> str:
    """Text rendered through shadow roots.

    Hosts contribute their shadow children in place of their light children.
    Only `shadowRoot` on the element and its descendants is looked at; an
    element that itself lives inside another component's shadow tree is not
    detected here.
    """
    if not has_shadow_root(root):
        return ""
    return collect_text(root, exclude=exclude, mode=SHADOW)


def contains_slot(root: DomNode) -> bool:
    return any(n.tag == "slot" for n in iter_descendants(root, LIGHT))


def slot_text(root: DomNode, exclude=SLOT_TEXT_EXCLUDES) -> str:
    """Text with every <slot> replaced by its (flattened) assigned nodes."""
    if not contains_slot(root):
        return ""
    return collect_text(root, exclude=exclude, mode=SLOT)


def has_pseudo_content(content: str | None) -> bool:
    return content is not None and content.strip() not in _EMPTY_CONTENT


def pseudo_text(root: DomNode) -> str:
    """Computed `content` of ::before and ::after, quotes stripped."""
    parts = []
    for which in ("before", "after"):
        style = root.pseudo.get(which) or {}
        content = style.get("content")
        if not has_pseudo_content(content):
            continue
        content = re.sub(r"^[\"']|[\"']$", "", content.strip())
        if content.strip():
            parts.append(content.strip())
    return " ".join(parts)


async def resolve_aria_references(
    value: str | None,
    lookup: Callable[[str], Awaitable[str | None]],
) -> str:
    """Dereference an aria-labelledby / aria-describedby id list.

    `lookup(id)` returns the textContent of the element with that id in the
    document, or None when there is none. Missing ids are reported inline
    with a mismatch marker instead of failing.
    """
    if not value:
        return ""

    fragments = []
    for ref in value.split():
        text = await lookup(ref)
        if text is None:
            fragments.append(ARIA_MISMATCH.format(id=ref))
        else:
            fragments.append(collapse_whitespace(text))
    return " ".join(f for f in fragments if f.strip())
