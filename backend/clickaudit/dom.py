"""
In-page element snapshot and the Python node tree built from it.

A single evaluate call per element serializes everything the resolvers need
(subtree, shadow roots, slot assignments, pseudo-element styles, ancestor
chain) into plain JSON. The resolvers and probes then run as ordinary Python
over DomNode, so none of them needs a live browser.
"""

from dataclasses import dataclass, field
from typing import Iterator

# ---------------------------------------------------------------------------
# Snapshot script
# ---------------------------------------------------------------------------

# Copies computed paint (fill, stroke, opacities) onto a clone of the <svg> so
# currentColor and CSS custom properties survive once the markup leaves the page.
SVG_COLOURED_MARKUP_JS = '''function colouredMarkup(svg) {
    try {
        const clone = svg.cloneNode(true);
        const shapes = 'path, circle, rect, ellipse, line, polyline, polygon, text, g';
        const originals = svg.querySelectorAll(shapes);
        const copies = clone.querySelectorAll(shapes);
        if (originals.length !== copies.length) return clone.outerHTML;

        originals.forEach((orig, i) => {
            const copy = copies[i];
            if (!copy) return;
            try {
                const s = window.getComputedStyle(orig);
                const fill = s.getPropertyValue('fill');
                const stroke = s.getPropertyValue('stroke');
                if (fill) copy.setAttribute('fill', fill);
                if (stroke && stroke !== 'none') copy.setAttribute('stroke', stroke);
                for (const name of ['opacity', 'fill-opacity', 'stroke-opacity']) {
                    const value = s.getPropertyValue(name);
                    if (value && value !== '1') copy.setAttribute(name, value);
                }
            } catch (e) {
                // keep the clone's own attributes for this shape
            }
        });
        return clone.outerHTML;
    } catch (e) {
        return svg.outerHTML;
    }
}'''

ELEMENT_SNAPSHOT_JS = '''(el, opts) => {
    ''' + SVG_COLOURED_MARKUP_JS + '''
    let count = 0;

    function pseudo(node, which) {
        try {
            const s = window.getComputedStyle(node, which);
            return { content: s.content, position: s.position };
        } catch (e) {
            return null;
        }
    }

    function snap(node, depth) {
        if (count >= opts.maxNodes || depth > opts.maxDepth) return null;

        if (node.nodeType === Node.TEXT_NODE) {
            count++;
            return { type: 'text', text: node.textContent };
        }
        if (node.nodeType !== Node.ELEMENT_NODE) return null;
        count++;

        const tag = node.tagName.toLowerCase();
        const attrs = {};
        for (const a of node.attributes) attrs[a.name] = a.value;
        const out = { type: 'element', tag: tag, attrs: attrs, children: [] };

        for (const child of node.childNodes) {
            const c = snap(child, depth + 1);
            if (c) out.children.push(c);
        }
        if (node.shadowRoot) {
            out.shadow = [];
            for (const child of node.shadowRoot.childNodes) {
                const c = snap(child, depth + 1);
                if (c) out.shadow.push(c);
            }
        }
        if (tag === 'slot' && typeof node.assignedNodes === 'function') {
            out.assigned = [];
            for (const child of node.assignedNodes({ flatten: true })) {
                const c = snap(child, depth + 1);
                if (c) out.assigned.push(c);
            }
        }
        if (tag === 'svg') out.markup = colouredMarkup(node);
        if (tag === 'img') out.src = node.currentSrc || node.src || null;
        return out;
    }

    const root = snap(el, 0) || { type: 'element', tag: el.tagName.toLowerCase(), attrs: {}, children: [] };
    const style = window.getComputedStyle(el);
    root.style = { position: style.position, backgroundImage: style.backgroundImage };
    root.pseudo = { before: pseudo(el, '::before'), after: pseudo(el, '::after') };

    const ancestors = [];
    let current = el.parentElement;
    while (current && ancestors.length < opts.maxAncestors) {
        const tag = current.tagName.toLowerCase();
        const entry = {
            tag: tag,
            attrs: {
                'aria-hidden': current.getAttribute('aria-hidden'),
                'role': current.getAttribute('role'),
            },
        };
        if (tag === 'a') entry.href = current.href;
        if (tag === 'figure') {
            const caption = current.querySelector('figcaption');
            entry.caption = caption ? caption.textContent : null;
        }
        ancestors.push(entry);
        current = current.parentElement;
    }

    return {
        root: root,
        ancestors: ancestors,
        insideShadowTree: el.getRootNode() instanceof ShadowRoot,
        truncated: count >= opts.maxNodes,
    };
}'''


# ---------------------------------------------------------------------------
# Node tree
# ---------------------------------------------------------------------------

@dataclass
class DomNode:
    tag: str | None  # None for text nodes
    attrs: dict = field(default_factory=dict)
    text: str = ""
    children: list["DomNode"] = field(default_factory=list)
    shadow: list["DomNode"] | None = None
    assigned: list["DomNode"] | None = None
    markup: str | None = None
    src: str | None = None
    style: dict = field(default_factory=dict)
    pseudo: dict = field(default_factory=dict)
    parent: "DomNode | None" = field(default=None, repr=False, compare=False)

    @property
    def is_text(self) -> bool:
        return self.tag is None

    def get(self, name: str):
        return self.attrs.get(name)

    def text_content(self) -> str:
        """Concatenated light-DOM text, like Node.textContent."""
        return "".join(n.text for n in iter_nodes(self) if n.is_text)


@dataclass
class Ancestor:
    tag: str
    attrs: dict = field(default_factory=dict)
    href: str | None = None
    caption: str | None = None

    def get(self, name: str):
        return self.attrs.get(name)


@dataclass
class ElementSnapshot:
    root: DomNode
    ancestors: list[Ancestor]
    inside_shadow_tree: bool = False
    truncated: bool = False


def _make(raw: dict, parent: DomNode | None) -> DomNode:
    if raw.get("type") == "text":
        return DomNode(tag=None, text=raw.get("text") or "", parent=parent)
    return DomNode(
        tag=(raw.get("tag") or "").lower(),
        attrs={k: v for k, v in (raw.get("attrs") or {}).items() if v is not None},
        markup=raw.get("markup"),
        src=raw.get("src"),
        style=raw.get("style") or {},
        pseudo=raw.get("pseudo") or {},
        parent=parent,
    )


def node_from_dict(raw: dict) -> DomNode:
    """Build a DomNode tree (with parent links) from the snapshot JSON."""
    root = _make(raw, None)
    stack = [(root, raw)]
    while stack:
        node, data = stack.pop()
        if node.is_text:
            continue
        for key in ("children", "shadow", "assigned"):
            items = data.get(key)
            if items is None:
                continue
            built = [_make(child, node) for child in items]
            setattr(node, key, built)
            stack.extend(zip(built, items))
    return root


def snapshot_from_dict(raw: dict) -> ElementSnapshot:
    ancestors = [
        Ancestor(
            tag=(a.get("tag") or "").lower(),
            attrs={k: v for k, v in (a.get("attrs") or {}).items() if v is not None},
            href=a.get("href"),
            caption=a.get("caption"),
        )
        for a in raw.get("ancestors") or []
    ]
    return ElementSnapshot(
        root=node_from_dict(raw.get("root") or {"type": "element", "tag": ""}),
        ancestors=ancestors,
        inside_shadow_tree=bool(raw.get("insideShadowTree")),
        truncated=bool(raw.get("truncated")),
    )


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

# Which child list a traversal follows:
#   light  - regular childNodes only
#   slot   - a <slot> contributes its assigned nodes instead of its fallback children
#   shadow - a shadow host contributes its shadow root children instead of its light children
#   pierce - light children plus shadow root children (what Playwright's element.$$ sees)
LIGHT = "light"
SLOT = "slot"
SHADOW = "shadow"
PIERCE = "pierce"


def child_nodes(node: DomNode, mode: str = LIGHT) -> list[DomNode]:
    if mode == SLOT and node.tag == "slot" and node.assigned is not None:
        return node.assigned
    if mode == SHADOW and node.shadow is not None:
        return node.shadow
    if mode == PIERCE and node.shadow:
        return node.children + node.shadow
    return node.children


def iter_nodes(root: DomNode, mode: str = LIGHT, skip=None) -> Iterator[DomNode]:
    """Pre-order walk with an explicit stack.

    `skip(node)` returning True drops that node and its whole subtree.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        if skip is not None and skip(node):
            continue
        yield node
        if not node.is_text:
            stack.extend(reversed(child_nodes(node, mode)))


def iter_descendants(root: DomNode, mode: str = LIGHT) -> Iterator[DomNode]:
    it = iter_nodes(root, mode)
    next(it, None)
    return it


def parents_of(node: DomNode) -> Iterator[DomNode]:
    current = node.parent
    while current is not None:
        yield current
        current = current.parent
