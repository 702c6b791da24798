"""Builders for snapshot JSON and a page session that never touches a browser."""

from clickaudit.dom import snapshot_from_dict
from clickaudit.models import BoundingBox


def text(value):
    return {"type": "text", "text": value}


def el(tag, *children, attrs=None, **extra):
    node = {"type": "element", "tag": tag, "attrs": attrs or {}, "children": list(children)}
    node.update(extra)
    return node


def raw_snapshot(root, ancestors=None, **extra):
    raw = {"root": root, "ancestors": ancestors or []}
    raw.update(extra)
    return raw


def snap(root, ancestors=None, **extra):
    return snapshot_from_dict(raw_snapshot(root, ancestors, **extra))


class FakeSession:
    """
    Stands in for browser.PageSession.

    `elements` is a list of (tag, role, raw snapshot dict) tuples; a snapshot
    entry that is an Exception is raised when the element is snapshotted.
    """

    def __init__(self, url="https://example.com/", elements=None, ids=None, markup=None,
                 resources=None, box=None):
        self.url = url
        self.elements = elements or []
        self.ids = ids or {}
        self.markup = markup or {}
        self.resources = resources or {}
        self.box = box
        self.crashed = False
        self.fetched = []

    async def title(self):
        return "Example"

    async def query_all(self, selector):
        return list(range(len(self.elements)))

    async def element_kind(self, handle):
        tag, role, _ = self.elements[handle]
        if isinstance(tag, Exception):
            raise tag
        return tag, role

    async def snapshot(self, handle):
        raw = self.elements[handle][2]
        if isinstance(raw, Exception):
            raise raw
        return snapshot_from_dict(raw)

    async def bounding_box(self, handle):
        if self.box is None:
            return None
        return BoundingBox(**self.box)

    async def text_by_id(self, element_id):
        return self.ids.get(element_id)

    async def markup_by_id(self, element_id):
        return self.markup.get(element_id)

    async def fetch(self, url):
        self.fetched.append(url)
        return self.resources.get(url)

    async def fetch_text(self, url):
        fetched = await self.fetch(url)
        if fetched is None:
            return None
        return fetched[0].decode("utf-8")
