from clickaudit.dom import (
    LIGHT,
    PIERCE,
    SHADOW,
    SLOT,
    iter_descendants,
    iter_nodes,
    parents_of,
    snapshot_from_dict,
)
from helpers import el, raw_snapshot, text


def tags(nodes):
    return [n.tag if not n.is_text else n.text for n in nodes]


def sample():
    return snapshot_from_dict(raw_snapshot(
        el(
            "a",
            text("one"),
            el("x-host", el("i", text("light")), shadow=[el("b", text("shadow"))]),
            el("slot", text("fallback"), assigned=[text("projected")]),
            attrs={"href": "/x", "data-empty": None},
        ),
        ancestors=[{"tag": "LI", "attrs": {"aria-hidden": None, "role": "listitem"}}],
        insideShadowTree=True,
        truncated=False,
    ))


def test_snapshot_from_dict():
    snapshot = sample()
    assert snapshot.root.attrs == {"href": "/x"}
    assert snapshot.ancestors[0].tag == "li"
    assert snapshot.ancestors[0].attrs == {"role": "listitem"}
    assert snapshot.inside_shadow_tree is True


def test_parent_links():
    root = sample().root
    italic = root.children[1].children[0]
    assert [p.tag for p in parents_of(italic)] == ["x-host", "a"]


def test_traversal_modes():
    root = sample().root
    assert tags(iter_nodes(root, LIGHT)) == ["a", "one", "x-host", "i", "light", "slot", "fallback"]
    assert tags(iter_nodes(root, SHADOW)) == ["a", "one", "x-host", "b", "shadow", "slot", "fallback"]
    assert tags(iter_nodes(root, SLOT)) == ["a", "one", "x-host", "i", "light", "slot", "projected"]
    assert tags(iter_descendants(root, PIERCE)) == [
        "one", "x-host", "i", "light", "b", "shadow", "slot", "fallback",
    ]


def test_text_content_is_light_dom_only():
    assert sample().root.text_content() == "onelightfallback"


def test_deep_tree_does_not_recurse():
    raw = text("leaf")
    for _ in range(5000):
        raw = el("span", raw)
    root = snapshot_from_dict(raw_snapshot(el("a", raw))).root
    assert sum(1 for _ in iter_nodes(root)) == 5002
