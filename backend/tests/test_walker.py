from clickaudit.walker import CANDIDATE_SELECTOR, KindCounters, walk_page
from helpers import FakeSession, el, raw_snapshot, text


def link(label, href="/x"):
    return ("a", None, raw_snapshot(el("a", text(label), attrs={"href": href})))


def button(label):
    return ("button", None, raw_snapshot(el("button", text(label))))


def role_button(label):
    return ("div", "button", raw_snapshot(el("div", text(label), attrs={"role": "button"})))


def test_selector_covers_links_buttons_and_roles():
    for part in ("a", "button", '[role="link"]', '[role="button"]'):
        assert part in CANDIDATE_SELECTOR


def test_counters_advance_independently():
    counters = KindCounters()
    kind_id, counters = counters.advance(True)
    assert kind_id == 1
    kind_id, counters = counters.advance(False)
    assert kind_id == 1
    kind_id, counters = counters.advance(True)
    assert kind_id == 2
    assert counters == KindCounters(buttons=2, links=1)


async def test_walk_assigns_sequence_and_kind_ids(settings):
    session = FakeSession(elements=[
        link("Home"), button("Menu"), link("About"), role_button("Close"), link("Blog"),
    ])
    records = await walk_page(session, settings)

    assert [r.sequence_id for r in records] == [0, 1, 2, 3, 4]
    assert [r.accessible_text for r in records] == ["Home", "Menu", "About", "Close", "Blog"]
    assert [(r.is_button, r.kind_id) for r in records] == [
        (False, 1), (True, 1), (False, 2), (True, 2), (False, 3),
    ]


async def test_failed_element_keeps_its_place(settings):
    session = FakeSession(elements=[
        link("Home"),
        ("a", None, RuntimeError("Element is not attached to the DOM")),
        button("Menu"),
        link("About"),
    ])
    records = await walk_page(session, settings)

    assert [r.sequence_id for r in records] == [0, 1, 2, 3]
    broken = records[1]
    assert broken.tag == "a" and broken.kind_id == 2
    assert broken.extraction_errors == ["element"]
    assert records[3].kind_id == 3


async def test_unreadable_kind_counts_as_link(settings):
    session = FakeSession(elements=[
        (RuntimeError("gone"), None, RuntimeError("gone")),
        button("Ok"),
    ])
    records = await walk_page(session, settings)
    assert records[0].tag == "" and records[0].kind_id == 1
    assert records[1].kind_id == 1 and records[1].is_button


async def test_empty_page(settings):
    assert await walk_page(FakeSession(), settings) == []
