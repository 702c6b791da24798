"""
Page walker: visits every clickable element once, in document order.
"""

import logging
from typing import NamedTuple

from clickaudit.aggregator import build_element_record, partial_record
from clickaudit.models import InteractiveElement
from clickaudit.probes import is_button

logger = logging.getLogger(__name__)

CANDIDATE_SELECTOR = 'a, button, [role="link"], [role="button"]'


class KindCounters(NamedTuple):
    """Per-kind visit counts. Immutable; advance() returns the next state."""
    buttons: int = 0
    links: int = 0

    def advance(self, button: bool) -> tuple[int, "KindCounters"]:
        if button:
            kind_id = self.buttons + 1
            return kind_id, self._replace(buttons=kind_id)
        kind_id = self.links + 1
        return kind_id, self._replace(links=kind_id)


async def walk_page(session, settings) -> list[InteractiveElement]:
    handles = await session.query_all(CANDIDATE_SELECTOR)
    logger.info(f"[walker] {len(handles)} clickable elements on {session.url}")

    records = []
    counters = KindCounters()
    for sequence_id, handle in enumerate(handles):
        try:
            tag, role = await session.element_kind(handle)
        except Exception as e:
            logger.warning(f"[walker] element {sequence_id}: could not read tag/role: {e}")
            tag, role = "", None

        button = is_button(tag, role)
        kind_id, counters = counters.advance(button)

        try:
            record = await build_element_record(session, handle, sequence_id, kind_id, settings)
        except Exception as e:
            logger.warning(f"[walker] element {sequence_id} ({tag or '?'}) failed, keeping partial record: {e}")
            record = partial_record(sequence_id, kind_id, tag, button)
        records.append(record)

    buttons, links = counters
    logger.info(f"[walker] done: {buttons} buttons, {links} links")
    return records
