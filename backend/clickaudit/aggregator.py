"""
Element classifier & aggregator.

Runs every text resolver and probe over one element's snapshot and folds the
results into an InteractiveElement. A source that fails is defaulted and its
name recorded in `extraction_errors`; only a failed snapshot aborts the record.
"""

import inspect
import logging

from clickaudit.image_analyzer import analyze_images
from clickaudit.models import (
    HREF_NO_URL,
    HREF_UNRESOLVED,
    NOT_APPLICABLE,
    FigureContext,
    InteractiveElement,
    ShadowDomInfo,
    SlotInfo,
)
from clickaudit.probes import (
    ancestor_link_href,
    figure_context,
    is_absolutely_positioned,
    is_button,
    nested_aria_elements,
    opens_new_window_script,
    resolve_href,
)
from clickaudit.text_resolvers import (
    contains_slot,
    direct_text,
    pseudo_text,
    resolve_aria_references,
    shadow_text,
    slot_text,
)

logger = logging.getLogger(__name__)


def merge_text(direct: str, slot: str = "", shadow: str = "", pseudo: str = "") -> str:
    """
    Combine the text sources into one accessible text.

    Slot text is kept unless it equals the direct text; shadow text is kept
    unless it equals the direct or the slot text. Pseudo-element text is
    appended last, unconditionally.
    """
    direct, slot, shadow = direct.strip(), slot.strip(), shadow.strip()

    text = direct
    if slot or shadow:
        parts = [direct] if direct else []
        if slot and slot != direct:
            parts.append(slot)
        if shadow and shadow != direct and shadow != slot:
            parts.append(shadow)
        text = " ".join(parts)

    pseudo = pseudo.strip()
    if pseudo:
        text = f"{text} {pseudo}" if text else pseudo
    return text


def partial_record(sequence_id: int, kind_id: int, tag: str, button: bool,
                   failed: str = "element") -> InteractiveElement:
    """Record for an element whose snapshot could not be taken."""
    if tag == "a":
        href = HREF_UNRESOLVED
    else:
        href = HREF_NO_URL
    return InteractiveElement(
        sequence_id=sequence_id,
        kind_id=kind_id,
        tag=tag or "",
        is_button=button,
        href=href,
        is_internal=NOT_APPLICABLE,
        extraction_errors=[failed],
    )


async def build_element_record(session, handle, sequence_id: int, kind_id: int,
                               settings) -> InteractiveElement:
    errors: list[str] = []

    async def attempt(name, default, func, *args):
        try:
            result = func(*args)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            logger.warning(f"[aggregator] element {sequence_id}: {name} failed: {e}")
            errors.append(name)
            return default

    snapshot = await session.snapshot(handle)
    root = snapshot.root
    if snapshot.truncated:
        logger.debug(f"[aggregator] element {sequence_id}: snapshot truncated")

    tag = root.tag or ""
    button = is_button(tag, root.get("role"))
    href, internal = resolve_href(tag, root.get("href"), session.url)
    target = root.get("target")

    # Text sources
    direct = await attempt("direct_text", "", direct_text, root)
    slot = await attempt("slot_text", "", slot_text, root)
    shadow = await attempt("shadow_text", "", shadow_text, root)
    pseudo = await attempt("pseudo_text", "", pseudo_text, root)
    accessible = merge_text(direct, slot, shadow, pseudo)

    aria_label = root.get("aria-label")
    labelled_by = await attempt(
        "aria_labelledby", "", resolve_aria_references, root.get("aria-labelledby"), session.text_by_id
    )
    described_by = await attempt(
        "aria_describedby", "", resolve_aria_references, root.get("aria-describedby"), session.text_by_id
    )

    script_window = await attempt("opens_new_window_script", False, opens_new_window_script, root)
    images = await attempt("image_content", [], analyze_images, snapshot, session, settings)

    shadow_info = ShadowDomInfo(
        has_shadow_root=root.shadow is not None,
        shadow_text=shadow,
        inside_shadow_tree=snapshot.inside_shadow_tree if settings.detect_shadow_hosting else None,
    )

    return InteractiveElement(
        sequence_id=sequence_id,
        kind_id=kind_id,
        tag=tag,
        is_button=button,
        href=href,
        is_internal=internal,
        rel=root.get("rel"),
        target=target,
        title_attribute=root.get("title"),
        has_title_attribute=root.get("title") is not None,
        tabindex=root.get("tabindex"),
        has_tabindex=root.get("tabindex") is not None,
        accessible_text=accessible,
        has_accessible_text=bool(accessible),
        aria_label=aria_label,
        aria_labelled_by_text=labelled_by,
        aria_described_by_text=described_by,
        has_aria_data=bool(aria_label or labelled_by or described_by),
        pseudo_element_text=pseudo,
        is_absolutely_positioned=await attempt("position", False, is_absolutely_positioned, root),
        nested_aria_elements=await attempt("nested_aria", [], nested_aria_elements, root),
        bounding_box=await attempt("bounding_box", None, session.bounding_box, handle),
        opens_new_window=target == "_blank" or script_window,
        opens_new_window_script=script_window,
        ancestor_link_href=await attempt(
            "ancestor_link", None, ancestor_link_href, snapshot.ancestors, settings.max_ancestor_hops
        ),
        has_image=bool(images),
        image_content=images,
        figure_context=await attempt("figure", FigureContext(), figure_context, snapshot.ancestors, root),
        shadow_dom_info=shadow_info,
        slot_info=SlotInfo(contains_slot=await attempt("slot", False, contains_slot, root), slot_text=slot),
        extraction_errors=errors,
    )
