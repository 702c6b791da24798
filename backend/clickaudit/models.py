"""
Record types returned by an extraction.

Every field is always present; values that could not be determined use
None or one of the sentinel strings below rather than being left out.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

SCHEMA_VERSION = 1

# href sentinels
HREF_NO_URL = "on page, button functionality(no URL)"
HREF_NOT_APPLICABLE = "N/A"
HREF_UNRESOLVED = "href is missing"
NOT_APPLICABLE = "N/A"

# <img alt> sentinels
ALT_MISSING = "Alt tag not present"
ALT_DECORATIVE = "Alt tag present but empty (decorative image)"

ARIA_MISMATCH = "Aria Mismatch for {id}"


# ---------------------------------------------------------------------------
# Element parts
# ---------------------------------------------------------------------------

class BoundingBox(BaseModel):
    x: float
    y: float
    width: float
    height: float


class NestedAriaElement(BaseModel):
    tag: str
    aria_label: str | None = None
    aria_labelledby: str | None = None


class FigureContext(BaseModel):
    in_figure: bool = False
    has_caption: bool | None = None
    caption_text: str | None = None


class ShadowDomInfo(BaseModel):
    has_shadow_root: bool = False
    shadow_text: str = ""
    # Only filled when Settings.detect_shadow_hosting is on
    inside_shadow_tree: bool | None = None


class SlotInfo(BaseModel):
    contains_slot: bool = False
    slot_text: str = ""


# ---------------------------------------------------------------------------
# Image descriptors
# ---------------------------------------------------------------------------

class ImgDescriptor(BaseModel):
    type: Literal["img"] = "img"
    image_id: int
    alt_text: str
    title_text: str | None = None
    source_url: str | None = None
    aria_hidden_effective: bool = False
    presentation_role: bool = False
    preview_bitmap: str | None = None  # data URI


class SvgDescriptor(BaseModel):
    type: Literal["svg"] = "svg"
    image_id: int
    title_or_desc: str = ""
    aria_label: str = ""
    aria_labelled_by_text: str = ""
    aria_described_by_text: str = ""
    aria_hidden_effective: bool = False
    presentation_role: bool = False
    preview_bitmap: str | None = None  # data URI


class BackgroundDescriptor(BaseModel):
    type: Literal["background"] = "background"
    source_url: str
    preview_bitmap: str | None = None  # data URI


ImageDescriptor = Annotated[
    Union[ImgDescriptor, SvgDescriptor, BackgroundDescriptor],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Element record
# ---------------------------------------------------------------------------

class InteractiveElement(BaseModel):
    sequence_id: int
    kind_id: int
    tag: str
    is_button: bool

    href: str
    is_internal: bool | Literal["N/A"] = NOT_APPLICABLE
    rel: str | None = None
    target: str | None = None
    title_attribute: str | None = None
    has_title_attribute: bool = False
    tabindex: str | None = None
    has_tabindex: bool = False

    accessible_text: str = ""
    has_accessible_text: bool = False
    aria_label: str | None = None
    aria_labelled_by_text: str = ""
    aria_described_by_text: str = ""
    has_aria_data: bool = False
    pseudo_element_text: str = ""

    is_absolutely_positioned: bool = False
    nested_aria_elements: list[NestedAriaElement] = []
    bounding_box: BoundingBox | None = None
    opens_new_window: bool = False
    opens_new_window_script: bool = False
    ancestor_link_href: str | None = None

    has_image: bool = False
    image_content: list[ImageDescriptor] = []
    figure_context: FigureContext = Field(default_factory=FigureContext)
    shadow_dom_info: ShadowDomInfo = Field(default_factory=ShadowDomInfo)
    slot_info: SlotInfo = Field(default_factory=SlotInfo)

    # Names of the sources that failed and were defaulted
    extraction_errors: list[str] = []


class ExtractionResult(BaseModel):
    schema_version: int = SCHEMA_VERSION
    original_url: str
    final_url: str
    title: str
    timestamp: str
    cookie_handled: bool = False
    elements: list[InteractiveElement] = []


# ---------------------------------------------------------------------------
# Page-wide SVG inventory
# ---------------------------------------------------------------------------

class SvgRecord(BaseModel):
    id: int
    original_html: str = ""
    processed_svg: str | None = None
    title_desc: str = ""
    aria_label: str = ""
    aria_labelledby: str = ""
    aria_describedby: str = ""
    has_aria_hidden: bool = False
    has_role_presentation: bool = False
    has_use_elements: bool = False
    use_hrefs: list[str] = []
    width: str = "auto"
    height: str = "auto"
    view_box: str = ""
    class_name: str = ""
    style: str = ""
    preview_bitmap: str | None = None
    error: str | None = None


class SvgInventory(BaseModel):
    url: str
    timestamp: str
    svg_count: int
    svgs: list[SvgRecord] = []
