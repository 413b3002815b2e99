"""
Layout engine service.

Computes where every block of the itinerary document goes: which page, at
what vertical offset. Drawing is done separately by render_pdf, so this
module is pure layout math.

Offsets are in points measured from the top of the page. Page position is
carried by an explicit PageCursor; before each fixed-height block the
remaining space is checked and a new page is started when the block would
not fit, so no block ever straddles a page break.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from reportlab.lib.pagesizes import A4

from domain.models import Activity, Day, Lodging, Place, coerce_day
from services.text_format import clean_text, format_distance, format_time

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

NO_ACTIVITIES_TEXT = "No activities scheduled for this day"


class EmptyItineraryError(ValueError):
    """Raised before any drawing when there is nothing to lay out."""


class BlockKind(str, Enum):
    DAY_BANNER = "day_banner"
    CARD = "card"
    NO_ACTIVITIES = "no_activities"


@dataclass(frozen=True)
class DocumentTheme:
    """
    Page geometry and colors for the itinerary document.

    Each block kind has a drawn height, a reserved height (checked against
    the space left on the page) and an advance (how far the cursor moves).
    """
    page_width: float = A4[0]
    page_height: float = A4[1]
    margin: float = 40.0
    header_bottom: float = 110.0
    footer_reserve: float = 120.0

    banner_height: float = 45.0
    banner_reserve: float = 60.0
    banner_advance: float = 60.0

    card_height: float = 100.0
    card_reserve: float = 120.0
    card_advance: float = 115.0
    card_image_size: float = 80.0

    notice_reserve: float = 40.0
    notice_advance: float = 35.0

    day_spacing: float = 20.0

    title_max_lines: int = 2
    description_max_lines: int = 3

    primary_color: RGB = (41, 128, 185)
    secondary_color: RGB = (52, 73, 94)
    accent_color: RGB = (231, 76, 60)
    background_color: RGB = (248, 249, 250)
    card_background_color: RGB = (255, 255, 255)
    divider_color: RGB = (189, 195, 199)
    text_color: RGB = (44, 62, 80)
    light_text_color: RGB = (127, 140, 141)

    lodging_color: RGB = (155, 89, 182)
    breakfast_color: RGB = (241, 196, 15)
    lunch_color: RGB = (230, 126, 34)
    dinner_color: RGB = (192, 57, 43)
    activity_color: RGB = (46, 204, 113)

    def __post_init__(self) -> None:
        area = self.content_area_height
        for name in ("banner_reserve", "card_reserve", "notice_reserve"):
            if getattr(self, name) > area:
                raise ValueError(
                    f"{name}={getattr(self, name)} exceeds the page content area ({area:.1f}pt)"
                )
        if self.card_image_size > self.card_height:
            raise ValueError("card_image_size must fit inside card_height")

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def content_bottom(self) -> float:
        return self.page_height - self.footer_reserve

    @property
    def content_area_height(self) -> float:
        return self.content_bottom - self.header_bottom

    def meal_color(self, slot: str) -> RGB:
        return {
            "breakfast": self.breakfast_color,
            "lunch": self.lunch_color,
            "dinner": self.dinner_color,
        }.get(slot, self.accent_color)


@dataclass
class PageCursor:
    """Current vertical offset and page number while laying out."""
    y: float
    page_number: int = 1

    def fits(self, required: float, bottom: float) -> bool:
        return self.y + required <= bottom

    def advance(self, amount: float) -> None:
        self.y += amount

    def next_page(self, top: float) -> None:
        self.page_number += 1
        self.y = top


@dataclass(frozen=True)
class LayoutBlock:
    """A positioned block of the document."""
    kind: BlockKind
    page_number: int
    y: float
    height: float
    day_index: int
    label: str = ""
    title: str = ""
    description: str = ""
    location: str = ""
    image_url: Optional[str] = None
    color: Optional[RGB] = None
    # Day banner only
    departure: str = ""
    distance: str = ""


@dataclass
class PagePlan:
    page_number: int
    blocks: List[LayoutBlock] = field(default_factory=list)


@dataclass
class DocumentPlan:
    title: str
    traveler_name: str = ""
    date_range: str = ""
    generated_on: date = field(default_factory=date.today)
    pages: List[PagePlan] = field(default_factory=list)
    skipped_days: List[int] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def blocks(self) -> List[LayoutBlock]:
        return [b for page in self.pages for b in page.blocks]

    @property
    def day_banners(self) -> List[LayoutBlock]:
        return [b for b in self.blocks if b.kind == BlockKind.DAY_BANNER]

    @property
    def cards(self) -> List[LayoutBlock]:
        return [b for b in self.blocks if b.kind == BlockKind.CARD]


@dataclass(frozen=True)
class ItineraryValidation:
    valid: bool
    error: Optional[str] = None
    issues: List[str] = field(default_factory=list)


def _is_day_sequence(itinerary: Any) -> bool:
    return isinstance(itinerary, Sequence) and not isinstance(itinerary, (str, bytes, Mapping))


def validate_itinerary(itinerary: Any) -> ItineraryValidation:
    """Pre-flight check that reports problems instead of raising."""
    if not _is_day_sequence(itinerary):
        return ItineraryValidation(False, "Itinerary must be a list of days")
    if len(itinerary) == 0:
        return ItineraryValidation(False, "Itinerary cannot be empty")
    issues = [
        f"Day {i + 1}: Invalid day data"
        for i, entry in enumerate(itinerary)
        if not isinstance(entry, (Day, Mapping))
    ]
    return ItineraryValidation(valid=not issues, issues=issues)


def _place_block(
    plan: DocumentPlan,
    cursor: PageCursor,
    theme: DocumentTheme,
    reserve: float,
    advance: float,
    **block_fields: Any,
) -> LayoutBlock:
    """Break the page if needed, then put one block at the cursor."""
    if not cursor.fits(reserve, theme.content_bottom):
        cursor.next_page(theme.header_bottom)
        plan.pages.append(PagePlan(page_number=cursor.page_number))
        logger.debug("Page break before %s -> page %d", block_fields.get("kind"), cursor.page_number)
    block = LayoutBlock(page_number=cursor.page_number, y=cursor.y, **block_fields)
    plan.pages[-1].blocks.append(block)
    cursor.advance(advance)
    return block


def _card_fields(place: Place, label: str, color: RGB, fallback_title: str) -> dict:
    return {
        "kind": BlockKind.CARD,
        "label": label,
        "title": clean_text(place.name, fallback_title),
        "description": clean_text(place.description, ""),
        "location": clean_text(place.location, ""),
        "image_url": place.photo_url or None,
        "color": color,
    }


def _layout_day(
    plan: DocumentPlan,
    cursor: PageCursor,
    theme: DocumentTheme,
    day_index: int,
    day: Day,
) -> None:
    _place_block(
        plan, cursor, theme, theme.banner_reserve, theme.banner_advance,
        kind=BlockKind.DAY_BANNER,
        height=theme.banner_height,
        day_index=day_index,
        label=f"Day {day_index + 1}",
        departure=format_time(day.departure_time),
        distance=format_distance(day.distance),
        color=theme.primary_color,
    )

    cards: List[dict] = []
    if isinstance(day.stay_option, Lodging):
        cards.append(_card_fields(day.stay_option, "Accommodation", theme.lodging_color, "Accommodation"))
    for slot, meal in day.meals.present():
        label = slot.capitalize()
        cards.append(_card_fields(meal, label, theme.meal_color(slot), label))
    for activity in day.activities:
        if isinstance(activity, Activity):
            label = clean_text(activity.type, "Activity")
            cards.append(_card_fields(activity, label, theme.activity_color, "Activity"))

    for fields_ in cards:
        _place_block(
            plan, cursor, theme, theme.card_reserve, theme.card_advance,
            height=theme.card_height, day_index=day_index, **fields_,
        )

    if not day.activities:
        _place_block(
            plan, cursor, theme, theme.notice_reserve, theme.notice_advance,
            kind=BlockKind.NO_ACTIVITIES,
            height=theme.notice_advance,
            day_index=day_index,
            title=NO_ACTIVITIES_TEXT,
            color=theme.light_text_color,
        )

    cursor.advance(theme.day_spacing)


def plan_document(
    itinerary: Any,
    title: str = "Travel Itinerary",
    traveler_name: str = "",
    date_range: str = "",
    theme: Optional[DocumentTheme] = None,
    generated_on: Optional[date] = None,
) -> DocumentPlan:
    """
    Lay out an itinerary into pages of positioned blocks.

    Per day: banner, lodging card, breakfast/lunch/dinner cards (present
    meals only), activity cards in order, or a "no activities" notice.

    Raises:
        EmptyItineraryError: if the itinerary is empty or not a list of days
    """
    if not _is_day_sequence(itinerary) or len(itinerary) == 0:
        raise EmptyItineraryError("Itinerary must be a non-empty list of days")

    theme = theme or DocumentTheme()
    plan = DocumentPlan(
        title=clean_text(title, "Travel Itinerary"),
        traveler_name=clean_text(traveler_name, ""),
        date_range=clean_text(date_range, ""),
        generated_on=generated_on or date.today(),
        pages=[PagePlan(page_number=1)],
    )
    cursor = PageCursor(y=theme.header_bottom)

    for day_index, entry in enumerate(itinerary):
        day = coerce_day(entry, day_index)
        if day is None:
            logger.warning("Skipping invalid day data at index %d", day_index)
            plan.skipped_days.append(day_index)
            continue
        _layout_day(plan, cursor, theme, day_index, day)

    logger.debug(
        "Planned itinerary document: %d pages, %d blocks, %d skipped days",
        plan.page_count,
        len(plan.blocks),
        len(plan.skipped_days),
    )
    return plan
