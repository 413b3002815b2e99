"""
Core domain models for the itinerary generator.
These are framework-agnostic and can be used across all services.

Field names on the JSON side follow the itinerary contract returned by the
generation model (``departure_time``, ``stay_option``, ``photoUrl``, ...).
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class InterestCategory(str, Enum):
    """Fixed activity classifications used for prompts and filtering."""
    NATURE = "Nature"
    FOOD = "Food"
    SHOPPING = "Shopping"
    ADVENTURE = "Adventure"
    CULTURE = "Culture"


INTEREST_CATEGORIES: Tuple[str, ...] = tuple(c.value for c in InterestCategory)

MEAL_SLOTS: Tuple[str, ...] = ("breakfast", "lunch", "dinner")


class Budget(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


@dataclass(frozen=True)
class Place:
    """Base shape shared by meal, activity and lodging entries."""
    name: str = ""
    description: Optional[str] = None
    location: Optional[str] = None
    map_url: Optional[str] = None
    photo_url: Optional[str] = None

    @property
    def has_photo(self) -> bool:
        return bool(self.photo_url)

    @classmethod
    def from_dict(cls, data: Mapping) -> "Place":
        return cls(
            name=_opt_str(data.get("name")) or "",
            description=_opt_str(data.get("description")),
            location=_opt_str(data.get("location")),
            map_url=_opt_str(data.get("mapUrl")),
            photo_url=_opt_str(data.get("photoUrl")),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name}
        if self.description is not None:
            result["description"] = self.description
        if self.location is not None:
            result["location"] = self.location
        if self.map_url is not None:
            result["mapUrl"] = self.map_url
        if self.photo_url is not None:
            result["photoUrl"] = self.photo_url
        return result


@dataclass(frozen=True)
class Activity(Place):
    # One of INTEREST_CATEGORIES, or whatever the model returned
    type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping) -> "Activity":
        base = Place.from_dict(data)
        return cls(
            name=base.name,
            description=base.description,
            location=base.location,
            map_url=base.map_url,
            photo_url=base.photo_url,
            type=_opt_str(data.get("type")),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.type is not None:
            result["type"] = self.type
        return result


@dataclass(frozen=True)
class Lodging(Place):
    @classmethod
    def from_dict(cls, data: Mapping) -> "Lodging":
        base = Place.from_dict(data)
        # Older responses put the lodging location under "address"
        location = base.location or _opt_str(data.get("address"))
        return cls(
            name=base.name,
            description=base.description,
            location=location,
            map_url=base.map_url,
            photo_url=base.photo_url,
        )


@dataclass(frozen=True)
class Meals:
    breakfast: Optional[Place] = None
    lunch: Optional[Place] = None
    dinner: Optional[Place] = None

    def get(self, slot: str) -> Optional[Place]:
        return getattr(self, slot) if slot in MEAL_SLOTS else None

    def present(self) -> List[Tuple[str, Place]]:
        """Return (slot, place) pairs in breakfast/lunch/dinner order."""
        return [(slot, self.get(slot)) for slot in MEAL_SLOTS if self.get(slot) is not None]

    @classmethod
    def from_dict(cls, data: Any) -> "Meals":
        if not isinstance(data, Mapping):
            return cls()
        values = {}
        for slot in MEAL_SLOTS:
            entry = data.get(slot)
            values[slot] = Place.from_dict(entry) if isinstance(entry, Mapping) else None
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {slot: place.to_dict() for slot, place in self.present()}


@dataclass(frozen=True)
class Day:
    """One calendar day of the trip. Index in the itinerary is significant."""
    departure_time: str = ""
    distance: float = 0.0
    meals: Meals = field(default_factory=Meals)
    activities: Tuple[Activity, ...] = ()
    stay_option: Optional[Lodging] = None

    @classmethod
    def from_dict(cls, data: Mapping) -> "Day":
        raw_activities = data.get("activities")
        activities: Tuple[Activity, ...] = ()
        if isinstance(raw_activities, list):
            activities = tuple(
                Activity.from_dict(a) for a in raw_activities if isinstance(a, Mapping)
            )
        stay = data.get("stay_option")
        return cls(
            departure_time=_opt_str(data.get("departure_time")) or "",
            distance=_parse_distance(data.get("distance")),
            meals=Meals.from_dict(data.get("meals")),
            activities=activities,
            stay_option=Lodging.from_dict(stay) if isinstance(stay, Mapping) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "departure_time": self.departure_time,
            "distance": self.distance,
            "meals": self.meals.to_dict(),
            "activities": [a.to_dict() for a in self.activities],
        }
        if self.stay_option is not None:
            result["stay_option"] = self.stay_option.to_dict()
        return result


def _parse_distance(value: Any) -> float:
    """Distance is passthrough; only coerce it to a number for display."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().split()[0])
        except (ValueError, IndexError):
            return 0.0
    return 0.0


def coerce_day(entry: Any, index: int = 0) -> Optional[Day]:
    """
    Turn one itinerary entry into a Day.

    Returns None when the entry is not a structured record. A present but
    non-list ``activities`` field is logged and treated as empty.
    """
    if isinstance(entry, Day):
        return entry
    if not isinstance(entry, Mapping):
        return None
    activities = entry.get("activities")
    if activities is not None and not isinstance(activities, list):
        logger.warning(
            "Day %d: activities is %s, not a list; treating as empty",
            index + 1,
            type(activities).__name__,
        )
    return Day.from_dict(entry)


def parse_itinerary(data: Any) -> List[Any]:
    """
    Parse a JSON itinerary payload into a list of days.

    Records become Day objects; anything else is kept as-is so the
    document renderer can report and skip it.
    """
    if not isinstance(data, list):
        raise ValueError("Itinerary must be a list of days")
    days: List[Any] = []
    for i, entry in enumerate(data):
        day = coerce_day(entry, i)
        days.append(day if day is not None else entry)
    return days


def itinerary_to_dicts(itinerary: Sequence[Any]) -> List[Any]:
    return [d.to_dict() if isinstance(d, Day) else d for d in itinerary]
