"""
Interest filter: keep only the activities whose category the traveler picked.
"""
from dataclasses import replace
from typing import Any, Iterable, List, Sequence

from domain.models import coerce_day


def normalize_interests(interests: Iterable[str]) -> frozenset:
    """Case-fold an interest selection into a lookup set."""
    return frozenset(
        str(i).strip().casefold() for i in (interests or []) if i is not None and str(i).strip()
    )


def filter_itinerary(itinerary: Sequence[Any], interests: Iterable[str]) -> List[Any]:
    """
    Restrict each day's activities to the selected categories.

    Order of surviving activities is preserved; meals and lodging pass
    through; days left with no activities are kept. Activities without a
    type never match. Non-record entries are passed through.
    """
    selected = normalize_interests(interests)
    result: List[Any] = []
    for i, entry in enumerate(itinerary or []):
        day = coerce_day(entry, i)
        if day is None:
            result.append(entry)
            continue
        kept = tuple(
            a for a in day.activities
            if a.type and a.type.strip().casefold() in selected
        )
        result.append(replace(day, activities=kept))
    return result
