"""
Itinerary photo enrichment.

Walks an itinerary once to build a flat list of photo lookups (one per meal,
activity and lodging entry that has no photo yet), resolves them concurrently
and joins the results into a new itinerary. Input days are never mutated.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from domain.models import Day, coerce_day
from services.image_search import get_default_image_search_client
from services.interest_filter import filter_itinerary, normalize_interests
from settings import settings

logger = logging.getLogger(__name__)

PhotoResolver = Callable[[str], Optional[str]]

ENRICHMENT_FAILED_MESSAGE = "Enriching with images failed."

# Distinct interest sets whose filtered view is kept per itinerary
FILTER_CACHE_SIZE = 32


class EnrichmentError(Exception):
    """A photo lookup raised (as opposed to finding nothing)."""


class EnrichmentStatus(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class EnrichmentState:
    status: EnrichmentStatus = EnrichmentStatus.IDLE
    reason: Optional[str] = None


@dataclass(frozen=True)
class PhotoLookup:
    """One independent lookup unit; writes only its own slot."""
    day_index: int
    kind: str  # "meal" | "activity" | "lodging"
    key: Union[str, int, None]  # meal slot or activity index
    query: str

    @property
    def slot(self) -> Tuple[int, str, Union[str, int, None]]:
        return (self.day_index, self.kind, self.key)


def _join_query(*parts: Optional[str]) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


def build_photo_lookups(itinerary: Sequence[Any]) -> List[PhotoLookup]:
    """Return the lookups needed to fill every missing photo in the itinerary."""
    lookups: List[PhotoLookup] = []
    for day_index, entry in enumerate(itinerary or []):
        day = coerce_day(entry, day_index)
        if day is None:
            continue
        for slot, meal in day.meals.present():
            if not meal.has_photo:
                lookups.append(PhotoLookup(
                    day_index, "meal", slot, _join_query(meal.name, slot, "restaurant"),
                ))
        for i, activity in enumerate(day.activities):
            if not activity.has_photo:
                lookups.append(PhotoLookup(
                    day_index, "activity", i, _join_query(activity.name, activity.type, "place"),
                ))
        if day.stay_option is not None and not day.stay_option.has_photo:
            lookups.append(PhotoLookup(
                day_index, "lodging", None, _join_query(day.stay_option.name, "hotel"),
            ))
    return lookups


def resolve_lookups(
    lookups: Sequence[PhotoLookup],
    resolver: PhotoResolver,
    max_workers: Optional[int] = None,
) -> Dict[Tuple[int, str, Union[str, int, None]], str]:
    """
    Run all lookups concurrently and join them.

    A missing photo resolves to "". Any exception from the resolver aborts the
    whole pass with EnrichmentError; results gathered so far are discarded.
    """
    if not lookups:
        return {}
    workers = max(1, min(max_workers or settings.IMAGE_LOOKUP_MAX_WORKERS, len(lookups)))
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="photo-lookup")
    results: Dict[Tuple[int, str, Union[str, int, None]], str] = {}
    try:
        futures = [(lookup, executor.submit(resolver, lookup.query)) for lookup in lookups]
        for lookup, future in futures:
            try:
                url = future.result()
            except Exception as exc:
                logger.warning("Photo lookup failed for %r: %s", lookup.query, exc)
                raise EnrichmentError(f"Photo lookup failed for {lookup.query!r}: {exc}") from exc
            results[lookup.slot] = url or ""
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
    logger.debug("Resolved %d photo lookups with %d workers", len(results), workers)
    return results


def _apply_photos(day_index: int, day: Day, photos: Dict) -> Day:
    meal_updates = {
        slot: replace(meal, photo_url=photos[(day_index, "meal", slot)])
        for slot, meal in day.meals.present()
        if (day_index, "meal", slot) in photos
    }
    activities = tuple(
        replace(a, photo_url=photos[(day_index, "activity", i)])
        if (day_index, "activity", i) in photos else a
        for i, a in enumerate(day.activities)
    )
    stay = day.stay_option
    if stay is not None and (day_index, "lodging", None) in photos:
        stay = replace(stay, photo_url=photos[(day_index, "lodging", None)])
    return replace(
        day,
        meals=replace(day.meals, **meal_updates) if meal_updates else day.meals,
        activities=activities,
        stay_option=stay,
    )


def enrich_itinerary(
    itinerary: Optional[Sequence[Any]],
    resolver: Optional[PhotoResolver] = None,
    max_workers: Optional[int] = None,
) -> List[Any]:
    """
    Return a new itinerary with a photo URL attached to every entry lacking one.

    Existing non-empty photo URLs are kept. Entries that are not day records
    are passed through untouched.
    """
    if not itinerary:
        return []
    days = [coerce_day(entry, i) for i, entry in enumerate(itinerary)]
    normalized = [day if day is not None else itinerary[i] for i, day in enumerate(days)]
    lookups = build_photo_lookups(normalized)
    if not lookups:
        return normalized

    if resolver is None:
        resolver = get_default_image_search_client().resolve
    photos = resolve_lookups(lookups, resolver, max_workers=max_workers)

    return [
        _apply_photos(i, day, photos) if day is not None else itinerary[i]
        for i, day in enumerate(days)
    ]


class ItineraryPreview:
    """
    Holds the raw, enriched and filtered views of the current itinerary.

    Each submitted itinerary gets a new generation id; a pass that finishes
    after a newer submission is dropped instead of overwriting state.
    """

    def __init__(
        self,
        resolver: Optional[PhotoResolver] = None,
        max_workers: Optional[int] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.resolver = resolver
        self.max_workers = max_workers
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="enrichment")
        self._lock = threading.Lock()
        self._generation = 0
        self._raw: Optional[Sequence[Any]] = None
        self._enriched: List[Any] = []
        self._state = EnrichmentState()
        self._pending: Optional[Future] = None
        self._filtered_cache: "OrderedDict[frozenset, List[Any]]" = OrderedDict()

    @property
    def state(self) -> EnrichmentState:
        with self._lock:
            return self._state

    @property
    def is_busy(self) -> bool:
        return self.state.status == EnrichmentStatus.IN_PROGRESS

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def raw(self) -> List[Any]:
        with self._lock:
            return list(self._raw or [])

    @property
    def enriched(self) -> List[Any]:
        with self._lock:
            return list(self._enriched)

    def submit(self, itinerary: Optional[Sequence[Any]]) -> Optional[Future]:
        """
        Start enriching a new raw itinerary in the background.

        Re-submitting the same itinerary object is a no-op and returns the
        pass already running for it.
        """
        with self._lock:
            if itinerary is not None and itinerary is self._raw:
                return self._pending
            self._generation += 1
            generation = self._generation
            self._raw = itinerary
            self._filtered_cache.clear()
            if not itinerary:
                self._enriched = []
                self._state = EnrichmentState()
                self._pending = None
                return None
            self._state = EnrichmentState(EnrichmentStatus.IN_PROGRESS)
            try:
                future = self._executor.submit(self._run, generation, itinerary)
            except RuntimeError as exc:
                # Executor already shut down
                self._state = EnrichmentState(EnrichmentStatus.FAILED, str(exc))
                self._pending = None
                raise
            self._pending = future
        return future

    def refresh(self, itinerary: Optional[Sequence[Any]]) -> EnrichmentState:
        """Submit and wait for the pass to finish."""
        future = self.submit(itinerary)
        if future is not None:
            future.result()
        return self.state

    def _fail(self, generation: int, exc: Exception) -> bool:
        """Record a failed pass; False when the pass was already superseded."""
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropping failed enrichment for stale generation %d", generation)
                return False
            self._state = EnrichmentState(EnrichmentStatus.FAILED, str(exc))
            self._filtered_cache.clear()
        return True

    def _run(self, generation: int, itinerary: Sequence[Any]) -> None:
        try:
            enriched = enrich_itinerary(itinerary, resolver=self.resolver, max_workers=self.max_workers)
        except EnrichmentError as exc:
            if self._fail(generation, exc):
                logger.warning("Enrichment generation %d failed: %s", generation, exc)
            return
        except Exception as exc:
            if self._fail(generation, exc):
                logger.exception("Enrichment generation %d crashed", generation)
            return

        with self._lock:
            if generation != self._generation:
                logger.debug("Dropping enrichment result for stale generation %d", generation)
                return
            self._enriched = enriched
            self._state = EnrichmentState(EnrichmentStatus.DONE)
            self._filtered_cache.clear()
        logger.info("Enrichment generation %d done (%d days)", generation, len(enriched))

    def current(self) -> List[Any]:
        """The itinerary to display: enriched when done, otherwise the raw one."""
        with self._lock:
            if self._state.status == EnrichmentStatus.DONE:
                return list(self._enriched)
            return list(self._raw or [])

    def filtered(self, interests: Iterable[str]) -> List[Any]:
        """
        Current itinerary restricted to the given interests.

        Views are cached per interest set, least recently used first out,
        so arbitrary interest values cannot grow the cache.
        """
        key = normalize_interests(interests)
        with self._lock:
            cached = self._filtered_cache.get(key)
            if cached is not None:
                self._filtered_cache.move_to_end(key)
                return list(cached)
            source = self._enriched if self._state.status == EnrichmentStatus.DONE else list(self._raw or [])
            result = filter_itinerary(source, key)
            self._filtered_cache[key] = result
            while len(self._filtered_cache) > FILTER_CACHE_SIZE:
                self._filtered_cache.popitem(last=False)
            return list(result)

    @property
    def error_message(self) -> Optional[str]:
        return ENRICHMENT_FAILED_MESSAGE if self.state.status == EnrichmentStatus.FAILED else None
