import copy
import threading

import pytest

from domain.models import Day, parse_itinerary
from services.enrichment import (
    EnrichmentError,
    build_photo_lookups,
    enrich_itinerary,
)


class RecordingResolver:
    """Thread-safe fake resolver that records every query."""

    def __init__(self, answer=lambda q: f"http://img/{q.replace(' ', '_')}.jpg"):
        self.answer = answer
        self.queries = []
        self._lock = threading.Lock()

    def __call__(self, query):
        with self._lock:
            self.queries.append(query)
        return self.answer(query)


def test_lookups_cover_meals_activities_and_lodging(day_dict):
    itinerary = parse_itinerary([day_dict(index=1)])
    lookups = build_photo_lookups(itinerary)
    queries = [l.query for l in lookups]

    assert queries[:3] == [
        "D1 breakfast breakfast restaurant",
        "D1 lunch lunch restaurant",
        "D1 dinner dinner restaurant",
    ]
    assert "D1 Nature spot Nature place" in queries
    assert queries[-1] == "D1 Inn hotel"
    assert len(lookups) == 3 + 5 + 1


def test_lookups_omit_missing_parts():
    itinerary = parse_itinerary([{"activities": [{"name": "Pier"}]}])
    (lookup,) = build_photo_lookups(itinerary)
    assert lookup.query == "Pier place"


def test_enrich_fills_every_missing_photo(day_dict):
    resolver = RecordingResolver()
    enriched = enrich_itinerary(parse_itinerary([day_dict(1), day_dict(2)]), resolver=resolver)

    assert len(resolver.queries) == 2 * 9
    for day in enriched:
        assert all(meal.photo_url for _, meal in day.meals.present())
        assert all(a.photo_url for a in day.activities)
        assert day.stay_option.photo_url == "http://img/" + f"{day.stay_option.name} hotel".replace(" ", "_") + ".jpg"


def test_no_photo_found_becomes_empty_string(day_dict):
    enriched = enrich_itinerary(parse_itinerary([day_dict()]), resolver=lambda q: None)
    day = enriched[0]
    assert day.stay_option.photo_url == ""
    assert all(a.photo_url == "" for a in day.activities)


def test_existing_photos_are_never_overwritten(day_dict):
    raw = day_dict()
    raw["activities"][0]["photoUrl"] = "http://keep/me.jpg"
    raw["meals"]["lunch"]["photoUrl"] = "http://keep/lunch.jpg"

    enriched = enrich_itinerary(parse_itinerary([raw]), resolver=RecordingResolver())

    assert enriched[0].activities[0].photo_url == "http://keep/me.jpg"
    assert enriched[0].meals.lunch.photo_url == "http://keep/lunch.jpg"


def test_fully_enriched_itinerary_is_idempotent(day_dict):
    itinerary = parse_itinerary([day_dict(1, photo="http://img/x.jpg"), day_dict(2, photo="http://img/y.jpg")])
    resolver = RecordingResolver()

    enriched = enrich_itinerary(itinerary, resolver=resolver)

    assert resolver.queries == []
    assert enriched == itinerary


def test_enrichment_does_not_mutate_input(day_dict):
    raw = [day_dict(1), day_dict(2)]
    snapshot = copy.deepcopy(raw)
    itinerary = parse_itinerary(raw)
    before = list(itinerary)

    enriched = enrich_itinerary(raw, resolver=RecordingResolver())
    enrich_itinerary(itinerary, resolver=RecordingResolver())

    assert raw == snapshot
    assert itinerary == before
    assert enriched[0] is not itinerary[0]
    assert itinerary[0].activities[0].photo_url is None


def test_activity_order_is_preserved(day_dict):
    enriched = enrich_itinerary(parse_itinerary([day_dict()]), resolver=RecordingResolver())
    assert [a.type for a in enriched[0].activities] == ["Nature", "Food", "Shopping", "Adventure", "Culture"]


def test_raising_lookup_fails_the_whole_pass(day_dict):
    def flaky(query):
        if "Culture" in query:
            raise RuntimeError("proxy exploded")
        return "http://img/ok.jpg"

    with pytest.raises(EnrichmentError):
        enrich_itinerary(parse_itinerary([day_dict(1), day_dict(2)]), resolver=flaky)


def test_lookups_run_concurrently(day_dict):
    # Every lookup waits at the barrier; it only releases if they are in flight together.
    barrier = threading.Barrier(4, timeout=5)

    def resolver(query):
        barrier.wait()
        return "http://img/x.jpg"

    itinerary = parse_itinerary([{"activities": [{"name": f"A{i}", "type": "Food"} for i in range(4)]}])
    enriched = enrich_itinerary(itinerary, resolver=resolver, max_workers=4)
    assert all(a.photo_url == "http://img/x.jpg" for a in enriched[0].activities)


def test_empty_and_malformed_inputs(day_dict):
    assert enrich_itinerary([], resolver=RecordingResolver()) == []
    assert enrich_itinerary(None, resolver=RecordingResolver()) == []

    result = enrich_itinerary([day_dict(), "bad"], resolver=RecordingResolver())
    assert isinstance(result[0], Day)
    assert result[1] == "bad"
