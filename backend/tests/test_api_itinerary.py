import threading
from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.routes import images as images_router
from api.routes import itinerary as itinerary_router
from domain.models import parse_itinerary
from services import render_pdf
from services.enrichment import ItineraryPreview
from services.itinerary_generation import GenerationError


def _app() -> FastAPI:
    app = FastAPI()
    app.include_router(itinerary_router.router, prefix="/itinerary")
    app.include_router(images_router.router, prefix="/api/pexels")
    return app


def _wait(preview: ItineraryPreview) -> None:
    if preview._pending is not None:
        preview._pending.result(timeout=5)


@pytest.fixture
def preview():
    fresh = ItineraryPreview(resolver=lambda q: "http://img/" + q.replace(" ", "-"), max_workers=2)
    with patch.object(itinerary_router, "preview", fresh):
        yield fresh


@pytest.fixture
def client(preview):
    return TestClient(_app())


@patch.object(itinerary_router, "generate_itinerary")
def test_generate_returns_raw_days_and_starts_enrichment(mock_generate, client, preview, day_dict):
    mock_generate.return_value = parse_itinerary([day_dict()])

    res = client.post(
        "/itinerary/generate",
        json={"location": "Kyoto", "budget": "High", "range_km": 80, "people": 2, "days": 1, "daily_hours": 8},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["generation"] == 1
    assert body["days"][0]["stay_option"]["name"] == "D1 Inn"
    prefs = mock_generate.call_args.args[0]
    assert prefs.location == "Kyoto"
    assert prefs.days == 1

    _wait(preview)
    res = client.get("/itinerary")
    body = res.json()
    assert body["status"] == "done"
    assert body["days"][0]["stay_option"]["photoUrl"] == "http://img/D1-Inn-hotel"


@patch.object(itinerary_router, "generate_itinerary")
def test_generate_failure_keeps_current_itinerary(mock_generate, client, preview, day_dict):
    preview.refresh(parse_itinerary([day_dict()]))
    mock_generate.side_effect = GenerationError("upstream timed out")

    res = client.post(
        "/itinerary/generate",
        json={"location": "Kyoto", "range_km": 80, "people": 2, "days": 1, "daily_hours": 8},
    )

    assert res.status_code == 502
    assert "Failed to generate itinerary" in res.json()["detail"]
    assert preview.generation == 1
    assert len(client.get("/itinerary").json()["days"]) == 1


def test_generate_validates_preferences(client):
    res = client.post("/itinerary/generate", json={"location": "", "range_km": 0, "people": 0, "days": 1, "daily_hours": 8})
    assert res.status_code == 422


def test_get_filters_by_interests(client, preview, day_dict):
    res = client.put("/itinerary", json=[day_dict(1), day_dict(2)])
    assert res.status_code == 200
    _wait(preview)

    res = client.get("/itinerary", params=[("interests", "Food"), ("interests", "culture")])
    days = res.json()["days"]
    assert len(days) == 2
    assert [a["type"] for a in days[0]["activities"]] == ["Food", "Culture"]
    # Meals and lodging are never filtered
    assert set(days[0]["meals"]) == {"breakfast", "lunch", "dinner"}
    assert days[1]["stay_option"]["name"] == "D2 Inn"


def test_get_defaults_to_all_interests(client, preview, day_dict):
    client.put("/itinerary", json=[day_dict()])
    _wait(preview)
    days = client.get("/itinerary").json()["days"]
    assert len(days[0]["activities"]) == 5


def test_pdf_download(tmp_path, client, preview, day_dict):
    preview.refresh(parse_itinerary([day_dict(1), day_dict(2)]))

    with patch.object(render_pdf.settings, "PDF_OUTPUT_DIR", str(tmp_path)):
        res = client.post(
            "/itinerary/pdf",
            json={"title": "Kyoto Loop", "traveler_name": "Ren", "interests": ["Nature"], "include_images": False},
        )

    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert 'filename="Kyoto_Loop_' in res.headers["content-disposition"]
    assert res.content.startswith(b"%PDF")
    # Rendered in memory only
    assert list(tmp_path.iterdir()) == []


def test_pdf_rejected_when_empty(client):
    res = client.post("/itinerary/pdf", json={"include_images": False})
    assert res.status_code == 400


def test_pdf_rejected_while_enrichment_in_progress(day_dict):
    release = threading.Event()

    def slow_resolver(query):
        release.wait(timeout=5)
        return None

    busy = ItineraryPreview(resolver=slow_resolver, max_workers=1)
    with patch.object(itinerary_router, "preview", busy):
        client = TestClient(_app())
        client.put("/itinerary", json=[day_dict()])
        try:
            res = client.post("/itinerary/pdf", json={"include_images": False})
            assert res.status_code == 409
        finally:
            release.set()
        _wait(busy)
        res = client.post("/itinerary/pdf", json={"include_images": False})
        assert res.status_code == 200


def test_overlapping_pdf_downloads(client, preview, day_dict):
    preview.refresh(parse_itinerary([day_dict(photo="http://img/slow.jpg")]))
    loading = threading.Event()
    release = threading.Event()

    def slow_loader(url):
        loading.set()
        release.wait(timeout=5)
        return None

    first = {}

    def download():
        first["res"] = client.post("/itinerary/pdf", json={"title": "Same Trip", "include_images": True})

    with patch.object(render_pdf, "fetch_image", slow_loader):
        worker = threading.Thread(target=download)
        worker.start()
        try:
            assert loading.wait(timeout=5)
            second = client.post("/itinerary/pdf", json={"title": "Same Trip", "include_images": True})
        finally:
            release.set()
            worker.join(timeout=10)

    assert second.status_code == 409
    assert first["res"].status_code == 200
    assert first["res"].content.startswith(b"%PDF")
    assert first["res"].content.rstrip().endswith(b"%%EOF")

    again = client.post("/itinerary/pdf", json={"title": "Same Trip", "include_images": False})
    assert again.status_code == 200


def test_pexels_proxy_requires_key(client):
    with patch.object(images_router.settings, "PEXELS_API_KEY", None):
        res = client.get("/api/pexels/search", params={"query": "lake"})
    assert res.status_code == 503


@patch.object(images_router, "_session")
def test_pexels_proxy_forwards_search(mock_session, client):
    upstream = MagicMock()
    upstream.raise_for_status.return_value = None
    upstream.json.return_value = {"photos": [{"src": {"medium": "http://img/lake.jpg"}}]}
    mock_session.get.return_value = upstream

    with patch.object(images_router.settings, "PEXELS_API_KEY", "secret"):
        res = client.get("/api/pexels/search", params={"query": "lake"})

    assert res.status_code == 200
    assert res.json()["photos"][0]["src"]["medium"] == "http://img/lake.jpg"
    _, kwargs = mock_session.get.call_args
    assert kwargs["params"] == {"query": "lake", "per_page": 1}
    assert kwargs["headers"] == {"Authorization": "secret"}


@patch.object(images_router, "_session")
def test_pexels_proxy_upstream_failure(mock_session, client):
    mock_session.get.side_effect = requests.ConnectionError("refused")
    with patch.object(images_router.settings, "PEXELS_API_KEY", "secret"):
        res = client.get("/api/pexels/search", params={"query": "lake"})
    assert res.status_code == 502
