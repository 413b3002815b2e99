"""
Itinerary API routes.

Handles generation, the enriched preview and PDF download. A single preview
session holds the current itinerary; there is no per-user state.
"""
import logging
import threading
from typing import Any, List, Optional

from fastapi import APIRouter, Body, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from domain.models import INTEREST_CATEGORIES, Budget, itinerary_to_dicts, parse_itinerary
from services.enrichment import ItineraryPreview
from services.itinerary_generation import GenerationError, TripPreferences, generate_itinerary
from services.layout_engine import EmptyItineraryError
from services.render_pdf import render_itinerary_pdf_bytes

router = APIRouter()
preview = ItineraryPreview()
_render_lock = threading.Lock()
logger = logging.getLogger(__name__)


class TripPreferencesRequest(BaseModel):
    location: str = Field(min_length=1)
    budget: Budget = Budget.MEDIUM
    range_km: float = Field(gt=0)
    people: int = Field(ge=1)
    days: int = Field(ge=1)
    daily_hours: float = Field(gt=0, le=24)


class ItineraryResponse(BaseModel):
    status: str
    error: Optional[str] = None
    generation: int
    days: List[Any]


class PdfRequest(BaseModel):
    title: str = "Travel Itinerary"
    traveler_name: str = ""
    date_range: str = ""
    interests: List[str] = Field(default_factory=lambda: list(INTEREST_CATEGORIES))
    include_images: Optional[bool] = None


def _preview_response(days: List[Any]) -> ItineraryResponse:
    state = preview.state
    return ItineraryResponse(
        status=state.status.value,
        error=preview.error_message,
        generation=preview.generation,
        days=itinerary_to_dicts(days),
    )


@router.post("/generate", response_model=ItineraryResponse)
def generate(request: TripPreferencesRequest):
    """
    Generate a new itinerary and start enriching it with photos.

    A failed generation leaves the current itinerary untouched.
    """
    prefs = TripPreferences(
        location=request.location,
        budget=request.budget,
        range_km=request.range_km,
        people=request.people,
        days=request.days,
        daily_hours=request.daily_hours,
    )
    try:
        days = generate_itinerary(prefs)
    except GenerationError as exc:
        logger.warning("Itinerary generation failed: %s", exc)
        raise HTTPException(status_code=502, detail=f"Failed to generate itinerary: {exc}")
    preview.submit(days)
    return _preview_response(days)


@router.put("", response_model=ItineraryResponse)
async def replace_itinerary(days: List[Any] = Body(...)):
    """Install a caller-supplied raw itinerary (e.g. a saved generation)."""
    itinerary = parse_itinerary(days)
    preview.submit(itinerary)
    return _preview_response(itinerary)


@router.get("", response_model=ItineraryResponse)
async def get_itinerary(interests: List[str] = Query(default=list(INTEREST_CATEGORIES))):
    """Current itinerary filtered to the selected interests."""
    return _preview_response(preview.filtered(interests))


@router.post("/pdf")
def download_pdf(request: PdfRequest):
    """
    Render the filtered itinerary to PDF and return it as a download.

    One document is rendered at a time; the PDF is built in memory and
    nothing is kept on disk.
    """
    if preview.is_busy:
        raise HTTPException(status_code=409, detail="Itinerary images are still loading")
    if not _render_lock.acquire(blocking=False):
        raise HTTPException(status_code=409, detail="Another PDF is already being generated")

    try:
        days = preview.filtered(request.interests)
        filename, content = render_itinerary_pdf_bytes(
            days,
            title=request.title,
            traveler_name=request.traveler_name,
            date_range=request.date_range,
            include_images=request.include_images,
        )
    except EmptyItineraryError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    finally:
        _render_lock.release()

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
