"""
Image search proxy routes.

Forwards photo searches to Pexels so the API key never leaves the server.
"""
import logging

import requests
from fastapi import APIRouter, HTTPException, Query

from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)

PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"
_session = requests.Session()


@router.get("/search")
def search_photos(query: str = Query(min_length=1)):
    """Return Pexels' search payload (first result only)."""
    if not settings.PEXELS_API_KEY:
        raise HTTPException(status_code=503, detail="PEXELS_API_KEY is not configured")
    try:
        resp = _session.get(
            PEXELS_SEARCH_URL,
            params={"query": query, "per_page": 1},
            headers={"Authorization": settings.PEXELS_API_KEY},
            timeout=settings.IMAGE_LOOKUP_TIMEOUT,
        )
        resp.raise_for_status()
        return resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Pexels search failed for %r: %s", query, exc)
        raise HTTPException(status_code=502, detail="Pexels API request failed")
