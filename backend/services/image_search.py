"""
Lightweight photo lookup client for the image-search proxy.

The proxy fronts the Pexels search API: ``GET /api/pexels/search?query=...``
answers with Pexels' payload, and the first photo's medium-size URL is used.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import requests

from settings import settings

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/pexels/search"


def first_photo_url(payload: Any) -> Optional[str]:
    """Extract ``photos[0].src.medium`` from a Pexels-style payload."""
    if not isinstance(payload, dict):
        return None
    photos = payload.get("photos") or []
    if not isinstance(photos, list) or not photos:
        return None
    first = photos[0]
    if not isinstance(first, dict):
        return None
    src = first.get("src") or {}
    if not isinstance(src, dict):
        return None
    url = src.get("medium")
    return url if isinstance(url, str) and url else None


class ImageSearchClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        base = base_url or settings.IMAGE_PROXY_BASE_URL
        self.base_url = base.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.IMAGE_LOOKUP_TIMEOUT
        # Without an injected session, each calling thread gets its own.
        self._shared_session = session
        self._local = threading.local()
        self.logger = logging.getLogger(__name__)

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    def resolve(self, query: str) -> Optional[str]:
        """
        Return a representative photo URL for a free-text query, or None.

        Never raises: transport, HTTP and parse failures all mean "no photo".
        """
        if not query or not query.strip():
            return None
        try:
            resp = self.session.get(
                f"{self.base_url}{SEARCH_PATH}",
                params={"query": query},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            self.logger.warning("Image search failed for %r: %s", query, exc)
            return None

        url = first_photo_url(data)
        self.logger.debug("ImageSearchClient.resolve: query=%r found=%s", query, bool(url))
        return url


_default_image_search_client: Optional[ImageSearchClient] = None


def get_default_image_search_client() -> ImageSearchClient:
    global _default_image_search_client
    if _default_image_search_client is None:
        _default_image_search_client = ImageSearchClient()
    return _default_image_search_client
