"""
Itinerary generation via an OpenAI-compatible chat completions endpoint.

Builds the planner prompt from trip preferences, asks the model for a JSON
array of days and parses it into domain objects. The model output is
trusted as-is: distances are not checked against the requested range.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from openai import OpenAI

from domain.models import INTEREST_CATEGORIES, Budget, parse_itinerary
from settings import settings

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


class GenerationError(Exception):
    """The upstream call failed or its reply was not an itinerary."""


@dataclass(frozen=True)
class TripPreferences:
    location: str
    budget: Budget = Budget.MEDIUM
    range_km: float = 100
    people: int = 1
    days: int = 1
    daily_hours: float = 8


_CATEGORY_EXAMPLES = {
    "Nature": "park, scenic area, garden, lake, forest, mountain trail, wildlife viewing, picnic spot, etc.",
    "Food": "local restaurant, famous food spot, food market, street food, tasting tour, etc.",
    "Shopping": "unique shop, market, mall, open bazaar, souvenir spot, etc.",
    "Adventure": "hike, trek, fun outdoor activity, biking, sport, adventure park, river rafting, etc.",
    "Culture": "museum, monument, temple, art gallery, heritage site, historical landmark, music or dance event, craft workshop, etc.",
}


def _fmt_number(value: float) -> str:
    return f"{value:g}" if isinstance(value, float) else str(value)


def build_generation_prompt(prefs: TripPreferences) -> str:
    """Render the planner prompt for a set of trip preferences."""
    range_km = _fmt_number(prefs.range_km)
    budget = prefs.budget.value if isinstance(prefs.budget, Budget) else str(prefs.budget)
    category_lines = "\n".join(
        f"  - One activity that is a {c.upper()} experience (e.g., {_CATEGORY_EXAMPLES[c]})"
        for c in INTEREST_CATEGORIES
    )
    activity_examples = ",\n".join(
        f'    {{ "name": "...", "type": "{c}", "description": "...", "location": "..." }}'
        for c in INTEREST_CATEGORIES
    )
    return f"""
You are an expert travel planner. Using ONLY the following user constraints, generate a JSON array (one object per day) for their road trip.

Location: {prefs.location}
Budget: {budget}
Range (maximum per day): {range_km} km
People: {prefs.people}
Days: {prefs.days}
Daily Hours: {_fmt_number(prefs.daily_hours)}

IMPORTANT:
- For each day, the "distance" field MUST NOT exceed {range_km} km.
- Ensure each day's total distance (from start to last stop) is within this strict maximum.
- For each day, "departure_time" should be adjusted according to the daily travel hours; with few hours no one wants to leave early.

For EVERY day, the "activities" array MUST always include:
{category_lines}

For days where more activities are possible, you may add more, but ALWAYS include at least one from each category above and mark each with its type.

For each day, output as follows:
{{
  "departure_time": (e.g. "8:00 AM"),
  "distance": (number, maximum {range_km}, per day, km),
  "meals": {{
    "breakfast": {{ "name": "...", "description": "...", "location": "..." }},
    "lunch": {{ "name": "...", "description": "...", "location": "..." }},
    "dinner": {{ "name": "...", "description": "...", "location": "..." }}
  }},
  "activities": [
{activity_examples}
  ],
  "stay_option": {{ "name": "...", "location": "..." }}
}}

Strictly follow this structure. DO NOT skip or combine categories, and do NOT explain; output ONLY the JSON array.
""".strip()


def _strip_code_fences(content: str) -> str:
    text = content.strip()
    text = _FENCE_OPEN.sub("", text)
    return _FENCE_CLOSE.sub("", text).strip()


def parse_generation_response(content: Optional[str]) -> List[Any]:
    """Parse the model's reply into a list of days."""
    if not content:
        raise GenerationError("Empty response from itinerary model")
    try:
        payload = json.loads(_strip_code_fences(content))
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse AI response as JSON: %s", exc)
        raise GenerationError("Itinerary response was not valid JSON") from exc

    if isinstance(payload, dict) and isinstance(payload.get("days"), list):
        payload = payload["days"]
    if not isinstance(payload, list):
        raise GenerationError("Itinerary response was not a list of days")
    return parse_itinerary(payload)


def _default_client() -> OpenAI:
    if not settings.OPENROUTER_API_KEY:
        raise GenerationError("OPENROUTER_API_KEY is not set")
    return OpenAI(
        api_key=settings.OPENROUTER_API_KEY,
        base_url=settings.GENERATION_BASE_URL,
        default_headers={"HTTP-Referer": settings.GENERATION_REFERER},
    )


def generate_itinerary(prefs: TripPreferences, client: Optional[OpenAI] = None) -> List[Any]:
    """Ask the model for an itinerary matching prefs."""
    client = client or _default_client()
    logger.debug(
        "Calling chat completions: model=%s location=%s days=%d",
        settings.GENERATION_MODEL,
        prefs.location,
        prefs.days,
    )
    try:
        response = client.chat.completions.create(
            model=settings.GENERATION_MODEL,
            messages=[{"role": "user", "content": build_generation_prompt(prefs)}],
            temperature=settings.GENERATION_TEMPERATURE,
        )
        content = response.choices[0].message.content
    except Exception as exc:
        logger.error("Itinerary generation request failed: %s", exc)
        raise GenerationError(f"Itinerary generation request failed: {exc}") from exc

    days = parse_generation_response(content)
    logger.info("Generated itinerary with %d days for %s", len(days), prefs.location)
    return days
