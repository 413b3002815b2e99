"""
Text helpers for the itinerary document: cleaning, display formatting,
line wrapping and output filenames.
"""
import math
import re
from datetime import date
from typing import Any, List, Optional

from reportlab.lib.utils import simpleSplit

NOT_SPECIFIED = "Not specified"

# Printable ASCII plus Latin-1 and Latin Extended-A; the standard PDF fonts
# have no glyphs beyond that.
_UNSUPPORTED_CHARS = re.compile(r"[^\x20-\x7E\u00A0-\u00FF\u0100-\u017F]")
_WHITESPACE = re.compile(r"\s+")
_FILENAME_HAZARDS = re.compile(r'[<>:"/\\|?*\s]+')


def clean_text(text: Any, fallback: str = NOT_SPECIFIED) -> str:
    """Strip unsupported characters, collapse whitespace, fall back when empty."""
    if not text or not isinstance(text, str):
        return fallback
    cleaned = _UNSUPPORTED_CHARS.sub("", _WHITESPACE.sub(" ", text))
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned or fallback


def format_time(value: Any) -> str:
    if value is None:
        return NOT_SPECIFIED
    cleaned = str(value).strip()
    return cleaned or NOT_SPECIFIED


def format_distance(distance: Any) -> str:
    """Return '12.5 km', or 'N/A' for missing, zero or unparsable values."""
    if not distance:
        return "N/A"
    try:
        num = float(distance)
    except (TypeError, ValueError):
        return "N/A"
    if math.isnan(num) or math.isinf(num):
        return "N/A"
    return f"{num:g} km"


def wrap_lines(
    text: str,
    font_name: str,
    font_size: float,
    max_width: float,
    max_lines: Optional[int] = None,
) -> List[str]:
    """
    Wrap text to max_width using the font's metrics, then keep at most
    max_lines lines. Extra lines are dropped without an ellipsis.
    """
    if not text:
        return []
    lines = simpleSplit(text, font_name, font_size, max_width)
    if max_lines is not None:
        lines = lines[:max_lines]
    return lines


def build_pdf_filename(title: str, on: Optional[date] = None) -> str:
    """'<sanitized-title>_<YYYY-MM-DD>.pdf'"""
    sanitized = _FILENAME_HAZARDS.sub("_", clean_text(title, "Travel Itinerary")).strip("_")
    sanitized = sanitized or "Travel_Itinerary"
    stamp = (on or date.today()).isoformat()
    return f"{sanitized}_{stamp}.pdf"
