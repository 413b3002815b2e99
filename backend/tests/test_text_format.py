from datetime import date

from services.text_format import (
    build_pdf_filename,
    clean_text,
    format_distance,
    format_time,
    wrap_lines,
)


def test_clean_text_strips_unsupported_and_collapses_whitespace():
    assert clean_text("  Tokyo\tTower  🗼 visit ") == "Tokyo Tower visit"
    assert clean_text("Zürich Łódź") == "Zürich Łódź"


def test_clean_text_fallbacks():
    assert clean_text(None) == "Not specified"
    assert clean_text("") == "Not specified"
    assert clean_text(12) == "Not specified"
    assert clean_text("🌋🌋", fallback="Activity") == "Activity"


def test_format_distance():
    assert format_distance(42) == "42 km"
    assert format_distance(12.5) == "12.5 km"
    assert format_distance("80") == "80 km"
    assert format_distance(0) == "N/A"
    assert format_distance(None) == "N/A"
    assert format_distance("far") == "N/A"


def test_format_time():
    assert format_time(" 8:00 AM ") == "8:00 AM"
    assert format_time("") == "Not specified"
    assert format_time(None) == "Not specified"


def test_wrap_lines_truncates_by_line_count():
    text = "word " * 200
    lines = wrap_lines(text, "Helvetica", 10, 200, max_lines=3)
    assert len(lines) == 3
    assert all(lines)
    assert len(wrap_lines(text, "Helvetica", 10, 200)) > 3
    assert wrap_lines("", "Helvetica", 10, 200) == []


def test_build_pdf_filename_sanitizes_hazards():
    assert build_pdf_filename('My "Big" Trip: <Rome>/Naples?', date(2025, 3, 9)) == "My_Big_Trip_Rome_Naples_2025-03-09.pdf"
    assert build_pdf_filename("", date(2025, 3, 9)) == "Travel_Itinerary_2025-03-09.pdf"
