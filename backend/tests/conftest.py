import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


def _place(name: str, **extra) -> dict:
    data = {"name": name, "description": f"About {name}", "location": f"{name} Street"}
    data.update(extra)
    return data


@pytest.fixture
def day_dict():
    """Build a raw day record as returned by the itinerary model."""

    def build(
        index: int = 1,
        categories=("Nature", "Food", "Shopping", "Adventure", "Culture"),
        with_stay: bool = True,
        meals=("breakfast", "lunch", "dinner"),
        photo: str | None = None,
    ) -> dict:
        extra = {"photoUrl": photo} if photo is not None else {}
        day = {
            "departure_time": "8:00 AM",
            "distance": 120,
            "meals": {slot: _place(f"D{index} {slot}", **extra) for slot in meals},
            "activities": [
                _place(f"D{index} {cat} spot", type=cat, **extra) for cat in categories
            ],
        }
        if with_stay:
            day["stay_option"] = _place(f"D{index} Inn", **extra)
        return day

    return build
