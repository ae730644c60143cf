"""Project configuration.

Loads optional overrides from search_config.json when available, falling
back to the defaults below. Keep provider request shapes centralized here.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from .moods import apply_radius_overrides

_REPO_ROOT = Path(__file__).resolve().parent.parent

# --- API endpoints ---

OVERPASS_API_URL = "https://overpass-api.de/api/interpreter"
PLACES_NEARBY_SEARCH_URL = "https://places.googleapis.com/v1/places:searchNearby"

# --- Field masks ---

PLACES_FIELD_MASK = (
    "places.id,places.displayName,places.shortFormattedAddress,places.formattedAddress,"
    "places.rating,places.userRatingCount,places.priceLevel,places.location,"
    "places.types,places.currentOpeningHours.openNow"
)

# --- Providers ---

PROVIDERS = ("overpass", "google")
DEFAULT_PROVIDER = "overpass"

# --- Overpass request shape ---

OVERPASS_TIMEOUT_SECONDS = 45

# --- Places API request shape ---

PLACES_MAX_RADIUS_M = 50000
PLACES_MAX_RESULT_COUNT = 20

# --- Search ---

MAX_RESULTS = 20
MAX_RADIUS_MULTIPLIER = 4
FALLBACK_CATEGORY_TAG = "place"
MIN_RATING_OPTIONS = (0.0, 3.0, 3.5, 4.0, 4.5)

# --- HTTP ---

# Never shorter than OVERPASS_TIMEOUT_SECONDS: the server enforces its own limit.
HTTP_TIMEOUT_SECONDS = 60
HTTP_RETRY_MAX = 2
HTTP_INITIAL_DELAY_SECONDS = 2.0
HTTP_RETRY_STATUSES = (429, 504)
HTTP_USER_AGENT = "moodmap/0.1 (+https://www.openstreetmap.org/copyright)"

# --- Outputs ---

OUTPUT_DIR = "out"


def load_search_config(path: Optional[str] = None) -> bool:
    """Load search configuration from a JSON file.

    Updates module-level globals with values from the config file and
    rebuilds the mood catalog when radii are overridden. Must run before
    the first search. Returns True if config was loaded, False if file
    not found.
    """
    if path is None:
        path = str(_REPO_ROOT / "search_config.json")

    config_path = Path(path)
    if not config_path.exists():
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    globals_ref = globals()

    provider = data.get("provider")
    if provider is not None:
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown provider in {config_path}: {provider}")
        globals_ref["DEFAULT_PROVIDER"] = provider

    max_results = data.get("max_results")
    if max_results is not None:
        globals_ref["MAX_RESULTS"] = int(max_results)

    http: Dict[str, Any] = data.get("http", {})
    if "retry_max" in http:
        globals_ref["HTTP_RETRY_MAX"] = int(http["retry_max"])
    if "initial_delay_seconds" in http:
        globals_ref["HTTP_INITIAL_DELAY_SECONDS"] = float(http["initial_delay_seconds"])
    if "timeout_seconds" in http:
        globals_ref["HTTP_TIMEOUT_SECONDS"] = max(
            float(http["timeout_seconds"]), float(OVERPASS_TIMEOUT_SECONDS)
        )

    moods = data.get("moods", {})
    radii = {
        mood_id: int(values["radius_m"])
        for mood_id, values in moods.items()
        if isinstance(values, dict) and values.get("radius_m") is not None
    }
    if radii:
        apply_radius_overrides(radii)

    return True
