"""Places API (Nearby Search) provider with response parsing."""
from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from . import config
from .errors import ParseFailure, ProviderError
from .http import HttpClient, decode_json
from .models import Coordinate
from .moods import MoodProfile

PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}


@dataclass(frozen=True)
class NearbySearchQuery:
    body: Dict[str, Any]
    radius_m: float
    origin: Coordinate


class PlacesClient:
    name = "google"
    display_name = "Google Places"
    native_ratings = True

    def __init__(
        self,
        http_client: HttpClient,
        api_key: str,
        field_mask: str = config.PLACES_FIELD_MASK,
        url: str = config.PLACES_NEARBY_SEARCH_URL,
    ) -> None:
        if not api_key:
            raise ValueError("API key is required for the Google Places provider")
        self.http = http_client
        self.api_key = api_key
        self.field_mask = field_mask
        self.url = url

    def build_query(
        self, origin: Coordinate, profile: MoodProfile, radius_multiplier: float = 1
    ) -> NearbySearchQuery:
        radius_m = profile.base_radius_m * radius_multiplier
        return NearbySearchQuery(
            body=build_nearby_search_body(origin, profile, radius_m),
            radius_m=radius_m,
            origin=origin,
        )

    def fetch(
        self, query: NearbySearchQuery, cancel: Optional[threading.Event] = None
    ) -> Dict[str, Any]:
        headers = {
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": self.field_mask,
        }
        resp = self.http.post_json(self.url, json.dumps(query.body), headers, cancel=cancel)
        if not resp.ok:
            raise ProviderError(resp.status_code, f"Places search failed: HTTP {resp.status_code}")
        try:
            return decode_json(resp)
        except ValueError as exc:
            raise ParseFailure(f"Places API returned a non-JSON body: {exc}") from exc

    def parse(self, response: Dict[str, Any]) -> List[Dict[str, Any]]:
        return parse_places_response(response)


def build_nearby_search_body(
    origin: Coordinate, profile: MoodProfile, radius_m: float
) -> Dict[str, Any]:
    return {
        "includedTypes": list(profile.place_types),
        "maxResultCount": config.PLACES_MAX_RESULT_COUNT,
        "locationRestriction": {
            "circle": {
                "center": {"latitude": origin.latitude, "longitude": origin.longitude},
                "radius": float(min(radius_m, config.PLACES_MAX_RADIUS_M)),
            }
        },
    }


def parse_price_level(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return PRICE_LEVELS.get(str(value))


def parse_rating_count(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return count if count >= 0 else None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


# Adapter/mapper for Places response fields

def parse_places_response(response: Any) -> List[Dict[str, Any]]:
    if not isinstance(response, dict):
        raise ParseFailure("Places response is not a JSON object")
    places = response.get("places") or []
    if not isinstance(places, list):
        raise ParseFailure("Places 'places' is not a list")

    parsed: List[Dict[str, Any]] = []
    for p in places:
        if not isinstance(p, dict):
            continue
        display = p.get("displayName")
        if isinstance(display, dict):
            name = display.get("text")
        else:
            name = display
        location = _as_dict(p.get("location"))
        opening = _as_dict(p.get("currentOpeningHours"))
        open_now = opening.get("openNow")
        types = p.get("types")
        parsed.append(
            {
                "place_id": p.get("id"),
                "name": name,
                "vicinity": _as_text(p.get("shortFormattedAddress")) or _as_text(p.get("formattedAddress")),
                "lat": location.get("latitude"),
                "lon": location.get("longitude"),
                "rating": p.get("rating"),
                "user_rating_count": parse_rating_count(p.get("userRatingCount")),
                "price_level": parse_price_level(p.get("priceLevel")),
                "open_now": open_now if isinstance(open_now, bool) else None,
                "opening_hours": None,
                "types": [t for t in types if isinstance(t, str)] if isinstance(types, list) else [],
            }
        )
    return parsed
