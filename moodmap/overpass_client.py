"""Overpass (OpenStreetMap) provider: query construction and response parsing."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from . import config
from .errors import ParseFailure, ProviderError
from .http import HttpClient, decode_json
from .models import Coordinate
from .moods import MoodProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverpassQuery:
    text: str
    radius_m: float
    origin: Coordinate
    category_tags: Tuple[str, ...]

    def form_body(self) -> str:
        return "data=" + quote(self.text, safe="")


class OverpassClient:
    name = "overpass"
    display_name = "OpenStreetMap"
    native_ratings = False

    def __init__(self, http_client: HttpClient, url: str = config.OVERPASS_API_URL) -> None:
        self.http = http_client
        self.url = url

    def build_query(
        self, origin: Coordinate, profile: MoodProfile, radius_multiplier: float = 1
    ) -> OverpassQuery:
        return build_overpass_query(origin, profile, radius_multiplier)

    def fetch(self, query: OverpassQuery, cancel: Optional[threading.Event] = None) -> Dict[str, Any]:
        logger.debug(
            "Overpass query radius=%sm tags=%s", format_radius(query.radius_m), ",".join(query.category_tags)
        )
        resp = self.http.post_form(self.url, query.form_body(), cancel=cancel)
        if not resp.ok:
            raise ProviderError(resp.status_code, f"Overpass API error: {resp.status_code}")
        try:
            return decode_json(resp)
        except ValueError as exc:
            raise ParseFailure(f"Overpass API returned a non-JSON body: {exc}") from exc

    def parse(self, response: Dict[str, Any]) -> List[Dict[str, Any]]:
        return parse_overpass_response(response)


def format_radius(radius_m: float) -> str:
    if float(radius_m).is_integer():
        return str(int(radius_m))
    return repr(float(radius_m))


def build_overpass_query(
    origin: Coordinate,
    profile: MoodProfile,
    radius_multiplier: float = 1,
) -> OverpassQuery:
    if radius_multiplier < 1:
        raise ValueError("radius_multiplier must be >= 1")
    radius_m = profile.base_radius_m * radius_multiplier
    radius = format_radius(radius_m)
    # Clauses inside the union are OR-ed by Overpass.
    clauses = [
        f'node["amenity"="{tag}"](around:{radius},{origin.latitude},{origin.longitude});'
        for tag in profile.category_tags
    ]
    lines = [f"[out:json][timeout:{config.OVERPASS_TIMEOUT_SECONDS}];", "("]
    lines.extend(f"  {clause}" for clause in clauses)
    lines.extend([");", "out body;", ">;", "out skel qt;"])
    return OverpassQuery(
        text="\n".join(lines),
        radius_m=radius_m,
        origin=origin,
        category_tags=tuple(profile.category_tags),
    )


def format_vicinity(tags: Dict[str, Any]) -> str:
    street = tags.get("addr:street")
    if street:
        number = tags.get("addr:housenumber")
        return f"{street} {number}" if number else str(street)
    return str(tags.get("addr:city") or "")


# Adapter/mapper for Overpass element fields

def parse_overpass_response(response: Any) -> List[Dict[str, Any]]:
    if not isinstance(response, dict):
        raise ParseFailure("Overpass response is not a JSON object")
    elements = response.get("elements")
    if elements is None:
        return []
    if not isinstance(elements, list):
        raise ParseFailure("Overpass 'elements' is not a list")

    parsed: List[Dict[str, Any]] = []
    for element in elements:
        if not isinstance(element, dict):
            continue
        tags = element.get("tags") or {}
        if not isinstance(tags, dict):
            tags = {}
        element_id = element.get("id")
        amenity = tags.get("amenity")
        parsed.append(
            {
                "place_id": str(element_id) if element_id is not None else None,
                "name": tags.get("name"),
                "vicinity": format_vicinity(tags),
                "lat": element.get("lat"),
                "lon": element.get("lon"),
                "rating": None,
                "user_rating_count": None,
                "price_level": None,
                "open_now": None,
                "opening_hours": tags.get("opening_hours"),
                "types": [amenity] if isinstance(amenity, str) and amenity else [],
            }
        )
    return parsed
