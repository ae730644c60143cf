"""Search orchestration."""
from __future__ import annotations

import logging
import math
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

from . import config
from .errors import ParseFailure, ProviderError, SearchFailure, TransportFailure
from .geo import distance_km
from .http import HttpClient, RequestMetrics
from .models import Coordinate, Place
from .moods import Mood, MoodProfile, get_mood_profile
from .opening_hours import is_open_now
from .overpass_client import OverpassClient
from .places_client import PlacesClient
from .refine import RefineOptions
from .reporting import (
    ensure_dir,
    write_markers_geojson,
    write_results_csv,
    write_results_json,
    write_summary,
)
from .scoring import synthetic_rating, synthetic_rating_count
from .session import SearchSession

logger = logging.getLogger(__name__)


class PlaceProvider(Protocol):
    name: str
    display_name: str
    native_ratings: bool

    def build_query(self, origin: Coordinate, profile: MoodProfile, radius_multiplier: float = 1) -> Any:
        ...

    def fetch(self, query: Any, cancel: Optional[threading.Event] = None) -> Dict[str, Any]:
        ...

    def parse(self, response: Dict[str, Any]) -> List[Dict[str, Any]]:
        ...


@dataclass
class PipelineResult:
    places: List[Place]
    displayed: List[Place]
    summary: Dict[str, Any]


class SearchOrchestrator:
    """Turns (origin, mood) into a sorted, capped list of normalized places.

    When a search yields no usable candidates the radius is doubled and the
    search repeated, up to ``max_radius_multiplier``. Provider, transport and
    parse errors surface as ``SearchFailure``; an empty list means the search
    itself succeeded.

    ``last_radius_multiplier`` records the final multiplier of the most recent
    call on this instance. Concurrent searches should each use their own
    orchestrator, as ``SearchSession`` does.
    """

    def __init__(
        self,
        provider: PlaceProvider,
        max_results: Optional[int] = None,
        max_radius_multiplier: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.provider = provider
        self.max_results = config.MAX_RESULTS if max_results is None else max_results
        self.max_radius_multiplier = (
            config.MAX_RADIUS_MULTIPLIER if max_radius_multiplier is None else max_radius_multiplier
        )
        self.clock = clock or _local_now
        self.last_radius_multiplier: Optional[float] = None

    def search(
        self,
        origin: Coordinate,
        mood: Union[Mood, str, MoodProfile],
        radius_multiplier: float = 1,
        cancel: Optional[threading.Event] = None,
    ) -> List[Place]:
        if radius_multiplier < 1:
            raise ValueError("radius_multiplier must be >= 1")
        profile = mood if isinstance(mood, MoodProfile) else get_mood_profile(mood)

        multiplier = radius_multiplier
        while True:
            self.last_radius_multiplier = multiplier
            query = self.provider.build_query(origin, profile, multiplier)
            candidates = self._fetch_candidates(query, cancel)
            places = normalize_candidates(
                candidates,
                origin,
                profile,
                synthesize_ratings=not self.provider.native_ratings,
                now=self.clock(),
            )
            if places or multiplier >= self.max_radius_multiplier:
                break
            logger.info(
                "No places found with radius %sm. Expanding search...",
                int(profile.base_radius_m * multiplier),
            )
            multiplier *= 2

        places.sort(key=distance_sort_key)
        capped = places[: self.max_results]
        logger.info(
            "Search %s/%s: %s places (radius x%s, returning %s)",
            self.provider.name, profile.id.value, len(places), multiplier, len(capped),
        )
        return capped

    def _fetch_candidates(
        self, query: Any, cancel: Optional[threading.Event]
    ) -> List[Dict[str, Any]]:
        label = self.provider.display_name
        try:
            response = self.provider.fetch(query, cancel=cancel)
            return self.provider.parse(response)
        except ProviderError as exc:
            raise SearchFailure(
                f"Failed to fetch places from {label} (HTTP {exc.status_code}). Please try again later.",
                cause=exc,
            ) from exc
        except TransportFailure as exc:
            raise SearchFailure(
                f"Failed to reach {label}: {exc}. Please check your connection and try again.",
                cause=exc,
            ) from exc
        except ParseFailure as exc:
            raise SearchFailure(
                f"Unexpected response from {label}: {exc}", cause=exc
            ) from exc


def _local_now() -> datetime:
    return datetime.now().astimezone()


def distance_sort_key(place: Place) -> float:
    return place.distance_km if place.distance_km is not None else 0.0


def _valid_coordinate(lat: Any, lon: Any) -> bool:
    if lat is None or lon is None or isinstance(lat, bool) or isinstance(lon, bool):
        return False
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        return False
    return math.isfinite(lat_f) and math.isfinite(lon_f)


def _valid_rating(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return None
    if not 0.0 <= rating <= 5.0:
        return None
    return rating


def normalize_candidates(
    candidates: List[Dict[str, Any]],
    origin: Coordinate,
    profile: MoodProfile,
    synthesize_ratings: bool,
    now: datetime,
) -> List[Place]:
    seen: set[str] = set()
    places: List[Place] = []
    for c in candidates:
        name = c.get("name")
        if not name or not isinstance(name, str) or not name.strip():
            continue
        if not _valid_coordinate(c.get("lat"), c.get("lon")):
            continue
        place_id = c.get("place_id")
        if not place_id:
            continue
        place_id = str(place_id)
        if place_id in seen:
            continue

        price_level = c.get("price_level")
        if (
            profile.max_price_level is not None
            and price_level is not None
            and price_level > profile.max_price_level
        ):
            continue
        seen.add(place_id)

        location = Coordinate(float(c["lat"]), float(c["lon"]))
        rating = _valid_rating(c.get("rating"))
        rating_count = c.get("user_rating_count")
        if synthesize_ratings and rating is None:
            rating = synthetic_rating(name)
            rating_count = synthetic_rating_count(rating)

        open_now = c.get("open_now")
        if open_now is None:
            open_now = is_open_now(c.get("opening_hours"), now)

        places.append(
            Place(
                id=place_id,
                name=name,
                vicinity=c.get("vicinity") or "",
                location=location,
                category_tags=list(c.get("types") or []) or [config.FALLBACK_CATEGORY_TAG],
                rating=rating,
                rating_count=int(rating_count) if rating_count is not None else None,
                price_level=price_level,
                is_open_now=open_now,
                distance_km=distance_km(origin, location),
            )
        )
    return places


# Wiring

def build_http_client(
    metrics: Optional[RequestMetrics] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> HttpClient:
    kwargs: Dict[str, Any] = {}
    if sleep is not None:
        kwargs["sleep"] = sleep
    return HttpClient(
        timeout=config.HTTP_TIMEOUT_SECONDS,
        retry_max=config.HTTP_RETRY_MAX,
        initial_delay=config.HTTP_INITIAL_DELAY_SECONDS,
        retry_statuses=config.HTTP_RETRY_STATUSES,
        user_agent=config.HTTP_USER_AGENT,
        metrics=metrics,
        **kwargs,
    )


def build_provider(
    name: str,
    http_client: HttpClient,
    api_key: Optional[str] = None,
) -> PlaceProvider:
    if name == "overpass":
        return OverpassClient(http_client)
    if name == "google":
        key = api_key if api_key is not None else os.environ.get("GOOGLE_MAPS_API_KEY", "")
        return PlacesClient(http_client, key.strip())
    raise ValueError(f"Unknown provider: {name}")


def run_search(
    origin: Coordinate,
    mood: Union[Mood, str],
    provider_name: Optional[str] = None,
    options: Optional[RefineOptions] = None,
    output_dir: str = config.OUTPUT_DIR,
    write_outputs: bool = True,
    provider: Optional[PlaceProvider] = None,
    metrics: Optional[RequestMetrics] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> PipelineResult:
    profile = get_mood_profile(mood)
    options = options or RefineOptions()
    if metrics is None:
        metrics = RequestMetrics()
    if provider is None:
        provider = build_provider(provider_name or config.DEFAULT_PROVIDER, build_http_client(metrics=metrics))

    session = SearchSession(lambda: SearchOrchestrator(provider, clock=clock))
    logger.info(
        "Searching %s for mood=%s around %.5f,%.5f",
        provider.display_name, profile.id.value, origin.latitude, origin.longitude,
    )
    outcome = session.search(origin, profile)
    if outcome.error is not None:
        raise outcome.error
    places = session.places
    displayed = session.displayed(options)
    multiplier = session.radius_multiplier

    summary = {
        "provider": provider.name,
        "mood": profile.id.value,
        "mood_label": profile.display_label,
        "origin": origin.to_dict(),
        "radius_multiplier": multiplier,
        "radius_m": profile.base_radius_m * (multiplier or 1),
        "found": len(places),
        "displayed": len(displayed),
        "sort_by": options.sort_by.value,
        "open_only": options.open_only,
        "min_rating": options.min_rating,
        "network_requests": metrics.network_requests,
        "retries": metrics.retries,
    }

    if write_outputs:
        ensure_dir(output_dir)
        write_results_json(os.path.join(output_dir, "results.json"), displayed)
        write_results_csv(os.path.join(output_dir, "results.csv"), displayed)
        write_markers_geojson(os.path.join(output_dir, "markers.geojson"), origin, displayed)
        write_summary(os.path.join(output_dir, "summary.txt"), render_summary(summary))

    return PipelineResult(places=places, displayed=displayed, summary=summary)


def render_summary(summary: Dict[str, Any]) -> List[str]:
    origin = summary.get("origin") or {}
    lines = [
        f"Provider: {summary.get('provider')}",
        f"Mood: {summary.get('mood_label')} ({summary.get('mood')})",
        f"Origin: {origin.get('lat')}, {origin.get('lon')}",
        f"Radius: {summary.get('radius_m')} m (x{summary.get('radius_multiplier')})",
        f"Places found: {summary.get('found')}",
        f"Places displayed: {summary.get('displayed')}",
        f"Sort: {summary.get('sort_by')}, open only: {summary.get('open_only')}, "
        f"min rating: {summary.get('min_rating')}",
        f"Network requests: {summary.get('network_requests')} (retries: {summary.get('retries')})",
    ]
    return lines
