"""Client-side filtering and sorting over an already-fetched result set."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Sequence

from .models import Place


class SortOption(str, Enum):
    DISTANCE = "distance"
    RATING = "rating"
    POPULARITY = "popularity"


@dataclass(frozen=True)
class RefineOptions:
    sort_by: SortOption = SortOption.DISTANCE
    open_only: bool = False
    min_rating: float = 0.0


def _distance_key(place: Place) -> float:
    return place.distance_km or 0.0


def _rating_key(place: Place) -> float:
    return -(place.rating or 0.0)


def _popularity_key(place: Place) -> float:
    return -(place.rating_count or 0)


_SORT_KEYS: Dict[SortOption, Callable[[Place], float]] = {
    SortOption.DISTANCE: _distance_key,
    SortOption.RATING: _rating_key,
    SortOption.POPULARITY: _popularity_key,
}


def refine(places: Sequence[Place], options: RefineOptions) -> List[Place]:
    """Return a new filtered and stably sorted list; ``places`` is left untouched."""
    filtered = list(places)
    if options.open_only:
        filtered = [p for p in filtered if p.is_open_now is True]
    if options.min_rating > 0:
        filtered = [
            p for p in filtered if p.rating is not None and p.rating >= options.min_rating
        ]
    filtered.sort(key=_SORT_KEYS[SortOption(options.sort_by)])
    return filtered
