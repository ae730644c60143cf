"""Canonical value types shared by providers, the orchestrator and outputs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.latitude, "lon": self.longitude}


@dataclass
class Place:
    """A normalized search result.

    ``is_open_now`` is ``None`` when the opening state is unknown, which is
    not the same as closed. ``distance_km`` is filled in by normalization and
    is never taken from the provider.
    """

    id: str
    name: str
    location: Coordinate
    vicinity: str = ""
    category_tags: List[str] = field(default_factory=list)
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    price_level: Optional[int] = None
    is_open_now: Optional[bool] = None
    distance_km: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "vicinity": self.vicinity,
            "lat": self.location.latitude,
            "lon": self.location.longitude,
            "category_tags": list(self.category_tags),
            "rating": self.rating,
            "rating_count": self.rating_count,
            "price_level": self.price_level,
            "is_open_now": self.is_open_now,
            "distance_km": self.distance_km,
        }
