"""Mood catalog: what each mood searches for and how it is displayed."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple, Union


class Mood(str, Enum):
    WORK = "work"
    DATE = "date"
    QUICK_BITE = "quick-bite"
    BUDGET = "budget"


@dataclass(frozen=True)
class MoodProfile:
    id: Mood
    display_label: str
    # OpenStreetMap amenity values, one query clause each.
    category_tags: Tuple[str, ...]
    base_radius_m: int
    # Places API types for the commercial provider.
    place_types: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    icon: str = ""
    color: str = ""
    max_price_level: Optional[int] = None


_BUILTIN_PROFILES: Dict[Mood, MoodProfile] = {
    Mood.WORK: MoodProfile(
        id=Mood.WORK,
        display_label="Work & Study",
        category_tags=("cafe", "library", "coworking_space", "internet_cafe"),
        base_radius_m=3000,
        place_types=("cafe", "library"),
        keywords=("coffee", "wifi", "coworking"),
        icon="briefcase",
        color="bg-blue-500",
    ),
    Mood.DATE: MoodProfile(
        id=Mood.DATE,
        display_label="Date Night",
        category_tags=("restaurant", "bar", "pub", "nightclub", "theatre", "cinema"),
        base_radius_m=5000,
        place_types=("restaurant", "bar"),
        keywords=("romantic", "dinner", "fine dining"),
        icon="heart",
        color="bg-rose-500",
    ),
    Mood.QUICK_BITE: MoodProfile(
        id=Mood.QUICK_BITE,
        display_label="Quick Bite",
        category_tags=("fast_food", "cafe", "food_court", "ice_cream"),
        base_radius_m=2000,
        place_types=("restaurant", "cafe", "meal_takeaway"),
        keywords=("fast food", "quick", "takeout"),
        icon="utensils",
        color="bg-orange-500",
    ),
    Mood.BUDGET: MoodProfile(
        id=Mood.BUDGET,
        display_label="Budget Friendly",
        category_tags=("fast_food", "cafe", "food_court", "restaurant", "marketplace"),
        base_radius_m=3000,
        place_types=("restaurant", "cafe", "food"),
        keywords=("cheap", "affordable", "budget"),
        icon="wallet",
        color="bg-green-500",
        max_price_level=2,
    ),
}

MOOD_PROFILES: Dict[Mood, MoodProfile] = dict(_BUILTIN_PROFILES)


def get_mood_profile(mood: Union[Mood, str]) -> MoodProfile:
    try:
        key = Mood(mood)
    except ValueError:
        choices = ", ".join(m.value for m in Mood)
        raise ValueError(f"Unknown mood: {mood!r} (expected one of: {choices})") from None
    return MOOD_PROFILES[key]


def all_profiles() -> Tuple[MoodProfile, ...]:
    return tuple(MOOD_PROFILES[m] for m in Mood)


def apply_radius_overrides(radii: Mapping[str, int]) -> None:
    """Replace base radii at startup. Profiles stay frozen; new ones are built."""
    for mood_id, radius_m in radii.items():
        profile = get_mood_profile(mood_id)
        if int(radius_m) <= 0:
            raise ValueError(f"radius_m must be positive for mood {mood_id!r}")
        MOOD_PROFILES[profile.id] = replace(profile, base_radius_m=int(radius_m))


def reset_profiles() -> None:
    MOOD_PROFILES.clear()
    MOOD_PROFILES.update(_BUILTIN_PROFILES)
