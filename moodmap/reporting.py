"""Output reporting helpers."""
from __future__ import annotations

import csv
import json
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, TextIO

from .models import Coordinate, Place

RESULT_FIELDS = [
    "id",
    "name",
    "vicinity",
    "lat",
    "lon",
    "category_tags",
    "rating",
    "rating_count",
    "price_level",
    "is_open_now",
    "distance_km",
]


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _fsync_dir(path: str) -> None:
    try:
        dir_fd = os.open(path, os.O_DIRECTORY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


@contextmanager
def atomic_writer(
    path: str,
    mode: str = "w",
    encoding: str = "utf-8",
    newline: Optional[str] = None,
) -> Iterator[TextIO]:
    dir_path = os.path.dirname(path) or "."
    base = os.path.basename(path)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{base}.", suffix=".tmp", dir=dir_path)
    try:
        with os.fdopen(fd, mode, encoding=encoding, newline=newline) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        _fsync_dir(dir_path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def atomic_write_text(path: str, text: str) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        f.write(text)


def write_results_json(path: str, places: Iterable[Place]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        json.dump([p.to_dict() for p in places], f, ensure_ascii=False, indent=2)


def write_results_csv(path: str, places: Iterable[Place]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=RESULT_FIELDS)
        writer.writeheader()
        for place in places:
            row = place.to_dict()
            row["category_tags"] = json.dumps(row["category_tags"], ensure_ascii=False)
            writer.writerow(row)


def build_markers_geojson(origin: Coordinate, places: Iterable[Place]) -> Dict[str, Any]:
    """Feature collection for the map: the origin plus one marker per place."""
    features: List[Dict[str, Any]] = [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [origin.longitude, origin.latitude]},
            "properties": {"kind": "origin"},
        }
    ]
    for place in places:
        props = place.to_dict()
        props.pop("lat")
        props.pop("lon")
        props["kind"] = "place"
        features.append(
            {
                "type": "Feature",
                "geometry": {
                    "type": "Point",
                    # GeoJSON is lon, lat.
                    "coordinates": [place.location.longitude, place.location.latitude],
                },
                "properties": props,
            }
        )
    return {"type": "FeatureCollection", "features": features}


def write_markers_geojson(path: str, origin: Coordinate, places: Iterable[Place]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        json.dump(build_markers_geojson(origin, places), f, ensure_ascii=False, indent=2)


def write_summary(path: str, summary_lines: List[str]) -> None:
    atomic_write_text(path, "\n".join(summary_lines) + "\n")


def format_place_line(index: int, place: Place) -> str:
    parts = [f"{index:2d}. {place.name}"]
    if place.distance_km is not None:
        parts.append(f"{place.distance_km:.1f} km")
    if place.rating is not None:
        rating = f"{place.rating:.1f}*"
        if place.rating_count is not None:
            rating += f" ({place.rating_count})"
        parts.append(rating)
    if place.is_open_now is True:
        parts.append("open now")
    elif place.is_open_now is False:
        parts.append("closed")
    if place.vicinity:
        parts.append(place.vicinity)
    return " | ".join(parts)
