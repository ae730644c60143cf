import json

import pytest

from moodmap import config
from moodmap.errors import ParseFailure, ProviderError
from moodmap.models import Coordinate
from moodmap.moods import Mood, get_mood_profile
from moodmap.places_client import (
    PlacesClient,
    build_nearby_search_body,
    parse_places_response,
    parse_price_level,
    parse_rating_count,
)

ORIGIN = Coordinate(40.7128, -74.0060)


def test_parse_places_missing_fields():
    response = {
        "places": [
            {"id": "p1"},
            {"id": "p2", "displayName": {"text": "Name", "languageCode": "en"}},
            {
                "id": "p3",
                "displayName": {"text": "Joe's"},
                "location": {"latitude": 1.0, "longitude": 2.0},
                "rating": 4.5,
                "userRatingCount": 321,
                "priceLevel": "PRICE_LEVEL_MODERATE",
                "currentOpeningHours": {"openNow": True},
                "shortFormattedAddress": "1 Main St",
                "types": ["cafe", "food"],
            },
        ]
    }

    parsed = parse_places_response(response)
    assert [p["place_id"] for p in parsed] == ["p1", "p2", "p3"]
    assert parsed[0]["name"] is None
    assert parsed[0]["lat"] is None
    assert parsed[0]["open_now"] is None
    assert parsed[1]["name"] == "Name"
    p3 = parsed[2]
    assert (p3["lat"], p3["lon"]) == (1.0, 2.0)
    assert p3["rating"] == 4.5
    assert p3["user_rating_count"] == 321
    assert p3["price_level"] == 2
    assert p3["open_now"] is True
    assert p3["vicinity"] == "1 Main St"
    assert p3["types"] == ["cafe", "food"]


def test_parse_empty_and_bad_shapes():
    assert parse_places_response({}) == []
    with pytest.raises(ParseFailure):
        parse_places_response("nope")
    with pytest.raises(ParseFailure):
        parse_places_response({"places": {"id": "x"}})


def test_price_level_variants():
    assert parse_price_level(None) is None
    assert parse_price_level(3) == 3
    assert parse_price_level("PRICE_LEVEL_INEXPENSIVE") == 1
    assert parse_price_level("PRICE_LEVEL_UNSPECIFIED") is None


def test_nearby_body_uses_place_types_and_caps_radius():
    profile = get_mood_profile(Mood.QUICK_BITE)
    body = build_nearby_search_body(ORIGIN, profile, 2000)
    assert body["includedTypes"] == ["restaurant", "cafe", "meal_takeaway"]
    assert body["locationRestriction"]["circle"]["radius"] == 2000.0
    assert body["locationRestriction"]["circle"]["center"] == {"latitude": 40.7128, "longitude": -74.0060}

    capped = build_nearby_search_body(ORIGIN, profile, 10 ** 6)
    assert capped["locationRestriction"]["circle"]["radius"] == float(config.PLACES_MAX_RADIUS_M)


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.url = config.PLACES_NEARBY_SEARCH_URL

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return self._payload


class FakeHttp:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post_json(self, url, payload, extra_headers=None, cancel=None):
        self.calls.append({"url": url, "payload": payload, "headers": extra_headers})
        return self.response


def test_fetch_sends_key_and_field_mask():
    http = FakeHttp(FakeResponse(200, {"places": []}))
    client = PlacesClient(http, api_key="dummy")
    query = client.build_query(ORIGIN, get_mood_profile(Mood.DATE), 2)

    assert client.fetch(query) == {"places": []}
    call = http.calls[0]
    assert call["url"] == config.PLACES_NEARBY_SEARCH_URL
    assert call["headers"]["X-Goog-Api-Key"] == "dummy"
    assert "places.currentOpeningHours.openNow" in call["headers"]["X-Goog-FieldMask"]
    assert json.loads(call["payload"])["locationRestriction"]["circle"]["radius"] == 10000.0


def test_fetch_non_ok_raises_provider_error():
    client = PlacesClient(FakeHttp(FakeResponse(403, {"error": {}})), api_key="dummy")
    query = client.build_query(ORIGIN, get_mood_profile(Mood.WORK), 1)
    with pytest.raises(ProviderError) as excinfo:
        client.fetch(query)
    assert excinfo.value.status_code == 403


def test_requires_api_key():
    with pytest.raises(ValueError):
        PlacesClient(FakeHttp(None), api_key="")


def test_parse_places_tolerates_malformed_fields():
    response = {
        "places": [
            {
                "id": "a",
                "displayName": {"text": "A"},
                "location": [52.2, 21.0],
                "currentOpeningHours": ["open"],
                "userRatingCount": "many",
                "shortFormattedAddress": 12,
                "types": "cafe",
            },
            {
                "id": "b",
                "displayName": {"text": "B"},
                "location": {"latitude": 52.2, "longitude": 21.0},
                "userRatingCount": "42",
                "types": ["cafe", 7],
            },
        ]
    }

    a, b = parse_places_response(response)
    assert (a["lat"], a["lon"]) == (None, None)
    assert a["open_now"] is None
    assert a["user_rating_count"] is None
    assert a["vicinity"] == ""
    assert a["types"] == []
    assert b["user_rating_count"] == 42
    assert b["types"] == ["cafe"]


def test_rating_count_variants():
    assert parse_rating_count(None) is None
    assert parse_rating_count(True) is None
    assert parse_rating_count("many") is None
    assert parse_rating_count(-3) is None
    assert parse_rating_count(float("inf")) is None
    assert parse_rating_count(15) == 15
