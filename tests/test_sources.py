import asyncio

from geodata.core.errors import InvalidResponseError, RequestFailedError
from geodata.core.fetcher import ZoneFetcher
from geodata.etl.sources import DenueSource, GooglePlacesSource
from geodata.models import LocationType, Zone

ZONE = Zone(19.3029, -99.1504, "Estadio Azteca", 4000.0)


class FakeGoogleClient:
    def __init__(self, places, details):
        self.places = places
        self.details = details
        self.detail_calls = []

    async def search_nearby(self, latitude, longitude, radius_meters):
        return self.places

    async def place_details(self, place_id):
        self.detail_calls.append(place_id)
        value = self.details[place_id]
        if isinstance(value, Exception):
            raise value
        return value

    def photo_uri(self, photo_name):
        return f"https://photos/{photo_name}"


def _details(name):
    return {
        "displayName": {"text": name},
        "primaryType": "tourist_attraction",
        "types": ["tourist_attraction"],
        "location": {"latitude": 19.30, "longitude": -99.15},
        "photos": [{"name": f"places/{name}/photos/1"}],
    }


def test_google_source_filters_places_and_fetches_details():
    places = [
        {"id": "p1", "primaryType": "restaurant", "types": ["restaurant"], "rating": 4.5},
        {"id": "p2", "primaryType": "gas_station", "types": ["gas_station"], "rating": 4.9},
        {"id": "p3", "primaryType": "cafe", "types": ["cafe"], "rating": 1.0, "userRatingCount": 2},
        {"id": "p4", "primaryType": "tourist_attraction", "types": ["tourist_attraction"], "rating": 4.8},
        {"id": "p5", "primaryType": "museum", "types": ["museum"], "rating": 4.7},
        {"id": "p6", "primaryType": "bar", "types": ["bar"], "rating": 4.1},
        {"id": "p1", "primaryType": "restaurant", "types": ["restaurant"], "rating": 4.5},
        {"primaryType": "bar", "types": ["bar"], "rating": 4.1},
    ]
    client = FakeGoogleClient(
        places,
        {
            "p1": _details("Fonda"),
            "p4": _details("Estadio Azteca"),
            "p6": RequestFailedError("timed out"),
        },
    )
    source = GooglePlacesSource(client, ZoneFetcher(batch_size=2))

    result = asyncio.run(source.scan_zone(ZONE, seen={"p5"}))

    assert client.detail_calls == ["p1", "p4", "p6"]
    assert [r.external_id for r in result.records] == ["p1", "p4"]
    assert result.records[1].primary_type == "stadium"
    assert result.records[0].photo_uri == "https://photos/places/Fonda/photos/1"
    assert result.failed_requests == 1


class FakeDenueClient:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    async def search(self, keyword, latitude, longitude, radius_meters):
        self.calls.append((keyword, radius_meters))
        value = self.responses.get(keyword, [])
        if isinstance(value, Exception):
            raise value
        return value


def _denue_item(business_id, activity="Restaurantes"):
    return {
        "Id": business_id,
        "Nombre": f"NEGOCIO {business_id}",
        "Clase_actividad": activity,
        "Latitud": "19.30",
        "Longitud": "-99.15",
    }


def test_denue_source_searches_every_keyword_of_its_categories():
    client = FakeDenueClient(
        {
            "restaurantes": [_denue_item("1"), _denue_item("2")],
            "taquerías": [_denue_item("2")],
            "estadios": [_denue_item("3", "Estadios")],
            "arena": InvalidResponseError(500, "https://denue/<token>"),
        }
    )
    source = DenueSource(client, ZoneFetcher(batch_size=3), categories=[LocationType.FOOD, LocationType.STADIUM])

    result = asyncio.run(source.scan_zone(ZONE))

    assert source.keywords == ["restaurantes", "cafeterías", "taquerías", "comida", "estadios", "arena"]
    assert [keyword for keyword, _ in client.calls] == source.keywords
    assert all(radius == 4000.0 for _, radius in client.calls)
    assert [r.external_id for r in result.records] == ["1", "2", "2", "3"]
    assert result.records[-1].primary_type == "stadium"
    assert result.failed_requests == 1
    assert [o.status for o in result.outcomes].count("empty") == 2


def test_denue_source_defaults_skip_others():
    source = DenueSource(FakeDenueClient({}), ZoneFetcher())

    assert "turismo" not in source.keywords
    assert len(source.keywords) == 20
