import asyncio

from geodata.core.cache import ZoneCache
from geodata.core.fetcher import ZoneFetcher
from geodata.core.lookup import NearbyLookup
from geodata.models import LocationType


class FakeDenueClient:
    def __init__(self):
        self.calls = []

    async def search(self, keyword, latitude, longitude, radius_meters):
        self.calls.append((keyword, radius_meters))
        return [
            {
                "Id": f"{keyword}-1",
                "Nombre": keyword.upper(),
                "Clase_actividad": "Museos",
                "Latitud": "19.42",
                "Longitud": "-99.17",
            },
            {
                "Id": "shared",
                "Nombre": "COMPARTIDO",
                "Clase_actividad": "Museos",
                "Latitud": "19.42",
                "Longitud": "-99.17",
            },
        ]


def test_fetch_businesses_deduplicates_and_uses_cache():
    client = FakeDenueClient()
    lookup = NearbyLookup(client, ZoneFetcher(batch_size=3, cache=ZoneCache()))

    first = asyncio.run(lookup.fetch_businesses([LocationType.CULTURAL], 19.4260, -99.1720, 1500))

    assert [keyword for keyword, _ in client.calls] == ["museos", "galerías de arte", "sitios históricos", "teatros"]
    assert all(radius == 1500 for _, radius in client.calls)
    assert [r.external_id for r in first] == [
        "museos-1",
        "shared",
        "galerías de arte-1",
        "sitios históricos-1",
        "teatros-1",
    ]

    client.calls.clear()
    second = asyncio.run(lookup.fetch_businesses([LocationType.CULTURAL], 19.4291, -99.1755, 1500))

    assert client.calls == []
    assert [r.external_id for r in second] == [r.external_id for r in first]


def test_fetch_businesses_without_keywords_returns_empty():
    client = FakeDenueClient()
    lookup = NearbyLookup(client, ZoneFetcher())

    assert asyncio.run(lookup.fetch_businesses([LocationType.OTHERS], 19.42, -99.17)) == []
    assert client.calls == []
