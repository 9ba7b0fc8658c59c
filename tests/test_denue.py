import asyncio

import pytest

from geodata.core.errors import DecodingError, InvalidResponseError
from geodata.core.http_client import HTTPClient
from geodata.vendors.denue import DenueClient


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload


class DummySession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, timeout=None, **kwargs):
        self.calls.append((url, timeout))
        return self.response


def test_build_search_url_percent_encodes_keyword():
    client = DenueClient(HTTPClient(session=DummySession(None)), "tok-en")

    url = client.build_search_url("cafeterías", 19.4326, -99.1332, 3000.0)

    assert url == (
        "https://www.inegi.org.mx/app/api/denue/v1/consulta/buscar/"
        "cafeter%C3%ADas/19.4326,-99.1332/3000/tok-en"
    )
    assert "galer%C3%ADas%20de%20arte" in client.build_search_url("galerías de arte", 1.0, 2.0, 500)


def test_search_returns_items_with_timeout():
    session = DummySession(DummyResponse(payload=[{"Id": "1"}, {"Id": "2"}]))
    client = DenueClient(HTTPClient(session=session), "tok", timeout=10)

    items = asyncio.run(client.search("museos", 19.43, -99.13, 2000))

    assert [item["Id"] for item in items] == ["1", "2"]
    url, timeout = session.calls[0]
    assert "/buscar/museos/19.43,-99.13/2000/tok" in url
    assert timeout == 10


def test_search_rejects_non_list_payload():
    client = DenueClient(HTTPClient(session=DummySession(DummyResponse(payload={"error": "x"}))), "tok")

    with pytest.raises(DecodingError):
        asyncio.run(client.search("museos", 19.43, -99.13, 2000))


def test_search_errors_do_not_leak_token():
    client = DenueClient(HTTPClient(session=DummySession(DummyResponse(status_code=401))), "very-secret")

    with pytest.raises(InvalidResponseError) as excinfo:
        asyncio.run(client.search("museos", 19.43, -99.13, 2000))

    assert "very-secret" not in str(excinfo.value)
    assert excinfo.value.status_code == 401
