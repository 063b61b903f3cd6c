"""Unit tests for the Rick & Morty API client."""

import pytest
import httpx

from character_cache.exceptions import UpstreamUnavailableError
from character_cache.upstream.client import RickAndMortyClient


@pytest.fixture
def upstream_payload(characters, to_upstream_record):
    """First page of the character listing (20 records upstream)."""
    records = [to_upstream_record(c) for c in characters]
    records += [
        to_upstream_record(c.model_copy(update={"id": c.id + 100}))
        for c in characters
    ]
    return {
        "info": {"count": 826, "pages": 42, "next": None, "prev": None},
        "results": records,
    }


def make_client(handler, **config):
    return RickAndMortyClient(
        {"base_url": "https://rickandmortyapi.test", **config},
        transport=httpx.MockTransport(handler),
    )


class TestRickAndMortyClientConfiguration:
    """Test client configuration."""

    def test_defaults(self):
        client = RickAndMortyClient()

        assert client.base_url == "https://rickandmortyapi.com"
        assert client.batch_size == 15
        assert client.timeout == 30

    def test_trailing_slash_removed(self):
        client = RickAndMortyClient({"base_url": "https://example.test/"})

        assert client.base_url == "https://example.test"


@pytest.mark.asyncio
class TestFetchCharacters:
    """Test the batch fetch."""

    async def test_fetch_limits_and_flattens(self, upstream_payload):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=upstream_payload)

        client = make_client(handler)
        characters = await client.fetch_characters()
        await client.close()

        assert len(characters) == 15
        assert characters[0].origin == "Earth (C-137)"
        assert requests[0].url.path == "/api/character"

    async def test_explicit_limit(self, upstream_payload):
        client = make_client(lambda request: httpx.Response(200, json=upstream_payload))

        characters = await client.fetch_characters(limit=3)

        assert [c.id for c in characters] == [1, 2, 3]

    async def test_configured_batch_size(self, upstream_payload):
        client = make_client(
            lambda request: httpx.Response(200, json=upstream_payload), batch_size=5
        )

        assert len(await client.fetch_characters()) == 5

    async def test_http_error_status(self):
        client = make_client(lambda request: httpx.Response(503, text="down"))

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await client.fetch_characters()

        assert exc_info.value.data["status_code"] == 503

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(UpstreamUnavailableError, match="request failed"):
            await client.fetch_characters()

    async def test_invalid_json(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(UpstreamUnavailableError, match="invalid JSON"):
            await client.fetch_characters()

    async def test_missing_results(self):
        client = make_client(lambda request: httpx.Response(200, json={"info": {}}))

        with pytest.raises(UpstreamUnavailableError, match="no 'results' list"):
            await client.fetch_characters()

    async def test_malformed_record(self, upstream_payload):
        del upstream_payload["results"][0]["origin"]
        client = make_client(lambda request: httpx.Response(200, json=upstream_payload))

        with pytest.raises(UpstreamUnavailableError, match="Malformed"):
            await client.fetch_characters()


@pytest.mark.asyncio
class TestFetchCharacter:
    """Test the single-character fetch."""

    async def test_fetch_by_id(self, character_factory, to_upstream_record):
        def handler(request):
            assert request.url.path == "/api/character/8"
            return httpx.Response(200, json=to_upstream_record(character_factory(8)))

        client = make_client(handler)
        character = await client.fetch_character(8)

        assert character.name == "Adjudicator Rick"

    async def test_not_found(self):
        client = make_client(
            lambda request: httpx.Response(404, json={"error": "Character not found"})
        )

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await client.fetch_character(99999)

        assert exc_info.value.data["status_code"] == 404
