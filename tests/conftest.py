"""Shared test fixtures and configuration."""

from typing import Any, Iterable, Optional

import pytest

from character_cache.exceptions import CacheUnavailableError, UpstreamUnavailableError
from character_cache.models import Character
from character_cache.observability.timing import get_operation_metrics, set_timing_sink
from character_cache.store.memory import InMemoryCharacterStore

CHARACTER_ROWS = [
    (1, "Rick Sanchez", "Alive", "Human", "Male", "Earth (C-137)"),
    (2, "Morty Smith", "Alive", "Human", "Male", "unknown"),
    (3, "Summer Smith", "Alive", "Human", "Female", "Earth (Replacement Dimension)"),
    (4, "Beth Smith", "Alive", "Human", "Female", "Earth (Replacement Dimension)"),
    (5, "Jerry Smith", "Alive", "Human", "Male", "Earth (Replacement Dimension)"),
    (6, "Abadango Cluster Princess", "Alive", "Alien", "Female", "Abadango"),
    (7, "Abradolf Lincler", "unknown", "Human", "Male", "Earth (Replacement Dimension)"),
    (8, "Adjudicator Rick", "Dead", "Human", "Male", "unknown"),
]


def make_character(character_id: int = 1, **overrides: Any) -> Character:
    """Build a character, defaulting to the matching sample row."""
    row = next((r for r in CHARACTER_ROWS if r[0] == character_id), None)
    base = {
        "id": character_id,
        "name": row[1] if row else f"Character {character_id}",
        "status": row[2] if row else "Alive",
        "species": row[3] if row else "Human",
        "gender": row[4] if row else "Male",
        "origin": row[5] if row else "unknown",
        "image": f"https://rickandmortyapi.com/api/character/avatar/{character_id}.jpeg",
    }
    base.update(overrides)
    return Character(**base)


def upstream_record(character: Character) -> dict[str, Any]:
    """Shape a character the way the upstream API returns it."""
    return {
        "id": character.id,
        "name": character.name,
        "status": character.status,
        "species": character.species,
        "type": "",
        "gender": character.gender,
        "origin": {
            "name": character.origin,
            "url": "https://rickandmortyapi.com/api/location/1",
        },
        "location": {"name": "Citadel of Ricks", "url": ""},
        "image": character.image,
        "episode": [],
        "url": f"https://rickandmortyapi.com/api/character/{character.id}",
        "created": "2017-11-04T18:48:46.250Z",
    }


class FakeCache:
    """In-memory stand-in for RedisCache with injectable failures."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.connected = False
        self.fail_on: set[str] = set()
        self.calls: list[tuple[str, Any]] = []

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise CacheUnavailableError("Cache down", operation=operation)

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def get(self, key: str) -> Optional[str]:
        self.calls.append(("get", key))
        self._check("get")
        return self.data.get(key)

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        self.calls.append(("set", key))
        self._check("set")
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def list_keys(self, namespace: str) -> list[str]:
        self.calls.append(("keys", namespace))
        self._check("keys")
        return [key for key in self.data if key.startswith(f"{namespace}:")]

    async def delete_many(self, keys: Iterable[str]) -> int:
        keys = list(keys)
        self.calls.append(("delete", keys))
        if not keys:
            return 0
        self._check("delete")
        deleted = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                self.ttls.pop(key, None)
                deleted += 1
        return deleted

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy" if self.connected else "not_connected"}


class FakeUpstream:
    """Upstream client stand-in returning a fixed batch or failing."""

    def __init__(self, characters: Optional[list[Character]] = None):
        self.characters = list(characters or [])
        self.error: Optional[Exception] = None
        self.fetch_count = 0
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def fetch_characters(self, limit: Optional[int] = None) -> list[Character]:
        self.fetch_count += 1
        if self.error is not None:
            raise self.error
        return self.characters[: limit if limit is not None else 15]

    async def fetch_character(self, character_id: int) -> Character:
        self.fetch_count += 1
        if self.error is not None:
            raise self.error
        for character in self.characters:
            if character.id == character_id:
                return character
        raise UpstreamUnavailableError("Upstream returned 404", status_code=404)


@pytest.fixture
def character_factory():
    return make_character


@pytest.fixture
def to_upstream_record():
    return upstream_record


@pytest.fixture
def characters() -> list[Character]:
    """All sample characters."""
    return [make_character(row[0]) for row in CHARACTER_ROWS]


@pytest.fixture
def fake_cache() -> FakeCache:
    cache = FakeCache()
    cache.connected = True
    return cache


@pytest.fixture
async def memory_store(characters):
    """Connected in-memory store seeded with the sample characters."""
    store = InMemoryCharacterStore(characters)
    await store.connect()
    yield store
    await store.disconnect()


@pytest.fixture
def upstream_factory():
    return FakeUpstream


@pytest.fixture
def fake_upstream(characters) -> FakeUpstream:
    return FakeUpstream(characters)


@pytest.fixture
def failing_upstream() -> FakeUpstream:
    upstream = FakeUpstream()
    upstream.error = UpstreamUnavailableError("Upstream returned 503", status_code=503)
    return upstream


@pytest.fixture(autouse=True)
def reset_timing():
    """Keep the process-wide timing sink and metrics isolated per test."""
    previous = set_timing_sink(None)
    get_operation_metrics().reset()
    yield
    set_timing_sink(previous)
    get_operation_metrics().reset()
