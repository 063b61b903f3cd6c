"""
메모리 모드 캐릭터 저장소

PostgreSQL 없이 로컬 실행과 테스트에서 사용할 수 있는 저장소입니다.
Predicate.matches()로 조건을 평가하며, 타임스탬프를 직접 관리합니다.
"""

import asyncio
from datetime import datetime, timezone
from typing import Iterable, Optional

from character_cache.exceptions import StoreUnavailableError
from character_cache.models import Character
from character_cache.store.base import CharacterStore, StoreHealth
from character_cache.store.query_builder import Predicate


class InMemoryCharacterStore(CharacterStore):
    """
    딕셔너리 기반 캐릭터 저장소

    id를 키로 사용하므로 upsert가 중복 행을 만들지 않습니다.
    """

    def __init__(self, characters: Optional[Iterable[Character]] = None):
        super().__init__()
        self._rows: dict[int, Character] = {}
        self._lock = asyncio.Lock()
        now = datetime.now(timezone.utc)
        for character in characters or ():
            self._rows[character.id] = character.model_copy(
                update={"created_at": now, "updated_at": now}
            )

    async def connect(self) -> None:
        self._connected = True
        self._log_operation("connect", status="success", rows=len(self._rows))

    async def disconnect(self) -> None:
        self._connected = False
        self._log_operation("disconnect")

    def _require_connected(self, operation: str) -> None:
        if not self._connected:
            raise StoreUnavailableError("Store is not connected", operation=operation)

    async def find_all(self, predicate: Predicate) -> list[Character]:
        self._require_connected("find_all")
        return [
            self._rows[character_id]
            for character_id in sorted(self._rows)
            if predicate.matches(self._rows[character_id])
        ]

    async def upsert(self, character: Character) -> bool:
        self._require_connected("upsert")
        async with self._lock:
            now = datetime.now(timezone.utc)
            existing = self._rows.get(character.id)
            created_at = existing.created_at if existing else now
            self._rows[character.id] = character.model_copy(
                update={"created_at": created_at, "updated_at": now}
            )
            return existing is None

    async def count(self) -> int:
        self._require_connected("count")
        return len(self._rows)

    async def health_check(self) -> StoreHealth:
        return StoreHealth(
            healthy=self._connected,
            service_name="InMemoryCharacterStore",
            details={"connected": self._connected, "rows": len(self._rows)},
            error=None if self._connected else "Not connected",
        )
