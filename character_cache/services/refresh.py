"""
캐릭터 갱신 및 캐시 무효화 작업

외부 API에서 캐릭터 배치를 가져와 저장소에 upsert한 뒤,
네임스페이스 아래의 모든 캐시 항목을 삭제합니다.

실패 처리:
    - 외부 API 조회 실패: 저장소와 캐시를 건드리지 않고 failed 리포트 반환
    - 일부 upsert 실패: 나머지를 계속 처리하고 캐시를 무효화한 뒤 partial 리포트 반환
    - 캐시 무효화 실패: 그때까지의 집계와 함께 failed 리포트 반환
    - 이미 실행 중: 아무것도 하지 않고 skipped 리포트 반환

서비스 예외(CharacterCacheError)는 이 경계에서 잡혀 리포트로 변환되며
호출자(스케줄러)에게 전파되지 않습니다.
"""

import asyncio
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

import structlog
from pydantic import BaseModel, Field

from character_cache.cache.keys import DEFAULT_NAMESPACE
from character_cache.cache.redis_cache import RedisCache
from character_cache.exceptions import CharacterCacheError
from character_cache.models import Character
from character_cache.observability.timing import timed
from character_cache.store.base import CharacterStore
from character_cache.upstream.client import RickAndMortyClient

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 15


class RefreshStatus(str, Enum):
    """갱신 결과 상태"""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


class RefreshReport(BaseModel):
    """
    갱신 작업 결과 리포트

    Attributes:
        status: 결과 상태
        fetched: 외부 API에서 받은 레코드 수
        created: 새로 생성된 행 수
        updated: 기존 행을 갱신한 수
        failed_ids: upsert에 실패한 캐릭터 id
        invalidated: 삭제된 캐시 키 수
        duration_ms: 소요 시간 (밀리초)
        error: 실패 원인 (failed일 때)
        started_at: 시작 시각 (UTC)
    """

    status: RefreshStatus
    fetched: int = 0
    created: int = 0
    updated: int = 0
    failed_ids: list[int] = Field(default_factory=list)
    invalidated: int = 0
    duration_ms: float = 0.0
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _failed_refresh(report: RefreshReport) -> Optional[str]:
    """실패 리포트를 시간 측정 기록의 에러로 분류"""
    return "RefreshFailed" if report.status == RefreshStatus.FAILED else None


class CharacterRefresher:
    """
    갱신 작업 실행기

    한 번에 하나의 갱신만 실행됩니다. 실행 중에 들어온 요청은
    대기하지 않고 즉시 skipped 리포트를 받습니다.
    """

    def __init__(
        self,
        upstream: RickAndMortyClient,
        store: CharacterStore,
        cache: RedisCache,
        batch_size: int = DEFAULT_BATCH_SIZE,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        self._upstream = upstream
        self._store = store
        self._cache = cache
        self.batch_size = batch_size
        self.namespace = namespace
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def refresh(self) -> RefreshReport:
        """
        갱신 실행

        Returns:
            RefreshReport: 실행 결과 (서비스 예외는 리포트로 변환됨)
        """
        return await self._guarded(self._fetch_batch)

    async def refresh_character(self, character_id: int) -> RefreshReport:
        """
        단일 캐릭터 갱신

        외부 API에서 한 캐릭터만 받아 upsert한 뒤 네임스페이스를 무효화합니다.
        전체 갱신과 같은 실행 잠금을 공유합니다.

        Returns:
            RefreshReport: 실행 결과 (존재하지 않는 id는 failed)
        """

        async def fetch() -> list[Character]:
            return [await self._upstream.fetch_character(character_id)]

        return await self._guarded(fetch, character_id=character_id)

    async def seed_if_empty(self) -> Optional[RefreshReport]:
        """
        저장소가 비어 있으면 갱신을 한 번 실행

        Returns:
            RefreshReport 또는 None (이미 데이터가 있어 건너뛴 경우)

        Raises:
            StoreUnavailableError: 행 수 조회 실패
        """
        count = await self._store.count()
        if count > 0:
            logger.info("저장소에 데이터가 있어 초기 시드를 건너뜀", count=count)
            return None

        logger.info("저장소가 비어 있어 초기 시드 실행")
        return await self.refresh()

    async def _fetch_batch(self) -> list[Character]:
        return await self._upstream.fetch_characters(limit=self.batch_size)

    async def _guarded(
        self, fetch: Callable[[], Awaitable[list[Character]]], **context
    ) -> RefreshReport:
        if self._lock.locked():
            logger.warning("갱신 작업이 이미 실행 중이므로 건너뜀", **context)
            return RefreshReport(status=RefreshStatus.SKIPPED)

        async with self._lock:
            report = await self._run(fetch)

        log = logger.info if report.status == RefreshStatus.COMPLETED else logger.warning
        log(
            "갱신 작업 종료",
            **context,
            status=report.status.value,
            fetched=report.fetched,
            created=report.created,
            updated=report.updated,
            failed_ids=report.failed_ids,
            invalidated=report.invalidated,
            duration_ms=round(report.duration_ms, 3),
            error=report.error,
        )
        return report

    @timed("refresh_characters", failure=_failed_refresh)
    async def _run(
        self, fetch: Callable[[], Awaitable[list[Character]]]
    ) -> RefreshReport:
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()

        def finish(status: RefreshStatus, **fields) -> RefreshReport:
            return RefreshReport(
                status=status,
                duration_ms=(time.perf_counter() - start) * 1000,
                started_at=started_at,
                **fields,
            )

        try:
            characters = await fetch()
        except CharacterCacheError as e:
            logger.error("외부 API 조회 실패로 갱신 중단", error=str(e))
            return finish(RefreshStatus.FAILED, error=str(e))

        created = updated = 0
        failed_ids: list[int] = []
        for character in characters:
            try:
                if await self._store.upsert(character):
                    created += 1
                else:
                    updated += 1
            except CharacterCacheError as e:
                logger.error(
                    "캐릭터 upsert 실패", character_id=character.id, error=str(e)
                )
                failed_ids.append(character.id)

        counts = {
            "fetched": len(characters),
            "created": created,
            "updated": updated,
            "failed_ids": failed_ids,
        }

        try:
            keys = await self._cache.list_keys(self.namespace)
            invalidated = await self._cache.delete_many(keys)
        except CharacterCacheError as e:
            logger.error("캐시 무효화 실패", namespace=self.namespace, error=str(e))
            return finish(RefreshStatus.FAILED, error=str(e), **counts)

        status = RefreshStatus.PARTIAL if failed_ids else RefreshStatus.COMPLETED
        return finish(status, invalidated=invalidated, **counts)
