"""
캐릭터 저장소 기본 인터페이스 모듈

읽기 경로와 갱신 작업이 사용하는 내구성 저장소의 계약을 정의합니다.
저장소는 등호/부분 문자열 조건을 지원하는 조회 가능한 컬렉션으로 취급되며,
내부 저장 방식은 구현체마다 다를 수 있습니다.

주요 구성요소:
    - CharacterStore: 모든 저장소 구현체가 상속받는 추상 기본 클래스
    - StoreHealth: 저장소 상태 정보 모델

사용 예제:
    ```python
    async with PostgresCharacterStore(config) as store:
        created = await store.upsert(character)
        alive = await store.find_all(build_predicate({"status": "Alive"}))
    ```
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Self

import structlog
from pydantic import BaseModel, Field

from character_cache.models import Character
from character_cache.store.query_builder import Predicate


class StoreHealth(BaseModel):
    """
    저장소 상태 정보 모델

    Attributes:
        healthy (bool): 정상 작동 여부
        service_name (str): 저장소 이름
        details (dict[str, Any] | None): 추가 상태 정보
        error (str | None): 에러 메시지
        checked_at (datetime): 확인 시각 (UTC)
    """

    healthy: bool
    service_name: str
    details: dict[str, Any] | None = Field(default=None)
    error: str | None = Field(default=None)
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CharacterStore(ABC):
    """
    캐릭터 저장소 추상 기본 클래스

    id를 기준으로 캐릭터를 고유하게 관리하며, upsert는 절대 중복 행을
    만들지 않습니다. 연결 실패나 쿼리 실패는 StoreUnavailableError로
    호출자에게 전파되어야 합니다.

    Attributes:
        logger (structlog.BoundLogger): 클래스 이름으로 바인딩된 로거
        _connected (bool): 연결 상태
    """

    def __init__(self) -> None:
        self.logger = structlog.get_logger(self.__class__.__name__)
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @abstractmethod
    async def connect(self) -> None:
        """
        저장소에 연결

        Raises:
            StoreUnavailableError: 연결을 설정할 수 없는 경우
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """연결 종료 및 리소스 정리"""

    @abstractmethod
    async def find_all(self, predicate: Predicate) -> list[Character]:
        """
        조건에 맞는 모든 캐릭터 조회

        Args:
            predicate: 조회 조건 (조건이 없으면 전체 조회)

        Returns:
            list[Character]: id 오름차순 결과 (없으면 빈 리스트)

        Raises:
            StoreUnavailableError: 연결/쿼리 실패 시
        """

    @abstractmethod
    async def upsert(self, character: Character) -> bool:
        """
        id 기준 삽입 또는 전체 필드 갱신

        Returns:
            bool: 새로 생성되었으면 True, 기존 행을 갱신했으면 False

        Raises:
            StoreUnavailableError: 연결/쿼리 실패 시
        """

    @abstractmethod
    async def count(self) -> int:
        """저장된 캐릭터 수"""

    @abstractmethod
    async def health_check(self) -> StoreHealth:
        """저장소 상태 확인 (예외를 던지지 않음)"""

    async def ensure_schema(self) -> None:
        """저장 구조 준비 (필요한 구현체만 재정의)"""

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    def _log_operation(self, operation: str, **kwargs: Any) -> None:
        """
        저장소 작업 로깅

        Args:
            operation: 작업 이름 (예: "connect", "ensure_schema", "disconnect")
            **kwargs: 추가 로깅 컨텍스트
        """
        self.logger.info(
            "store_operation",
            operation=operation,
            store_type=self.__class__.__name__,
            **kwargs,
        )
