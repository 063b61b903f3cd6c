"""
Rick & Morty API 클라이언트

갱신 작업이 사용하는 외부 원천(source of truth) 클라이언트입니다.
REST API에서 캐릭터를 조회하고 origin.name을 평탄화하여 Character로 변환합니다.

주요 기능:
    - 제한된 배치 조회 (기본 15개)
    - 단일 캐릭터 조회
    - 공유 HTTP 클라이언트 재사용

오류 처리:
    네트워크 오류, HTTP 오류 응답, 예상과 다른 응답 형식은 모두
    UpstreamUnavailableError로 변환됩니다. 재시도는 하지 않습니다.
"""

from typing import Any, Optional

import httpx
import structlog

from character_cache.exceptions import UpstreamUnavailableError
from character_cache.models import Character
from character_cache.utils.connection_manager import HTTPSessionManager

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://rickandmortyapi.com"
CHARACTER_PATH = "/api/character"


class RickAndMortyClient:
    """
    Rick & Morty REST API 클라이언트

    Attributes:
        base_url (str): API 기본 URL
        batch_size (int): 기본 배치 크기
        timeout (float): 요청 타임아웃 (초)
    """

    def __init__(
        self,
        config: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            config: 설정 딕셔너리
                - base_url (str): API 기본 URL (기본값: https://rickandmortyapi.com)
                - batch_size (int): 갱신 시 가져올 캐릭터 수 (기본값: 15)
                - timeout (float): 요청 타임아웃 (초, 기본값: 30)
            transport: httpx 전송 계층 (테스트에서 MockTransport 주입용)
        """
        config = config or {}
        self.base_url = config.get("base_url", DEFAULT_BASE_URL).rstrip("/")
        self.batch_size = config.get("batch_size", 15)
        self.timeout = config.get("timeout", 30)

        self._session_manager = HTTPSessionManager(
            self.base_url, timeout=self.timeout, transport=transport
        )

    async def connect(self) -> None:
        self._session_manager.client()

    async def close(self) -> None:
        await self._session_manager.close()

    async def fetch_characters(self, limit: Optional[int] = None) -> list[Character]:
        """
        캐릭터 목록의 첫 페이지에서 최대 limit개 조회

        Args:
            limit: 최대 개수 (기본값: batch_size)

        Returns:
            list[Character]: origin이 평탄화된 캐릭터 목록

        Raises:
            UpstreamUnavailableError: 요청 실패 또는 응답 형식 오류
        """
        limit = self.batch_size if limit is None else limit
        payload = await self._get_json(CHARACTER_PATH)

        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise UpstreamUnavailableError(
                "Upstream response has no 'results' list",
                url=f"{self.base_url}{CHARACTER_PATH}",
            )

        characters = [Character.from_upstream(record) for record in results[:limit]]
        logger.info("외부 API 캐릭터 조회 완료", count=len(characters), limit=limit)
        return characters

    async def fetch_character(self, character_id: int) -> Character:
        """
        단일 캐릭터 조회

        Raises:
            UpstreamUnavailableError: 요청 실패(404 포함) 또는 응답 형식 오류
        """
        payload = await self._get_json(f"{CHARACTER_PATH}/{character_id}")
        if not isinstance(payload, dict):
            raise UpstreamUnavailableError(
                "Upstream character response is not an object",
                url=f"{self.base_url}{CHARACTER_PATH}/{character_id}",
            )
        return Character.from_upstream(payload)

    async def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._session_manager.client().get(path)
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "외부 API 응답 오류",
                url=url,
                status_code=e.response.status_code,
            )
            raise UpstreamUnavailableError(
                f"Upstream returned {e.response.status_code}",
                url=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error("외부 API 요청 실패", url=url, error=str(e))
            raise UpstreamUnavailableError(
                f"Upstream request failed: {e}", url=url
            ) from e
        except ValueError as e:
            # response.json() 파싱 실패
            raise UpstreamUnavailableError(
                f"Upstream returned invalid JSON: {e}", url=url
            ) from e
