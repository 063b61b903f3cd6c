"""
Redis 기반 캐릭터 조회 캐시

이 모듈은 cache-aside 읽기 경로와 갱신 작업이 사용하는 Redis 캐시 어댑터를
구현합니다. 값은 직렬화된 문자열로 저장되며 TTL과 함께 기록됩니다.

주요 기능:
    - 비동기 Redis 클라이언트 사용
    - TTL(Time-To-Live) 기반 자동 만료
    - SCAN 기반 네임스페이스 키 조회
    - 일괄 삭제를 통한 네임스페이스 무효화

오류 처리:
    모든 Redis 오류는 CacheUnavailableError로 변환되어 호출자에게 전파됩니다.
    캐시 오류를 캐시 미스로 취급하지 않으므로, 읽기 경로가 캐시 장애를
    숨기고 저장소로 우회하는 일이 없습니다.

의존성:
    - redis: Redis 비동기 클라이언트
    - pydantic: 설정 검증
    - structlog: 구조화된 로깅
"""

from typing import Any, Iterable, Optional
import redis.asyncio as redis
from pydantic import BaseModel
import structlog

from character_cache.cache.keys import namespace_pattern
from character_cache.exceptions import CacheUnavailableError

# 모듈별 구조화된 로거
logger = structlog.get_logger(__name__)


class RedisCacheConfig(BaseModel):
    """
    Redis 캐시 연결 설정

    Attributes:
        redis_url (str): Redis 서버 연결 URL
            형식: "redis://host:port/db"
        socket_timeout (float): 명령 소켓 타임아웃 (초)
        scan_count (int): SCAN 한 번에 요청할 키 개수 힌트
    """

    redis_url: str = "redis://localhost:6379/0"
    socket_timeout: float = 5.0
    scan_count: int = 500


class RedisCache:
    """
    Redis 캐시 어댑터

    캐시 협력자 계약(get, set_with_ttl, list_keys, delete_many)을 구현합니다.

    사용 예시:
        ```python
        cache = RedisCache(RedisCacheConfig(redis_url="redis://localhost:6379/0"))
        await cache.connect()

        await cache.set_with_ttl('characters:{}', payload, 3600)
        cached = await cache.get('characters:{}')

        keys = await cache.list_keys("characters")
        await cache.delete_many(keys)
        ```

    Attributes:
        config (RedisCacheConfig): 캐시 설정
        _client (redis.Redis): Redis 비동기 클라이언트
        _connected (bool): 연결 상태
    """

    def __init__(
        self,
        config: Optional[RedisCacheConfig] = None,
        client: Optional[redis.Redis] = None,
    ):
        """
        Args:
            config: 캐시 설정 (기본값 사용 가능)
            client: 이미 생성된 Redis 클라이언트 (테스트/공유용, 선택사항)
        """
        self.config = config or RedisCacheConfig()
        self._client: Optional[redis.Redis] = client
        self._connected = client is not None

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """
        Redis 서버에 연결하고 ping으로 확인

        Raises:
            CacheUnavailableError: 연결 실패 시
        """
        try:
            if self._client is None:
                self._client = redis.from_url(
                    self.config.redis_url,
                    decode_responses=True,  # 바이트를 문자열로 자동 변환
                    socket_timeout=self.config.socket_timeout,
                )

            await self._client.ping()

            self._connected = True
            logger.info("Redis 캐시 연결 성공", redis_url=self.config.redis_url)

        except (redis.RedisError, OSError) as e:
            logger.error(
                "Redis 캐시 연결 실패", error=str(e), redis_url=self.config.redis_url
            )
            self._connected = False
            raise CacheUnavailableError(
                f"Failed to connect to Redis: {e}", operation="connect"
            ) from e

    async def disconnect(self) -> None:
        """Redis 연결 해제 (중복 호출 안전)"""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._connected = False
            logger.info("Redis 캐시 연결 해제")

    def _require_client(self, operation: str) -> redis.Redis:
        if not self._connected or self._client is None:
            raise CacheUnavailableError(
                "Cache is not connected", operation=operation
            )
        return self._client

    async def get(self, key: str) -> Optional[str]:
        """
        캐시 값 조회

        Args:
            key: 캐시 키

        Returns:
            Optional[str]: 저장된 문자열, 키가 없으면 None

        Raises:
            CacheUnavailableError: Redis 명령 실패 또는 미연결 상태
        """
        client = self._require_client("get")
        try:
            return await client.get(key)
        except (redis.RedisError, OSError) as e:
            logger.warning("캐시 조회 실패", key=key, error=str(e))
            raise CacheUnavailableError(
                f"Cache get failed: {e}", operation="get", key=key
            ) from e

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        """
        TTL과 함께 캐시 값 저장 (기존 값 덮어쓰기)

        Args:
            key: 캐시 키
            value: 직렬화된 값
            ttl_seconds: 만료 시간 (초)

        Raises:
            CacheUnavailableError: Redis 명령 실패 또는 미연결 상태
        """
        client = self._require_client("set")
        try:
            await client.setex(key, ttl_seconds, value)
            logger.debug("캐시 저장 성공", key=key, ttl=ttl_seconds)
        except (redis.RedisError, OSError) as e:
            logger.warning("캐시 저장 실패", key=key, error=str(e))
            raise CacheUnavailableError(
                f"Cache set failed: {e}", operation="set", key=key
            ) from e

    async def list_keys(self, namespace: str) -> list[str]:
        """
        네임스페이스에 속한 모든 키 조회

        KEYS 대신 SCAN을 사용하여 Redis를 블로킹하지 않습니다.

        Args:
            namespace: 키 네임스페이스 (패턴: "{namespace}:*")

        Returns:
            list[str]: 매칭된 키 목록 (없으면 빈 리스트)

        Raises:
            CacheUnavailableError: Redis 명령 실패 또는 미연결 상태
        """
        client = self._require_client("keys")
        pattern = namespace_pattern(namespace)
        try:
            keys = []
            async for key in client.scan_iter(
                match=pattern, count=self.config.scan_count
            ):
                keys.append(key)
            return keys
        except (redis.RedisError, OSError) as e:
            logger.warning("캐시 키 조회 실패", pattern=pattern, error=str(e))
            raise CacheUnavailableError(
                f"Cache key scan failed: {e}", operation="keys"
            ) from e

    async def delete_many(self, keys: Iterable[str]) -> int:
        """
        여러 키를 한 번에 삭제

        Args:
            keys: 삭제할 키 목록 (비어 있으면 아무 작업도 하지 않음)

        Returns:
            int: 삭제된 키 개수

        Raises:
            CacheUnavailableError: Redis 명령 실패 또는 미연결 상태
        """
        keys = list(keys)
        if not keys:
            return 0

        client = self._require_client("delete")
        try:
            return await client.delete(*keys)
        except (redis.RedisError, OSError) as e:
            logger.warning("캐시 일괄 삭제 실패", count=len(keys), error=str(e))
            raise CacheUnavailableError(
                f"Cache delete failed: {e}", operation="delete"
            ) from e

    async def health_check(self) -> dict[str, Any]:
        """Redis 상태 확인 (예외를 던지지 않음)"""
        if not self._connected or self._client is None:
            return {"status": "not_connected"}

        try:
            await self._client.ping()
            return {"status": "healthy", "redis_url": self.config.redis_url}
        except (redis.RedisError, OSError) as e:
            return {"status": "unhealthy", "error": str(e)}
