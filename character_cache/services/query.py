"""
캐릭터 조회 읽기 경로 (cache-aside)

조회 순서:
    1. 필터로 캐시 키 생성
    2. 캐시 조회 → 히트면 역직렬화하여 반환 (저장소 조회 없음)
    3. 미스면 필터를 조회 조건으로 변환하여 저장소 조회
    4. 결과를 TTL과 함께 캐시에 저장 (기존 값 덮어쓰기)
    5. 결과 반환

캐시 읽기 실패는 캐시 미스로 취급하지 않고 호출자에게 그대로 전파됩니다.
저장소 조회가 실패하면 캐시에는 아무것도 기록되지 않습니다.
"""

from typing import Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from character_cache.cache.keys import DEFAULT_NAMESPACE, cache_key
from character_cache.cache.redis_cache import RedisCache
from character_cache.exceptions import DeserializationError
from character_cache.models import Character, FilterInput
from character_cache.observability.timing import timed
from character_cache.store.base import CharacterStore
from character_cache.store.query_builder import build_predicate

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600

_CHARACTER_LIST = TypeAdapter(list[Character])


def serialize_characters(characters: list[Character]) -> str:
    """캐릭터 목록을 캐시 저장용 JSON 배열 문자열로 직렬화"""
    return _CHARACTER_LIST.dump_json(characters).decode("utf-8")


def deserialize_characters(payload: str, key: Optional[str] = None) -> list[Character]:
    """
    캐시 페이로드를 캐릭터 목록으로 역직렬화

    Raises:
        DeserializationError: JSON이 아니거나 캐릭터 배열 형식이 아닌 경우
    """
    try:
        return _CHARACTER_LIST.validate_json(payload)
    except ValidationError as e:
        logger.error("캐시 페이로드 역직렬화 실패", key=key, error_count=e.error_count())
        raise DeserializationError(
            f"Corrupt cache payload: {e.error_count()} validation error(s)",
            key=key,
        ) from e


@timed("query_characters")
async def query_characters(
    filters: FilterInput,
    *,
    cache: RedisCache,
    store: CharacterStore,
    ttl: int = DEFAULT_TTL_SECONDS,
    namespace: str = DEFAULT_NAMESPACE,
) -> list[Character]:
    """
    필터에 맞는 캐릭터 조회

    Args:
        filters: CharacterFilters, 필드-값 매핑, 또는 None (조건 없음)
        cache: 캐시 어댑터
        store: 저장소 어댑터
        ttl: 캐시 항목 유효 시간 (초)
        namespace: 캐시 네임스페이스

    Returns:
        list[Character]: 조건에 맞는 캐릭터 목록

    Raises:
        CacheUnavailableError: 캐시 읽기/쓰기 실패
        StoreUnavailableError: 저장소 조회 실패
        DeserializationError: 캐시 페이로드 손상
    """
    key = cache_key(filters, namespace)

    payload = await cache.get(key)
    if payload is not None:
        logger.debug("캐시 히트", key=key)
        return deserialize_characters(payload, key=key)

    logger.debug("캐시 미스", key=key)
    characters = await store.find_all(build_predicate(filters))

    await cache.set_with_ttl(key, serialize_characters(characters), ttl)
    return characters
