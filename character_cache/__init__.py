"""
캐릭터 카탈로그 read-through 캐시

Redis 캐시와 PostgreSQL 저장소 앞에서 필터 기반 cache-aside 조회를 제공하고,
외부 API(Rick & Morty)로부터 주기적으로 데이터를 갱신하며 캐시를 무효화합니다.
"""

from character_cache.exceptions import (
    CacheUnavailableError,
    CharacterCacheError,
    DeserializationError,
    ErrorCode,
    StoreUnavailableError,
    UpstreamUnavailableError,
)
from character_cache.models import Character, CharacterFilters

__version__ = "1.0.0"

__all__ = [
    "CacheUnavailableError",
    "Character",
    "CharacterCacheError",
    "CharacterFilters",
    "DeserializationError",
    "ErrorCode",
    "StoreUnavailableError",
    "UpstreamUnavailableError",
]
