"""
캐릭터 조회 캐시 모듈

주요 컴포넌트:
    RedisCache: Redis 기반 캐시 어댑터 (오류를 호출자에게 전파)
    RedisCacheConfig: 연결 설정
    cache_key: 필터 기반 정규화 캐시 키 생성
    namespace_pattern: 네임스페이스 무효화 패턴
"""

from .keys import DEFAULT_NAMESPACE, cache_key, canonical_filters, namespace_pattern
from .redis_cache import RedisCache, RedisCacheConfig

__all__ = [
    "DEFAULT_NAMESPACE",
    "RedisCache",
    "RedisCacheConfig",
    "cache_key",
    "canonical_filters",
    "namespace_pattern",
]
