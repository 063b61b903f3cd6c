"""
필터 기반 캐시 키 생성

조회 필터를 결정적으로 직렬화하여 캐시 키를 만듭니다.
필드 값이 같은 필터는 생성 순서와 무관하게 항상 같은 키를 생성합니다.

키 형식:
    {namespace}:{정렬된 JSON}
    예: characters:{"name":"Rick","status":"Alive"}
"""

import json

from character_cache.models import FilterInput, active_filters

DEFAULT_NAMESPACE = "characters"


def canonical_filters(filters: FilterInput) -> str:
    """
    필터를 정규화된 JSON 문자열로 직렬화

    키를 사전순으로 정렬하고 공백 없는 구분자를 사용합니다.
    조건이 없는 필터는 "{}"가 됩니다.
    """
    return json.dumps(
        active_filters(filters),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def cache_key(filters: FilterInput, namespace: str = DEFAULT_NAMESPACE) -> str:
    """
    조회 필터에 대한 캐시 키 생성

    Args:
        filters: CharacterFilters 또는 필드-값 매핑
        namespace: 캐시 네임스페이스 (기본값: "characters")

    Returns:
        str: "{namespace}:{canonical json}"

    Example:
        ```python
        cache_key({"status": "Alive", "name": "Rick"})
        # → 'characters:{"name":"Rick","status":"Alive"}'
        cache_key({})
        # → 'characters:{}'
        ```
    """
    return f"{namespace}:{canonical_filters(filters)}"


def namespace_pattern(namespace: str = DEFAULT_NAMESPACE) -> str:
    """네임스페이스 전체를 가리키는 glob 패턴 반환"""
    return f"{namespace}:*"
