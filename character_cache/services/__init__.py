"""
서비스 계층

주요 구성요소:
    - query_characters: cache-aside 읽기 경로
    - CharacterRefresher: 갱신 및 캐시 무효화 작업
    - RefreshScheduler: 주기적 갱신 스케줄러
"""

from .query import deserialize_characters, query_characters, serialize_characters
from .refresh import CharacterRefresher, RefreshReport, RefreshStatus
from .scheduler import RefreshScheduler

__all__ = [
    "CharacterRefresher",
    "RefreshReport",
    "RefreshScheduler",
    "RefreshStatus",
    "deserialize_characters",
    "query_characters",
    "serialize_characters",
]
