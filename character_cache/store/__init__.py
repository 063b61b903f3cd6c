"""
캐릭터 저장소 모듈

주요 구성요소:
    - CharacterStore: 저장소 추상 인터페이스
    - PostgresCharacterStore: asyncpg 기반 구현체
    - InMemoryCharacterStore: 메모리 모드 구현체
    - Predicate / build_predicate: 필터 → 조회 조건 변환
"""

from .query_builder import Predicate, build_predicate, escape_like
from .base import CharacterStore, StoreHealth
from .memory import InMemoryCharacterStore
from .postgres import PostgresCharacterStore

__all__ = [
    "CharacterStore",
    "InMemoryCharacterStore",
    "PostgresCharacterStore",
    "Predicate",
    "StoreHealth",
    "build_predicate",
    "escape_like",
]
