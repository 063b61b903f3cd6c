"""
저장소 조회 조건(Predicate) 생성

조회 필터를 저장소가 이해하는 조건으로 변환합니다.

일치 규칙:
    - status, species, gender: 정확히 일치 (=)
    - name, origin: 부분 문자열 포함 (대소문자 구분, 앞뒤 고정 없음)
    - 필터에 없는 필드: 조건 없음
    - 빈 필터: 전체 조회

Predicate는 두 가지 방식으로 평가할 수 있습니다:
    - to_sql(): asyncpg 플레이스홀더($1, $2 ...)를 사용하는 WHERE 절
    - matches(): 메모리 내 캐릭터 평가
"""

from dataclasses import dataclass, field
from typing import Any

from character_cache.models import (
    EXACT_MATCH_FIELDS,
    SUBSTRING_MATCH_FIELDS,
    Character,
    FilterInput,
    active_filters,
)

# LIKE 패턴의 이스케이프 문자
LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """LIKE 와일드카드(%, _)와 이스케이프 문자를 리터럴로 변환"""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


@dataclass(frozen=True)
class Predicate:
    """
    캐릭터 컬렉션에 대한 조회 조건

    Attributes:
        exact (dict[str, str]): 정확히 일치해야 하는 필드와 값
        contains (dict[str, str]): 부분 문자열로 포함해야 하는 필드와 값
    """

    exact: dict[str, str] = field(default_factory=dict)
    contains: dict[str, str] = field(default_factory=dict)

    @property
    def is_unconstrained(self) -> bool:
        return not self.exact and not self.contains

    def matches(self, character: Character) -> bool:
        """캐릭터가 조건을 모두 만족하는지 확인"""
        for column, value in self.exact.items():
            if getattr(character, column) != value:
                return False
        for column, value in self.contains.items():
            if value not in getattr(character, column):
                return False
        return True

    def to_sql(self, start: int = 1) -> tuple[str, list[Any]]:
        """
        WHERE 절과 매개변수 목록 생성

        컬럼 순서는 결정적입니다 (정확 일치 필드 → 부분 일치 필드).

        Args:
            start: 첫 플레이스홀더 번호 (기본값: 1)

        Returns:
            (WHERE 절, 매개변수 리스트)
            조건이 없으면 ("TRUE", [])

        Example:
            ```python
            build_predicate({"status": "Alive", "name": "Rick"}).to_sql()
            # → ('"status" = $1 AND "name" LIKE \'%\' || $2 || \'%\' ESCAPE \'\\\'',
            #    ["Alive", "Rick"])
            ```
        """
        if self.is_unconstrained:
            return "TRUE", []

        clauses: list[str] = []
        params: list[Any] = []
        index = start

        for column in EXACT_MATCH_FIELDS:
            if column in self.exact:
                clauses.append(f'"{column}" = ${index}')
                params.append(self.exact[column])
                index += 1

        for column in SUBSTRING_MATCH_FIELDS:
            if column in self.contains:
                clauses.append(
                    f"\"{column}\" LIKE '%' || ${index} || '%' ESCAPE '{LIKE_ESCAPE}'"
                )
                params.append(escape_like(self.contains[column]))
                index += 1

        return " AND ".join(clauses), params


def build_predicate(filters: FilterInput) -> Predicate:
    """
    조회 필터를 Predicate로 변환

    Args:
        filters: CharacterFilters 또는 필드-값 매핑

    Returns:
        Predicate: 정확 일치/부분 일치 조건
    """
    active = active_filters(filters)
    return Predicate(
        exact={k: v for k, v in active.items() if k in EXACT_MATCH_FIELDS},
        contains={k: v for k, v in active.items() if k in SUBSTRING_MATCH_FIELDS},
    )
