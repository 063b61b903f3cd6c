"""
캐릭터 카탈로그 데이터 모델

캐시와 저장소, 외부 API 사이를 오가는 캐릭터 엔티티와
조회 필터(FilterSet)를 Pydantic 모델로 정의합니다.

주요 구성요소:
    - Character: 캐릭터 엔티티 (id 기준 고유)
    - CharacterFilters: 다섯 가지 선택적 조회 조건
"""

from datetime import datetime
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from character_cache.exceptions import UpstreamUnavailableError

# 필터 필드 분류
EXACT_MATCH_FIELDS: tuple[str, ...] = ("status", "species", "gender")
SUBSTRING_MATCH_FIELDS: tuple[str, ...] = ("name", "origin")
FILTER_FIELDS: tuple[str, ...] = EXACT_MATCH_FIELDS + SUBSTRING_MATCH_FIELDS


class Character(BaseModel):
    """
    캐릭터 엔티티

    id는 저장소와 캐시 전체에서 캐릭터를 고유하게 식별하며
    갱신 작업 사이에도 변하지 않습니다.

    Attributes:
        id (int): 기본키
        name (str): 이름
        status (str): 생존 상태 (예: "Alive", "Dead", "unknown")
        species (str): 종
        gender (str): 성별
        origin (str): 출신지 이름 (외부 API의 origin.name을 평탄화한 값)
        image (str | None): 이미지 URL
        created_at (datetime | None): 저장소 생성 시각
        updated_at (datetime | None): 저장소 수정 시각
    """

    id: int
    name: str
    status: str
    species: str
    gender: str
    origin: str
    image: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    @classmethod
    def from_upstream(cls, record: dict[str, Any]) -> "Character":
        """
        외부 API 레코드를 캐릭터로 변환

        중첩된 origin 객체의 name 필드를 평탄화합니다.

        Args:
            record: {id, name, status, species, gender, origin: {name}, image}

        Returns:
            Character: 변환된 캐릭터 (타임스탬프는 저장소가 관리)

        Raises:
            UpstreamUnavailableError: 필수 필드가 없거나 형식이 잘못된 경우
        """
        try:
            origin = record.get("origin") or {}
            return cls(
                id=record["id"],
                name=record["name"],
                status=record["status"],
                species=record["species"],
                gender=record["gender"],
                origin=origin["name"],
                image=record.get("image"),
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise UpstreamUnavailableError(
                f"Malformed upstream character record: {e}",
                data={"record_id": record.get("id") if isinstance(record, dict) else None},
            ) from e


class CharacterFilters(BaseModel):
    """
    캐릭터 조회 필터 (FilterSet)

    다섯 개의 선택적 필드로 구성되며, 값이 없는 필드는 조건이 없음을 뜻합니다.
    None과 빈 문자열은 모두 "조건 없음"으로 취급됩니다.

    일치 방식:
        - status, species, gender: 정확히 일치
        - name, origin: 부분 문자열 포함 (대소문자 구분)
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: Optional[str] = None
    species: Optional[str] = None
    gender: Optional[str] = None
    name: Optional[str] = None
    origin: Optional[str] = None

    def active(self) -> dict[str, str]:
        """조건으로 작용하는 필드만 반환 (None, 빈 문자열 제외)"""
        return {
            field: value
            for field in FILTER_FIELDS
            if (value := getattr(self, field))
        }

    def is_empty(self) -> bool:
        """조건이 하나도 없는지 확인"""
        return not self.active()


FilterInput = Union[CharacterFilters, Mapping[str, Optional[str]], None]


def active_filters(filters: FilterInput) -> dict[str, str]:
    """
    필터 입력을 조건 필드 딕셔너리로 정규화

    CharacterFilters, 일반 매핑, None을 모두 받습니다.
    알 수 없는 필드가 있는 매핑은 pydantic ValidationError를 발생시킵니다.
    """
    if filters is None:
        return {}
    if isinstance(filters, CharacterFilters):
        return filters.active()
    return CharacterFilters(**filters).active()
