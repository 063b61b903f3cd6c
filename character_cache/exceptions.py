"""
캐릭터 캐시 서비스 예외 정의 모듈

이 모듈은 캐릭터 카탈로그 캐시 서비스에서 발생하는 모든 예외를 정의합니다.
읽기 경로(cache-aside)와 갱신 작업에서 발생하는 실패를 네 가지 유형으로
분류하고, HTTP 계층에서 사용할 에러 응답 형식을 제공합니다.

주요 구성요소:
    - ErrorCode: 에러 코드 열거형
    - CharacterCacheError: 모든 서비스 예외의 기본 클래스
    - CacheUnavailableError: Redis 캐시 연결/명령 실패
    - StoreUnavailableError: PostgreSQL 저장소 연결/쿼리 실패
    - UpstreamUnavailableError: 외부 API(Rick & Morty) 조회 실패
    - DeserializationError: 손상된 캐시 페이로드

전파 규칙:
    - 읽기 경로에서는 네 가지 예외 모두 호출자에게 그대로 전파됩니다.
    - 갱신 작업은 자신의 경계에서 예외를 잡아 로깅하고 리포트로 반환합니다.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(Enum):
    """
    서비스 에러 코드 열거형

    각 코드는 실패한 협력자(캐시, 저장소, 외부 API)를 식별합니다.
    """

    INTERNAL_ERROR = "internal_error"  # 분류되지 않은 내부 에러
    CACHE_UNAVAILABLE = "cache_unavailable"  # Redis 연결/명령 실패
    STORE_UNAVAILABLE = "store_unavailable"  # DB 연결/쿼리 실패
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"  # 외부 API 실패
    DESERIALIZATION_ERROR = "deserialization_error"  # 캐시 페이로드 손상


# HTTP 계층에서 사용할 상태 코드 매핑
_HTTP_STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.CACHE_UNAVAILABLE: 503,
    ErrorCode.STORE_UNAVAILABLE: 503,
    ErrorCode.UPSTREAM_UNAVAILABLE: 502,
    ErrorCode.DESERIALIZATION_ERROR: 500,
}


class CharacterCacheError(Exception):
    """
    모든 서비스 에러의 기본 예외 클래스

    Attributes:
        message (str): 에러 메시지
        code (ErrorCode): 에러 코드
        data (dict): 디버깅용 추가 정보
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        data: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: 에러 메시지
            code: 에러 코드 (기본값: INTERNAL_ERROR)
            data: 추가 정보 (선택사항)
        """
        self.message = message
        self.code = code
        self.data = data or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        에러를 응답용 딕셔너리로 변환

        data 필드는 값이 있을 때만 포함됩니다.

        Returns:
            Dict[str, Any]: code, message, data(선택)
        """
        error_dict: Dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.data:
            error_dict["data"] = self.data
        return error_dict


class CacheUnavailableError(CharacterCacheError):
    """
    캐시 사용 불가 에러

    Redis 연결 실패, GET/SET/SCAN/DEL 명령 실패 시 발생합니다.
    읽기 경로에서 이 에러는 캐시 미스로 취급되지 않고 그대로 전파됩니다.
    """

    def __init__(
        self,
        message: str = "Cache unavailable",
        operation: Optional[str] = None,
        key: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: 에러 메시지
            operation: 실패한 캐시 작업 (예: "get", "set", "keys", "delete")
            key: 관련 캐시 키 (선택사항)
            data: 추가 정보
        """
        if data is None:
            data = {}
        if operation:
            data["operation"] = operation
        if key:
            data["key"] = key

        super().__init__(
            message=message, code=ErrorCode.CACHE_UNAVAILABLE, data=data
        )


class StoreUnavailableError(CharacterCacheError):
    """
    저장소 사용 불가 에러

    PostgreSQL 연결 실패, 쿼리 실행 실패, 타임아웃 시 발생합니다.
    """

    def __init__(
        self,
        message: str = "Store unavailable",
        operation: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: 에러 메시지
            operation: 실패한 저장소 작업 (예: "connect", "find_all", "upsert")
            data: 추가 정보
        """
        if data is None:
            data = {}
        if operation:
            data["operation"] = operation

        super().__init__(
            message=message, code=ErrorCode.STORE_UNAVAILABLE, data=data
        )


class UpstreamUnavailableError(CharacterCacheError):
    """
    외부 API 사용 불가 에러

    갱신 작업에서 Rick & Morty API 호출이 실패하거나
    응답 형식이 예상과 다를 때 발생합니다.
    """

    def __init__(
        self,
        message: str = "Upstream unavailable",
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: 에러 메시지
            url: 요청한 URL (선택사항)
            status_code: HTTP 응답 코드 (선택사항)
            data: 추가 정보
        """
        if data is None:
            data = {}
        if url:
            data["url"] = url
        if status_code is not None:
            data["status_code"] = status_code

        super().__init__(
            message=message, code=ErrorCode.UPSTREAM_UNAVAILABLE, data=data
        )


class DeserializationError(CharacterCacheError):
    """
    캐시 페이로드 역직렬화 실패 에러

    캐시에 저장된 값이 JSON이 아니거나 캐릭터 목록 형식이 아닐 때 발생합니다.
    """

    def __init__(
        self,
        message: str = "Corrupt cache payload",
        key: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: 에러 메시지
            key: 손상된 캐시 키 (선택사항)
            data: 추가 정보
        """
        if data is None:
            data = {}
        if key:
            data["key"] = key

        super().__init__(
            message=message, code=ErrorCode.DESERIALIZATION_ERROR, data=data
        )


def http_status_for(error: CharacterCacheError) -> int:
    """서비스 에러에 대응하는 HTTP 상태 코드 반환"""
    return _HTTP_STATUS_BY_CODE.get(error.code, 500)
