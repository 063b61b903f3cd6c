"""
설정 검증 모듈

서비스 설정의 유효성을 검증합니다.

주요 기능:
    - 기본 설정 검증 (이름, 포트)
    - 캐시/저장소/외부 API 설정 검증
    - 갱신 스케줄 검증 (시각 범위, 타임존)
"""

import re
from typing import List, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import structlog

from .settings import AppConfig, StoreBackend

logger = structlog.get_logger(__name__)


def validate_config(config: AppConfig) -> Tuple[bool, List[str]]:
    """
    전체 설정 검증

    Args:
        config: 검증할 서비스 설정

    Returns:
        (유효 여부, 오류 메시지 목록)
    """
    errors: List[str] = []

    errors.extend(_validate_basic_settings(config))
    errors.extend(_validate_cache_settings(config))
    errors.extend(_validate_store_settings(config))
    errors.extend(_validate_upstream_settings(config))
    errors.extend(_validate_refresh_settings(config))

    is_valid = len(errors) == 0

    if not is_valid:
        logger.error(
            "설정 검증 실패",
            error_count=len(errors),
            errors=errors[:5],  # 처음 5개만 로깅
        )
    else:
        logger.info("설정 검증 성공")

    return is_valid, errors


def _validate_basic_settings(config: AppConfig) -> List[str]:
    """기본 설정 검증"""
    errors = []

    if not config.name or not config.name.strip():
        errors.append("서비스 이름이 비어있음")
    elif not re.match(r"^[a-zA-Z0-9-_]+$", config.name):
        errors.append(f"잘못된 서비스 이름 형식: {config.name}")

    if not (1 <= config.port <= 65535):
        errors.append(f"잘못된 포트 번호: {config.port}")

    return errors


def _validate_cache_settings(config: AppConfig) -> List[str]:
    """캐시 설정 검증"""
    errors = []
    cache = config.cache

    if not cache.redis_url:
        errors.append("Redis URL이 설정되지 않음")
    elif not cache.redis_url.startswith(("redis://", "rediss://", "unix://")):
        errors.append(f"잘못된 Redis URL 형식: {cache.redis_url}")

    if not cache.namespace:
        errors.append("캐시 네임스페이스가 비어있음")
    elif any(char in cache.namespace for char in "*?[]"):
        errors.append(f"캐시 네임스페이스에 glob 문자가 포함됨: {cache.namespace}")

    if cache.ttl_seconds <= 0:
        errors.append(f"캐시 TTL은 양수여야 함: {cache.ttl_seconds}")

    return errors


def _validate_store_settings(config: AppConfig) -> List[str]:
    """저장소 설정 검증"""
    errors = []
    store = config.store

    if store.backend == StoreBackend.POSTGRES:
        if not store.postgres_dsn:
            errors.append("PostgreSQL 백엔드에는 POSTGRES_DSN이 필요함")
        elif not store.postgres_dsn.startswith(("postgresql://", "postgres://")):
            errors.append("잘못된 PostgreSQL DSN 형식")

    if store.min_connections < 1:
        errors.append(f"최소 연결 수는 1 이상이어야 함: {store.min_connections}")
    if store.max_connections < store.min_connections:
        errors.append(
            f"최대 연결 수({store.max_connections})가 "
            f"최소 연결 수({store.min_connections})보다 작음"
        )

    return errors


def _validate_upstream_settings(config: AppConfig) -> List[str]:
    """외부 API 설정 검증"""
    errors = []
    upstream = config.upstream

    if not upstream.base_url.startswith(("http://", "https://")):
        errors.append(f"잘못된 외부 API URL 형식: {upstream.base_url}")
    if upstream.batch_size <= 0:
        errors.append(f"배치 크기는 양수여야 함: {upstream.batch_size}")
    if upstream.timeout <= 0:
        errors.append(f"외부 API 타임아웃은 양수여야 함: {upstream.timeout}")

    return errors


def _validate_refresh_settings(config: AppConfig) -> List[str]:
    """갱신 스케줄 검증"""
    errors = []
    refresh = config.refresh

    # 수동 갱신도 스케줄러를 거치므로 비활성 상태에서도 검증
    if not refresh.hours:
        errors.append("REFRESH_HOURS가 비어있음")
    for hour in refresh.hours:
        if not (0 <= hour <= 23):
            errors.append(f"잘못된 갱신 시각: {hour} (0-23)")

    try:
        ZoneInfo(refresh.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"알 수 없는 타임존: {refresh.timezone}")

    return errors
