"""
설정 모듈

환경 변수 기반 설정 로드와 검증을 제공합니다.
"""

from .settings import (
    AppConfig,
    CacheConfig,
    LoggingConfig,
    RefreshConfig,
    StoreBackend,
    StoreConfig,
    UpstreamConfig,
)
from .validators import validate_config

__all__ = [
    "AppConfig",
    "CacheConfig",
    "LoggingConfig",
    "RefreshConfig",
    "StoreBackend",
    "StoreConfig",
    "UpstreamConfig",
    "validate_config",
]
