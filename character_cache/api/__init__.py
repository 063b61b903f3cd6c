"""HTTP 인터페이스 모듈"""

from .app import ServiceContainer, build_services, create_app
from .middleware import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "ServiceContainer",
    "build_services",
    "create_app",
]
