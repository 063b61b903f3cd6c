"""
structlog 로깅 설정

표준 logging과 연동된 structlog 프로세서 체인을 구성합니다.
모든 모듈은 structlog.get_logger(__name__)로 로거를 얻어 키-값 이벤트를 기록합니다.
"""

import logging
import sys

import structlog

from character_cache.config.settings import LoggingConfig


def configure_logging(config: LoggingConfig | None = None) -> None:
    """
    structlog 전역 설정

    Args:
        config: 로깅 설정 (기본값: LoggingConfig())
            - log_level: 표준 logging 레벨 이름
            - json_logs: True면 JSONRenderer, False면 ConsoleRenderer
    """
    config = config or LoggingConfig()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if config.json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
