"""
HTTP 요청 로깅 미들웨어

모든 요청에 고유 ID를 부여하고 메서드, 경로, 쿼리, 상태 코드,
처리 시간을 구조화된 이벤트로 기록합니다.

로깅 구조:
    - request_id: 요청 고유 식별자 (X-Request-ID 응답 헤더로도 반환)
    - method, path, query: 요청 정보
    - status_code: 응답 상태 코드
    - duration_ms: 요청 처리 시간
"""

from typing import Callable
import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    요청/응답 로깅 미들웨어

    slow_request_ms 이상 걸린 요청은 별도의 경고로 기록됩니다.
    """

    def __init__(self, app, slow_request_ms: float = 1000):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        log_context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query": str(request.url.query) or None,
        }

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        except Exception as e:
            logger.exception("요청 처리 중 미처리 예외 발생", **log_context, error=str(e))
            raise

        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000

            log_level = "error" if status_code >= 500 else "info"
            getattr(logger, log_level)(
                "HTTP 요청 완료",
                **log_context,
                status_code=status_code,
                duration_ms=round(duration_ms, 3),
            )

            if duration_ms > self.slow_request_ms:
                logger.warning(
                    "느린 요청 감지",
                    **log_context,
                    duration_ms=round(duration_ms, 3),
                    threshold_ms=self.slow_request_ms,
                )
