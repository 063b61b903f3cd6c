"""
캐릭터 캐시 HTTP 서버

FastAPI 기반의 얇은 호출자용 인터페이스입니다.
읽기 경로, 수동 갱신, 헬스체크, 작업 시간 지표를 노출합니다.

엔드포인트:
    - GET  /characters        필터 조회 (status, species, gender, name, origin)
    - POST /admin/refresh     즉시 갱신 실행
    - POST /admin/refresh/{id} 단일 캐릭터 갱신
    - GET  /health            캐시/저장소/스케줄러 상태
    - GET  /metrics/timing    작업별 소요 시간 집계
    - GET  /                  /characters로 리다이렉트

실행:
    uvicorn character_cache.api.app:create_app --factory --port 4000
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, Any, Optional

import structlog
from fastapi import Depends, FastAPI, Path, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from character_cache.api.middleware import RequestLoggingMiddleware
from character_cache.cache.redis_cache import RedisCache, RedisCacheConfig
from character_cache.config.settings import AppConfig, StoreBackend, StoreConfig
from character_cache.exceptions import CharacterCacheError, http_status_for
from character_cache.models import Character, CharacterFilters
from character_cache.observability.timing import get_operation_metrics
from character_cache.services.query import query_characters
from character_cache.services.refresh import CharacterRefresher, RefreshReport
from character_cache.services.scheduler import RefreshScheduler
from character_cache.store.base import CharacterStore
from character_cache.store.memory import InMemoryCharacterStore
from character_cache.store.postgres import PostgresCharacterStore
from character_cache.upstream.client import RickAndMortyClient

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """요청 핸들러가 공유하는 서비스 구성요소"""

    config: AppConfig
    cache: RedisCache
    store: CharacterStore
    upstream: RickAndMortyClient
    refresher: CharacterRefresher
    scheduler: RefreshScheduler


def build_store(config: StoreConfig) -> CharacterStore:
    """설정된 백엔드에 맞는 저장소 생성"""
    if config.backend == StoreBackend.MEMORY:
        return InMemoryCharacterStore()
    return PostgresCharacterStore(config.to_store_config())


def build_services(
    config: AppConfig,
    *,
    cache: Optional[RedisCache] = None,
    store: Optional[CharacterStore] = None,
    upstream: Optional[RickAndMortyClient] = None,
) -> ServiceContainer:
    """
    설정으로부터 서비스 구성요소 조립

    cache, store, upstream을 넘기면 설정 대신 주입된 객체를 사용합니다.
    """
    cache = cache or RedisCache(
        RedisCacheConfig(
            redis_url=config.cache.redis_url,
            socket_timeout=config.cache.socket_timeout,
        )
    )
    store = store or build_store(config.store)
    upstream = upstream or RickAndMortyClient(
        {
            "base_url": config.upstream.base_url,
            "batch_size": config.upstream.batch_size,
            "timeout": config.upstream.timeout,
        }
    )

    refresher = CharacterRefresher(
        upstream,
        store,
        cache,
        batch_size=config.upstream.batch_size,
        namespace=config.cache.namespace,
    )
    scheduler = RefreshScheduler(
        refresher, hours=config.refresh.hours, tz=config.refresh.timezone
    )

    return ServiceContainer(
        config=config,
        cache=cache,
        store=store,
        upstream=upstream,
        refresher=refresher,
        scheduler=scheduler,
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


Services = Annotated[ServiceContainer, Depends(get_services)]


def create_app(
    config: Optional[AppConfig] = None,
    *,
    cache: Optional[RedisCache] = None,
    store: Optional[CharacterStore] = None,
    upstream: Optional[RickAndMortyClient] = None,
) -> FastAPI:
    """
    FastAPI 애플리케이션 생성

    Args:
        config: 서비스 설정 (기본값: 환경 변수에서 로드)
        cache, store, upstream: 주입할 구성요소 (테스트용)

    Raises:
        ValueError: 설정 검증 실패 시
    """
    config = config or AppConfig.from_env()
    is_valid, errors = config.validate()
    if not is_valid:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    services = build_services(config, cache=cache, store=store, upstream=upstream)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        애플리케이션 수명주기 관리

        시작 시 작업:
            - 캐시/저장소/외부 API 연결
            - 테이블 생성
            - 저장소가 비어 있으면 초기 시드
            - 갱신 스케줄러 시작

        종료 시에는 역순으로 정리합니다.
        """
        logger.info(
            "캐릭터 캐시 서버 시작",
            port=config.port,
            store_backend=config.store.backend.value,
        )

        try:
            await services.cache.connect()
            await services.store.connect()
            await services.store.ensure_schema()
            await services.upstream.connect()

            if config.refresh.seed_on_startup:
                await services.refresher.seed_if_empty()
            if config.refresh.enabled:
                services.scheduler.start()

            yield

        finally:
            # 시작 도중 실패해도 이미 연결된 자원은 정리
            await services.scheduler.stop()
            await services.upstream.close()
            await services.store.disconnect()
            await services.cache.disconnect()
            logger.info("캐릭터 캐시 서버 종료")

    app = FastAPI(
        title="Character Cache",
        description="Rick & Morty 캐릭터 카탈로그 read-through 캐시",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(CharacterCacheError)
    async def handle_service_error(request: Request, exc: CharacterCacheError):
        status_code = http_status_for(exc)
        logger.error(
            "서비스 에러 응답",
            path=request.url.path,
            status_code=status_code,
            code=exc.code.value,
            error=exc.message,
        )
        return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/characters")

    @app.get("/characters", response_model=list[Character])
    async def list_characters(
        filters: Annotated[CharacterFilters, Query()],
        services: Services,
    ):
        """
        캐릭터 조회

        status, species, gender는 정확히 일치, name과 origin은 부분 문자열로
        비교합니다. 알 수 없는 쿼리 파라미터는 422로 거부됩니다.
        """
        return await query_characters(
            filters,
            cache=services.cache,
            store=services.store,
            ttl=services.config.cache.ttl_seconds,
            namespace=services.config.cache.namespace,
        )

    @app.post("/admin/refresh", response_model=RefreshReport)
    async def trigger_refresh(services: Services):
        """즉시 갱신 실행 (이미 실행 중이면 status=skipped)"""
        return await services.scheduler.trigger()

    @app.post("/admin/refresh/{character_id}", response_model=RefreshReport)
    async def trigger_character_refresh(
        character_id: Annotated[int, Path(gt=0)], services: Services
    ):
        """단일 캐릭터 즉시 갱신 (외부 API에 없는 id는 status=failed)"""
        return await services.refresher.refresh_character(character_id)

    @app.get("/health")
    async def health_check(services: Services):
        """
        서비스 상태 확인

        캐시와 저장소가 모두 정상이면 200, 아니면 503을 반환합니다.
        """
        cache_health = await services.cache.health_check()
        store_health = await services.store.health_check()
        last_report = services.scheduler.last_report

        healthy = cache_health.get("status") == "healthy" and store_health.healthy
        body: dict[str, Any] = {
            "status": "healthy" if healthy else "degraded",
            "service": services.config.name,
            "cache": cache_health,
            "store": store_health.model_dump(mode="json"),
            "scheduler": {
                "running": services.scheduler.running,
                "hours": list(services.scheduler.hours),
                "timezone": str(services.scheduler.tz),
                "last_report": (
                    last_report.model_dump(mode="json") if last_report else None
                ),
            },
        }
        return JSONResponse(status_code=200 if healthy else 503, content=body)

    @app.get("/metrics/timing")
    async def timing_metrics():
        """작업별 소요 시간 집계"""
        return get_operation_metrics().get_summary()

    return app
