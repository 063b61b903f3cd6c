"""
주기적 갱신 스케줄러

지정된 시각(정각)마다 백그라운드 태스크에서 갱신 작업을 실행합니다.
기본값은 매일 0시와 12시 (UTC)입니다.

한 번의 갱신이 예상치 못한 예외로 실패해도 루프는 다음 시각까지 계속됩니다.
"""

import asyncio
from datetime import datetime, time, timedelta, timezone
from typing import Awaitable, Callable, Iterable, Optional
from zoneinfo import ZoneInfo

import structlog

from character_cache.services.refresh import CharacterRefresher, RefreshReport

logger = structlog.get_logger(__name__)

DEFAULT_REFRESH_HOURS = (0, 12)


class RefreshScheduler:
    """
    시각 기반 갱신 스케줄러

    Attributes:
        hours (tuple[int, ...]): 실행 시각 (0-23, 정렬됨)
        tz (ZoneInfo): 시각 해석 기준 타임존
        last_report (RefreshReport | None): 마지막 실행 결과
    """

    def __init__(
        self,
        refresher: CharacterRefresher,
        hours: Iterable[int] = DEFAULT_REFRESH_HOURS,
        tz: str = "UTC",
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            refresher: 갱신 작업 실행기
            hours: 실행 시각 목록
            tz: IANA 타임존 이름
            clock: 현재 시각 함수 (테스트용)
            sleep: 대기 함수 (테스트용)

        Raises:
            ValueError: 시각 목록이 비었거나 0-23 범위를 벗어난 경우
        """
        self.hours = tuple(sorted(set(hours)))
        if not self.hours:
            raise ValueError("at least one refresh hour is required")
        if any(not 0 <= hour <= 23 for hour in self.hours):
            raise ValueError(f"refresh hours must be within 0-23: {self.hours}")

        self.tz = ZoneInfo(tz)
        self._refresher = refresher
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.last_report: Optional[RefreshReport] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_run_after(self, now: datetime) -> datetime:
        """
        now 이후 가장 가까운 실행 시각 계산

        Args:
            now: 기준 시각 (naive이면 스케줄 타임존으로 간주)

        Returns:
            datetime: 스케줄 타임존 기준 다음 실행 시각 (now보다 엄격히 이후)
        """
        local_now = (
            now.astimezone(self.tz) if now.tzinfo else now.replace(tzinfo=self.tz)
        )

        for day_offset in (0, 1):
            day = local_now.date() + timedelta(days=day_offset)
            for hour in self.hours:
                candidate = datetime.combine(day, time(hour), tzinfo=self.tz)
                if candidate > local_now:
                    return candidate

        # 도달하지 않음: 다음 날 첫 시각은 항상 now 이후
        raise RuntimeError("no refresh time found")

    async def run(self) -> None:
        """취소될 때까지 스케줄에 따라 갱신 실행"""
        while True:
            try:
                now = self._clock()
                next_run = self.next_run_after(now)
                delay = (
                    next_run.astimezone(timezone.utc) - now.astimezone(timezone.utc)
                ).total_seconds()
                logger.debug(
                    "다음 갱신 예약", next_run=next_run.isoformat(), delay_seconds=delay
                )

                await self._sleep(max(delay, 0.0))
                self.last_report = await self._refresher.refresh()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception("예약된 갱신 중 예상치 못한 오류", error=str(e))

    def start(self) -> asyncio.Task:
        """
        백그라운드 루프 시작

        이미 실행 중이면 기존 태스크를 반환합니다.
        """
        if self.running:
            return self._task

        self._task = asyncio.create_task(self.run())
        logger.info(
            "갱신 스케줄러 시작", hours=list(self.hours), timezone=str(self.tz)
        )
        return self._task

    async def stop(self) -> None:
        """백그라운드 루프 중지"""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("갱신 스케줄러 중지")

    async def trigger(self) -> RefreshReport:
        """즉시 갱신 실행 (실행 중이면 skipped)"""
        logger.info("수동 갱신 요청")
        report = await self._refresher.refresh()
        self.last_report = report
        return report
