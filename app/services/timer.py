import asyncio
import logging
from typing import Awaitable, Callable

from app.core.config import settings
from app.storage.base import notify

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], Awaitable[None] | None]
ExpireCallback = Callable[[], Awaitable[None] | None]


class CountdownTimer:
    """초 단위 카운트다운 (인스턴스당 동시에 하나만 실행)

    on_tick은 시작 값을 포함해 매 초 남은 시간으로 호출되고, 0에 도달하면 카운트다운이
    스스로 멈춘 뒤 on_expire가 정확히 한 번 호출된다.
    """

    def __init__(self, tick_seconds: float | None = None):
        self._tick_seconds = settings.timer_tick_seconds if tick_seconds is None else tick_seconds
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, initial_seconds: int, on_tick: TickCallback, on_expire: ExpireCallback) -> None:
        """카운트다운 시작 (실행 중이면 이전 카운트다운을 먼저 중지)"""
        self.stop()
        remaining = max(0, int(initial_seconds))
        self._task = asyncio.create_task(self._run(remaining, on_tick, on_expire))

    def stop(self) -> None:
        """카운트다운 중지 (이미 멈춘 상태에서 호출해도 안전)"""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self, remaining: int, on_tick: TickCallback, on_expire: ExpireCallback) -> None:
        try:
            await notify(on_tick, remaining)
            while remaining > 0:
                await asyncio.sleep(self._tick_seconds)
                remaining -= 1
                await notify(on_tick, remaining)

            # tick 콜백 안에서 stop/start가 호출됐다면 이 카운트다운은 이미 폐기된 것
            if self._task is not asyncio.current_task():
                return
            self._task = None
            await notify(on_expire)
        except Exception:
            logger.error("카운트다운 콜백 처리 중 오류", exc_info=True)
            if self._task is asyncio.current_task():
                self._task = None


def format_time_remaining(seconds: int) -> str:
    """남은 시간을 M:SS 형식으로"""
    seconds = max(0, seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"
