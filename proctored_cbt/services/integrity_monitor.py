"""
services/integrity_monitor.py

환경 신호 → 위반 이벤트 변환기. 정책 판단은 하지 않는다.

신호 입력:
  - visibility_changed(hidden)    : 탭/창 전환 (Alt+Tab, 다른 모니터 포함) → tab_switch
  - context_menu()                : 우클릭 → context_menu
  - devtools_detected()           : 브라우저 콘솔 프로브 → console
  - window_resized(...)           : outer/inner 크기 차이 > 100px (도킹된 DevTools) → console
  - 주기적 probe() (2초)           : 디버거 부착 여부 → console
  - fullscreen_changed(active)    : 전체화면 필요 상태 토글 (위반 아님)

console 계열 세 가지 휴리스틱은 5초에 한 번만 발화한다.
핸들러는 스로틀링 이후 물리적 발생 1회당 최대 1회 호출된다.
"""

import asyncio
import logging
import sys
import time
from typing import Callable, List, Optional

from config import DEVTOOLS_GAP_PX, DEVTOOLS_PROBE_INTERVAL, DEVTOOLS_THROTTLE_SECONDS
from proctored_cbt.models.attempt_model import ViolationRecord, ViolationType

logger = logging.getLogger(__name__)

ViolationHandler = Callable[[ViolationRecord], None]

_DEBUGGER_MODULES = ("pydevd", "debugpy", "_pydevd_bundle")


def debugger_attached() -> bool:
    """현재 프로세스에 IDE 디버거가 부착되어 있는지 확인."""
    return any(name in sys.modules for name in _DEBUGGER_MODULES)


class IntegrityMonitor:
    """
    감독 신호 수집기.

    start() 이전과 teardown() 이후에 들어온 신호는 무시된다.
    teardown()은 여러 번 호출해도 정리 작업을 한 번만 수행한다.
    """

    def __init__(
        self,
        probe: Optional[Callable[[], bool]] = debugger_attached,
        clock: Callable[[], float] = time.monotonic,
        probe_interval: float = DEVTOOLS_PROBE_INTERVAL,
        throttle_seconds: float = DEVTOOLS_THROTTLE_SECONDS,
        gap_px: int = DEVTOOLS_GAP_PX,
    ):
        self._probe = probe
        self._clock = clock
        self._probe_interval = probe_interval
        self._throttle_seconds = throttle_seconds
        self._gap_px = gap_px

        self._violation_handlers: List[ViolationHandler] = []
        self._probe_task: Optional[asyncio.Task] = None
        self._console_fired_at: Optional[float] = None
        self._started = False
        self._torn_down = False

        # 전체화면 진입이 보고되기 전까지는 차단 상태
        self.fullscreen_required = True

    # ── 구독 ──────────────────────────────────────────────────────────────

    def on_violation(self, handler: ViolationHandler) -> None:
        self._violation_handlers.append(handler)

    # ── 수명 주기 ─────────────────────────────────────────────────────────

    @property
    def active(self) -> bool:
        return self._started and not self._torn_down

    def start(self) -> None:
        """신호 수신을 시작하고 프로브 태스크를 띄운다. 실행 중인 이벤트 루프 필요."""
        if self._started or self._torn_down:
            return
        self._started = True
        if self._probe is not None:
            self._probe_task = asyncio.get_running_loop().create_task(self._probe_loop())

    def teardown(self) -> None:
        if self._torn_down:
            return
        self._torn_down = True
        if self._probe_task is not None:
            self._probe_task.cancel()
            self._probe_task = None
        self._violation_handlers.clear()
        logger.info("무결성 모니터 해제")

    # ── 신호 입력 ─────────────────────────────────────────────────────────

    def visibility_changed(self, hidden: bool) -> None:
        if hidden:
            self._fire(ViolationType.TAB_SWITCH)

    def context_menu(self) -> None:
        self._fire(ViolationType.CONTEXT_MENU)

    def devtools_detected(self) -> bool:
        """console 위반 발화. 스로틀 구간이면 False."""
        if not self.active:
            return False
        now = self._clock()
        if self._console_fired_at is not None and now - self._console_fired_at < self._throttle_seconds:
            return False
        self._console_fired_at = now
        self._fire(ViolationType.CONSOLE)
        return True

    def window_resized(
        self,
        outer_width: int,
        outer_height: int,
        inner_width: int,
        inner_height: int,
    ) -> bool:
        height_gap = outer_height - inner_height > self._gap_px
        width_gap = outer_width - inner_width > self._gap_px
        if height_gap or width_gap:
            return self.devtools_detected()
        return False

    def fullscreen_changed(self, active: bool) -> None:
        if not self.active:
            return
        self.fullscreen_required = not active
        logger.info(f"전체화면 {'진입' if active else '해제'}")

    # ── 내부 ──────────────────────────────────────────────────────────────

    def _fire(self, violation: ViolationType) -> None:
        if not self.active:
            return
        record = ViolationRecord(type=violation)
        logger.info(f"위반 감지: {violation.value}")
        for handler in list(self._violation_handlers):
            handler(record)

    async def _probe_loop(self) -> None:
        while True:
            await asyncio.sleep(self._probe_interval)
            try:
                detected = self._probe()
            except Exception as e:
                logger.error(f"디버거 프로브 실패: {e}")
                continue
            if detected:
                self.devtools_detected()
