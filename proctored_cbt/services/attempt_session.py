"""
services/attempt_session.py

응시 세션 컨트롤러 — 응시 획득부터 종료까지의 수명 주기를 소유한다.

상태 전이:
  loading → active → {submitted, terminated}
  - active → submitted  : finalize() 성공 (수동 제출 또는 시간 종료 자동 제출)
  - active → terminated : 위반 한도 초과 → 강제 로그아웃, 답안 미제출
  submitted / terminated 에서 나가는 전이는 없다.

원격 호출 실패는 여기서 잡아 알림(Notification)으로 변환한다.
위반 기록 전송은 fire-and-forget이며 실패해도 로컬 정책 판단은 그대로 진행된다.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from config import COUNTDOWN_TICK_SECONDS, LOGIN_PATH, TEST_LIST_PATH
from proctored_cbt.models.attempt_model import (
    Attempt, AttemptContent, CodingSolution, SessionStatus, SubmitPayload,
    ViolationRecord, ViolationType,
)
from proctored_cbt.models.question_model import (
    CodingProblem, McqQuestion, ProgrammingLanguage, TestType,
)
from proctored_cbt.models.session_state import AnswerStore
from proctored_cbt.services.attempt_api import AttemptApi
from proctored_cbt.services.countdown import remaining_seconds, to_timestamp
from proctored_cbt.services.errors import (
    AttemptApiError, AttemptUnavailable, SubmissionFailed, ViolationReportFailed,
)
from proctored_cbt.services.integrity_monitor import IntegrityMonitor
from proctored_cbt.services.violation_policy import Verdict, ViolationPolicy

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    NEXT = "next"
    PREVIOUS = "previous"


class FinalizeOutcome(str, Enum):
    SUBMITTED = "submitted"
    IGNORED = "ignored"   # 다른 호출이 이미 제출 중이거나 완료함
    FAILED = "failed"


@dataclass
class Notification:
    """사용자에게 보여줄 토스트 알림."""
    title: str
    description: str = ""
    variant: str = "default"


@dataclass
class Redirect:
    path: str
    just_submitted: bool = False


class SubmissionLatch:
    """
    최종 제출 1회 보장 래치 (idle → in_flight → done).

    try_claim()은 compare-and-set으로 동작하므로 이벤트 루프 순서나
    스레드 여부와 관계없이 한 호출자만 성공한다.
    실패 시 release()로 idle로 되돌려 재시도를 허용한다.
    """

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    DONE = "done"

    def __init__(self):
        self._lock = threading.Lock()
        self._state = self.IDLE

    def try_claim(self) -> bool:
        with self._lock:
            if self._state != self.IDLE:
                return False
            self._state = self.IN_FLIGHT
            return True

    def complete(self) -> None:
        with self._lock:
            self._state = self.DONE

    def release(self) -> None:
        with self._lock:
            if self._state == self.IN_FLIGHT:
                self._state = self.IDLE

    @property
    def state(self) -> str:
        return self._state


def _cancel_task(task: Optional[asyncio.Task]) -> None:
    """태스크 취소. 자기 자신(현재 태스크)은 취소하지 않는다."""
    if task is None or task.done():
        return
    try:
        current = asyncio.current_task()
    except RuntimeError:
        current = None
    if task is not current:
        task.cancel()


class AttemptSession:
    """
    한 브라우저 세션이 소유하는 단일 응시.

    Args:
        api:           원격 시험 서비스.
        test_id:       응시할 시험 ID.
        monitor:       무결성 모니터 (기본: IntegrityMonitor()).
        clock:         현재 시각 (Unix timestamp) 공급자. 테스트에서 주입.
        tick_interval: 카운트다운 갱신 주기 (초).
    """

    def __init__(
        self,
        api: AttemptApi,
        test_id: str,
        monitor: Optional[IntegrityMonitor] = None,
        clock: Callable[[], float] = time.time,
        tick_interval: float = COUNTDOWN_TICK_SECONDS,
    ):
        self.api = api
        self.test_id = str(test_id)
        self.monitor = monitor if monitor is not None else IntegrityMonitor()
        self._clock = clock
        self._tick_interval = tick_interval

        self.status = SessionStatus.LOADING
        self.attempt: Optional[Attempt] = None
        self.content: Optional[AttemptContent] = None
        self.languages: List[ProgrammingLanguage] = []
        self.answers = AnswerStore()
        self.policy: Optional[ViolationPolicy] = None
        self.current_index = 0

        self.remaining: Optional[int] = None
        self.time_up = False
        self.auto_submit_failed = False
        self.submit_modal_open = False
        self.nav_warning_open = False
        self.violation_overlay: Optional[str] = None   # tab | devtools | context_menu
        self.last_coding_result: Optional[bool] = None
        self.coding_in_flight = False

        self.notifications: List[Notification] = []
        self.redirect: Optional[Redirect] = None

        self._latch = SubmissionLatch()
        self._auto_submitted = False
        self._countdown_task: Optional[asyncio.Task] = None
        self._background: set = set()
        self._torn_down = False

    # ── 조회용 속성 ────────────────────────────────────────────────────────

    @property
    def test_type(self) -> Optional[TestType]:
        return self.content.test_type if self.content else None

    @property
    def item_count(self) -> int:
        return self.content.item_count if self.content else 0

    @property
    def is_last(self) -> bool:
        return self.item_count > 0 and self.current_index == self.item_count - 1

    @property
    def current_item(self) -> Optional[Union[McqQuestion, CodingProblem]]:
        if not self.content or self.item_count == 0:
            return None
        if self.content.test_type == TestType.MCQ:
            return self.content.questions[self.current_index]
        return self.content.problems[self.current_index]

    @property
    def nav_count(self) -> int:
        return self.policy.nav_count if self.policy else 0

    @property
    def submitting(self) -> bool:
        return self._latch.state == SubmissionLatch.IN_FLIGHT

    @property
    def countdown_running(self) -> bool:
        return self._countdown_task is not None and not self._countdown_task.done()

    @property
    def accepting_input(self) -> bool:
        return self.status == SessionStatus.ACTIVE and not self.time_up

    @property
    def can_submit(self) -> bool:
        if self.status != SessionStatus.ACTIVE or self.submitting:
            return False
        return not self.time_up or self.auto_submit_failed

    @property
    def fullscreen_required(self) -> bool:
        return self.status == SessionStatus.ACTIVE and self.monitor.fullscreen_required

    def pop_notifications(self) -> List[Notification]:
        items, self.notifications = self.notifications, []
        return items

    def _notify(self, title: str, description: str = "", variant: str = "default") -> None:
        self.notifications.append(Notification(title, description, variant))

    # ── 획득 / 로드 ───────────────────────────────────────────────────────

    async def open(self, resume_attempt_id: Optional[int] = None) -> None:
        """acquire_attempt() + load_content()."""
        await self.acquire_attempt(resume_attempt_id)
        await self.load_content()

    def _unavailable(self, message: str) -> AttemptUnavailable:
        """실패 처리: 부분 상태를 버리고 시험 목록으로 리다이렉트."""
        logger.error(f"응시 불가: test={self.test_id} — {message}")
        self.attempt = None
        self.content = None
        self.languages = []
        self.policy = None
        self._notify(message or "시험을 불러오지 못했습니다.", variant="destructive")
        self.redirect = Redirect(TEST_LIST_PATH)
        return AttemptUnavailable(message)

    async def acquire_attempt(self, resume_attempt_id: Optional[int] = None) -> Attempt:
        """
        응시 ID 확보.

        resume_attempt_id가 있으면 그대로 사용하고, 없으면 진행 중 응시를 조회한 뒤
        없을 때만 새 응시를 시작한다.
        """
        if self.status != SessionStatus.LOADING or self.attempt is not None:
            raise RuntimeError("이미 응시를 획득한 세션입니다.")

        attempt_id = resume_attempt_id
        if attempt_id is None:
            try:
                current = await self.api.get_current_attempt(self.test_id)
                if current is not None:
                    attempt_id = current.id
                else:
                    attempt_id = await self.api.start_attempt(self.test_id)
            except AttemptApiError as e:
                raise self._unavailable(e.message) from e

        self.attempt = Attempt(attempt_id=attempt_id, test_id=self.test_id)
        logger.info(f"응시 획득: test={self.test_id} attempt={attempt_id}")
        return self.attempt

    async def load_content(self) -> AttemptContent:
        """문제/설정 일괄 로드. 완료 후에야 카운트다운과 감독이 활성화된다."""
        if self.attempt is None:
            raise self._unavailable("응시 정보가 없습니다.")
        if self.content is not None:
            return self.content

        try:
            content = await self.api.get_questions(self.attempt.attempt_id)
            languages = []
            if content.test_type == TestType.CODING:
                languages = await self.api.list_programming_languages()
        except AttemptApiError as e:
            raise self._unavailable(e.message) from e

        if content.item_count == 0:
            raise self._unavailable("이 시험에는 문제가 없습니다.")

        start_time = to_timestamp(content.attempt_start_time)
        if start_time is None:
            logger.warning(f"attempt={self.attempt.attempt_id}: 시작 시각 없음, 로컬 시각 사용")
            start_time = self._clock()

        self.attempt = self.attempt.model_copy(update={
            "test_type": content.test_type,
            "start_time": start_time,
            "duration_minutes": content.duration_minutes,
            "max_navigations": content.max_navigations,
        })
        self.content = content
        self.languages = languages
        self.policy = ViolationPolicy(content.max_navigations)
        if content.test_type == TestType.CODING and languages:
            self.answers.set_language(languages[0].id)

        self._activate()
        return content

    def _activate(self) -> None:
        self.status = SessionStatus.ACTIVE
        self.monitor.on_violation(self._handle_violation)
        self.monitor.start()
        self._countdown_task = asyncio.get_running_loop().create_task(self._countdown_loop())
        logger.info(
            f"응시 시작: attempt={self.attempt.attempt_id} type={self.attempt.test_type.value} "
            f"items={self.item_count} duration={self.attempt.duration_minutes}분 "
            f"max_navigations={self.attempt.max_navigations}"
        )

    # ── 카운트다운 ────────────────────────────────────────────────────────

    async def _countdown_loop(self) -> None:
        while self.status == SessionStatus.ACTIVE and not self.time_up:
            await self.tick()
            if self.time_up:
                break
            await asyncio.sleep(self._tick_interval)

    async def tick(self) -> None:
        """남은 시간 갱신. 0에 처음 도달하면 time_up 전환 후 자동 제출 1회."""
        if self.status != SessionStatus.ACTIVE or self.attempt is None:
            return
        self.remaining = remaining_seconds(
            self.attempt.start_time, self.attempt.duration_minutes, self._clock()
        )
        if self.remaining <= 0 and not self.time_up:
            self.time_up = True
            self.submit_modal_open = False
            logger.info(f"attempt={self.attempt.attempt_id}: 시간 종료, 자동 제출")
            await self._auto_submit()

    async def _auto_submit(self) -> None:
        if self._auto_submitted:
            return
        self._auto_submitted = True
        await self.finalize(auto=True)

    # ── 답안 입력 ─────────────────────────────────────────────────────────

    def _find_question(self, question_id: int) -> McqQuestion:
        for q in (self.content.questions if self.content else []):
            if q.mcq_question_id == question_id:
                return q
        raise KeyError(f"문제를 찾을 수 없습니다: {question_id}")

    def select_option(self, question_id: int, option_id: int) -> bool:
        if not self.accepting_input:
            return False
        question = self._find_question(question_id)
        if option_id not in {opt.id for opt in question.options}:
            raise KeyError(f"보기를 찾을 수 없습니다: {option_id}")
        self.answers.set_mcq_selection(question_id, option_id, question.is_multiple)
        return True

    def set_code(self, problem_id: int, source: str) -> bool:
        if not self.accepting_input:
            return False
        if problem_id not in {p.problem_id for p in (self.content.problems if self.content else [])}:
            raise KeyError(f"문제를 찾을 수 없습니다: {problem_id}")
        self.answers.set_code(problem_id, source)
        return True

    def set_language(self, language_id: int) -> bool:
        if not self.accepting_input:
            return False
        if language_id not in {lang.id for lang in self.languages}:
            raise KeyError(f"언어를 찾을 수 없습니다: {language_id}")
        self.answers.set_language(language_id)
        return True

    # ── 이동 ──────────────────────────────────────────────────────────────

    async def advance(self, direction: Direction) -> bool:
        """
        현재 인덱스를 ±1 이동 ([0, count-1]로 보정).

        코딩 시험의 next는 현재 문제 코드를 먼저 제출(submit_coding)한다.
        통과 여부와 관계없이 이동하며, 마지막 문제에서는 최종 제출 확인창을 연다.
        """
        if not self.accepting_input:
            return False
        direction = Direction(direction)
        if direction == Direction.PREVIOUS:
            self.current_index = max(0, self.current_index - 1)
            return True
        if self.test_type == TestType.CODING:
            return await self._run_and_next()
        self.current_index = min(self.item_count - 1, self.current_index + 1)
        return True

    def _fallback_language_id(self) -> Optional[int]:
        if self.answers.language_id is not None:
            return self.answers.language_id
        return self.languages[0].id if self.languages else None

    async def _call_submit_coding(self, solution: CodingSolution) -> bool:
        try:
            return await self.api.submit_coding(self.attempt.attempt_id, solution)
        except AttemptApiError as e:
            raise SubmissionFailed(e.message or "코드 제출에 실패했습니다.") from e

    async def _run_and_next(self) -> bool:
        if self.coding_in_flight:
            return False
        language_id = self._fallback_language_id()
        if language_id is None:
            self._notify("언어를 선택하세요", variant="destructive")
            return False

        problem = self.content.problems[self.current_index]
        solution = CodingSolution(
            problem_id=problem.problem_id,
            language_id=language_id,
            code=self.answers.code(problem.problem_id),
        )
        self.coding_in_flight = True
        try:
            self.last_coding_result = await self._call_submit_coding(solution)
        except SubmissionFailed as e:
            logger.warning(f"attempt={self.attempt.attempt_id} problem={problem.problem_id}: {e}")
            self._notify(str(e), variant="destructive")
            return False
        finally:
            self.coding_in_flight = False

        if not self.accepting_input:
            return False
        if self.is_last:
            self.submit_modal_open = True
        else:
            self.current_index += 1
        return True

    # ── 제출 ──────────────────────────────────────────────────────────────

    def request_submit(self) -> bool:
        """최종 제출 확인창 열기."""
        if not self.can_submit:
            return False
        self.submit_modal_open = True
        return True

    def cancel_submit(self) -> None:
        self.submit_modal_open = False

    def _build_payload(self) -> SubmitPayload:
        if self.test_type == TestType.MCQ:
            return SubmitPayload(answers=self.answers.answers_payload())
        fallback = self.languages[0].id if self.languages else 0
        return SubmitPayload(solutions=self.answers.solutions(self.content.problems, fallback))

    async def _call_submit(self, payload: SubmitPayload) -> dict:
        try:
            return await self.api.submit(self.attempt.attempt_id, payload)
        except AttemptApiError as e:
            raise SubmissionFailed(e.message or "제출에 실패했습니다.") from e

    async def finalize(self, auto: bool = False) -> FinalizeOutcome:
        """
        전체 답안 최종 제출. 세션당 원격 submit 호출은 최대 1회.

        동시에 여러 번 호출되면(시간 종료 + 제출 버튼) 래치를 먼저 잡은 호출만
        제출하고 나머지는 IGNORED를 반환한다. 실패하면 래치를 풀어 재시도를 허용하고
        세션은 active로 남는다.
        """
        if self.status != SessionStatus.ACTIVE or self.attempt is None:
            return FinalizeOutcome.IGNORED
        if not self._latch.try_claim():
            return FinalizeOutcome.IGNORED

        payload = self._build_payload()
        try:
            result = await self._call_submit(payload)
        except SubmissionFailed as e:
            self._latch.release()
            if self.time_up:
                # 시간 종료 후 실패한 제출은 수동 재시도만 가능
                self.auto_submit_failed = True
            logger.error(f"attempt={self.attempt.attempt_id}: 최종 제출 실패 — {e}")
            self._notify(str(e), variant="destructive")
            return FinalizeOutcome.FAILED

        self._latch.complete()
        if self.status != SessionStatus.ACTIVE:
            # 제출 대기 중 강제 종료됨. terminated에서 나가는 전이는 없다.
            logger.warning(f"attempt={self.attempt.attempt_id}: 종료 후 제출 응답 도착, 무시")
            return FinalizeOutcome.IGNORED

        self.status = SessionStatus.SUBMITTED
        self.submit_modal_open = False
        self.teardown()
        if result.get("alreadySubmitted"):
            logger.info(f"attempt={self.attempt.attempt_id}: 서버에 이미 제출된 응시")
        logger.info(f"attempt={self.attempt.attempt_id}: 제출 완료 (auto={auto})")
        if auto:
            self._notify("시간 종료 — 자동으로 제출되었습니다")
        else:
            self._notify("시험이 제출되었습니다")
        self.redirect = Redirect(TEST_LIST_PATH, just_submitted=True)
        return FinalizeOutcome.SUBMITTED

    # ── 위반 처리 ─────────────────────────────────────────────────────────

    def _handle_violation(self, record: ViolationRecord) -> None:
        if self.status != SessionStatus.ACTIVE or self.policy is None:
            return
        violation = record.type
        self._report(violation)
        decision = self.policy.evaluate(violation)
        logger.info(
            f"attempt={self.attempt.attempt_id}: {violation.value} → {decision.verdict.value} "
            f"({decision.nav_count}/{decision.max_navigations})"
        )

        if decision.verdict == Verdict.RECORD_ONLY:
            if violation == ViolationType.CONTEXT_MENU:
                self.violation_overlay = "context_menu"
            return

        count, limit = decision.nav_count, decision.max_navigations
        if violation == ViolationType.TAB_SWITCH:
            self._notify(
                "탭 전환이 기록되었습니다",
                f"시험 탭을 벗어났습니다 ({count}회). 허용 횟수: {limit}. "
                "초과하면 시험이 종료되고 응시가 표시됩니다.",
                variant="destructive",
            )
        else:
            self._notify(
                "개발자 도구 감지",
                f"콘솔/개발자 도구 열기는 이동 1회로 집계됩니다 ({count}/{limit}). "
                "개발자 도구를 닫고 계속하기를 누르세요. 초과하면 시험이 종료됩니다.",
                variant="destructive",
            )

        if decision.verdict == Verdict.TERMINATE:
            self._terminate()
            return
        self.nav_warning_open = True
        self.violation_overlay = "tab" if violation == ViolationType.TAB_SWITCH else "devtools"

    def _terminate(self) -> None:
        """위반 한도 초과: 답안 제출 없이 종료하고 로그아웃."""
        self._report(ViolationType.TAB_LIMIT_EXCEEDED)
        self._notify(
            "시험 종료",
            "허용 횟수를 초과했습니다. 응시가 표시되었으며 로그아웃됩니다.",
            variant="destructive",
        )
        self.status = SessionStatus.TERMINATED
        self.nav_warning_open = False
        self.submit_modal_open = False
        self.violation_overlay = None
        self.teardown()
        self.redirect = Redirect(LOGIN_PATH)
        logger.warning(f"attempt={self.attempt.attempt_id}: 위반 한도 초과로 강제 종료")
        self._spawn(self._logout())

    async def _logout(self) -> None:
        try:
            await self.api.logout()
        except AttemptApiError as e:
            logger.warning(f"로그아웃 요청 실패: {e}")

    async def _send_report(self, violation: ViolationType) -> None:
        try:
            await self.api.record_malpractice(self.attempt.attempt_id, violation)
        except AttemptApiError as e:
            raise ViolationReportFailed(f"{violation.value}: {e}") from e

    def _report(self, violation: ViolationType) -> None:
        self._spawn(self._send_report(violation))

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"백그라운드 요청 실패 (무시): {exc}")

    async def drain(self) -> None:
        """진행 중인 위반 기록/로그아웃 요청이 끝날 때까지 대기."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ── 오버레이 ──────────────────────────────────────────────────────────

    def dismiss_nav_warning(self) -> None:
        self.nav_warning_open = False

    def dismiss_overlay(self) -> None:
        self.violation_overlay = None

    # ── 정리 ──────────────────────────────────────────────────────────────

    def teardown(self) -> None:
        """타이머, 프로브, 신호 구독 해제. 여러 번 호출돼도 한 번만 수행."""
        if self._torn_down:
            return
        self._torn_down = True
        _cancel_task(self._countdown_task)
        self._countdown_task = None
        self.monitor.teardown()
        logger.info(f"응시 세션 정리: test={self.test_id} status={self.status.value}")
