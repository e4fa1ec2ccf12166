import asyncio
import sys
from pathlib import Path
from typing import Optional

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from proctored_cbt.models.question_model import (
    CodingProblem, McqOption, McqQuestion, QuestionType, TestType,
)
from proctored_cbt.services.attempt_session import AttemptSession
from proctored_cbt.services.errors import AttemptApiError
from proctored_cbt.services.integrity_monitor import IntegrityMonitor
from proctored_cbt.services.sample_api import SampleAttemptApi, SampleTest


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingApi(SampleAttemptApi):
    """호출 기록 + 실패 주입이 가능한 샘플 서비스."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.fail: set = set()
        self.submit_gate: Optional[asyncio.Event] = None
        self.submit_calls = []
        self.coding_calls = []
        self.malpractice_calls = []
        self.question_calls = 0
        self.language_calls = 0
        self.start_calls = 0

    def _maybe_fail(self, name):
        if name in self.fail:
            raise AttemptApiError(f"{name} 실패", status=500)

    async def start_attempt(self, test_id):
        self.start_calls += 1
        self._maybe_fail("start_attempt")
        return await super().start_attempt(test_id)

    async def get_questions(self, attempt_id):
        self.question_calls += 1
        self._maybe_fail("get_questions")
        return await super().get_questions(attempt_id)

    async def list_programming_languages(self):
        self.language_calls += 1
        return await super().list_programming_languages()

    async def submit_coding(self, attempt_id, solution):
        self.coding_calls.append(solution)
        self._maybe_fail("submit_coding")
        return await super().submit_coding(attempt_id, solution)

    async def submit(self, attempt_id, payload):
        self.submit_calls.append(payload)
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        self._maybe_fail("submit")
        return await super().submit(attempt_id, payload)

    async def record_malpractice(self, attempt_id, violation):
        self.malpractice_calls.append(violation.value)
        self._maybe_fail("record_malpractice")
        await super().record_malpractice(attempt_id, violation)


def _single(qid: int, option_ids: list[int], order: int) -> McqQuestion:
    return McqQuestion(
        mcq_question_id=qid,
        question=f"Q{qid}",
        options=[McqOption(id=o, option_text=f"opt {o}") for o in option_ids],
        order_index=order,
    )


TEST_FIXTURES = [
    SampleTest(
        test_id="mcq",
        name="2문항 단일 선택",
        test_type=TestType.MCQ,
        questions=[_single(1, [11, 12], 0), _single(2, [21, 22], 1)],
        duration_minutes=60,
        max_navigations=3,
    ),
    SampleTest(
        test_id="multi",
        name="복수 선택",
        test_type=TestType.MCQ,
        questions=[
            McqQuestion(
                mcq_question_id=5,
                question="모두 고르시오",
                question_type=QuestionType.MULTIPLE_CHOICE,
                options=[McqOption(id=51, option_text="a"), McqOption(id=52, option_text="b")],
            )
        ],
    ),
    SampleTest(
        test_id="coding",
        name="2문항 코딩",
        test_type=TestType.CODING,
        problems=[
            CodingProblem(problem_id=201, title="P1", description="첫 문제"),
            CodingProblem(problem_id=202, title="P2"),
        ],
        duration_minutes=90,
    ),
    SampleTest(test_id="empty", name="빈 시험", test_type=TestType.MCQ),
    SampleTest(
        test_id="closed",
        name="종료된 시험",
        test_type=TestType.MCQ,
        questions=[_single(1, [11, 12], 0)],
        live=False,
    ),
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api(clock):
    return RecordingApi(tests=TEST_FIXTURES, clock=clock)


@pytest.fixture
async def make_session(api, clock):
    """로드까지 끝난 AttemptSession 생성. 테스트 종료 시 정리."""
    created = []

    async def _make(test_id="mcq", resume_attempt_id=None, open_=True):
        monitor = IntegrityMonitor(probe=None, clock=clock)
        session = AttemptSession(api, test_id, monitor=monitor, clock=clock, tick_interval=3600)
        created.append(session)
        if open_:
            await session.open(resume_attempt_id)
        return session

    yield _make

    for session in created:
        session.teardown()
        await session.drain()
