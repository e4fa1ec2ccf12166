"""
services/sample_api.py

메모리 내 시험 서비스. 원격 주소가 설정되지 않은 로컬 실행과 테스트에서 사용.
서버 측 채점/부정행위 판정은 하지 않고 기록만 남긴다.
"""

import itertools
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from config import DEFAULT_DURATION_MINUTES, DEFAULT_MAX_NAVIGATIONS
from proctored_cbt.models.attempt_model import (
    AttemptContent, CodingSolution, CurrentAttempt, SubmitPayload,
    ViolationRecord, ViolationType,
)
from proctored_cbt.models.question_model import (
    CodingProblem, McqOption, McqQuestion, ProgrammingLanguage, QuestionType, TestType,
)
from proctored_cbt.services.attempt_api import AttemptApi
from proctored_cbt.services.errors import AttemptApiError

logger = logging.getLogger(__name__)


class SampleTest(BaseModel):
    test_id: str
    name: str
    test_type: TestType
    questions: List[McqQuestion] = Field(default_factory=list)
    problems: List[CodingProblem] = Field(default_factory=list)
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    max_navigations: int = DEFAULT_MAX_NAVIGATIONS
    live: bool = True


class AttemptRecord(BaseModel):
    attempt_id: int
    test_id: str
    start_time: float
    status: str = "IN_PROGRESS"
    navigation_override: int = 0
    flagged: bool = False
    malpractice: List[ViolationRecord] = Field(default_factory=list)
    coding_runs: List[CodingSolution] = Field(default_factory=list)
    submission: Optional[SubmitPayload] = None


# ── 샘플 데이터 ──────────────────────────────────────────────────────────────

SAMPLE_LANGUAGES: List[ProgrammingLanguage] = [
    ProgrammingLanguage(id=1, language="Python"),
    ProgrammingLanguage(id=2, language="Java"),
    ProgrammingLanguage(id=3, language="C++"),
]

SAMPLE_TESTS: List[SampleTest] = [
    SampleTest(
        test_id="1",
        name="자료구조 기초 객관식",
        test_type=TestType.MCQ,
        questions=[
            McqQuestion(
                mcq_question_id=101,
                question="스택(Stack)의 자료 처리 방식은?",
                options=[
                    McqOption(id=1, option_text="LIFO"),
                    McqOption(id=2, option_text="FIFO"),
                    McqOption(id=3, option_text="우선순위 순"),
                    McqOption(id=4, option_text="무작위"),
                ],
                order_index=0,
            ),
            McqQuestion(
                mcq_question_id=102,
                question="평균 시간복잡도가 O(n log n)인 정렬을 모두 고르시오.",
                question_type=QuestionType.MULTIPLE_CHOICE,
                max_marks=2,
                options=[
                    McqOption(id=5, option_text="병합 정렬"),
                    McqOption(id=6, option_text="버블 정렬"),
                    McqOption(id=7, option_text="퀵 정렬"),
                    McqOption(id=8, option_text="힙 정렬"),
                ],
                order_index=1,
            ),
            McqQuestion(
                mcq_question_id=103,
                question="해시 테이블에서 서로 다른 키가 같은 버킷에 대응되는 현상은?",
                options=[
                    McqOption(id=9, option_text="오버플로"),
                    McqOption(id=10, option_text="충돌(Collision)"),
                    McqOption(id=11, option_text="재귀"),
                ],
                order_index=2,
            ),
        ],
        duration_minutes=30,
    ),
    SampleTest(
        test_id="2",
        name="알고리즘 코딩 테스트",
        test_type=TestType.CODING,
        problems=[
            CodingProblem(
                problem_id=201,
                title="두 수의 합",
                description="정수 배열과 target이 주어질 때 합이 target인 두 원소의 인덱스를 출력하시오.",
                difficulty="EASY",
            ),
            CodingProblem(
                problem_id=202,
                title="괄호 검사",
                description="괄호 문자열이 올바르게 닫혀 있으면 YES, 아니면 NO를 출력하시오.",
                difficulty="MEDIUM",
            ),
        ],
        duration_minutes=90,
    ),
]


class SampleAttemptApi(AttemptApi):
    """단일 사용자 메모리 내 시험 서비스."""

    def __init__(
        self,
        tests: Optional[List[SampleTest]] = None,
        languages: Optional[List[ProgrammingLanguage]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.tests: Dict[str, SampleTest] = {
            t.test_id: t.model_copy(deep=True) for t in (tests if tests is not None else SAMPLE_TESTS)
        }
        self.languages = list(languages if languages is not None else SAMPLE_LANGUAGES)
        self.attempts: Dict[int, AttemptRecord] = {}
        self.logged_out = False
        self._clock = clock
        self._ids = itertools.count(1)

    def _attempt(self, attempt_id: int) -> AttemptRecord:
        record = self.attempts.get(attempt_id)
        if record is None:
            raise AttemptApiError("응시 정보를 찾을 수 없습니다.", status=404)
        return record

    def _in_progress(self, attempt_id: int) -> AttemptRecord:
        record = self._attempt(attempt_id)
        if record.status != "IN_PROGRESS":
            raise AttemptApiError("이미 종료된 응시입니다.", status=409)
        return record

    async def get_current_attempt(self, test_id: str) -> Optional[CurrentAttempt]:
        for record in self.attempts.values():
            if record.test_id == test_id and record.status == "IN_PROGRESS":
                return CurrentAttempt(
                    id=record.attempt_id,
                    test_id=int(test_id) if test_id.isdigit() else None,
                    start_time=datetime.fromtimestamp(record.start_time, tz=timezone.utc),
                    status=record.status,
                )
        return None

    async def start_attempt(self, test_id: str) -> int:
        test = self.tests.get(test_id)
        if test is None:
            raise AttemptApiError("시험을 찾을 수 없습니다.", status=404)
        if not test.live:
            raise AttemptApiError("현재 응시 가능한 시험이 아닙니다.", status=403)
        current = await self.get_current_attempt(test_id)
        if current is not None:
            return current.id
        attempt_id = next(self._ids)
        self.attempts[attempt_id] = AttemptRecord(
            attempt_id=attempt_id, test_id=test_id, start_time=self._clock()
        )
        logger.info(f"샘플 응시 시작: test={test_id} attempt={attempt_id}")
        return attempt_id

    async def get_questions(self, attempt_id: int) -> AttemptContent:
        record = self._in_progress(attempt_id)
        test = self.tests[record.test_id]
        return AttemptContent(
            test_type=test.test_type,
            questions=sorted(test.questions, key=lambda q: q.order_index),
            problems=list(test.problems),
            max_navigations=test.max_navigations + record.navigation_override,
            duration_minutes=test.duration_minutes,
            attempt_start_time=datetime.fromtimestamp(record.start_time, tz=timezone.utc),
        )

    async def list_programming_languages(self) -> List[ProgrammingLanguage]:
        return list(self.languages)

    async def submit_coding(self, attempt_id: int, solution: CodingSolution) -> bool:
        record = self._in_progress(attempt_id)
        record.coding_runs.append(solution)
        # 실제 채점은 원격 서비스의 몫. 샘플에서는 비어 있지 않은 코드를 통과로 본다.
        return bool(solution.code.strip())

    async def submit(self, attempt_id: int, payload: SubmitPayload) -> dict:
        record = self._attempt(attempt_id)
        if record.status == "SUBMITTED":
            return {"success": True, "alreadySubmitted": True}
        if record.status != "IN_PROGRESS":
            raise AttemptApiError("이미 종료된 응시입니다.", status=409)
        record.submission = payload
        record.status = "SUBMITTED"
        return {"success": True}

    async def record_malpractice(self, attempt_id: int, violation: ViolationType) -> None:
        record = self._attempt(attempt_id)
        record.malpractice.append(ViolationRecord(type=violation, timestamp=self._clock()))
        if violation == ViolationType.TAB_LIMIT_EXCEEDED:
            record.flagged = True

    async def increase_navigation_override(self, attempt_id: int, add_navigations: int = 1) -> int:
        record = self._attempt(attempt_id)
        record.navigation_override += add_navigations
        return record.navigation_override

    async def logout(self) -> None:
        self.logged_out = True
