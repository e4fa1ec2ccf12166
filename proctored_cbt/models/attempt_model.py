"""
models/attempt_model.py

응시(Attempt) 식별 정보, 원격 서비스 응답, 제출 페이로드, 위반 기록 모델.
"""

import time
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config import DEFAULT_DURATION_MINUTES, DEFAULT_MAX_NAVIGATIONS
from proctored_cbt.models.question_model import (
    CodingProblem, McqQuestion, TestType,
)


class SessionStatus(str, Enum):
    """응시 세션 상태. loading → active → {submitted, terminated}."""
    LOADING = "loading"
    ACTIVE = "active"
    SUBMITTED = "submitted"
    TERMINATED = "terminated"


class ViolationType(str, Enum):
    TAB_SWITCH = "tab_switch"
    CONSOLE = "console"
    CONTEXT_MENU = "context_menu"
    FULLSCREEN_EXIT = "fullscreen_exit"
    TAB_LIMIT_EXCEEDED = "tab_limit_exceeded"


class ViolationRecord(BaseModel):
    type: ViolationType = Field(..., description="위반 유형")
    timestamp: float = Field(
        default_factory=time.time,
        description="발생 시각 (Unix timestamp)"
    )


class CurrentAttempt(BaseModel):
    """getCurrentAttempt 응답의 attempt 객체."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    test_id: Optional[int] = Field(None, alias="testId")
    user_id: Optional[int] = Field(None, alias="userId")
    start_time: Optional[datetime] = Field(None, alias="startTime")
    end_time: Optional[datetime] = Field(None, alias="endTime")
    status: str = "IN_PROGRESS"


class AttemptContent(BaseModel):
    """
    getQuestions 응답. 응시 세션당 한 번만 조회하며 이후 변하지 않는다.

    MCQ 시험이면 questions, CODING 시험이면 problems가 채워진다.
    """
    model_config = ConfigDict(populate_by_name=True)

    test_type: TestType = Field(..., alias="testType")
    questions: List[McqQuestion] = Field(default_factory=list)
    problems: List[CodingProblem] = Field(default_factory=list)
    max_navigations: int = Field(
        DEFAULT_MAX_NAVIGATIONS,
        alias="maxNavigations",
        ge=0,
        description="허용 위반(탭 이동 등) 횟수"
    )
    duration_minutes: int = Field(
        DEFAULT_DURATION_MINUTES,
        alias="durationMinutes",
        ge=0,
        description="시험 시간 (분)"
    )
    attempt_start_time: Optional[datetime] = Field(
        None,
        alias="attemptStartTime",
        description="서버가 기록한 응시 시작 시각 (카운트다운 기준)"
    )

    @model_validator(mode='before')
    @classmethod
    def fill_null_defaults(cls, data):
        """원격 서비스가 null을 보내면 기본값으로 대체한다."""
        if isinstance(data, dict):
            data = dict(data)
            for key in ("maxNavigations", "max_navigations"):
                if key in data and data[key] is None:
                    data[key] = DEFAULT_MAX_NAVIGATIONS
            for key in ("durationMinutes", "duration_minutes"):
                if key in data and data[key] is None:
                    data[key] = DEFAULT_DURATION_MINUTES
        return data

    @property
    def item_count(self) -> int:
        if self.test_type == TestType.MCQ:
            return len(self.questions)
        return len(self.problems)


class Attempt(BaseModel):
    """
    한 학생의 시험 응시 인스턴스.

    Attributes:
        attempt_id:       원격 서비스가 발급한 응시 ID.
        test_id:          시험 ID.
        test_type:        콘텐츠 로드 후 확정되는 시험 유형.
        start_time:       응시 시작 시각 (Unix timestamp). 카운트다운 기준.
        duration_minutes: 시험 시간 (분).
        max_navigations:  허용 위반 횟수. 세션 동안 고정.
    """

    attempt_id: int
    test_id: str
    test_type: Optional[TestType] = None
    start_time: Optional[float] = None
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    max_navigations: int = DEFAULT_MAX_NAVIGATIONS


class CodingSolution(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    problem_id: int = Field(..., alias="problemId")
    language_id: int = Field(..., alias="languageId")
    code: str = ""


class SubmitPayload(BaseModel):
    """최종 제출 본문. MCQ는 answers, CODING은 solutions."""
    answers: Optional[Dict[int, List[int]]] = None
    solutions: Optional[List[CodingSolution]] = None

    def to_wire(self) -> dict:
        if self.solutions is not None:
            return {"solutions": [s.model_dump(by_alias=True) for s in self.solutions]}
        return {"answers": {str(k): v for k, v in (self.answers or {}).items()}}
