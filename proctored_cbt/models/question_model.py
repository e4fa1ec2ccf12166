from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TestType(str, Enum):
    """시험 유형. 응시 기간 동안 변하지 않는다."""
    MCQ = "MCQ"
    CODING = "CODING"


class QuestionType(str, Enum):
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"


class McqOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="보기 ID")
    option_text: str = Field(
        ...,
        alias="optionText",
        description="보기 문구"
    )


class McqQuestion(BaseModel):
    """
    응시 화면용 객관식 문제 모델 (정답 정보 없음).
    Pydantic v2 적용, 원격 응답의 camelCase 필드명을 alias로 받는다.
    """
    model_config = ConfigDict(populate_by_name=True)

    mcq_question_id: int = Field(
        ...,
        alias="mcqQuestionId",
        description="문제 ID (답안지 키)"
    )
    question: str = Field(
        ...,
        min_length=1,
        description="발문"
    )
    question_type: QuestionType = Field(
        QuestionType.SINGLE_CHOICE,
        alias="questionType",
        description="단일 선택 / 복수 선택"
    )
    max_marks: float = Field(
        1,
        alias="maxMarks",
        description="배점"
    )
    options: List[McqOption] = Field(
        ...,
        description="보기 리스트 (표시 순서)"
    )
    order_index: int = Field(
        0,
        alias="orderIndex",
        description="시험 내 문제 순서"
    )

    @field_validator('options')
    @classmethod
    def validate_unique_option_ids(cls, v: List[McqOption]) -> List[McqOption]:
        """보기 ID는 문제 안에서 중복될 수 없다."""
        ids = [opt.id for opt in v]
        if len(ids) != len(set(ids)):
            raise ValueError(f"보기 ID가 중복되었습니다: {ids}")
        return v

    @property
    def is_multiple(self) -> bool:
        return self.question_type == QuestionType.MULTIPLE_CHOICE


class CodingProblem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    problem_id: int = Field(
        ...,
        alias="problemId",
        description="코딩 문제 ID"
    )
    title: str = Field(..., description="문제 제목")
    description: Optional[str] = Field(None, description="문제 설명")
    difficulty: Optional[str] = Field(None, description="난이도")


class ProgrammingLanguage(BaseModel):
    id: int = Field(..., description="언어 ID")
    language: str = Field(..., description="언어 표시명")
