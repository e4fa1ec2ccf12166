"""
models/session_state.py

응시 중 답안을 담는 OMR 카드 모델.
Pydantic BaseModel 기반 — 메모리 내 변경 외 부수효과 없음.
유효성 검사(최소 1개 선택 등)는 하지 않는다. 제출 시점의 관심사.
"""

from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from proctored_cbt.models.attempt_model import CodingSolution
from proctored_cbt.models.question_model import CodingProblem


class AnswerStore(BaseModel):
    """
    사용자의 진행 중 답안 전체를 표현하는 모델.

    Attributes:
        mcq_answers:  객관식 답안지. {mcq_question_id: 선택한 보기 ID 리스트}
        coding_code:  코딩 답안. {problem_id: 현재 소스 코드}
        language_id:  마지막으로 선택한 언어 ID. 문제 간 공유.
    """

    mcq_answers: Dict[int, List[int]] = Field(
        default_factory=dict,
        description="객관식 답안지. key: 문제 ID, value: 선택한 보기 ID 리스트"
    )
    coding_code: Dict[int, str] = Field(
        default_factory=dict,
        description="코딩 답안. key: 문제 ID, value: 소스 코드"
    )
    language_id: Optional[int] = Field(
        default=None,
        description="공유 언어 선택"
    )

    def set_mcq_selection(self, question_id: int, option_id: int, multiple: bool) -> None:
        """
        보기 선택을 반영한다.

        단일 선택: 해당 문제의 선택을 [option_id]로 교체.
        복수 선택: option_id 포함 여부를 토글 (기존 선택 순서 유지).
        """
        if not multiple:
            self.mcq_answers[question_id] = [option_id]
            return
        current = self.mcq_answers.get(question_id, [])
        if option_id in current:
            self.mcq_answers[question_id] = [x for x in current if x != option_id]
        else:
            self.mcq_answers[question_id] = current + [option_id]

    def set_code(self, problem_id: int, source: str) -> None:
        self.coding_code[problem_id] = source

    def set_language(self, language_id: int) -> None:
        self.language_id = language_id

    def selection(self, question_id: int) -> List[int]:
        return list(self.mcq_answers.get(question_id, []))

    def code(self, problem_id: int) -> str:
        return self.coding_code.get(problem_id, "")

    def answers_payload(self) -> Dict[int, List[int]]:
        """제출용 객관식 답안지 사본."""
        return {qid: list(opts) for qid, opts in self.mcq_answers.items()}

    def solutions(
        self,
        problems: Sequence[CodingProblem],
        fallback_language_id: Optional[int] = None,
    ) -> List[CodingSolution]:
        """
        문제마다 하나의 CodingSolution을 만든다.

        언어 우선순위: 사용자 선택 → fallback_language_id → 0.
        손대지 않은 문제는 빈 코드로 제출된다.
        """
        lang_id = self.language_id
        if lang_id is None:
            lang_id = fallback_language_id if fallback_language_id is not None else 0
        return [
            CodingSolution(problem_id=p.problem_id, language_id=lang_id, code=self.code(p.problem_id))
            for p in problems
        ]
