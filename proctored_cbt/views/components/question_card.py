"""
views/components/question_card.py

현재 문제를 카드 형태로 직렬화한다.
  - MCQ    : 발문 + 보기 (선택 여부 포함), 단일/복수 선택 입력 방식
  - CODING : 문제 설명 + 에디터 상태 (코드, 공유 언어, 마지막 실행 결과)
"""

from __future__ import annotations

from typing import Optional

from proctored_cbt.models.question_model import CodingProblem, McqQuestion
from proctored_cbt.services.attempt_session import AttemptSession


def render_mcq(question: McqQuestion, selected: list[int]) -> dict:
    """
    객관식 문제 카드.

    Args:
        question: 렌더링할 McqQuestion
        selected: 답안지에 저장된 선택 보기 ID 리스트

    Returns:
        {"question_id", "question", "input": "radio"|"checkbox", "max_marks", "options": [...]}
    """
    return {
        "question_id": question.mcq_question_id,
        "question": question.question,
        "input": "checkbox" if question.is_multiple else "radio",
        "max_marks": question.max_marks,
        "options": [
            {"id": opt.id, "text": opt.option_text, "checked": opt.id in selected}
            for opt in question.options
        ],
    }


def render_coding(session: AttemptSession, problem: CodingProblem) -> dict:
    """코딩 문제 + 에디터 패널. 마지막 버튼은 마지막 문제에서 '제출하기'로 바뀐다."""
    result: Optional[str] = None
    if session.last_coding_result is not None:
        result = "passed" if session.last_coding_result else "failed"

    return {
        "problem_id": problem.problem_id,
        "title": problem.title,
        "description": problem.description or "설명이 없습니다.",
        "difficulty": problem.difficulty,
        "code": session.answers.code(problem.problem_id),
        "language_id": session.answers.language_id,
        "languages": [{"id": lang.id, "language": lang.language} for lang in session.languages],
        "last_result": result,
        "action_label": "제출하기" if session.is_last else "실행 후 다음",
        "action_enabled": session.accepting_input and not session.coding_in_flight,
    }
