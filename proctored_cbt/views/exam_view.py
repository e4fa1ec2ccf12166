"""
views/exam_view.py — 시험 응시 화면 뷰 모델

레이아웃:
  - coding : 좌측 문제 / 우측 코드 에디터 분할
  - mcq    : 한 문제씩 순차 표시하는 단일 컬럼
  - loading: 응시 준비 중 (또는 실패 후 리다이렉트 대기)

공통: 상단 타이머 바, 최종 제출 확인 모달, 전체화면/위반 오버레이.
알림(토스트)은 조회 시 한 번만 전달된다.
"""

from __future__ import annotations

from dataclasses import asdict

from proctored_cbt.models.question_model import TestType
from proctored_cbt.services.attempt_session import AttemptSession
from proctored_cbt.views.components import overlays
from proctored_cbt.views.components import progress
from proctored_cbt.views.components import question_card as qcard
from proctored_cbt.views.components import timer as tmr


def _layout(session: AttemptSession) -> str:
    if session.test_type == TestType.CODING:
        return "coding"
    if session.test_type == TestType.MCQ:
        return "mcq"
    return "loading"


def render(session: AttemptSession) -> dict:
    """응시 화면 전체 상태 직렬화."""
    layout = _layout(session)
    item = session.current_item

    card = None
    if layout == "mcq" and item is not None:
        card = qcard.render_mcq(item, session.answers.selection(item.mcq_question_id))
    elif layout == "coding" and item is not None:
        card = qcard.render_coding(session, item)

    redirect = asdict(session.redirect) if session.redirect else None

    return {
        "status": session.status.value,
        "layout": layout,
        "attempt_id": session.attempt.attempt_id if session.attempt else None,
        "timer": tmr.render(session),
        "progress": progress.render(session),
        "card": card,
        "navigation": {
            "previous_enabled": session.accepting_input and session.current_index > 0,
            "next_enabled": session.accepting_input and not session.is_last,
        },
        "overlays": overlays.render(session),
        "notifications": [asdict(n) for n in session.pop_notifications()],
        "redirect": redirect,
    }
