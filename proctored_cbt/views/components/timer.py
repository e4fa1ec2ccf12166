"""
views/components/timer.py

상단 타이머 바 뷰 모델.
남은 시간은 서버가 기록한 시작 시각 + 시험 시간 기준으로 세션이 계산한다.
"""

from config import TIMER_WARNING_SECONDS
from proctored_cbt.services.attempt_session import AttemptSession
from proctored_cbt.services.countdown import format_remaining


def render(session: AttemptSession) -> dict:
    """
    타이머 바 표시 정보.

    Returns:
        {"remaining_seconds", "display", "warning", "time_up", "submit_enabled"}
        time_up이면 display는 "시간 종료".
    """
    remaining = session.remaining

    if session.time_up:
        display = "시간 종료"
    elif remaining is not None:
        display = format_remaining(remaining)
    else:
        display = None

    return {
        "remaining_seconds": remaining,
        "display": display,
        "warning": bool(remaining is not None and not session.time_up and remaining < TIMER_WARNING_SECONDS),
        "time_up": session.time_up,
        "submit_enabled": session.can_submit,
    }
