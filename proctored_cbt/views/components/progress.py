"""
views/components/progress.py

문제 진행 표시 (현재 / 지난 / 남은 문제 구간).
"""

from proctored_cbt.services.attempt_session import AttemptSession


def render(session: AttemptSession) -> dict:
    total = session.item_count
    current = session.current_index

    segments = []
    for i in range(total):
        if i == current:
            segments.append("current")
        elif i < current:
            segments.append("done")
        else:
            segments.append("pending")

    return {
        "index": current,
        "number": current + 1 if total else 0,
        "total": total,
        "is_first": current == 0,
        "is_last": session.is_last,
        "segments": segments,
    }
