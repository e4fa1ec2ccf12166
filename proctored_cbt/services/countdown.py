"""
services/countdown.py

남은 시험 시간 계산. 순수 함수 — 저장 상태 없음.
"""

import math
from datetime import datetime
from typing import Optional, Union

Timestamp = Union[float, datetime]


def to_timestamp(value: Optional[Timestamp]) -> Optional[float]:
    """datetime 또는 Unix timestamp를 float timestamp로 통일."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


def remaining_seconds(start_time: Timestamp, duration_minutes: int, now: Timestamp) -> int:
    """
    남은 시간(초)을 계산한다.

    remaining = max(0, floor(duration*60 - (now - start)))

    now가 증가하면 결과는 증가하지 않으며, 0에 도달한 뒤 음수가 되지 않는다.
    시계가 start 이전이면(시계 오차) 전체 시간을 반환한다.
    """
    duration_sec = duration_minutes * 60
    elapsed = max(0.0, to_timestamp(now) - to_timestamp(start_time))
    return max(0, math.floor(duration_sec - elapsed))


def format_remaining(seconds: int) -> str:
    """초를 m:ss 형식으로 변환 (예: 61 → '1:01')."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"
