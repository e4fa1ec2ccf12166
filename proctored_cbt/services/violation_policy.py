"""
services/violation_policy.py

위반 카운터와 판정 로직.
순수 Python — I/O 없음. 로그아웃/리다이렉트는 세션 컨트롤러가 수행한다.
"""

from dataclasses import dataclass
from enum import Enum

from proctored_cbt.models.attempt_model import ViolationType

# 카운터를 증가시키는 위반 유형. context_menu는 기록만 하고 집계하지 않는다.
COUNTED_VIOLATIONS = frozenset({ViolationType.TAB_SWITCH, ViolationType.CONSOLE})


class Verdict(str, Enum):
    RECORD_ONLY = "record_only"
    WARN = "warn"
    TERMINATE = "terminate"


@dataclass(frozen=True)
class PolicyDecision:
    verdict: Verdict
    violation: ViolationType
    nav_count: int
    max_navigations: int


class ViolationPolicy:
    """
    허용 횟수(max_navigations)에 대한 위반 카운터.

    nav_count는 0에서 시작해 단조 증가한다.
    k = max_navigations일 때 k번째 집계 위반까지는 경고, k+1번째에서 종료.
    """

    def __init__(self, max_navigations: int):
        self.max_navigations = max_navigations
        self.nav_count = 0

    def evaluate(self, violation: ViolationType) -> PolicyDecision:
        if violation not in COUNTED_VIOLATIONS:
            return PolicyDecision(Verdict.RECORD_ONLY, violation, self.nav_count, self.max_navigations)

        self.nav_count += 1
        verdict = Verdict.WARN if self.nav_count <= self.max_navigations else Verdict.TERMINATE
        return PolicyDecision(verdict, violation, self.nav_count, self.max_navigations)

    @property
    def remaining(self) -> int:
        return max(0, self.max_navigations - self.nav_count)
