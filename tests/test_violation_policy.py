import pytest

from proctored_cbt.models.attempt_model import ViolationType
from proctored_cbt.services.violation_policy import Verdict, ViolationPolicy


@pytest.mark.parametrize("budget", [0, 1, 3, 5])
@pytest.mark.parametrize("violation", [ViolationType.TAB_SWITCH, ViolationType.CONSOLE])
def test_budget_boundary(budget, violation):
    policy = ViolationPolicy(budget)
    for i in range(1, budget + 1):
        decision = policy.evaluate(violation)
        assert decision.verdict == Verdict.WARN
        assert decision.nav_count == i

    decision = policy.evaluate(violation)
    assert decision.verdict == Verdict.TERMINATE
    assert decision.nav_count == budget + 1


def test_context_menu_never_counts():
    policy = ViolationPolicy(1)
    for _ in range(10):
        decision = policy.evaluate(ViolationType.CONTEXT_MENU)
        assert decision.verdict == Verdict.RECORD_ONLY
    assert policy.nav_count == 0
    assert policy.remaining == 1


def test_tab_switch_and_console_share_counter():
    policy = ViolationPolicy(2)
    assert policy.evaluate(ViolationType.TAB_SWITCH).verdict == Verdict.WARN
    assert policy.evaluate(ViolationType.CONSOLE).verdict == Verdict.WARN
    assert policy.evaluate(ViolationType.TAB_SWITCH).verdict == Verdict.TERMINATE
