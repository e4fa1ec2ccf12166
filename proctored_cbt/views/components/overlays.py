"""
views/components/overlays.py

차단 오버레이와 모달.
  - fullscreen        : 전체화면이 아니면 진행 불가 (위반 횟수에는 포함 안 됨)
  - violation         : 탭 이탈 / 개발자 도구 / 우클릭 — '계속하기'로 해제
  - nav_warning       : 허용 횟수 경고 ('확인했습니다'로 해제, 타이머는 계속 흐름)
  - submit_confirm    : 최종 제출 확인
"""

from proctored_cbt.services.attempt_session import AttemptSession

_VIOLATION_MESSAGES = {
    "tab": "시험 창을 벗어났습니다 (새 탭, 다른 창 또는 다른 화면). 이 탭으로 돌아와 계속하기를 누르세요.",
    "devtools": "개발자 도구가 감지되었습니다. 개발자 도구를 완전히 닫은 뒤 계속하기를 누르세요.",
    "context_menu": "시험 중에는 우클릭을 사용할 수 없습니다. 계속하기를 누르세요.",
}


def render(session: AttemptSession) -> dict:
    violation = None
    if session.violation_overlay:
        violation = {
            "kind": session.violation_overlay,
            "message": _VIOLATION_MESSAGES[session.violation_overlay],
        }

    nav_warning = None
    if session.nav_warning_open:
        nav_warning = {
            "nav_count": session.nav_count,
            "max_navigations": session.policy.max_navigations if session.policy else 0,
            "message": "탭 또는 창 이동이 기록되었습니다. 시험을 계속하려면 이 페이지에 머물러 주세요.",
        }

    return {
        "fullscreen_required": session.fullscreen_required,
        "violation": violation,
        "nav_warning": nav_warning,
        "submit_confirm": {
            "open": session.submit_modal_open,
            "submitting": session.submitting,
        },
    }
