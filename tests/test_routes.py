import pytest
from fastapi.testclient import TestClient

import api.session as session_store
from api.app import create_app
from api.config import SESSION_COOKIE
from proctored_cbt.services.integrity_monitor import IntegrityMonitor
from proctored_cbt.services.sample_api import SampleAttemptApi


@pytest.fixture
def client():
    app = create_app(
        api_factory=lambda: SampleAttemptApi(),
        monitor_factory=lambda: IntegrityMonitor(probe=None),
    )
    with TestClient(app) as c:
        yield c


def open_attempt(client, test_id="1", **body):
    res = client.post(f"/api/attempts/{test_id}/open", json=body)
    assert res.status_code == 200, res.text
    return res.json()


def test_view_without_attempt_is_404(client):
    assert client.get("/api/attempt/view").status_code == 404


def test_unknown_test_is_unavailable(client):
    res = client.post("/api/attempts/999/open", json={})
    assert res.status_code == 503
    assert res.json()["detail"] == "시험을 찾을 수 없습니다."


def test_mcq_flow(client):
    view = open_attempt(client)
    assert view["status"] == "active"
    assert view["layout"] == "mcq"
    assert view["card"]["question_id"] == 101
    assert view["card"]["input"] == "radio"
    assert view["progress"]["total"] == 3
    assert view["overlays"]["fullscreen_required"] is True

    view = client.post("/api/attempt/select", json={"question_id": 101, "option_id": 1}).json()
    assert [o["checked"] for o in view["card"]["options"]] == [True, False, False, False]

    view = client.post("/api/attempt/navigate", json={"direction": "next"}).json()
    assert view["card"]["question_id"] == 102
    assert view["card"]["input"] == "checkbox"
    client.post("/api/attempt/select", json={"question_id": 102, "option_id": 5})
    view = client.post("/api/attempt/select", json={"question_id": 102, "option_id": 7}).json()
    assert [o["id"] for o in view["card"]["options"] if o["checked"]] == [5, 7]

    view = client.post("/api/attempt/submit/request").json()
    assert view["overlays"]["submit_confirm"]["open"] is True
    view = client.post("/api/attempt/submit/cancel").json()
    assert view["overlays"]["submit_confirm"]["open"] is False

    view = client.post("/api/attempt/submit").json()
    assert view["outcome"] == "submitted"
    assert view["status"] == "submitted"
    assert view["redirect"] == {"path": "/tests", "just_submitted": True}
    assert "시험이 제출되었습니다" in [n["title"] for n in view["notifications"]]

    again = client.post("/api/attempt/submit").json()
    assert again["outcome"] == "ignored"


def test_unknown_question_is_404(client):
    open_attempt(client)
    res = client.post("/api/attempt/select", json={"question_id": 1, "option_id": 1})
    assert res.status_code == 404


def test_fullscreen_signal(client):
    open_attempt(client)
    view = client.post("/api/attempt/signals/fullscreen", json={"active": True}).json()
    assert view["overlays"]["fullscreen_required"] is False
    view = client.post("/api/attempt/signals/fullscreen", json={"active": False}).json()
    assert view["overlays"]["fullscreen_required"] is True


def test_context_menu_is_not_counted(client):
    open_attempt(client)
    view = client.post("/api/attempt/signals/context-menu").json()
    assert view["overlays"]["violation"]["kind"] == "context_menu"
    assert view["overlays"]["nav_warning"] is None
    view = client.post("/api/attempt/dismiss", json={"target": "overlay"}).json()
    assert view["overlays"]["violation"] is None


def test_tab_switch_budget_exhaustion(client):
    open_attempt(client)
    for expected in (1, 2, 3):
        view = client.post("/api/attempt/signals/visibility", json={"hidden": True}).json()
        assert view["status"] == "active"
        assert view["overlays"]["nav_warning"]["nav_count"] == expected
        assert view["overlays"]["violation"]["kind"] == "tab"
        view = client.post("/api/attempt/dismiss", json={"target": "nav_warning"}).json()
        assert view["overlays"]["nav_warning"] is None

    view = client.post("/api/attempt/signals/visibility", json={"hidden": True}).json()
    assert view["status"] == "terminated"
    assert view["redirect"] == {"path": "/login", "just_submitted": False}


def test_devtools_signals(client):
    open_attempt(client)
    view = client.post(
        "/api/attempt/signals/resize",
        json={"outer_width": 1400, "outer_height": 900, "inner_width": 1000, "inner_height": 900},
    ).json()
    assert view["overlays"]["violation"]["kind"] == "devtools"
    assert view["overlays"]["nav_warning"]["nav_count"] == 1

    # 5초 스로틀 구간
    view = client.post("/api/attempt/signals/devtools").json()
    assert view["overlays"]["nav_warning"]["nav_count"] == 1


def test_coding_flow(client):
    view = open_attempt(client, "2")
    assert view["layout"] == "coding"
    assert view["card"]["language_id"] == 1
    assert view["card"]["action_label"] == "실행 후 다음"

    res = client.post("/api/attempt/code", json={"problem_id": 201, "code": "print(1)"})
    assert res.json() == {"ok": True}
    view = client.post("/api/attempt/language", json={"language_id": 2}).json()
    assert view["card"]["language_id"] == 2

    view = client.post("/api/attempt/navigate", json={"direction": "next"}).json()
    assert view["progress"]["index"] == 1
    assert view["card"]["problem_id"] == 202
    assert view["card"]["last_result"] == "passed"
    assert view["card"]["action_label"] == "제출하기"

    view = client.post("/api/attempt/navigate", json={"direction": "next"}).json()
    assert view["card"]["last_result"] == "failed"
    assert view["overlays"]["submit_confirm"]["open"] is True


def test_navigation_override_applies_on_reopen(client):
    view = open_attempt(client)
    attempt_id = view["attempt_id"]

    res = client.patch(f"/api/staff/attempts/{attempt_id}/navigation-override", json={})
    assert res.json() == {"ok": True, "navigation_override": 1}

    open_attempt(client, resume_attempt_id=attempt_id)
    view = client.post("/api/attempt/signals/visibility", json={"hidden": True}).json()
    assert view["overlays"]["nav_warning"]["max_navigations"] == 4


def test_navigation_override_unknown_attempt(client):
    res = client.patch("/api/staff/attempts/999/navigation-override", json={"add_navigations": 2})
    assert res.status_code == 404


def test_leave_discards_attempt(client):
    open_attempt(client)
    sid = client.cookies.get(SESSION_COOKIE)
    attempt = session_store.get(sid, "attempt")
    assert attempt.countdown_running is True
    assert attempt.monitor.active is True

    assert client.post("/api/attempt/leave").json() == {"ok": True}

    assert attempt.countdown_running is False
    assert attempt.monitor.active is False
    assert session_store.get(sid, "attempt") is None
    assert client.get("/api/attempt/view").status_code == 404


def test_code_writes_do_not_return_view_and_last_write_runs(client):
    open_attempt(client, "2")
    for code in ("p", "pr", "print(42)"):
        res = client.post("/api/attempt/code", json={"problem_id": 201, "code": code})
        assert res.json() == {"ok": True}

    view = client.get("/api/attempt/view").json()
    assert view["card"]["code"] == "print(42)"

    client.post("/api/attempt/navigate", json={"direction": "next"})
    runs = next(iter(client.app.state.attempt_api.attempts.values())).coding_runs
    assert [r.code for r in runs] == ["print(42)"]
