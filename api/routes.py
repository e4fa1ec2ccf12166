"""
api/routes.py — FastAPI 엔드포인트

브라우저 페이지가 보내는 입력/감독 신호를 응시 세션으로 전달하고,
모든 변경 요청은 갱신된 화면 뷰 모델을 그대로 돌려준다.
"""

from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

import api.session as session
from proctored_cbt.services.attempt_session import AttemptSession
from proctored_cbt.services.errors import AttemptApiError, AttemptUnavailable
from proctored_cbt.views import exam_view

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class OpenAttemptBody(BaseModel):
    resume_attempt_id: Optional[int] = None

class SelectOptionBody(BaseModel):
    question_id: int
    option_id: int

class CodeBody(BaseModel):
    problem_id: int
    code: str

class LanguageBody(BaseModel):
    language_id: int

class NavigateBody(BaseModel):
    direction: Literal["next", "previous"]

class DismissBody(BaseModel):
    target: Literal["nav_warning", "overlay"]

class VisibilityBody(BaseModel):
    hidden: bool

class ResizeBody(BaseModel):
    outer_width: int
    outer_height: int
    inner_width: int
    inner_height: int

class FullscreenBody(BaseModel):
    active: bool

class NavigationOverrideBody(BaseModel):
    add_navigations: int = Field(1, ge=1)


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _attempt(request: Request) -> AttemptSession:
    attempt: AttemptSession | None = session.get(request.state.session_id, "attempt")
    if attempt is None:
        raise HTTPException(status_code=404, detail="진행 중인 응시가 없습니다.")
    return attempt


# ── 응시 ─────────────────────────────────────────────────────────────────────

@router.post("/api/attempts/{test_id}/open")
async def open_attempt(test_id: str, request: Request, body: OpenAttemptBody | None = None):
    sid = request.state.session_id
    session.reset(sid)

    attempt = AttemptSession(
        request.app.state.attempt_api,
        test_id,
        monitor=request.app.state.monitor_factory(),
    )
    try:
        await attempt.open(body.resume_attempt_id if body else None)
    except AttemptUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e) or "시험을 불러오지 못했습니다.")

    session.put(sid, "attempt", attempt)
    return exam_view.render(attempt)


@router.get("/api/attempt/view")
async def get_view(request: Request):
    return exam_view.render(_attempt(request))


@router.post("/api/attempt/leave")
async def leave_attempt(request: Request):
    session.reset(request.state.session_id)
    return {"ok": True}


@router.post("/api/attempt/select")
async def select_option(body: SelectOptionBody, request: Request):
    attempt = _attempt(request)
    try:
        attempt.select_option(body.question_id, body.option_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return exam_view.render(attempt)


@router.post("/api/attempt/code")
async def set_code(body: CodeBody, request: Request):
    attempt = _attempt(request)
    try:
        attempt.set_code(body.problem_id, body.code)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True}


@router.post("/api/attempt/language")
async def set_language(body: LanguageBody, request: Request):
    attempt = _attempt(request)
    try:
        attempt.set_language(body.language_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return exam_view.render(attempt)


@router.post("/api/attempt/navigate")
async def navigate(body: NavigateBody, request: Request):
    attempt = _attempt(request)
    await attempt.advance(body.direction)
    return exam_view.render(attempt)


@router.post("/api/attempt/submit/request")
async def request_submit(request: Request):
    attempt = _attempt(request)
    attempt.request_submit()
    return exam_view.render(attempt)


@router.post("/api/attempt/submit/cancel")
async def cancel_submit(request: Request):
    attempt = _attempt(request)
    attempt.cancel_submit()
    return exam_view.render(attempt)


@router.post("/api/attempt/submit")
async def submit_attempt(request: Request):
    attempt = _attempt(request)
    outcome = await attempt.finalize()
    view = exam_view.render(attempt)
    view["outcome"] = outcome.value
    return view


@router.post("/api/attempt/dismiss")
async def dismiss(body: DismissBody, request: Request):
    attempt = _attempt(request)
    if body.target == "nav_warning":
        attempt.dismiss_nav_warning()
    else:
        attempt.dismiss_overlay()
    return exam_view.render(attempt)


# ── 감독 신호 ────────────────────────────────────────────────────────────────

@router.post("/api/attempt/signals/visibility")
async def signal_visibility(body: VisibilityBody, request: Request):
    attempt = _attempt(request)
    attempt.monitor.visibility_changed(body.hidden)
    return exam_view.render(attempt)


@router.post("/api/attempt/signals/context-menu")
async def signal_context_menu(request: Request):
    attempt = _attempt(request)
    attempt.monitor.context_menu()
    return exam_view.render(attempt)


@router.post("/api/attempt/signals/devtools")
async def signal_devtools(request: Request):
    attempt = _attempt(request)
    attempt.monitor.devtools_detected()
    return exam_view.render(attempt)


@router.post("/api/attempt/signals/resize")
async def signal_resize(body: ResizeBody, request: Request):
    attempt = _attempt(request)
    attempt.monitor.window_resized(
        body.outer_width, body.outer_height, body.inner_width, body.inner_height
    )
    return exam_view.render(attempt)


@router.post("/api/attempt/signals/fullscreen")
async def signal_fullscreen(body: FullscreenBody, request: Request):
    attempt = _attempt(request)
    attempt.monitor.fullscreen_changed(body.active)
    return exam_view.render(attempt)


# ── 교직원 ───────────────────────────────────────────────────────────────────

@router.patch("/api/staff/attempts/{attempt_id}/navigation-override")
async def increase_navigation_override(attempt_id: int, body: NavigationOverrideBody, request: Request):
    """허용 횟수 상향. 진행 중 세션에는 반영되지 않고 다음 로드부터 적용."""
    try:
        total = await request.app.state.attempt_api.increase_navigation_override(
            attempt_id, body.add_navigations
        )
    except AttemptApiError as e:
        raise HTTPException(status_code=e.status or 502, detail=e.message)
    return {"ok": True, "navigation_override": total}
