"""
api/app.py — FastAPI 앱 인스턴스 + 세션 미들웨어 + static 파일 서빙
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from config import REMOTE_API_TOKEN, REMOTE_API_URL, STATIC_DIR
from api.config import CLEANUP_INTERVAL, SESSION_COOKIE, SESSION_TTL
from api.routes import router
import api.session as session
from proctored_cbt.services.attempt_api import AttemptApi, HttpAttemptApi
from proctored_cbt.services.integrity_monitor import IntegrityMonitor
from proctored_cbt.services.sample_api import SampleAttemptApi

logger = logging.getLogger(__name__)


def default_attempt_api() -> AttemptApi:
    """원격 주소가 있으면 HTTP 클라이언트, 없으면 내장 샘플 서비스."""
    if REMOTE_API_URL:
        logger.info(f"원격 시험 서비스 사용: {REMOTE_API_URL}")
        return HttpAttemptApi(REMOTE_API_URL, token=REMOTE_API_TOKEN)
    logger.info("원격 주소 미설정 — 샘플 시험 서비스 사용")
    return SampleAttemptApi()


def create_app(
    api_factory: Callable[[], AttemptApi] = default_attempt_api,
    monitor_factory: Optional[Callable[[], IntegrityMonitor]] = None,
) -> FastAPI:

    # 만료 세션 주기적 정리 (5분마다)
    async def _cleanup_loop():
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL)
            removed = session.cleanup_expired()
            if removed:
                logger.info(f"만료 세션 {removed}개 정리")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.attempt_api = api_factory()
        app.state.monitor_factory = monitor_factory or IntegrityMonitor
        cleanup = asyncio.create_task(_cleanup_loop())
        try:
            yield
        finally:
            cleanup.cancel()
            session.clear_all()
            await app.state.attempt_api.aclose()

    app = FastAPI(title="Proctored CBT", docs_url=None, redoc_url=None, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 세션 미들웨어: 쿠키에서 세션 ID를 읽고, 없으면 새로 발급
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        request.state.session_id = sid
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=SESSION_TTL,
        )
        return response

    app.include_router(router)

    # static 파일 마운트
    if os.path.isdir(STATIC_DIR):
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # 루트 → index.html
    @app.get("/")
    async def serve_index():
        index_path = os.path.join(STATIC_DIR, "index.html")
        if os.path.exists(index_path):
            return FileResponse(index_path)
        return {"error": "index.html not found"}

    return app
