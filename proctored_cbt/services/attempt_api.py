"""
services/attempt_api.py

원격 시험 서비스 클라이언트.
Public API (AttemptApi):
  - get_current_attempt(test_id) -> CurrentAttempt | None : 진행 중 응시 조회
  - start_attempt(test_id) -> int                         : 새 응시 시작 (attemptId)
  - get_questions(attempt_id) -> AttemptContent           : 문제/설정 일괄 조회
  - list_programming_languages() -> List[...]             : 언어 카탈로그 (코딩 전용)
  - submit_coding(attempt_id, solution) -> bool           : 문제별 중간 채점
  - submit(attempt_id, payload) -> dict                   : 최종 제출 (세션당 1회)
  - record_malpractice(attempt_id, type)                  : 위반 기록 추가
  - increase_navigation_override(attempt_id, n) -> int    : 허용 횟수 상향 (교직원 전용)
  - logout()                                              : 인증 세션 종료

인증(쿠키/토큰)은 외부 인증 모듈이 발급한 값을 그대로 사용한다.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from config import REMOTE_TIMEOUT
from proctored_cbt.models.attempt_model import (
    AttemptContent, CodingSolution, CurrentAttempt, SubmitPayload, ViolationType,
)
from proctored_cbt.models.question_model import ProgrammingLanguage
from proctored_cbt.services.errors import AttemptApiError

logger = logging.getLogger(__name__)


class AttemptApi(ABC):
    """원격 시험 서비스 계약. 서버 내부 검증 로직은 다루지 않는다."""

    @abstractmethod
    async def get_current_attempt(self, test_id: str) -> Optional[CurrentAttempt]:
        pass

    @abstractmethod
    async def start_attempt(self, test_id: str) -> int:
        """시험이 진행 중(live)이 아니면 AttemptApiError."""
        pass

    @abstractmethod
    async def get_questions(self, attempt_id: int) -> AttemptContent:
        pass

    @abstractmethod
    async def list_programming_languages(self) -> List[ProgrammingLanguage]:
        pass

    @abstractmethod
    async def submit_coding(self, attempt_id: int, solution: CodingSolution) -> bool:
        pass

    @abstractmethod
    async def submit(self, attempt_id: int, payload: SubmitPayload) -> dict:
        pass

    @abstractmethod
    async def record_malpractice(self, attempt_id: int, violation: ViolationType) -> None:
        pass

    @abstractmethod
    async def increase_navigation_override(self, attempt_id: int, add_navigations: int = 1) -> int:
        pass

    @abstractmethod
    async def logout(self) -> None:
        pass

    async def aclose(self) -> None:
        """보유 리소스 해제."""
        pass


class HttpAttemptApi(AttemptApi):
    """httpx.AsyncClient 기반 REST 클라이언트."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = REMOTE_TIMEOUT,
        cookies: Optional[dict] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            cookies=cookies,
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, body: Optional[dict] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=body)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} 네트워크 오류: {e}")
            raise AttemptApiError(f"서버에 연결할 수 없습니다: {e}") from e

        if response.is_error:
            try:
                err = response.json()
            except ValueError:
                err = {}
            message = err.get("error") if isinstance(err, dict) else None
            raise AttemptApiError(
                message or response.reason_phrase or "Request failed",
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise AttemptApiError(f"{path}: 응답 형식이 올바르지 않습니다.") from e

    async def get_current_attempt(self, test_id: str) -> Optional[CurrentAttempt]:
        try:
            data = await self._request("GET", f"/api/tests/{test_id}/attempts/current")
        except AttemptApiError as e:
            if e.status == 404:
                return None
            raise
        raw = data.get("attempt") if isinstance(data, dict) else None
        if not raw:
            return None
        try:
            return CurrentAttempt.model_validate(raw)
        except ValidationError as e:
            raise AttemptApiError(f"응시 정보 형식 오류: {e}") from e

    async def start_attempt(self, test_id: str) -> int:
        data = await self._request("POST", f"/api/tests/{test_id}/attempts")
        attempt_id = data.get("attemptId") if isinstance(data, dict) else None
        if attempt_id is None:
            raise AttemptApiError("응시를 시작할 수 없습니다.")
        if data.get("alreadyStarted"):
            logger.info(f"이미 시작된 응시 재사용: attempt={attempt_id}")
        return int(attempt_id)

    async def get_questions(self, attempt_id: int) -> AttemptContent:
        data = await self._request("GET", f"/api/test-attempts/{attempt_id}/questions")
        try:
            return AttemptContent.model_validate(data)
        except ValidationError as e:
            raise AttemptApiError(f"문제 데이터 형식 오류: {e}") from e

    async def list_programming_languages(self) -> List[ProgrammingLanguage]:
        data = await self._request("GET", "/api/programming-languages")
        try:
            return [ProgrammingLanguage.model_validate(x) for x in data.get("languages", [])]
        except (ValidationError, AttributeError) as e:
            raise AttemptApiError(f"언어 목록 형식 오류: {e}") from e

    async def submit_coding(self, attempt_id: int, solution: CodingSolution) -> bool:
        data = await self._request(
            "POST",
            f"/api/test-attempts/{attempt_id}/submit-coding",
            solution.model_dump(by_alias=True),
        )
        return bool(data.get("success")) if isinstance(data, dict) else False

    async def submit(self, attempt_id: int, payload: SubmitPayload) -> dict:
        data = await self._request("POST", f"/api/test-attempts/{attempt_id}/submit", payload.to_wire())
        return data if isinstance(data, dict) else {}

    async def record_malpractice(self, attempt_id: int, violation: ViolationType) -> None:
        await self._request(
            "POST",
            f"/api/test-attempts/{attempt_id}/malpractice",
            {"type": violation.value},
        )

    async def increase_navigation_override(self, attempt_id: int, add_navigations: int = 1) -> int:
        data = await self._request(
            "PATCH",
            f"/api/test-attempts/{attempt_id}/navigation-override",
            {"addNavigations": add_navigations},
        )
        return int(data.get("navigationOverride", 0))

    async def logout(self) -> None:
        await self._request("POST", "/api/auth/logout")

    async def aclose(self) -> None:
        await self._client.aclose()
