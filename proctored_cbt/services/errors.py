"""
services/errors.py

응시 엔진 예외 분류.
원격 호출 실패는 컨트롤러에서 잡아 알림으로 변환되며 이벤트 루프까지 전파되지 않는다.
위반 한도 초과(강제 종료)는 예외가 아니라 정책 판정(Verdict.TERMINATE)이다.
"""

from typing import Optional


class AttemptApiError(Exception):
    """원격 시험 서비스 호출 실패 (HTTP 오류, 네트워크 오류, 응답 형식 오류)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class AttemptUnavailable(Exception):
    """응시 획득 또는 콘텐츠 로드 실패. 자동 재시도하지 않고 시험 목록으로 나간다."""


class SubmissionFailed(Exception):
    """문제별 코드 제출 또는 최종 제출 실패. 세션은 active로 유지된다."""


class ViolationReportFailed(Exception):
    """부정행위 기록 전송 실패. 로컬 정책 판단에는 영향 없음."""
