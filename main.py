"""
main.py — 감독형 CBT 응시 앱 진입점

  python main.py --test 2            # 코딩 샘플 시험으로 바로 응시
  python main.py --no-browser        # 서버만 실행 (다른 기기의 브라우저로 접속)

종료(Ctrl+C) 시 서버를 정상 종료해 진행 중인 응시의 타이머와 감독을 해제한다.
"""

import argparse
import logging
import os
import socket
import subprocess
import sys
import threading
import time
import webbrowser

_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if _BASE_DIR not in sys.path:
    sys.path.insert(0, _BASE_DIR)

import uvicorn

from config import BASE_DIR, DEFAULT_HOST, DEFAULT_PORT, LOG_FILE

# ── 로깅 설정 ────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # 로그 파일 점유 시 콘솔 출력만 사용
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

# 응시 화면은 전체화면 키오스크로 띄운다 (주소창/탭 없음)
_KIOSK_FLAGS = ["--kiosk", "--no-first-run", "--disable-features=TranslateUI"]
_BROWSERS = [
    r"C:\Program Files\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files\Microsoft\Edge\Application\msedge.exe",
    "/usr/bin/google-chrome",
    "/usr/bin/chromium",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
]


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="감독형 CBT 응시 앱")
    parser.add_argument("--test", default="1", help="응시할 시험 ID")
    parser.add_argument("--host", default=DEFAULT_HOST, help="바인드 주소")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="포트 (사용 중이면 빈 포트)")
    parser.add_argument("--no-browser", action="store_true", help="브라우저를 띄우지 않음")
    return parser.parse_args()


def _pick_port(host: str, preferred: int) -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, preferred))
        except OSError:
            logger.warning(f"포트 {preferred} 사용 중, 빈 포트로 대체")
            s.bind((host, 0))
        return s.getsockname()[1]


def _open_kiosk(url: str) -> None:
    for path in _BROWSERS:
        if os.path.exists(path):
            logger.info(f"키오스크 브라우저 실행: {path}")
            subprocess.Popen([path, *_KIOSK_FLAGS, url])
            return
    logger.warning("Chrome/Edge를 찾지 못해 기본 브라우저로 엽니다 (전체화면 직접 전환 필요)")
    webbrowser.open(url)


def main() -> int:
    args = _parse_args()
    os.chdir(BASE_DIR)

    from api.app import create_app

    port = _pick_port(args.host, args.port)
    server = uvicorn.Server(uvicorn.Config(create_app(), host=args.host, port=port, log_level="warning"))
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    deadline = time.monotonic() + 15.0
    while not server.started:
        if not thread.is_alive() or time.monotonic() > deadline:
            logger.error("서버를 시작하지 못했습니다. 로그를 확인하세요.")
            return 1
        time.sleep(0.1)

    url = f"http://{args.host}:{port}/?test={args.test}"
    logger.info(f"응시 서버 준비 완료: {url}")
    if not args.no_browser:
        _open_kiosk(url)

    try:
        while thread.is_alive():
            thread.join(1.0)
    except KeyboardInterrupt:
        logger.info("종료 요청, 진행 중인 응시를 정리합니다.")
        server.should_exit = True
        thread.join(10.0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
