import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
STATIC_DIR = os.path.join(BASE_DIR, "static")
LOG_FILE = os.path.join(BASE_DIR, "launch.log")

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 원격 시험 서비스 설정 (비어 있으면 내장 샘플 서비스 사용)
REMOTE_API_URL = os.getenv("CBT_REMOTE_API_URL", "").rstrip("/")
REMOTE_API_TOKEN = os.getenv("CBT_REMOTE_API_TOKEN", "")
REMOTE_TIMEOUT = float(os.getenv("CBT_REMOTE_TIMEOUT", "15.0"))

# 시험 기본값 (원격 응답에 값이 없을 때)
DEFAULT_MAX_NAVIGATIONS = 3
DEFAULT_DURATION_MINUTES = 60

# 감독(프록터링) 설정
COUNTDOWN_TICK_SECONDS = 1.0      # 타이머 갱신 주기
DEVTOOLS_PROBE_INTERVAL = 2.0     # 디버거 탐지 프로브 주기
DEVTOOLS_THROTTLE_SECONDS = 5.0   # 개발자 도구 위반 중복 집계 방지 간격
DEVTOOLS_GAP_PX = 100             # outer/inner 창 크기 차이 임계값 (도킹된 DevTools)
TIMER_WARNING_SECONDS = 300       # 5분 미만이면 경고 표시

# 리다이렉트 경로 (프런트엔드 라우트)
TEST_LIST_PATH = "/tests"
LOGIN_PATH = "/login"
