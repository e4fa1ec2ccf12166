import os

# 세션 쿠키 설정
SESSION_COOKIE = "cbt_session"
SESSION_TTL = int(os.getenv("CBT_SESSION_TTL", "14400"))  # 4시간 (최대 시험 시간 + 여유)
CLEANUP_INTERVAL = 300  # 만료 세션 정리 주기 (초)
