# worktrack/config.py
# 환경 변수 기반 설정. 프로세스 시작 시 한 번 읽습니다.

import logging
import os

# 데이터베이스 연결 문자열 (기본값은 로컬 SQLite 파일)
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///worktrack.db").strip()

# 인증 토큰 유효 시간
TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", "24"))

# API 서버
HOST = os.environ.get("HOST", "")
PORT = int(os.environ.get("PORT", "8000"))

# 빈 DB 초기화 시 생성되는 관리자 계정
ADMIN_NAME = os.environ.get("ADMIN_NAME", "Administrator")
ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin123")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> None:
    """루트 로거를 설정합니다. 프로세스 시작 시 한 번만 호출합니다."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
