"""
logger.py

구조화(JSON) 로깅 설정.

- 애플리케이션 로거 트리("app") 에 stdout JSON 핸들러 하나만 연결
- 각 모듈은 logging.getLogger(__name__) 으로 로거를 얻어 사용
- extra 로 넘긴 식별자(admin_id, member_id, action, path 등)는 JSON 필드로 출력

NOTE:
- 비밀번호, 해시, 원본 토큰은 절대 로그에 남기지 않는다
"""

import json
import logging
import sys
from typing import Any, Dict

from app.core.clock import utcnow

APP_LOGGER_NAME = "app"

_EXTRA_FIELDS = (
    "admin_id",
    "member_id",
    "action",
    "resource_type",
    "resource_id",
    "path",
    "method",
    "count",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = str(getattr(record, field))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(log_level)

    # 재호출(uvicorn reload, 테스트) 시 핸들러 중복 방지
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    return logger
