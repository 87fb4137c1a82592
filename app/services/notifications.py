"""
services/notifications.py

비밀번호 설정 / 재설정 링크 전달.

메일 발송은 외부 협력자(SMTP 등)의 몫이므로,
여기서는 프론트엔드 링크를 만들고 로그로 넘겨주기만 한다.
토큰 원문은 로그에 남기지 않는다.

"""

import logging
import uuid
from urllib.parse import urlencode

from app.core.config import settings

logger = logging.getLogger(__name__)


def build_link(path: str, token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/{path.lstrip('/')}?{urlencode({'token': token})}"


def send_password_setup_link(member_id: uuid.UUID, email: str | None, token: str) -> str:
    link = build_link("/member/setup-password", token)
    logger.info(
        "Password setup link issued",
        extra={"member_id": member_id, "action": "password_setup_link"},
    )
    return link


def send_password_reset_link(principal_id: uuid.UUID, email: str, token: str, *, kind: str = "member") -> str:
    link = build_link(f"/{kind}/reset-password", token)
    extra = {"action": "password_reset_link"}
    extra["admin_id" if kind == "admin" else "member_id"] = principal_id
    logger.info("Password reset link issued", extra=extra)
    return link
