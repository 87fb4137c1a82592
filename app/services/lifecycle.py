"""
services/lifecycle.py

회원 자격 수명 주기 작업(Lifecycle Jobs).

요청 트래픽과 무관하게 시각 비교만으로 상태를 전이시키는 작업 모음.

주요 기능:
- 갱신일 경과 회원 만료 처리 (renewal_date < now AND member_status = active)
- 만료된 관리자 세션 행 정리
- 비밀번호 없는 active 회원(불일치 상태) 탐지 / 복구

설계 원칙:
- 만료 처리는 단일 조건부 bulk UPDATE (같은 now 로 다시 실행해도 0건, 멱등)
- 비교는 엄격한 '<' (renewal_date == now 인 회원은 만료되지 않음)
- run_expiry_job 은 예외를 던지지 않음. 실패는 로그만 남기고 다음 주기에 재시도

관련 파일:
- app.services.scheduler       : APScheduler 주기 실행
- scripts/expire_memberships.py : 1회성 실행
- scripts/repair_member_auth.py : 불일치 회원 복구

"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.db.session import Database
from app.models.member import ApplicationStatus, Member, MemberAuthentication, MemberStatus
from app.services.admin import purge_expired_sessions
from app.services.membership import get_email, issue_setup_token, prepare_setup_credential

logger = logging.getLogger(__name__)


def expire_overdue_members(db: Session, now: datetime | None = None) -> int:
    now = now or utcnow()
    result = db.execute(
        update(Member)
        .where(Member.renewal_date < now, Member.member_status == MemberStatus.ACTIVE)
        .values(member_status=MemberStatus.EXPIRED)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def purge_expired_admin_sessions(db: Session, now: datetime | None = None) -> int:
    return purge_expired_sessions(db, now)


@dataclass
class RepairedMember:
    member_id: uuid.UUID
    username: str
    email: Optional[str]
    setup_token: str


"""
불일치 회원 탐지

- 승인 + active 인데
- 인증 레코드가 없거나 password_hash 가 NULL 인 회원

"""

def find_dangling_members(db: Session) -> list[Member]:
    stmt = (
        select(Member)
        .outerjoin(MemberAuthentication, MemberAuthentication.member_id == Member.id)
        .where(
            Member.application_status == ApplicationStatus.APPROVED,
            Member.member_status == MemberStatus.ACTIVE,
            or_(MemberAuthentication.id.is_(None), MemberAuthentication.password_hash.is_(None)),
        )
        .order_by(Member.created_at)
    )
    return list(db.scalars(stmt).all())


# 불일치 회원을 pending_password_setup 으로 되돌리고 새 설정 토큰 발급
def repair_dangling_members(db: Session) -> list[RepairedMember]:
    repaired = []
    for member in find_dangling_members(db):
        auth = prepare_setup_credential(db, member)
        member.member_status = MemberStatus.PENDING_PASSWORD_SETUP
        repaired.append(
            RepairedMember(
                member_id=member.id,
                username=auth.username,
                email=get_email(db, member.id),
                setup_token=issue_setup_token(auth),
            )
        )
    db.flush()
    return repaired


@dataclass
class ExpiryJobResult:
    expired_members: int
    purged_sessions: int


def run_expiry_job(database: Database, now: datetime | None = None) -> Optional[ExpiryJobResult]:
    now = now or utcnow()
    try:
        with database.session() as db:
            expired = expire_overdue_members(db, now)
            purged = purge_expired_admin_sessions(db, now)
            db.commit()
    except (SQLAlchemyError, RuntimeError):
        logger.error("Membership expiry job failed", exc_info=True, extra={"action": "expire_memberships"})
        return None

    logger.info(
        "Membership expiry job finished: %d expired, %d sessions purged",
        expired,
        purged,
        extra={"action": "expire_memberships", "count": expired},
    )
    return ExpiryJobResult(expired_members=expired, purged_sessions=purged)
