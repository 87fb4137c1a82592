"""
services/admin_log.py

관리자 감사 로그(Audit) / 활동 피드(Activity) 기록 서비스.

이 파일은 관리자(Admin)가 수행한 주요 행위와 시스템 이벤트를
admin_audit_log / admin_activities 테이블에 기록하는 역할을 담당한다.

라우터 또는 작업(job)에서 비즈니스 트랜잭션을 commit 한 뒤 호출되며,
로그 기록 자체는 별도 세션 / 별도 트랜잭션에서 수행되어
비즈니스 흐름에는 개입하지 않는다.

설계 원칙:
- 로그 기록 실패가 주 기능을 방해하지 않음 (예외를 던지지 않음)
- 대신 실패 여부를 LogResult 로 돌려주어 호출 측이 필요하면 확인 가능
- 실패는 WARNING 으로 로컬 로그에 남김
- 로그 데이터는 수정/삭제하지 않는 것을 전제로 설계 (append-only)

관련 파일:
- app.models.admin_log   : AdminAuditLog / AdminActivity 모델
- app.main               : lifespan 에서 AuditRecorder 생성 (app.state.recorder)
- app.routers.logs       : 감사 로그 / 활동 피드 조회 API

"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.admin import Admin
from app.models.admin_log import ActivityPriority, AdminActivity, AdminAuditLog, AuditStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogResult:
    id: Optional[uuid.UUID] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.id is not None and self.error is None


# JSON 컬럼에 들어갈 값 정규화 (UUID / datetime / Enum 등은 문자열로)
def _to_json(value: Any) -> Any:
    if value is None:
        return None
    return json.loads(json.dumps(value, default=str))


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def request_origin(request: Request) -> dict:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


class AuditRecorder:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _persist(self, build: Callable[[Session], Any], *, stream: str, action: str) -> LogResult:
        try:
            with self._session_factory() as db:
                record = build(db)
                record_id = record.id
                db.add(record)
                db.commit()
            return LogResult(id=record_id)
        except Exception as e:
            logger.warning(
                "Failed to record %s entry",
                stream,
                exc_info=True,
                extra={"action": action},
            )
            return LogResult(error=f"{type(e).__name__}: {e}")

    """
    감사 로그 기록

    - admin_id       : 행위를 수행한 관리자 ID (시스템 작업이면 None)
    - admin_username : 관리자 username (생략 시 admin_id 로 조회, 관리자 삭제 후에도 남음)
    - action         : 수행된 행위
    - resource_type  : 대상 리소스 유형
    - resource_id    : 대상 리소스 식별자 (선택)
    - old_values     : 변경 전 값 (선택)
    - new_values     : 변경 후 값 (선택)
    - ip_address / user_agent : 요청 정보 (선택)
    - status         : success / failed / warning
    - details        : 부가 설명 (선택)

    NOTE:
    - 비즈니스 트랜잭션 commit 이후에 호출할 것

    """

    def record_audit(
        self,
        *,
        admin_id: uuid.UUID | None,
        admin_username: Optional[str] = None,
        action: str,
        resource_type: str,
        resource_id: Any = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        details: Optional[str] = None,
    ) -> LogResult:
        def build(db: Session) -> AdminAuditLog:
            username = admin_username
            if username is None and admin_id is not None:
                username = db.scalar(select(Admin.username).where(Admin.id == admin_id))
            return AdminAuditLog(
                id=uuid.uuid4(),
                admin_id=admin_id,
                admin_username=username,
                action=action,
                resource_type=resource_type,
                resource_id=_str_or_none(resource_id),
                old_values=_to_json(old_values),
                new_values=_to_json(new_values),
                ip_address=ip_address,
                user_agent=user_agent,
                status=status,
                details=details,
            )

        return self._persist(build, stream="audit", action=action)

    def record_activity(
        self,
        *,
        activity_type: str,
        title: str,
        message: str,
        priority: ActivityPriority = ActivityPriority.MEDIUM,
        related_entity: Optional[str] = None,
        related_id: Any = None,
        admin_id: uuid.UUID | None = None,
        details: Optional[dict] = None,
    ) -> LogResult:
        def build(db: Session) -> AdminActivity:
            return AdminActivity(
                id=uuid.uuid4(),
                activity_type=activity_type,
                title=title,
                message=message,
                priority=priority,
                related_entity=related_entity,
                related_id=_str_or_none(related_id),
                admin_id=admin_id,
                details=_to_json(details),
            )

        return self._persist(build, stream="activity", action=activity_type)


"""
감사 로그 조회

- created_at 내림차순 (최신순)
- admin_id / action 으로 필터링 가능

"""

def list_audit_logs(
    db: Session,
    *,
    limit: int = 50,
    offset: int = 0,
    admin_id: uuid.UUID | None = None,
    action: str | None = None,
) -> list[AdminAuditLog]:
    stmt = select(AdminAuditLog)
    if admin_id is not None:
        stmt = stmt.where(AdminAuditLog.admin_id == admin_id)
    if action:
        stmt = stmt.where(AdminAuditLog.action == action)
    stmt = stmt.order_by(AdminAuditLog.created_at.desc()).offset(offset).limit(limit)
    return list(db.scalars(stmt).all())


def list_activities(db: Session, *, limit: int = 50, offset: int = 0) -> list[AdminActivity]:
    stmt = select(AdminActivity).order_by(AdminActivity.created_at.desc()).offset(offset).limit(limit)
    return list(db.scalars(stmt).all())
