"""

admin_log.py

관리자(Admin) 감사 로그(Audit Log)와 활동 피드(Activity) 모델 정의 파일.

- admin_audit_log  : "누가 무엇을 했는가" 를 남기는 컴플라이언스 기록.
                     변경 전/후 값(old_values / new_values)을 JSON 으로 보관한다.
- admin_activities : 대시보드에 보여 주는 사람이 읽기 쉬운 이벤트 피드.

운영 중 발생할 수 있는 문제 추적,
권한 오남용 방지, 감사(Audit) 목적을 위한 핵심 모델이다.

설계 원칙:
- 실제 데이터 변경과 로그 기록을 분리
- 로그 데이터는 수정/삭제하지 않는 것을 전제로 설계 (append-only)
- 정렬이 필요한 소비자는 created_at 으로 명시적으로 정렬

"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Enum as SAEnum, ForeignKey, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.db.base import Base, enum_values

# PostgreSQL 에서는 JSONB, 그 외(SQLite 등)에서는 JSON
JSONType = JSON().with_variant(JSONB(), "postgresql")


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    WARNING = "warning"


class ActivityPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


"""
관리자 감사 로그 모델

- admin_id       : 행위를 수행한 관리자 ID (관리자 삭제 시 NULL)
- admin_username : 기록 시점의 관리자 username (관리자가 삭제되어도 남는다)
- action         : 수행된 행위 (login, update_member_status, create_admin ...)
- resource_type  : 대상 리소스 유형 (member, application, admin_account, system ...)
- resource_id    : 대상 리소스 식별자
- old_values     : 변경 전 값
- new_values     : 변경 후 값
- ip_address     : 요청 IP 주소
- user_agent     : 요청 User-Agent
- status         : success / failed / warning
- details        : 부가 설명
- created_at     : 기록 시각 (UTC, 서버 부여)

"""

class AdminAuditLog(Base):
    __tablename__ = "admin_audit_log"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    admin_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True, index=True
    )
    admin_username: Mapped[str | None] = mapped_column(String(255), nullable=True)

    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    old_values: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[AuditStatus] = mapped_column(
        SAEnum(AuditStatus, name="audit_status", values_callable=enum_values), nullable=False, default=AuditStatus.SUCCESS
    )
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class AdminActivity(Base):
    __tablename__ = "admin_activities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    activity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[ActivityPriority] = mapped_column(
        SAEnum(ActivityPriority, name="activity_priority", values_callable=enum_values), nullable=False, default=ActivityPriority.MEDIUM
    )

    related_entity: Mapped[str | None] = mapped_column(String(50), nullable=True)
    related_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    admin_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True
    )
    details: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
