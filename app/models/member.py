"""
member.py

회원(Member) 및 회원 인증 정보 모델 정의 파일.

이 파일은 학회 회원의 기본 정보와 가입 신청 상태(application_status),
회원 자격 상태(member_status), 로그인 자격 증명(member_authentication),
연락처(member_contact_details)를 관리한다.

회원은 가입 신청 승인 시 인증 레코드가 만들어지고,
비밀번호 설정 전까지는 pending_password_setup 상태에 머문다.
회원 레코드는 물리 삭제하지 않고 상태 값으로만 관리한다.

"""

import uuid
import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.db.base import Base, enum_values


"""
가입 신청 상태

- PENDING   : 심사 대기
- APPROVED  : 승인 (인증 레코드 생성됨)
- REJECTED  : 거절

"""

class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


"""
회원 자격 상태

- PENDING                 : 신청 직후
- PENDING_PASSWORD_SETUP  : 승인 후 비밀번호 설정 대기
- ACTIVE                  : 정상 회원 (로그인 가능)
- SUSPENDED               : 관리자에 의한 정지
- EXPIRED                 : 갱신일(renewal_date) 경과로 만료

"""

class MemberStatus(str, Enum):
    PENDING = "pending"
    PENDING_PASSWORD_SETUP = "pending_password_setup"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    EXPIRED = "expired"


class Member(Base):
    __tablename__ = "members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    membership_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    application_status: Mapped[ApplicationStatus] = mapped_column(
        SAEnum(ApplicationStatus, name="application_status", values_callable=enum_values),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
    member_status: Mapped[MemberStatus] = mapped_column(
        SAEnum(MemberStatus, name="member_status", values_callable=enum_values),
        nullable=False,
        default=MemberStatus.PENDING,
        index=True,
    )
    review_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    renewal_date: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


"""
회원 로그인 자격 증명

- username       : 승인 시 자동 생성되는 고유 로그인 ID
- password_hash  : bcrypt 해시 (비밀번호 설정 전에는 NULL)
- salt           : 해시에 포함된 bcrypt salt (조회용, 검증에는 사용하지 않음)
- credential_version : 비밀번호 변경 / 설정 링크 재발급 시 증가.
                       토큰의 ver 클레임과 다르면 해당 토큰은 폐기된 것으로 본다

"""

class MemberAuthentication(Base):
    __tablename__ = "member_authentication"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    username: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)

    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    salt: Mapped[str | None] = mapped_column(String(255), nullable=True)

    credential_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    password_changed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class MemberContactDetails(Base):
    __tablename__ = "member_contact_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
