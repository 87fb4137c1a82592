"""
services/membership.py

회원 가입 신청 심사 및 회원 자격 관련 비즈니스 로직(Service) 모음.

주요 기능:
- 가입 신청 접수 (pending / pending 회원 + 연락처 생성)
- 가입 신청 승인 / 거절
  - 승인 시 회원번호 생성, 갱신일 설정, 고유 username 생성,
    비밀번호 설정 대기용 인증 레코드 생성, 비밀번호 설정 토큰 발급
- 비밀번호 최초 설정 (password_setup 토큰)
- 비밀번호 재설정 요청 / 재설정 (password_reset 토큰)
- 회원 상태 변경 (active / suspended / expired)
- 회원 자격 갱신

설계 원칙:
- HTTP / FastAPI 의존성 없음
- 트랜잭션 제어(commit)는 라우터에서 수행
- 토큰의 ver 클레임과 저장된 credential_version 이 다르면 TokenRevoked
  (비밀번호가 바뀌면 버전이 올라가므로 사용된 토큰은 재사용 불가)
- active 회원은 항상 비밀번호가 설정된 인증 레코드를 가진다

관련 파일:
- app.services.credentials : 인증 레코드 생성 / 비밀번호 변경
- app.routers.members      : 신청 심사 / 회원 관리 API
- app.routers.member_auth  : 회원 로그인 / 비밀번호 API

"""

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.core.errors import DuplicateEmail, InvalidStateTransition, NotFound, TokenRevoked
from app.core.security import (
    KIND_MEMBER,
    PURPOSE_PASSWORD_RESET,
    PURPOSE_PASSWORD_SETUP,
    issue_token,
    verify_token,
)
from app.models.member import (
    ApplicationStatus,
    Member,
    MemberAuthentication,
    MemberContactDetails,
    MemberStatus,
)
from app.services.credentials import create_credential, update_member_password, username_taken

logger = logging.getLogger(__name__)

_MAX_USERNAME_SUFFIX = 999


@dataclass
class ApplicationDecision:
    member: Member
    old_status: ApplicationStatus
    username: Optional[str] = None
    setup_token: Optional[str] = None
    email: Optional[str] = None


def _clean(name: str | None) -> str:
    return re.sub(r"[^a-z]", "", (name or "").strip().lower())


"""
고유 username 생성

후보 순서:
1. 이름 첫 글자 + 성        (jsmith)
2. 이름 + 성 첫 글자        (johns)
3. 이름 + 성                (johnsmith)
각 후보가 사용 중이면 2 ~ 999 숫자 접미사를 붙여 시도하고,
모두 실패하면 타임스탬프 접미사를 붙인다.

"""

def generate_username(db: Session, first_name: str | None, last_name: str | None) -> str:
    first = _clean(first_name)
    last = _clean(last_name)

    base = f"{first[:1]}{last}"
    if len(base) < 2:
        base = first or "user"

    candidates = [base, f"{first}{last[:1]}", f"{first}{last}"]
    for candidate in candidates:
        if not candidate:
            continue
        if not username_taken(db, candidate):
            return candidate
        for suffix in range(2, _MAX_USERNAME_SUFFIX + 1):
            if not username_taken(db, f"{candidate}{suffix}"):
                return f"{candidate}{suffix}"

    fallback = f"{base}{int(utcnow().timestamp() * 1000)}"
    if not username_taken(db, fallback):
        return fallback
    return f"{base}{uuid.uuid4().hex[:6]}"


# 회원번호: 접두사 + 연도 두 자리 + 회원 ID 앞 6자리
def generate_membership_number(member_id: uuid.UUID, now: datetime) -> str:
    return f"{settings.MEMBERSHIP_NUMBER_PREFIX}{now.year % 100:02d}{member_id.hex[:6].upper()}"


def get_member(db: Session, member_id: uuid.UUID) -> Member:
    member = db.get(Member, member_id)
    if member is None:
        raise NotFound("Member not found")
    return member


def get_email(db: Session, member_id: uuid.UUID) -> Optional[str]:
    return db.scalar(select(MemberContactDetails.email).where(MemberContactDetails.member_id == member_id))


def get_auth(db: Session, member_id: uuid.UUID) -> Optional[MemberAuthentication]:
    return db.scalar(select(MemberAuthentication).where(MemberAuthentication.member_id == member_id))


def issue_setup_token(auth: MemberAuthentication) -> str:
    return issue_token(auth.member_id, PURPOSE_PASSWORD_SETUP, kind=KIND_MEMBER, version=auth.credential_version)


"""
가입 신청 접수

- application_status = pending, member_status = pending 인 회원 생성
- 연락처(이메일 / 전화번호) 저장
- 이미 등록된 이메일이면 DuplicateEmail (대소문자 무시)

NOTE:
- 활동 피드 기록은 호출 측에서 commit 이후 수행

"""

def submit_application(
    db: Session,
    *,
    first_name: str,
    last_name: str,
    email: str,
    phone: str | None = None,
) -> Member:
    email = email.strip().lower()
    if get_member_id_by_email(db, email) is not None:
        raise DuplicateEmail()

    member = Member(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        application_status=ApplicationStatus.PENDING,
        member_status=MemberStatus.PENDING,
    )
    db.add(member)
    try:
        db.flush()
        db.add(MemberContactDetails(member_id=member.id, email=email, phone=phone))
        db.flush()
    except IntegrityError as e:
        # 동시에 같은 이메일로 접수된 경우 unique 제약에서 걸린다
        db.rollback()
        raise DuplicateEmail() from e

    logger.info("Application submitted", extra={"member_id": member.id, "action": "submit_application"})
    return member


def get_member_id_by_email(db: Session, email: str) -> Optional[uuid.UUID]:
    return db.scalar(
        select(MemberContactDetails.member_id).where(func.lower(MemberContactDetails.email) == email.strip().lower())
    )


# 승인(재승인 포함) 시 인증 레코드를 비밀번호 설정 대기 상태로 준비
def prepare_setup_credential(db: Session, member: Member) -> MemberAuthentication:
    auth = get_auth(db, member.id)
    if auth is None:
        username = generate_username(db, member.first_name, member.last_name)
        auth = create_credential(db, member.id, username, None)
    else:
        auth.password_hash = None
        auth.salt = None
    # 이전에 발급된 설정/재설정/세션 토큰 폐기
    auth.credential_version = (auth.credential_version or 0) + 1
    db.flush()
    return auth


# 거절 시 기존 인증 레코드의 비밀번호 제거 + 버전 증가 (username 은 유지)
def revoke_credential(db: Session, member: Member) -> None:
    auth = get_auth(db, member.id)
    if auth is None:
        return
    auth.password_hash = None
    auth.salt = None
    auth.credential_version = (auth.credential_version or 0) + 1


"""
가입 신청 승인 / 거절

- 승인:
  application_status = approved, member_status = pending_password_setup,
  회원번호 생성(없을 때), renewal_date = now + MEMBERSHIP_TERM_DAYS,
  인증 레코드 생성 또는 초기화, 비밀번호 설정 토큰 발급
- 거절:
  application_status = rejected, member_status = pending,
  인증 레코드가 있으면(재심사) 비밀번호를 지우고 발급된 토큰을 폐기

NOTE:
- 설정 링크 전달과 감사 로그 기록은 호출 측에서 commit 이후 수행

"""

def decide_application(
    db: Session,
    member_id: uuid.UUID,
    *,
    approve: bool,
    review_comment: str | None = None,
    now: datetime | None = None,
) -> ApplicationDecision:
    now = now or utcnow()
    member = get_member(db, member_id)
    old_status = member.application_status

    member.review_comment = review_comment
    if not approve:
        member.application_status = ApplicationStatus.REJECTED
        member.member_status = MemberStatus.PENDING
        revoke_credential(db, member)
        db.flush()
        return ApplicationDecision(member=member, old_status=old_status)

    member.application_status = ApplicationStatus.APPROVED
    member.member_status = MemberStatus.PENDING_PASSWORD_SETUP
    if not member.membership_number:
        member.membership_number = generate_membership_number(member.id, now)
    member.renewal_date = now + timedelta(days=settings.MEMBERSHIP_TERM_DAYS)

    auth = prepare_setup_credential(db, member)
    logger.info(
        "Application approved",
        extra={"member_id": member.id, "action": "approve_application"},
    )
    return ApplicationDecision(
        member=member,
        old_status=old_status,
        username=auth.username,
        setup_token=issue_setup_token(auth),
        email=get_email(db, member.id),
    )


# 토큰의 ver 와 저장된 credential_version 비교
def _check_version(auth: MemberAuthentication, version: int) -> None:
    if auth.credential_version != version:
        raise TokenRevoked()


"""
비밀번호 최초 설정

- password_setup 토큰 검증 (용도 / 만료 / 버전)
- 회원이 승인 상태 + pending_password_setup 이어야 함
- 비밀번호 저장 후 member_status = active

"""

def setup_password(db: Session, token: str, password: str) -> Member:
    claims = verify_token(token, PURPOSE_PASSWORD_SETUP, kind=KIND_MEMBER)

    member = db.get(Member, claims.subject_id)
    auth = get_auth(db, claims.subject_id)
    if member is None or auth is None:
        raise NotFound("Member not found")
    _check_version(auth, claims.version)

    if (
        member.application_status != ApplicationStatus.APPROVED
        or member.member_status != MemberStatus.PENDING_PASSWORD_SETUP
    ):
        raise TokenRevoked("Password has already been set for this account")

    update_member_password(db, member.id, password)
    member.member_status = MemberStatus.ACTIVE
    db.flush()
    return member


"""
비밀번호 재설정 요청

- 이메일로 회원 조회
- 비밀번호가 설정된 인증 레코드가 있을 때만 (member_id, token) 반환, 아니면 None
- 라우터는 결과와 관계없이 동일한 응답을 돌려준다 (계정 존재 여부 비노출)

"""

def request_password_reset(db: Session, email: str) -> Optional[tuple[uuid.UUID, str]]:
    member_id = db.scalar(select(MemberContactDetails.member_id).where(MemberContactDetails.email == email))
    if member_id is None:
        return None

    auth = get_auth(db, member_id)
    if auth is None or auth.password_hash is None:
        return None

    token = issue_token(member_id, PURPOSE_PASSWORD_RESET, kind=KIND_MEMBER, version=auth.credential_version)
    return member_id, token


def reset_password(db: Session, token: str, new_password: str) -> MemberAuthentication:
    claims = verify_token(token, PURPOSE_PASSWORD_RESET, kind=KIND_MEMBER)

    auth = get_auth(db, claims.subject_id)
    if auth is None:
        raise NotFound("Member authentication record not found. Please contact admin.")
    _check_version(auth, claims.version)

    return update_member_password(db, claims.subject_id, new_password)


"""
회원 상태 변경 (관리자)

- active 로 변경하려면 승인된 회원이고 비밀번호가 설정되어 있어야 함
- 상태 변경 시 credential_version 을 올려 기존 세션 토큰을 폐기하지 않는다
  (세션은 인증 게이트가 요청마다 상태를 다시 확인)
- (member, 이전 상태) 반환

"""

ADMIN_SETTABLE_STATUSES = (MemberStatus.ACTIVE, MemberStatus.SUSPENDED, MemberStatus.EXPIRED)


def set_member_status(db: Session, member_id: uuid.UUID, status: MemberStatus) -> tuple[Member, MemberStatus]:
    if status not in ADMIN_SETTABLE_STATUSES:
        raise InvalidStateTransition(f"Status '{status.value}' cannot be set directly")

    member = get_member(db, member_id)
    old_status = member.member_status

    if status == MemberStatus.ACTIVE:
        auth = get_auth(db, member.id)
        if member.application_status != ApplicationStatus.APPROVED or auth is None or auth.password_hash is None:
            raise InvalidStateTransition(
                "Member must be approved and have a password before activation",
                application_status=member.application_status.value,
            )

    member.member_status = status
    db.flush()
    return member, old_status


"""
회원 자격 갱신

- 승인된 회원만 가능
- renewal_date = max(now, 현재 갱신일) + MEMBERSHIP_TERM_DAYS
- 만료(expired) 회원은 active 로 복귀

"""

def renew_membership(db: Session, member_id: uuid.UUID, now: datetime | None = None) -> Member:
    now = now or utcnow()
    member = get_member(db, member_id)

    if member.application_status != ApplicationStatus.APPROVED:
        raise InvalidStateTransition("Only approved members can be renewed")

    current = as_utc(member.renewal_date)
    base = current if current is not None and current > now else now
    member.renewal_date = base + timedelta(days=settings.MEMBERSHIP_TERM_DAYS)

    if member.member_status == MemberStatus.EXPIRED:
        member.member_status = MemberStatus.ACTIVE
    db.flush()
    return member


def list_members(
    db: Session,
    *,
    application_status: ApplicationStatus | None = None,
    member_status: MemberStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[tuple[Member, Optional[str], Optional[str]]]:
    stmt = (
        select(Member, MemberAuthentication.username, MemberContactDetails.email)
        .outerjoin(MemberAuthentication, MemberAuthentication.member_id == Member.id)
        .outerjoin(MemberContactDetails, MemberContactDetails.member_id == Member.id)
    )
    if application_status is not None:
        stmt = stmt.where(Member.application_status == application_status)
    if member_status is not None:
        stmt = stmt.where(Member.member_status == member_status)
    stmt = stmt.order_by(Member.created_at.desc()).offset(offset).limit(limit)
    return [(row[0], row[1], row[2]) for row in db.execute(stmt).all()]
