"""
services/credentials.py

회원 / 관리자 비밀번호 자격 증명 저장소(Credential Store).

주요 기능:
- 회원 인증 레코드 생성 (username 중복 검사)
- 회원 로그인 검증 (username 또는 이메일)
- 관리자 로그인 검증 (username 또는 이메일, 실패 횟수 누적 / 잠금)
- 비밀번호 변경 (salt + hash 재생성, credential_version 증가)

설계 원칙:
- HTTP / FastAPI 의존성 없음
- 트랜잭션 제어(commit)는 호출 측(라우터 / 작업)에서 수행
- 감사 로그 기록은 호출 측 책임
- 계정이 없을 때도 더미 해시 검증을 수행해 응답 시간으로 계정 존재 여부가 드러나지 않게 함

관련 파일:
- app.core.security      : 해시 / 검증 함수
- app.models.member      : Member / MemberAuthentication / MemberContactDetails
- app.models.admin       : Admin / AdminSession

"""

import uuid
from datetime import datetime, timedelta

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.core.errors import AccountNotActive, DuplicateUsername, InvalidCredentials, NotFound
from app.core.security import dummy_verify, get_password_hash, salt_of, verify_password
from app.models.admin import Admin, AdminSession
from app.models.member import (
    ApplicationStatus,
    Member,
    MemberAuthentication,
    MemberContactDetails,
    MemberStatus,
)


def username_taken(db: Session, username: str) -> bool:
    return db.scalar(select(MemberAuthentication.id).where(MemberAuthentication.username == username)) is not None


"""
회원 인증 레코드 생성

- username 이 이미 사용 중이면 DuplicateUsername
- password 가 None 이면 비밀번호 설정 대기용 레코드(hash / salt = NULL) 생성
- 생성 즉시 DB flush 수행

"""

def create_credential(
    db: Session,
    member_id: uuid.UUID,
    username: str,
    password: str | None,
) -> MemberAuthentication:
    if username_taken(db, username):
        raise DuplicateUsername("Username already exists")

    auth = MemberAuthentication(member_id=member_id, username=username)
    if password is not None:
        _apply_password(auth, password, rounds=settings.MEMBER_BCRYPT_ROUNDS)

    db.add(auth)
    try:
        db.flush()
    except IntegrityError as e:
        raise DuplicateUsername("Username already exists") from e
    return auth


def find_member_login(db: Session, identifier: str) -> tuple[Member, MemberAuthentication] | None:
    # '@' 가 포함되면 이메일, 아니면 username 으로 조회
    if "@" in identifier:
        stmt = (
            select(Member, MemberAuthentication)
            .join(MemberContactDetails, MemberContactDetails.member_id == Member.id)
            .join(MemberAuthentication, MemberAuthentication.member_id == Member.id)
            .where(MemberContactDetails.email == identifier)
        )
    else:
        stmt = (
            select(Member, MemberAuthentication)
            .join(MemberAuthentication, MemberAuthentication.member_id == Member.id)
            .where(MemberAuthentication.username == identifier)
        )
    row = db.execute(stmt).first()
    if row is None:
        return None
    return row[0], row[1]


"""
회원 로그인 검증

- 계정 없음          : NotFound (더미 해시 검증 후)
- 비밀번호 불일치     : InvalidCredentials
- 승인 전 / 거절     : AccountNotActive (application_status 포함)
- 비활성 회원        : AccountNotActive (member_status 포함)

비밀번호를 먼저 확인한 뒤 상태를 확인하여,
비밀번호를 모르는 사용자에게 계정 상태가 노출되지 않게 한다.

"""

def verify_member_credential(db: Session, identifier: str, password: str) -> tuple[Member, MemberAuthentication]:
    found = find_member_login(db, identifier)
    if found is None:
        dummy_verify()
        raise NotFound("Member not found")

    member, auth = found
    if not verify_password(password, auth.password_hash):
        raise InvalidCredentials()

    if member.application_status == ApplicationStatus.PENDING:
        raise AccountNotActive(
            "Your membership application is still under review.",
            application_status=member.application_status.value,
        )
    if member.application_status == ApplicationStatus.REJECTED:
        raise AccountNotActive(
            "Your membership application was not approved.",
            application_status=member.application_status.value,
        )
    if member.member_status != MemberStatus.ACTIVE:
        raise AccountNotActive(
            "Your membership account is not active.",
            member_status=member.member_status.value,
        )

    return member, auth


"""
관리자 로그인 검증

- username 또는 이메일로 조회, 없으면 NotFound (더미 해시 검증 후)
- locked_until 이 미래면 AccountNotActive (잠금 해제 시각 포함)
- 비밀번호 불일치 시 login_attempts 증가,
  한도(ADMIN_MAX_LOGIN_ATTEMPTS) 도달 시 ADMIN_LOCKOUT_MINUTES 동안 잠금 후 InvalidCredentials
- 비활성 계정이면 AccountNotActive
- 성공 시 실패 횟수 / 잠금 초기화, last_login 갱신

NOTE:
- 실패 횟수 증가분은 flush 만 수행하므로, 호출 측에서 예외 처리 시 commit 해야 반영된다

"""

def verify_admin_credential(db: Session, identifier: str, password: str, now: datetime | None = None) -> Admin:
    now = now or utcnow()

    admin = db.scalar(select(Admin).where(or_(Admin.username == identifier, Admin.email == identifier)))
    if admin is None:
        dummy_verify(settings.ADMIN_BCRYPT_ROUNDS)
        raise NotFound("Admin not found")

    locked_until = as_utc(admin.locked_until)
    if locked_until is not None and locked_until > now:
        raise AccountNotActive(
            "Account is temporarily locked",
            admin_id=admin.id,
            locked_until=locked_until.isoformat(),
        )
    if locked_until is not None:
        # 잠금 기간이 지났으면 실패 횟수를 다시 0부터 센다
        admin.login_attempts = 0
        admin.locked_until = None

    if not verify_password(password, admin.password_hash, settings.ADMIN_BCRYPT_ROUNDS):
        admin.login_attempts = (admin.login_attempts or 0) + 1
        if admin.login_attempts >= settings.ADMIN_MAX_LOGIN_ATTEMPTS:
            admin.locked_until = now + timedelta(minutes=settings.ADMIN_LOCKOUT_MINUTES)
        db.flush()
        raise InvalidCredentials(admin_id=admin.id, locked=admin.locked_until is not None)

    if not admin.is_active:
        raise AccountNotActive("Admin account is deactivated", admin_id=admin.id)

    admin.login_attempts = 0
    admin.locked_until = None
    admin.last_login = now
    db.flush()
    return admin


# MemberAuthentication / Admin 공통: 새 salt 로 해시 재생성 + 버전 증가
def _apply_password(record, password: str, *, rounds: int, now: datetime | None = None) -> None:
    password_hash = get_password_hash(password, rounds=rounds)
    record.password_hash = password_hash
    record.salt = salt_of(password_hash)
    record.password_changed_at = now or utcnow()
    record.credential_version = (record.credential_version or 0) + 1


"""
회원 비밀번호 변경

- 인증 레코드가 없으면 NotFound
- credential_version 증가로 이전에 발급된 재설정/설정/세션 토큰 폐기

"""

def update_member_password(db: Session, member_id: uuid.UUID, new_password: str) -> MemberAuthentication:
    auth = db.scalar(select(MemberAuthentication).where(MemberAuthentication.member_id == member_id))
    if auth is None:
        raise NotFound("Member authentication record not found. Please contact admin.")

    _apply_password(auth, new_password, rounds=settings.MEMBER_BCRYPT_ROUNDS)
    db.flush()
    return auth


"""
관리자 비밀번호 변경

- 관리자가 없으면 NotFound
- credential_version 증가 + 해당 관리자의 모든 세션 삭제 (재로그인 필요)

"""

def update_admin_password(db: Session, admin_id: uuid.UUID, new_password: str) -> Admin:
    admin = db.get(Admin, admin_id)
    if admin is None:
        raise NotFound("Admin not found")

    _apply_password(admin, new_password, rounds=settings.ADMIN_BCRYPT_ROUNDS)
    admin.login_attempts = 0
    admin.locked_until = None
    db.execute(delete(AdminSession).where(AdminSession.admin_id == admin.id))
    db.flush()
    return admin


def hash_admin_password(password: str) -> tuple[str, str]:
    password_hash = get_password_hash(password, rounds=settings.ADMIN_BCRYPT_ROUNDS)
    return password_hash, salt_of(password_hash)
