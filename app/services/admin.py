"""
services/admin.py

관리자 관련 비즈니스 로직(Service) 모음.

이 파일은 관리자 기능에서 공통으로 사용되는
순수 비즈니스 로직을 담당한다.
라우터에서는 이 파일의 함수를 호출하여
DB 조회/검증/정책 판단을 수행한다.

주요 기능:
- 활성 SUPER_ADMIN 계정 수 계산 (마지막 SUPER_ADMIN 보호)
- 관리자 계정 생성 (기본 허용 목록 부여)
- 허용 목록(admin_permissions) 조회 / 교체
- 관리자 세션 시작 / 종료 / 일괄 폐기
- 관리자 비밀번호 재설정 토큰 발급 / 검증

설계 원칙:
- HTTP / FastAPI 의존성 없음
- 트랜잭션 제어는 라우터에서 수행
- 관리자 정책(마지막 SUPER_ADMIN 보호 등)을 중앙에서 관리

관련 파일:
- app.models.admin       : Admin / AdminSession / AdminPermission 모델
- app.routers.admins     : 관리자 계정 관리 API
- app.routers.admin_auth : 관리자 로그인 / 로그아웃 API

"""

import uuid
from datetime import datetime
from typing import Iterable, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.errors import DuplicateUsername, TokenMalformed, TokenRevoked
from app.core.policy import DEFAULT_ADMIN_GRANTS, Grant
from app.core.security import (
    KIND_ADMIN,
    PURPOSE_PASSWORD_RESET,
    PURPOSE_SESSION,
    issue_token,
    token_fingerprint,
    verify_token,
)
from app.models.admin import Admin, AdminPermission, AdminRole, AdminSession
from app.services.credentials import hash_admin_password, update_admin_password


"""
현재 활성 SUPER_ADMIN 계정 수를 반환

- role = super_admin 이고 is_active 인 관리자만 집계
- 마지막 SUPER_ADMIN 보호 로직에서 사용

"""

def count_super_admins(db: Session) -> int:
    return db.scalar(
        select(func.count())
        .select_from(Admin)
        .where(Admin.role == AdminRole.SUPER_ADMIN, Admin.is_active.is_(True))
    ) or 0


def is_last_super_admin(db: Session, admin: Admin) -> bool:
    return admin.role == AdminRole.SUPER_ADMIN and admin.is_active and count_super_admins(db) <= 1


"""
관리자 계정 생성

- username / email 중복 시 DuplicateUsername
- 관리자용 bcrypt cost 로 해시
- grants 미지정 시 DEFAULT_ADMIN_GRANTS 부여

"""

def create_admin(
    db: Session,
    *,
    username: str,
    email: str,
    password: str,
    role: AdminRole = AdminRole.ADMIN,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
    created_by: uuid.UUID | None = None,
    grants: Iterable[Tuple[str, str]] | None = None,
) -> Admin:
    exists = db.scalar(select(Admin.id).where(or_(Admin.username == username, Admin.email == email)))
    if exists is not None:
        raise DuplicateUsername("Username or email already exists")

    password_hash, salt = hash_admin_password(password)
    admin = Admin(
        username=username,
        email=email,
        password_hash=password_hash,
        salt=salt,
        role=role,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        is_active=True,
        login_attempts=0,
        credential_version=0,
        created_by=created_by,
    )
    db.add(admin)
    db.flush()

    set_permissions(
        db,
        admin.id,
        [(resource, action, True) for resource, action in (grants if grants is not None else DEFAULT_ADMIN_GRANTS)],
    )
    return admin


def load_permissions(db: Session, admin_id: uuid.UUID) -> frozenset[Grant]:
    rows = db.execute(
        select(AdminPermission.resource, AdminPermission.action, AdminPermission.allowed)
        .where(AdminPermission.admin_id == admin_id)
    ).all()
    return frozenset((r.resource, r.action, bool(r.allowed)) for r in rows)


# 허용 목록 전체 교체 (기존 행 삭제 후 재삽입)
def set_permissions(db: Session, admin_id: uuid.UUID, grants: Iterable[Grant]) -> frozenset[Grant]:
    # 같은 (resource, action) 이 여러 번 오면 마지막 값 사용
    merged = {(resource, action): bool(allowed) for resource, action, allowed in grants}

    db.execute(delete(AdminPermission).where(AdminPermission.admin_id == admin_id))
    for (resource, action), allowed in merged.items():
        db.add(AdminPermission(admin_id=admin_id, resource=resource, action=action, allowed=allowed))
    db.flush()
    return frozenset((resource, action, allowed) for (resource, action), allowed in merged.items())


"""
관리자 세션 시작

- 관리자 세션 토큰 발급 (ver = credential_version)
- 토큰의 sha256 지문을 admin_sessions 에 저장 (원본 토큰은 저장하지 않음)
- (token, AdminSession) 반환

"""

def start_session(
    db: Session,
    admin: Admin,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> tuple[str, AdminSession]:
    token = issue_token(admin.id, PURPOSE_SESSION, kind=KIND_ADMIN, version=admin.credential_version)
    claims = verify_token(token, PURPOSE_SESSION, kind=KIND_ADMIN)
    session = AdminSession(
        admin_id=admin.id,
        token_hash=token_fingerprint(token),
        ip_address=ip_address,
        user_agent=user_agent,
        expires_at=claims.expires_at,
    )
    db.add(session)
    db.flush()
    return token, session


# 로그아웃: 해당 토큰의 세션 행만 삭제. 삭제된 행 수 반환
def end_session(db: Session, token: str) -> int:
    result = db.execute(delete(AdminSession).where(AdminSession.token_hash == token_fingerprint(token)))
    return result.rowcount or 0


# 비활성화 / 삭제 / 비밀번호 초기화 시 해당 관리자의 모든 세션 폐기
def revoke_sessions(db: Session, admin_id: uuid.UUID) -> int:
    result = db.execute(delete(AdminSession).where(AdminSession.admin_id == admin_id))
    return result.rowcount or 0


def purge_expired_sessions(db: Session, now: datetime | None = None) -> int:
    now = now or utcnow()
    result = db.execute(
        delete(AdminSession).where(AdminSession.expires_at <= now).execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


"""
관리자 비밀번호 재설정 요청

- 이메일로 활성 관리자 조회, 없으면 None (라우터는 동일 응답)
- 토큰 ver = 현재 credential_version

"""

def request_admin_password_reset(db: Session, email: str) -> Optional[tuple[Admin, str]]:
    admin = db.scalar(select(Admin).where(Admin.email == email, Admin.is_active.is_(True)))
    if admin is None:
        return None
    token = issue_token(admin.id, PURPOSE_PASSWORD_RESET, kind=KIND_ADMIN, version=admin.credential_version)
    return admin, token


def reset_admin_password(db: Session, token: str, new_password: str) -> Admin:
    claims = verify_token(token, PURPOSE_PASSWORD_RESET, kind=KIND_ADMIN)

    admin = db.get(Admin, claims.subject_id)
    if admin is None or not admin.is_active:
        raise TokenMalformed("Invalid or expired reset token")
    if admin.credential_version != claims.version:
        raise TokenRevoked()

    return update_admin_password(db, admin.id, new_password)
