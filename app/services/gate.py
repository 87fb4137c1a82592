"""
services/gate.py

인증 게이트(Authorization Gate): 세션 토큰 -> Principal.

요청마다 토큰 클레임만 믿지 않고 계정 행을 다시 읽어,
비활성화 / 삭제 / 비밀번호 변경된 계정이 만료 전 토큰으로 계속 접근하지 못하게 한다.

검증 순서:
1. 캐시 조회 (토큰 지문 키)
2. 토큰 서명 / 만료 / purpose=session / kind 검증
3. 관리자: 계정 존재 + is_active + ver 일치 + admin_sessions 에 살아 있는 세션 행
   회원  : 인증 레코드 + 회원 존재, application_status=approved, member_status=active, ver 일치
4. Principal 생성 후 캐시에 저장

어느 단계든 실패하면 Unauthenticated(401).

"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.cache import PrincipalCache
from app.core.clock import as_utc, utcnow
from app.core.errors import TokenError, Unauthenticated
from app.core.policy import Principal
from app.core.security import (
    KIND_ADMIN,
    KIND_MEMBER,
    PURPOSE_SESSION,
    PrincipalKind,
    TokenClaims,
    token_fingerprint,
    verify_token,
)
from app.models.admin import Admin, AdminSession
from app.models.member import ApplicationStatus, Member, MemberAuthentication, MemberStatus
from app.services.admin import load_permissions


def _admin_principal(db: Session, claims: TokenClaims, fingerprint: str) -> Principal:
    admin = db.get(Admin, claims.subject_id)
    if admin is None or not admin.is_active:
        raise Unauthenticated("Admin account not found or inactive")
    if admin.credential_version != claims.version:
        raise Unauthenticated("Session is no longer valid")

    session = db.scalar(select(AdminSession).where(AdminSession.token_hash == fingerprint))
    if session is None or session.admin_id != admin.id or as_utc(session.expires_at) <= utcnow():
        raise Unauthenticated("Session is no longer valid")

    return Principal(
        id=admin.id,
        kind=KIND_ADMIN,
        username=admin.username,
        role=admin.role,
        permissions=load_permissions(db, admin.id),
        expires_at=claims.expires_at,
    )


def _member_principal(db: Session, claims: TokenClaims) -> Principal:
    row = db.execute(
        select(Member, MemberAuthentication)
        .join(MemberAuthentication, MemberAuthentication.member_id == Member.id)
        .where(Member.id == claims.subject_id)
    ).first()
    if row is None:
        raise Unauthenticated("Member not found")

    member, auth = row
    if member.application_status != ApplicationStatus.APPROVED or member.member_status != MemberStatus.ACTIVE:
        raise Unauthenticated("Membership is not active")
    if auth.credential_version != claims.version:
        raise Unauthenticated("Session is no longer valid")

    return Principal(
        id=member.id,
        kind=KIND_MEMBER,
        username=auth.username,
        expires_at=claims.expires_at,
    )


def authenticate(
    db: Session,
    token: str,
    *,
    cache: Optional[PrincipalCache] = None,
    kind: Optional[PrincipalKind] = None,
) -> Principal:
    fingerprint = token_fingerprint(token)

    if cache is not None:
        cached = cache.get(fingerprint)
        if cached is not None and (kind is None or cached.kind == kind):
            return cached

    try:
        claims = verify_token(token, PURPOSE_SESSION, kind=kind)
    except TokenError as e:
        raise Unauthenticated(e.detail) from e

    if claims.kind == KIND_ADMIN:
        principal = _admin_principal(db, claims, fingerprint)
    else:
        principal = _member_principal(db, claims)

    if cache is not None:
        cache.put(fingerprint, principal)
    return principal
