"""
member_auth.py

회원(Member) 인증 API 모음.

주요 기능:
- 로그인 (username 또는 이메일) 및 세션 토큰 발급
- 비밀번호 재설정 요청 / 재설정
- 승인 후 비밀번호 최초 설정
- 본인 프로필 조회

설계 원칙:
- 세션 토큰은 Authorization Header(Bearer)로 전달
- 존재하지 않는 계정과 비밀번호 불일치는 같은 401 응답 (계정 존재 여부 비노출)
- 비밀번호 재설정 요청은 이메일 존재 여부와 관계없이 같은 응답
- 비밀번호 변경 시 credential_version 증가로 기존 토큰 폐기

관련 파일:
- app.services.credentials : 로그인 검증 / 비밀번호 변경
- app.services.membership  : 비밀번호 설정 / 재설정 토큰 처리
- app.services.notifications : 링크 전달
- app.schemas.auth         : 요청/응답 스키마

"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.cache import PrincipalCache
from app.core.deps import get_current_member, get_db, get_principal_cache
from app.core.errors import InvalidCredentials, NotFound, TokenMalformed
from app.core.policy import Principal
from app.core.security import KIND_MEMBER, PURPOSE_SESSION, issue_token
from app.models.member import Member, MemberAuthentication, MemberContactDetails
from app.schemas.auth import (
    ForgotPasswordRequest,
    MemberLoginRequest,
    MemberLoginResponse,
    ResetPasswordRequest,
    SetupPasswordRequest,
)
from app.services.credentials import verify_member_credential
from app.services.membership import request_password_reset, reset_password, setup_password
from app.services.notifications import send_password_reset_link

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/member", tags=["member-auth"])

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")


"""
회원 로그인 API

- identifier 에 '@' 가 있으면 이메일, 아니면 username 으로 조회
- 계정 없음 / 비밀번호 불일치 -> 401 Invalid credentials
- 승인 전 / 비활성 회원 -> 403 (application_status / member_status 포함)

"""

@router.post("/login", response_model=MemberLoginResponse)
def login(data: MemberLoginRequest, db: Session = Depends(get_db)):
    try:
        member, auth = verify_member_credential(db, data.identifier, data.password)
    except (NotFound, InvalidCredentials):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token = issue_token(member.id, PURPOSE_SESSION, kind=KIND_MEMBER, version=auth.credential_version)
    logger.info("Member logged in", extra={"member_id": member.id, "action": "member_login"})

    return MemberLoginResponse(
        token=token,
        member_id=str(member.id),
        username=auth.username,
        full_name=member.full_name,
    )


"""
비밀번호 재설정 요청 API

- 이메일이 등록되어 있고 비밀번호가 설정된 회원에게만 링크 전달
- 응답은 항상 동일 (계정 존재 여부 비노출)

"""

@router.post("/forgot-password")
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    issued = request_password_reset(db, data.email)
    if issued is not None:
        member_id, token = issued
        send_password_reset_link(member_id, data.email, token, kind=KIND_MEMBER)

    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password")
def reset_member_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
):
    try:
        auth = reset_password(db, data.token, data.new_password)
    except NotFound:
        raise TokenMalformed("Invalid or expired reset token")
    _commit(db)

    if cache is not None:
        cache.invalidate_principal(auth.member_id)
    logger.info("Member password reset", extra={"member_id": auth.member_id, "action": "member_reset_password"})
    return {"message": "Password has been reset successfully"}


"""
비밀번호 최초 설정 API

- 승인 메일의 password_setup 토큰 사용
- 설정 완료 시 회원 상태 active, 같은 토큰은 재사용 불가

"""

@router.post("/setup-password")
def setup_member_password(data: SetupPasswordRequest, db: Session = Depends(get_db)):
    try:
        member = setup_password(db, data.token, data.password)
    except NotFound:
        raise TokenMalformed("Invalid or expired setup token")
    member_id = member.id
    _commit(db)

    logger.info("Member password set up", extra={"member_id": member_id, "action": "member_setup_password"})
    return {"message": "Password has been set successfully. You can now log in."}


@router.get("/profile")
def profile(
    principal: Principal = Depends(get_current_member),
    db: Session = Depends(get_db),
):
    row = db.execute(
        select(Member, MemberAuthentication.username, MemberContactDetails.email, MemberContactDetails.phone)
        .join(MemberAuthentication, MemberAuthentication.member_id == Member.id)
        .outerjoin(MemberContactDetails, MemberContactDetails.member_id == Member.id)
        .where(Member.id == principal.id)
    ).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Member not found")

    member, username, email, phone = row
    return {
        "data": {
            "id": str(member.id),
            "username": username,
            "firstName": member.first_name,
            "lastName": member.last_name,
            "fullName": member.full_name,
            "email": email,
            "phone": phone,
            "membershipNumber": member.membership_number,
            "applicationStatus": member.application_status.value,
            "memberStatus": member.member_status.value,
            "renewalDate": member.renewal_date.isoformat() if member.renewal_date else None,
        }
    }
