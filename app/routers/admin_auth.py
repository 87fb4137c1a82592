"""
admin_auth.py

관리자(Admin) 본인 인증 API 모음.

주요 기능:
- 로그인 (username 또는 이메일) 및 세션 토큰 발급 / 세션 행 저장
- 로그아웃 (세션 행 삭제 + 캐시 무효화)
- 본인 프로필 조회
- 비밀번호 변경 (모든 세션 폐기)
- 비밀번호 재설정 요청 / 재설정

설계 원칙:
- 로그인 실패 횟수 누적 후 일정 시간 잠금
- 로그인 성공 / 실패, 로그아웃, 비밀번호 변경은 모두 감사 로그에 기록
- 감사 로그는 비즈니스 commit 이후 별도 트랜잭션으로 기록 (실패해도 응답에 영향 없음)

관련 파일:
- app.services.credentials : 관리자 로그인 검증 / 비밀번호 변경
- app.services.admin       : 세션 시작 / 종료, 재설정 토큰
- app.services.admin_log   : 감사 로그 / 활동 기록

"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.cache import PrincipalCache
from app.core.config import settings
from app.core.deps import get_bearer_token, get_current_admin, get_db, get_principal_cache, get_recorder
from app.core.errors import AccountNotActive, InvalidCredentials, NotFound
from app.core.policy import Principal
from app.core.security import KIND_ADMIN, token_fingerprint, verify_password
from app.models.admin import Admin
from app.models.admin_log import ActivityPriority, AuditStatus
from app.schemas.admin import AdminResponse
from app.schemas.auth import AdminLoginRequest, ChangePasswordRequest, ForgotPasswordRequest, ResetPasswordRequest
from app.services.admin import end_session, request_admin_password_reset, reset_admin_password, start_session
from app.services.admin_log import AuditRecorder, request_origin
from app.services.credentials import update_admin_password, verify_admin_credential
from app.services.notifications import send_password_reset_link

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin-auth"])

FORGOT_PASSWORD_MESSAGE = "If an admin account with that email exists, a password reset link has been sent."


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")


"""
관리자 로그인 API

- 계정 없음 / 비밀번호 불일치 -> 401 Invalid credentials
  (불일치 시 실패 횟수 증가분은 commit 후 응답)
- 잠금 중 / 비활성 계정 -> 403
- 성공 시 세션 토큰 발급 + admin_sessions 저장

"""

@router.post("/login")
def login(
    data: AdminLoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    recorder: AuditRecorder = Depends(get_recorder),
):
    origin = request_origin(request)

    try:
        admin = verify_admin_credential(db, data.identifier, data.password)
    except NotFound:
        logger.info("Failed admin login for unknown account", extra={"action": "admin_login_failed"})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    except InvalidCredentials as e:
        _commit(db)
        admin_id = e.context.get("admin_id")
        recorder.record_audit(
            admin_id=admin_id,
            action="login_failed",
            resource_type="system",
            status=AuditStatus.FAILED,
            details="Invalid password",
            **origin,
        )
        if e.context.get("locked"):
            recorder.record_activity(
                activity_type="admin_locked",
                title="Admin account locked",
                message="Admin account locked after repeated failed logins",
                priority=ActivityPriority.HIGH,
                related_entity="admin",
                related_id=admin_id,
                admin_id=admin_id,
            )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    except AccountNotActive as e:
        db.rollback()
        admin_id = e.context.pop("admin_id", None)
        recorder.record_audit(
            admin_id=admin_id,
            action="login_blocked",
            resource_type="system",
            status=AuditStatus.WARNING,
            details=e.detail,
            **origin,
        )
        raise

    token, session = start_session(db, admin, **origin)
    expires_at = session.expires_at
    _commit(db)
    db.refresh(admin)

    recorder.record_audit(
        admin_id=admin.id,
        action="login",
        resource_type="system",
        details="Admin logged in",
        **origin,
    )
    logger.info("Admin logged in", extra={"admin_id": admin.id, "action": "admin_login"})

    return {
        "message": "Login successful",
        "data": {
            "token": token,
            "expiresAt": expires_at.isoformat(),
            "admin": AdminResponse.model_validate(admin).model_dump(mode="json"),
        },
    }


"""
로그아웃 API

- 현재 토큰의 세션 행 삭제 -> 이후 같은 토큰은 401
- 캐시에서 해당 토큰 항목 제거

"""

@router.post("/logout")
def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    principal: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    end_session(db, token)
    _commit(db)
    if cache is not None:
        cache.invalidate_token(token_fingerprint(token))

    recorder.record_audit(
        admin_id=principal.id,
        action="logout",
        resource_type="system",
        details="Admin logged out",
        **request_origin(request),
    )
    return {"message": "Logged out successfully"}


@router.get("/profile")
def profile(
    principal: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    admin = db.get(Admin, principal.id)
    if admin is None:
        raise HTTPException(status_code=404, detail="Admin profile not found")

    return {
        "data": {
            **AdminResponse.model_validate(admin).model_dump(mode="json"),
            "permissions": [
                {"resource": resource, "action": action, "allowed": allowed}
                for resource, action, allowed in sorted(principal.permissions)
            ],
        }
    }


"""
비밀번호 변경 API

- 현재 비밀번호 확인 (불일치 시 401)
- 새 비밀번호 / 확인 값 불일치, 기존과 동일하면 400
- 변경 후 해당 관리자의 모든 세션 폐기 (재로그인 필요)

"""

@router.put("/change-password")
def change_password(
    data: ChangePasswordRequest,
    request: Request,
    principal: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=400, detail="New passwords do not match")
    if data.new_password == data.current_password:
        raise HTTPException(status_code=400, detail="New password must be different from the current password")

    admin = db.get(Admin, principal.id)
    if admin is None:
        raise HTTPException(status_code=404, detail="Admin account not found")
    if not verify_password(data.current_password, admin.password_hash, settings.ADMIN_BCRYPT_ROUNDS):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")

    update_admin_password(db, admin.id, data.new_password)
    _commit(db)
    if cache is not None:
        cache.invalidate_principal(principal.id)

    recorder.record_audit(
        admin_id=principal.id,
        action="change_password",
        resource_type="admin_account",
        resource_id=principal.id,
        details="Admin changed own password",
        **request_origin(request),
    )
    return {"message": "Password changed successfully. Please log in again."}


@router.post("/forgot-password")
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    issued = request_admin_password_reset(db, data.email)
    if issued is not None:
        admin, token = issued
        send_password_reset_link(admin.id, admin.email, token, kind=KIND_ADMIN)

    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password")
def reset_password(
    data: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    admin = reset_admin_password(db, data.token, data.new_password)
    admin_id = admin.id
    _commit(db)
    if cache is not None:
        cache.invalidate_principal(admin_id)

    recorder.record_audit(
        admin_id=admin_id,
        action="reset_password",
        resource_type="admin_account",
        resource_id=admin_id,
        details="Admin reset password via emailed link",
        **request_origin(request),
    )
    return {"message": "Password has been reset successfully"}
