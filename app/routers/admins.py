"""
admins.py

관리자 계정 관리 API 모음 (SUPER_ADMIN 전용).

주요 기능:
- 관리자 생성 / 목록 조회
- 역할 변경, 활성/비활성 전환
- 허용 목록(admin_permissions) 교체
- 비밀번호 초기화
- 관리자 삭제

설계 원칙:
- 권한 검사는 정책 표(admin_users.read / admin_users.write)로만 수행
- 자기 자신의 역할 / 상태 변경 및 삭제 금지
- 마지막 활성 SUPER_ADMIN 은 강등 / 비활성화 / 삭제 불가
- 역할 / 상태 / 권한 / 비밀번호가 바뀌면 인증 캐시에서 해당 관리자 제거
- 모든 변경은 commit 이후 감사 로그 기록

관련 파일:
- app.services.admin     : 관리자 생성 / 권한 / 세션 관리
- app.core.policy        : 정책 표 / 기본 허용 목록

"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.cache import PrincipalCache
from app.core.deps import get_db, get_principal_cache, get_recorder, require_permission
from app.core.policy import Principal
from app.models.admin import Admin, AdminRole
from app.models.admin_log import ActivityPriority
from app.schemas.admin import (
    AdminCreateRequest,
    AdminPasswordReset,
    AdminResponse,
    AdminStatusUpdate,
    PermissionsUpdate,
    RoleUpdate,
)
from app.services.admin import (
    create_admin,
    is_last_super_admin,
    load_permissions,
    revoke_sessions,
    set_permissions,
)
from app.services.admin_log import AuditRecorder, request_origin
from app.services.credentials import update_admin_password

router = APIRouter(prefix="/api/admins", tags=["admins"])


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")


def _get_admin(db: Session, admin_id: uuid.UUID) -> Admin:
    admin = db.get(Admin, admin_id)
    if admin is None:
        raise HTTPException(status_code=404, detail="Admin not found")
    return admin


def _admin_data(admin: Admin) -> dict:
    return AdminResponse.model_validate(admin).model_dump(mode="json")


def _invalidate(cache: Optional[PrincipalCache], admin_id: uuid.UUID) -> None:
    if cache is not None:
        cache.invalidate_principal(admin_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def create(
    data: AdminCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("admin_users", "write")),
    recorder: AuditRecorder = Depends(get_recorder),
):
    admin = create_admin(
        db,
        username=data.username,
        email=data.email,
        password=data.password,
        role=data.role,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        created_by=principal.id,
    )
    _commit(db)
    db.refresh(admin)
    result = _admin_data(admin)

    recorder.record_audit(
        admin_id=principal.id,
        action="create_admin",
        resource_type="admin_account",
        resource_id=admin.id,
        new_values={"username": admin.username, "email": admin.email, "role": admin.role.value},
        **request_origin(request),
    )
    recorder.record_activity(
        activity_type="admin_created",
        title="New admin account",
        message=f"Admin account '{admin.username}' was created",
        priority=ActivityPriority.MEDIUM,
        related_entity="admin",
        related_id=admin.id,
        admin_id=principal.id,
    )
    return {"message": "Admin created", "data": result}


@router.get("")
def list_admins(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("admin_users", "read")),
):
    admins = db.scalars(select(Admin).order_by(Admin.created_at)).all()
    return {"data": [_admin_data(a) for a in admins]}


"""
관리자 역할 변경 API

- 자기 자신 변경 금지
- 같은 역할로 변경 요청 시 400
- 마지막 활성 SUPER_ADMIN 강등 금지
- 변경된 역할은 다음 요청부터(캐시 무효화) 적용

"""

@router.put("/{admin_id}/role")
def set_role(
    admin_id: uuid.UUID,
    data: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("admin_users", "write")),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    admin = _get_admin(db, admin_id)

    if admin.id == principal.id:
        raise HTTPException(status_code=400, detail="Cannot change your own role")
    if admin.role == data.role:
        raise HTTPException(status_code=400, detail=f"Admin already {admin.role.value}")
    if data.role != AdminRole.SUPER_ADMIN and is_last_super_admin(db, admin):
        raise HTTPException(status_code=400, detail="Cannot demote the last SUPER_ADMIN")

    before = admin.role
    admin.role = data.role
    _commit(db)
    _invalidate(cache, admin.id)
    db.refresh(admin)

    recorder.record_audit(
        admin_id=principal.id,
        action="set_admin_role",
        resource_type="admin_account",
        resource_id=admin.id,
        old_values={"role": before.value},
        new_values={"role": admin.role.value},
        **request_origin(request),
    )
    return {"message": "Role updated", "data": _admin_data(admin)}


"""
관리자 활성/비활성 전환 API

- 자기 자신 변경 금지
- 마지막 활성 SUPER_ADMIN 비활성화 금지
- 비활성화 시 모든 세션 삭제 -> 기존 토큰 즉시 401

"""

@router.put("/{admin_id}/status")
def set_status(
    admin_id: uuid.UUID,
    data: AdminStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("admin_users", "write")),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    admin = _get_admin(db, admin_id)

    if admin.id == principal.id:
        raise HTTPException(status_code=400, detail="Cannot change your own status")
    if not data.is_active and is_last_super_admin(db, admin):
        raise HTTPException(status_code=400, detail="Cannot deactivate the last SUPER_ADMIN")

    before = admin.is_active
    admin.is_active = data.is_active
    if not data.is_active:
        revoke_sessions(db, admin.id)
    _commit(db)
    _invalidate(cache, admin.id)
    db.refresh(admin)

    recorder.record_audit(
        admin_id=principal.id,
        action="activate_admin" if data.is_active else "deactivate_admin",
        resource_type="admin_account",
        resource_id=admin.id,
        old_values={"is_active": before},
        new_values={"is_active": admin.is_active},
        **request_origin(request),
    )
    return {"message": "Status updated", "data": _admin_data(admin)}


@router.put("/{admin_id}/permissions")
def replace_permissions(
    admin_id: uuid.UUID,
    data: PermissionsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("admin_users", "write")),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    admin = _get_admin(db, admin_id)

    before = load_permissions(db, admin.id)
    after = set_permissions(db, admin.id, [(p.resource, p.action, p.allowed) for p in data.permissions])
    _commit(db)
    _invalidate(cache, admin.id)

    def as_list(grants):
        return [{"resource": r, "action": a, "allowed": allowed} for r, a, allowed in sorted(grants)]

    recorder.record_audit(
        admin_id=principal.id,
        action="set_admin_permissions",
        resource_type="admin_account",
        resource_id=admin.id,
        old_values={"permissions": as_list(before)},
        new_values={"permissions": as_list(after)},
        **request_origin(request),
    )
    return {"message": "Permissions updated", "data": {"id": str(admin.id), "permissions": as_list(after)}}


"""
관리자 비밀번호 초기화 API

- 새 비밀번호로 교체, 잠금 해제
- 해당 관리자의 모든 세션 폐기

"""

@router.post("/{admin_id}/reset-password")
def reset_password(
    admin_id: uuid.UUID,
    data: AdminPasswordReset,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("admin_users", "write")),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    admin = _get_admin(db, admin_id)

    update_admin_password(db, admin.id, data.new_password)
    _commit(db)
    _invalidate(cache, admin.id)

    recorder.record_audit(
        admin_id=principal.id,
        action="reset_admin_password",
        resource_type="admin_account",
        resource_id=admin_id,
        details="Password reset by SUPER_ADMIN",
        **request_origin(request),
    )
    return {"message": "Password reset", "data": {"id": str(admin_id)}}


@router.delete("/{admin_id}")
def delete_admin(
    admin_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("admin_users", "write")),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    admin = _get_admin(db, admin_id)

    if admin.id == principal.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")
    if is_last_super_admin(db, admin):
        raise HTTPException(status_code=400, detail="Cannot delete the last SUPER_ADMIN")

    snapshot = _admin_data(admin)

    revoke_sessions(db, admin.id)
    set_permissions(db, admin.id, [])
    db.delete(admin)
    _commit(db)
    _invalidate(cache, admin_id)

    recorder.record_audit(
        admin_id=principal.id,
        action="delete_admin",
        resource_type="admin_account",
        resource_id=admin_id,
        old_values=snapshot,
        **request_origin(request),
    )
    return {"message": "Admin deleted", "data": snapshot}
