"""
logs.py

감사 로그 / 활동 피드 조회 API.

- GET /api/admin/audit-logs : SUPER_ADMIN 전용 (audit_logs.read)
- GET /api/admin/activities : 관리자 (activities.read)

두 목록 모두 created_at 내림차순으로 반환한다.

"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_permission
from app.core.policy import Principal
from app.schemas.logs import ActivityResponse, AuditLogResponse
from app.services.admin_log import list_activities, list_audit_logs

router = APIRouter(prefix="/api/admin", tags=["logs"])


@router.get("/audit-logs")
def audit_logs(
    admin_id: Optional[uuid.UUID] = Query(None, alias="adminId"),
    action: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("audit_logs", "read")),
):
    logs = list_audit_logs(db, limit=limit, offset=offset, admin_id=admin_id, action=action)
    return {
        "data": [AuditLogResponse.model_validate(log).model_dump(mode="json") for log in logs],
        "limit": limit,
        "offset": offset,
    }


@router.get("/activities")
def activities(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("activities", "read")),
):
    items = list_activities(db, limit=limit, offset=offset)
    return {
        "data": [ActivityResponse.model_validate(item).model_dump(mode="json") for item in items],
        "limit": limit,
        "offset": offset,
    }
