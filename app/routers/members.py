"""
members.py

회원 가입 신청 접수 / 심사 / 회원 관리 API 모음 (접수 외에는 관리자 전용).

주요 기능:
- 가입 신청 접수 (공개)
- 가입 신청 목록 조회 / 승인 / 거절
- 회원 목록 조회, 상태 변경, 자격 갱신
- 회원 자격 만료 작업 수동 실행 (SUPER_ADMIN)

설계 원칙:
- 권한 검사는 정책 표(applications / members / lifecycle)로만 수행
- 승인 시 비밀번호 설정 링크 전달은 commit 이후
- 모든 변경은 commit 이후 감사 로그 + 활동 피드 기록
- 상태 변경으로 로그인 가능 여부가 바뀌므로 인증 캐시에서 해당 회원 제거

관련 파일:
- app.services.membership : 심사 / 상태 변경 / 갱신 로직
- app.services.lifecycle  : 만료 처리
- app.services.notifications : 설정 링크 전달

"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.core.cache import PrincipalCache
from app.core.clock import utcnow
from app.core.deps import get_db, get_principal_cache, get_recorder, require_permission
from app.core.policy import Principal
from app.models.admin_log import ActivityPriority
from app.models.member import ApplicationStatus, Member, MemberStatus
from app.schemas.member import ApplicationCreateRequest, ApplicationDecisionRequest, MemberResponse, MemberStatusUpdate
from app.services.admin_log import AuditRecorder, request_origin
from app.services.lifecycle import expire_overdue_members
from app.services.membership import (
    decide_application,
    get_email,
    list_members,
    renew_membership,
    set_member_status,
    submit_application,
)
from app.services.notifications import send_password_setup_link

router = APIRouter(prefix="/api", tags=["members"])


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")


def _member_data(member: Member, username: str | None = None, email: str | None = None) -> dict:
    data = MemberResponse.model_validate(member).model_dump(mode="json")
    data["username"] = username
    data["email"] = email
    return data


def _invalidate(cache: Optional[PrincipalCache], member_id: uuid.UUID) -> None:
    if cache is not None:
        cache.invalidate_principal(member_id)


"""
가입 신청 접수 API (공개)

- 인증 없이 호출 가능
- pending / pending 회원 + 연락처 생성, 중복 이메일이면 409
- commit 이후 활동 피드에 new_application 기록

"""

@router.post("/applications", status_code=201)
def submit(
    data: ApplicationCreateRequest,
    db: Session = Depends(get_db),
    recorder: AuditRecorder = Depends(get_recorder),
):
    member = submit_application(
        db,
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        phone=data.phone,
    )
    _commit(db)
    db.refresh(member)

    recorder.record_activity(
        activity_type="new_application",
        title="New membership application",
        message=f"New application received from {member.full_name}",
        priority=ActivityPriority.MEDIUM,
        related_entity="member",
        related_id=member.id,
    )
    return {
        "message": "Application submitted",
        "data": _member_data(member, email=get_email(db, member.id)),
    }


@router.get("/applications")
def list_applications(
    application_status: Optional[ApplicationStatus] = Query(ApplicationStatus.PENDING, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("applications", "read")),
):
    rows = list_members(db, application_status=application_status, limit=limit, offset=offset)
    return {"data": [_member_data(m, username, email) for m, username, email in rows]}


"""
가입 신청 승인 / 거절 API

- approved: 회원번호 / 갱신일 / username / 설정 토큰 생성, commit 후 설정 링크 전달
- rejected: application_status = rejected

"""

@router.put("/applications/{member_id}/status")
def decide(
    member_id: uuid.UUID,
    data: ApplicationDecisionRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("applications", "write")),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    approve = data.status == ApplicationStatus.APPROVED.value
    decision = decide_application(db, member_id, approve=approve, review_comment=data.review_comment)
    _commit(db)
    _invalidate(cache, member_id)
    db.refresh(decision.member)

    member = decision.member
    if decision.setup_token is not None:
        send_password_setup_link(member.id, decision.email, decision.setup_token)

    recorder.record_audit(
        admin_id=principal.id,
        action="approve_application" if approve else "reject_application",
        resource_type="application",
        resource_id=member.id,
        old_values={"application_status": decision.old_status.value},
        new_values={
            "application_status": member.application_status.value,
            "member_status": member.member_status.value,
            "username": decision.username,
        },
        details=data.review_comment,
        **request_origin(request),
    )
    recorder.record_activity(
        activity_type="application_approved" if approve else "application_rejected",
        title="Membership application approved" if approve else "Membership application rejected",
        message=f"Application from {member.full_name} was {member.application_status.value}",
        priority=ActivityPriority.MEDIUM,
        related_entity="member",
        related_id=member.id,
        admin_id=principal.id,
    )

    return {
        "message": f"Application {member.id} status updated to {member.application_status.value}",
        "data": {
            **_member_data(member, decision.username, decision.email),
            "usernameGenerated": decision.username is not None,
        },
    }


@router.get("/members")
def list_all_members(
    member_status: Optional[MemberStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("members", "read")),
):
    rows = list_members(
        db,
        application_status=ApplicationStatus.APPROVED,
        member_status=member_status,
        limit=limit,
        offset=offset,
    )
    return {"data": [_member_data(m, username, email) for m, username, email in rows]}


@router.put("/members/{member_id}/status")
def update_member_status(
    member_id: uuid.UUID,
    data: MemberStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("members", "write")),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    member, before = set_member_status(db, member_id, data.status)
    _commit(db)
    _invalidate(cache, member_id)
    db.refresh(member)

    recorder.record_audit(
        admin_id=principal.id,
        action="update_member_status",
        resource_type="member",
        resource_id=member.id,
        old_values={"member_status": before.value},
        new_values={"member_status": member.member_status.value},
        **request_origin(request),
    )
    recorder.record_activity(
        activity_type="member_status_changed",
        title="Member status changed",
        message=f"{member.full_name}: {before.value} -> {member.member_status.value}",
        priority=ActivityPriority.HIGH if member.member_status == MemberStatus.SUSPENDED else ActivityPriority.LOW,
        related_entity="member",
        related_id=member.id,
        admin_id=principal.id,
    )
    return {"message": "Member status updated", "data": _member_data(member)}


@router.post("/members/{member_id}/renew")
def renew(
    member_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("members", "write")),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    member = db.get(Member, member_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Member not found")
    before = {
        "member_status": member.member_status.value,
        "renewal_date": member.renewal_date,
    }

    renew_membership(db, member_id)
    _commit(db)
    _invalidate(cache, member_id)
    db.refresh(member)

    recorder.record_audit(
        admin_id=principal.id,
        action="renew_membership",
        resource_type="member",
        resource_id=member.id,
        old_values=before,
        new_values={"member_status": member.member_status.value, "renewal_date": member.renewal_date},
        **request_origin(request),
    )
    recorder.record_activity(
        activity_type="membership_renewed",
        title="Membership renewed",
        message=f"Membership for {member.full_name} was renewed",
        priority=ActivityPriority.LOW,
        related_entity="member",
        related_id=member.id,
        admin_id=principal.id,
    )
    return {"message": "Membership renewed", "data": _member_data(member)}


"""
회원 자격 만료 작업 수동 실행 API (SUPER_ADMIN)

- renewal_date < now AND member_status = active 인 회원을 expired 로
- 만료된 회원은 캐시에 남아 있어도 TTL 이내에 사라지므로 캐시 전체를 비움

"""

@router.post("/admin/lifecycle/expire")
def run_expiry(
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_permission("lifecycle", "run")),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
    recorder: AuditRecorder = Depends(get_recorder),
):
    now = utcnow()
    expired = expire_overdue_members(db, now)
    _commit(db)
    if cache is not None and expired:
        cache.clear()

    recorder.record_audit(
        admin_id=principal.id,
        action="expire_memberships",
        resource_type="system",
        new_values={"expired": expired, "now": now},
        **request_origin(request),
    )
    if expired:
        recorder.record_activity(
            activity_type="memberships_expired",
            title="Memberships expired",
            message=f"{expired} membership(s) expired",
            priority=ActivityPriority.MEDIUM,
            related_entity="member",
        )
    return {"message": "Expiry job finished", "data": {"expired": expired}}
