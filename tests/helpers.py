# tests/helpers.py
import uuid
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.models.admin import Admin, AdminRole
from app.models.member import ApplicationStatus, Member, MemberContactDetails, MemberStatus
from app.services.admin import create_admin
from app.services.credentials import create_credential


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_admin_in_db(
    db: Session,
    *,
    username: str | None = None,
    email: str | None = None,
    password: str = "AdminPassw0rd!",
    role: AdminRole = AdminRole.ADMIN,
    grants=None,
) -> Admin:
    suffix = uuid.uuid4().hex[:6]
    admin = create_admin(
        db,
        username=username or f"admin_{suffix}",
        email=email or f"admin_{suffix}@test.com",
        password=password,
        role=role,
        first_name="Test",
        last_name="Admin",
        grants=grants,
    )
    db.commit()
    db.refresh(admin)
    return admin


def create_member_in_db(
    db: Session,
    *,
    first_name: str = "Alice",
    last_name: str = "Smith",
    email: str | None = None,
    username: str | None = None,
    password: str | None = None,
    application_status: ApplicationStatus = ApplicationStatus.APPROVED,
    member_status: MemberStatus = MemberStatus.ACTIVE,
    renewal_date: datetime | None = None,
) -> Member:
    member = Member(
        first_name=first_name,
        last_name=last_name,
        application_status=application_status,
        member_status=member_status,
        renewal_date=renewal_date if renewal_date is not None else utcnow() + timedelta(days=180),
    )
    db.add(member)
    db.flush()

    db.add(
        MemberContactDetails(
            member_id=member.id,
            email=email or f"{first_name.lower()}.{uuid.uuid4().hex[:6]}@test.com",
            phone="+267 7100 0000",
        )
    )
    if username is not None:
        create_credential(db, member.id, username, password)

    db.commit()
    db.refresh(member)
    return member


def login_admin(client, identifier: str, password: str = "AdminPassw0rd!") -> str:
    res = client.post("/api/admin/login", json={"identifier": identifier, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["data"]["token"]


def login_member(client, identifier: str, password: str) -> str:
    res = client.post("/api/member/login", json={"identifier": identifier, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["token"]


def setup_super_admin(client, db: Session) -> dict:
    """
    SUPER_ADMIN 계정 + 세션 토큰 세팅
    """
    admin = create_admin_in_db(db, role=AdminRole.SUPER_ADMIN)
    token = login_admin(client, admin.username)
    return {"admin": admin, "admin_id": admin.id, "username": admin.username, "token": token}
