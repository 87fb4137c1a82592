"""
가입 신청 심사 / 회원 관리 테스트.
- 가입 신청 접수 (공개, 중복 이메일 409)
- username 생성 규칙 (asmith -> asmith2)
- 재승인 시 username 유지 + 비밀번호 초기화
- 비밀번호 없는 회원 active 전환 거부 (409)
- 자격 갱신
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.core.errors import InvalidStateTransition
from app.models.admin_log import AdminActivity
from app.models.member import ApplicationStatus, Member, MemberAuthentication, MemberContactDetails, MemberStatus
from app.services.membership import generate_membership_number, generate_username, renew_membership

from tests.helpers import auth_header, create_member_in_db, setup_super_admin


@pytest.fixture()
def setup_links(monkeypatch):
    sent = []
    monkeypatch.setattr(
        "app.routers.members.send_password_setup_link",
        lambda member_id, email, token: sent.append(token),
    )
    return sent


def _pending(db, first_name="Alice", last_name="Smith"):
    return create_member_in_db(
        db,
        first_name=first_name,
        last_name=last_name,
        application_status=ApplicationStatus.PENDING,
        member_status=MemberStatus.PENDING,
    )


def _decide(client, token, member_id, status, comment=None):
    return client.put(
        f"/api/applications/{member_id}/status",
        json={"status": status, "reviewComment": comment},
        headers=auth_header(token),
    )


def test_username_collisions_get_numeric_suffix(client, db, setup_links):
    sa = setup_super_admin(client, db)
    first = _pending(db)
    second = _pending(db)

    r1 = _decide(client, sa["token"], first.id, "approved")
    r2 = _decide(client, sa["token"], second.id, "approved")

    assert r1.json()["data"]["username"] == "asmith"
    assert r2.json()["data"]["username"] == "asmith2"
    assert len(setup_links) == 2


def test_generate_username_candidates(db):
    assert generate_username(db, "John", "Smith") == "jsmith"
    assert generate_username(db, " Mary-Jane ", "O'Neil") == "moneil"
    assert generate_username(db, "", "") == "user"


def test_membership_number_format():
    member_id = uuid.UUID("abcdef12-0000-0000-0000-000000000000")
    number = generate_membership_number(member_id, datetime(2026, 3, 1, tzinfo=timezone.utc))
    assert number == f"{settings.MEMBERSHIP_NUMBER_PREFIX}26ABCDEF"


def test_approval_sets_term_and_pending_setup(client, db, setup_links):
    sa = setup_super_admin(client, db)
    member = _pending(db)
    before = utcnow()

    r = _decide(client, sa["token"], member.id, "approved", "Looks good")
    assert r.status_code == 200, r.text

    db.expire_all()
    approved = db.get(Member, member.id)
    assert approved.application_status == ApplicationStatus.APPROVED
    assert approved.member_status == MemberStatus.PENDING_PASSWORD_SETUP
    assert approved.review_comment == "Looks good"
    assert as_utc(approved.renewal_date) >= before + timedelta(days=settings.MEMBERSHIP_TERM_DAYS)

    auth = db.scalar(select(MemberAuthentication).where(MemberAuthentication.member_id == member.id))
    assert auth.password_hash is None
    assert auth.salt is None


def test_rejection(client, db, setup_links):
    sa = setup_super_admin(client, db)
    member = _pending(db)

    r = _decide(client, sa["token"], member.id, "rejected", "Incomplete documents")
    assert r.status_code == 200
    assert r.json()["data"]["usernameGenerated"] is False
    assert setup_links == []

    db.expire_all()
    rejected = db.get(Member, member.id)
    assert rejected.application_status == ApplicationStatus.REJECTED
    assert db.scalar(select(MemberAuthentication).where(MemberAuthentication.member_id == member.id)) is None


def test_invalid_decision_is_422(client, db):
    sa = setup_super_admin(client, db)
    member = _pending(db)
    assert _decide(client, sa["token"], member.id, "maybe").status_code == 422


def test_reapproval_keeps_username_and_resets_password(client, db, setup_links):
    sa = setup_super_admin(client, db)
    member = create_member_in_db(db, username="asmith", password="Passw0rd!")

    r = _decide(client, sa["token"], member.id, "approved")
    assert r.status_code == 200
    assert r.json()["data"]["username"] == "asmith"

    r = client.post("/api/member/login", json={"identifier": "asmith", "password": "Passw0rd!"})
    assert r.status_code == 401

    r = client.post("/api/member/setup-password", json={"token": setup_links[-1], "password": "Fresh1Passw0rd!"})
    assert r.status_code == 200, r.text
    r = client.post("/api/member/login", json={"identifier": "asmith", "password": "Fresh1Passw0rd!"})
    assert r.status_code == 200


def test_list_applications_defaults_to_pending(client, db):
    sa = setup_super_admin(client, db)
    pending = _pending(db)
    create_member_in_db(db, username="done", password="Passw0rd!")

    r = client.get("/api/applications", headers=auth_header(sa["token"]))
    assert r.status_code == 200
    assert [m["id"] for m in r.json()["data"]] == [str(pending.id)]

    r = client.get("/api/applications", params={"status": "approved"}, headers=auth_header(sa["token"]))
    assert [m["username"] for m in r.json()["data"]] == ["done"]


def test_list_members_by_status(client, db):
    sa = setup_super_admin(client, db)
    create_member_in_db(db, username="active1", password="Passw0rd!")
    create_member_in_db(db, username="susp1", password="Passw0rd!", member_status=MemberStatus.SUSPENDED)
    _pending(db)

    r = client.get("/api/members", headers=auth_header(sa["token"]))
    assert {m["username"] for m in r.json()["data"]} == {"active1", "susp1"}

    r = client.get("/api/members", params={"status": "suspended"}, headers=auth_header(sa["token"]))
    assert [m["username"] for m in r.json()["data"]] == ["susp1"]


def test_activation_without_password_is_409(client, db):
    sa = setup_super_admin(client, db)
    member = create_member_in_db(
        db, username="nopass", password=None, member_status=MemberStatus.PENDING_PASSWORD_SETUP
    )

    r = client.put(f"/api/members/{member.id}/status", json={"status": "active"}, headers=auth_header(sa["token"]))
    assert r.status_code == 409

    db.expire_all()
    assert db.get(Member, member.id).member_status == MemberStatus.PENDING_PASSWORD_SETUP


def test_pending_status_cannot_be_set_directly(client, db):
    sa = setup_super_admin(client, db)
    member = create_member_in_db(db, username="asmith", password="Passw0rd!")

    r = client.put(f"/api/members/{member.id}/status", json={"status": "pending"}, headers=auth_header(sa["token"]))
    assert r.status_code == 409


def test_unknown_member_is_404(client, db):
    sa = setup_super_admin(client, db)
    r = client.put(
        "/api/members/00000000-0000-0000-0000-000000000000/status",
        json={"status": "suspended"},
        headers=auth_header(sa["token"]),
    )
    assert r.status_code == 404


def test_renew_extends_from_current_renewal_date(db):
    now = datetime(2026, 6, 1, tzinfo=timezone.utc)
    future = now + timedelta(days=30)
    member = create_member_in_db(db, username="asmith", password="Passw0rd!", renewal_date=future)

    renewed = renew_membership(db, member.id, now)
    db.commit()

    assert as_utc(renewed.renewal_date) == future + timedelta(days=settings.MEMBERSHIP_TERM_DAYS)


def test_renew_expired_member_reactivates(client, db):
    sa = setup_super_admin(client, db)
    member = create_member_in_db(
        db,
        username="asmith",
        password="Passw0rd!",
        member_status=MemberStatus.EXPIRED,
        renewal_date=utcnow() - timedelta(days=10),
    )
    before = utcnow()

    r = client.post(f"/api/members/{member.id}/renew", headers=auth_header(sa["token"]))
    assert r.status_code == 200, r.text
    assert r.json()["data"]["member_status"] == "active"

    db.expire_all()
    renewed = db.get(Member, member.id)
    assert as_utc(renewed.renewal_date) >= before + timedelta(days=settings.MEMBERSHIP_TERM_DAYS)

    r = client.post("/api/member/login", json={"identifier": "asmith", "password": "Passw0rd!"})
    assert r.status_code == 200


def test_renew_requires_approved_application(db):
    member = create_member_in_db(
        db,
        application_status=ApplicationStatus.REJECTED,
        member_status=MemberStatus.PENDING,
    )
    with pytest.raises(InvalidStateTransition):
        renew_membership(db, member.id)
    db.rollback()


def _apply(client, email="alice@test.com", **overrides):
    body = {"firstName": "Alice", "lastName": "Smith", "email": email, "phone": "+267 7100 0000"}
    body.update(overrides)
    return client.post("/api/applications", json=body)


def test_submitted_application_is_pending_and_listed(client, db):
    r = _apply(client)
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["application_status"] == "pending"
    assert data["member_status"] == "pending"
    assert data["email"] == "alice@test.com"

    db.expire_all()
    member_id = uuid.UUID(data["id"])
    contact = db.scalar(select(MemberContactDetails).where(MemberContactDetails.member_id == member_id))
    assert contact.phone == "+267 7100 0000"
    assert db.scalar(select(MemberAuthentication).where(MemberAuthentication.member_id == member_id)) is None

    activity = db.scalar(select(AdminActivity).where(AdminActivity.activity_type == "new_application"))
    assert activity.related_id == str(member_id)

    sa = setup_super_admin(client, db)
    r = client.get("/api/applications", headers=auth_header(sa["token"]))
    assert [m["id"] for m in r.json()["data"]] == [data["id"]]


def test_duplicate_application_email_is_409(client, db):
    assert _apply(client).status_code == 201
    r = _apply(client, email="Alice@Test.com", firstName="Other")
    assert r.status_code == 409

    db.expire_all()
    assert len(db.scalars(select(Member)).all()) == 1


def test_application_requires_valid_email(client):
    assert _apply(client, email="not-an-email").status_code == 422
    assert _apply(client, firstName="").status_code == 422


def test_submitted_application_can_be_approved(client, db, setup_links):
    member_id = _apply(client).json()["data"]["id"]
    sa = setup_super_admin(client, db)

    r = _decide(client, sa["token"], member_id, "approved")
    assert r.status_code == 200, r.text
    assert r.json()["data"]["username"] == "asmith"
    assert len(setup_links) == 1


def test_rejecting_active_member_revokes_login(client, db):
    sa = setup_super_admin(client, db)
    member = create_member_in_db(db, username="asmith", password="Passw0rd!")
    login = client.post("/api/member/login", json={"identifier": "asmith", "password": "Passw0rd!"})
    token = login.json()["token"]

    r = _decide(client, sa["token"], member.id, "rejected", "Membership withdrawn")
    assert r.status_code == 200, r.text

    db.expire_all()
    rejected = db.get(Member, member.id)
    assert rejected.application_status == ApplicationStatus.REJECTED
    assert rejected.member_status == MemberStatus.PENDING
    auth = db.scalar(select(MemberAuthentication).where(MemberAuthentication.member_id == member.id))
    assert auth.username == "asmith"
    assert auth.password_hash is None

    assert client.get("/api/member/profile", headers=auth_header(token)).status_code == 401
    r = client.post("/api/member/login", json={"identifier": "asmith", "password": "Passw0rd!"})
    assert r.status_code == 401
