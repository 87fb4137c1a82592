"""
회원 인증 흐름 통합 테스트.
승인 -> 비밀번호 설정 -> 로그인 -> 프로필 -> 재설정 -> 이전 토큰 폐기
"""

import pytest

from app.models.member import ApplicationStatus, MemberAuthentication, MemberStatus

from tests.helpers import auth_header, create_member_in_db, login_member, setup_super_admin


@pytest.fixture()
def outbox(monkeypatch):
    """이메일 대신 링크 토큰을 모아 두는 가짜 발송기"""
    sent = {"setup": [], "reset": []}

    def fake_setup(member_id, email, token):
        sent["setup"].append({"member_id": member_id, "email": email, "token": token})

    def fake_reset(principal_id, email, token, *, kind="member"):
        sent["reset"].append({"principal_id": principal_id, "email": email, "token": token, "kind": kind})

    monkeypatch.setattr("app.routers.members.send_password_setup_link", fake_setup)
    monkeypatch.setattr("app.routers.member_auth.send_password_reset_link", fake_reset)
    return sent


def _approve(client, admin_token, member_id):
    r = client.put(
        f"/api/applications/{member_id}/status",
        json={"status": "approved", "reviewComment": "Welcome"},
        headers=auth_header(admin_token),
    )
    assert r.status_code == 200, r.text
    return r.json()["data"]


def test_full_member_journey(client, db, outbox):
    sa = setup_super_admin(client, db)
    member = create_member_in_db(
        db,
        first_name="Alice",
        last_name="Smith",
        email="alice@test.com",
        application_status=ApplicationStatus.PENDING,
        member_status=MemberStatus.PENDING,
    )

    # 1) 승인 -> username 생성 + 설정 링크 발송
    data = _approve(client, sa["token"], member.id)
    assert data["username"] == "asmith"
    assert data["usernameGenerated"] is True
    assert data["member_status"] == "pending_password_setup"
    assert data["membership_number"].startswith("BSPCP")
    assert len(outbox["setup"]) == 1
    assert outbox["setup"][0]["email"] == "alice@test.com"
    setup_token = outbox["setup"][0]["token"]

    # 2) 비밀번호 설정 전에는 로그인 불가
    r = client.post("/api/member/login", json={"identifier": "asmith", "password": "whatever1"})
    assert r.status_code == 401

    # 3) 비밀번호 설정
    r = client.post("/api/member/setup-password", json={"token": setup_token, "password": "MemberPassw0rd!"})
    assert r.status_code == 200, r.text

    # 같은 설정 토큰은 재사용 불가
    r = client.post("/api/member/setup-password", json={"token": setup_token, "password": "Another1Passw0rd!"})
    assert r.status_code == 400

    # 4) 로그인 (username / 이메일)
    r = client.post("/api/member/login", json={"identifier": "asmith", "password": "MemberPassw0rd!"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["memberId"] == str(member.id)
    assert body["username"] == "asmith"
    assert body["fullName"] == "Alice Smith"
    token = body["token"]

    assert login_member(client, "alice@test.com", "MemberPassw0rd!")

    # 5) 프로필
    r = client.get("/api/member/profile", headers=auth_header(token))
    assert r.status_code == 200
    profile = r.json()["data"]
    assert profile["username"] == "asmith"
    assert profile["email"] == "alice@test.com"
    assert profile["memberStatus"] == "active"


def test_password_reset_revokes_old_tokens(client, db, outbox):
    create_member_in_db(db, email="alice@test.com", username="asmith", password="OldPassw0rd!")
    old_session = login_member(client, "asmith", "OldPassw0rd!")

    r = client.post("/api/member/forgot-password", json={"email": "alice@test.com"})
    assert r.status_code == 200
    assert len(outbox["reset"]) == 1
    reset_token = outbox["reset"][0]["token"]

    r = client.post("/api/member/reset-password", json={"token": reset_token, "newPassword": "NewPassw0rd!"})
    assert r.status_code == 200, r.text

    # 이전 비밀번호 / 이전 세션 / 같은 재설정 토큰 모두 무효
    r = client.post("/api/member/login", json={"identifier": "asmith", "password": "OldPassw0rd!"})
    assert r.status_code == 401
    r = client.get("/api/member/profile", headers=auth_header(old_session))
    assert r.status_code == 401
    r = client.post("/api/member/reset-password", json={"token": reset_token, "newPassword": "Third1Passw0rd!"})
    assert r.status_code == 400

    new_session = login_member(client, "asmith", "NewPassw0rd!")
    r = client.get("/api/member/profile", headers=auth_header(new_session))
    assert r.status_code == 200

    db.expire_all()
    auth = db.query(MemberAuthentication).filter_by(username="asmith").one()
    assert auth.credential_version == 2


def test_forgot_password_same_response_for_unknown_email(client, db, outbox):
    create_member_in_db(db, email="alice@test.com", username="asmith", password="Passw0rd!")

    known = client.post("/api/member/forgot-password", json={"email": "alice@test.com"})
    unknown = client.post("/api/member/forgot-password", json={"email": "nobody@test.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert len(outbox["reset"]) == 1


def test_setup_token_cannot_reset_password(client, db, outbox):
    sa = setup_super_admin(client, db)
    member = create_member_in_db(
        db,
        application_status=ApplicationStatus.PENDING,
        member_status=MemberStatus.PENDING,
    )
    _approve(client, sa["token"], member.id)
    setup_token = outbox["setup"][0]["token"]

    r = client.post("/api/member/reset-password", json={"token": setup_token, "newPassword": "NewPassw0rd!"})
    assert r.status_code == 400


def test_unknown_user_and_wrong_password_look_the_same(client, db):
    create_member_in_db(db, username="asmith", password="Passw0rd!")

    wrong = client.post("/api/member/login", json={"identifier": "asmith", "password": "nope-nope"})
    unknown = client.post("/api/member/login", json={"identifier": "ghost", "password": "nope-nope"})

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_pending_member_login_is_forbidden(client, db):
    create_member_in_db(
        db,
        username="asmith",
        password="Passw0rd!",
        application_status=ApplicationStatus.PENDING,
        member_status=MemberStatus.PENDING,
    )
    r = client.post("/api/member/login", json={"identifier": "asmith", "password": "Passw0rd!"})
    assert r.status_code == 403
    assert r.json()["application_status"] == "pending"


def test_suspension_blocks_existing_session(client, db):
    sa = setup_super_admin(client, db)
    member = create_member_in_db(db, username="asmith", password="Passw0rd!")
    token = login_member(client, "asmith", "Passw0rd!")
    assert client.get("/api/member/profile", headers=auth_header(token)).status_code == 200

    r = client.put(
        f"/api/members/{member.id}/status",
        json={"status": "suspended"},
        headers=auth_header(sa["token"]),
    )
    assert r.status_code == 200, r.text

    r = client.get("/api/member/profile", headers=auth_header(token))
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"


def test_member_token_cannot_reach_admin_api(client, db):
    create_member_in_db(db, username="asmith", password="Passw0rd!")
    token = login_member(client, "asmith", "Passw0rd!")

    r = client.get("/api/admin/profile", headers=auth_header(token))
    assert r.status_code == 401


def test_profile_requires_token(client):
    r = client.get("/api/member/profile")
    assert r.status_code == 401


@pytest.mark.parametrize("password", ["A" * 73, "비밀번호" * 7])
def test_new_password_over_72_bytes_is_422(client, password):
    r = client.post("/api/member/setup-password", json={"token": "anything", "password": password})
    assert r.status_code == 422

    r = client.post("/api/member/reset-password", json={"token": "anything", "newPassword": password})
    assert r.status_code == 422


def test_login_with_password_sharing_first_72_bytes_fails(client, db):
    prefix = "A" * 72
    create_member_in_db(db, username="asmith", password=prefix)

    r = client.post("/api/member/login", json={"identifier": "asmith", "password": prefix + "different"})
    assert r.status_code == 401
    assert login_member(client, "asmith", prefix)
