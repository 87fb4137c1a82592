from sqlalchemy import select

from app.models.admin import Admin, AdminPermission, AdminRole, AdminSession
from app.models.admin_log import AdminAuditLog
from app.services.admin import count_super_admins, is_last_super_admin

from tests.helpers import auth_header, create_admin_in_db, login_admin, setup_super_admin


NEW_ADMIN = {
    "username": "newadmin",
    "email": "newadmin@test.com",
    "password": "NewAdminPassw0rd!",
    "firstName": "New",
    "lastName": "Admin",
}


def test_create_admin_with_default_grants(client, db):
    sa = setup_super_admin(client, db)

    r = client.post("/api/admins", json=NEW_ADMIN, headers=auth_header(sa["token"]))
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["username"] == "newadmin"
    assert data["role"] == "admin"
    assert data["first_name"] == "New"
    assert "password_hash" not in data

    db.expire_all()
    created = db.scalar(select(Admin).where(Admin.username == "newadmin"))
    assert created.created_by == sa["admin_id"]
    grants = set(db.execute(
        select(AdminPermission.resource, AdminPermission.action).where(AdminPermission.admin_id == created.id)
    ).all())
    assert ("members", "manage") in grants
    assert ("admin_users", "manage") not in grants

    audit = db.scalar(select(AdminAuditLog).where(AdminAuditLog.action == "create_admin"))
    assert audit.resource_id == str(created.id)
    assert audit.new_values["role"] == "admin"

    assert login_admin(client, "newadmin", "NewAdminPassw0rd!")


def test_create_admin_duplicate_is_409(client, db):
    sa = setup_super_admin(client, db)
    assert client.post("/api/admins", json=NEW_ADMIN, headers=auth_header(sa["token"])).status_code == 201

    r = client.post("/api/admins", json=NEW_ADMIN, headers=auth_header(sa["token"]))
    assert r.status_code == 409


def test_list_admins(client, db):
    sa = setup_super_admin(client, db)
    create_admin_in_db(db, username="other")

    r = client.get("/api/admins", headers=auth_header(sa["token"]))
    assert r.status_code == 200
    assert {a["username"] for a in r.json()["data"]} == {sa["username"], "other"}


def test_cannot_change_own_role_or_status_or_delete_self(client, db):
    sa = setup_super_admin(client, db)
    me = sa["admin_id"]
    headers = auth_header(sa["token"])

    assert client.put(f"/api/admins/{me}/role", json={"role": "admin"}, headers=headers).status_code == 400
    assert client.put(f"/api/admins/{me}/status", json={"isActive": False}, headers=headers).status_code == 400
    assert client.delete(f"/api/admins/{me}", headers=headers).status_code == 400


def test_same_role_is_rejected(client, db):
    sa = setup_super_admin(client, db)
    other = create_admin_in_db(db, username="other")

    r = client.put(f"/api/admins/{other.id}/role", json={"role": "admin"}, headers=auth_header(sa["token"]))
    assert r.status_code == 400


def test_unknown_admin_is_404(client, db):
    sa = setup_super_admin(client, db)
    r = client.put(
        "/api/admins/00000000-0000-0000-0000-000000000000/role",
        json={"role": "super_admin"},
        headers=auth_header(sa["token"]),
    )
    assert r.status_code == 404


def test_demote_other_super_admin_when_two_exist(client, db):
    sa = setup_super_admin(client, db)
    second = create_admin_in_db(db, username="second", role=AdminRole.SUPER_ADMIN)
    assert count_super_admins(db) == 2

    r = client.put(f"/api/admins/{second.id}/role", json={"role": "admin"}, headers=auth_header(sa["token"]))
    assert r.status_code == 200, r.text
    assert r.json()["data"]["role"] == "admin"


def test_last_super_admin_detection(db):
    only = create_admin_in_db(db, username="only", role=AdminRole.SUPER_ADMIN)
    plain = create_admin_in_db(db, username="plain")

    assert is_last_super_admin(db, only)
    assert not is_last_super_admin(db, plain)

    backup = create_admin_in_db(db, username="backup", role=AdminRole.SUPER_ADMIN)
    assert not is_last_super_admin(db, only)

    backup.is_active = False
    db.commit()
    assert is_last_super_admin(db, only)


def test_reactivate_admin(client, db):
    sa = setup_super_admin(client, db)
    other = create_admin_in_db(db, username="other")
    headers = auth_header(sa["token"])

    assert client.put(f"/api/admins/{other.id}/status", json={"isActive": False}, headers=headers).status_code == 200
    r = client.post("/api/admin/login", json={"identifier": "other", "password": "AdminPassw0rd!"})
    assert r.status_code == 403

    assert client.put(f"/api/admins/{other.id}/status", json={"isActive": True}, headers=headers).status_code == 200
    assert login_admin(client, "other")


def test_super_admin_resets_other_password(client, db):
    sa = setup_super_admin(client, db)
    other = create_admin_in_db(db, username="other")
    old_token = login_admin(client, "other")

    r = client.post(
        f"/api/admins/{other.id}/reset-password",
        json={"newPassword": "Fr3shAdminPassw0rd!"},
        headers=auth_header(sa["token"]),
    )
    assert r.status_code == 200, r.text

    assert client.get("/api/admin/profile", headers=auth_header(old_token)).status_code == 401
    assert login_admin(client, "other", "Fr3shAdminPassw0rd!")


def test_delete_admin_revokes_sessions(client, db):
    sa = setup_super_admin(client, db)
    other = create_admin_in_db(db, username="other")
    other_id = other.id
    token = login_admin(client, "other")

    r = client.delete(f"/api/admins/{other_id}", headers=auth_header(sa["token"]))
    assert r.status_code == 200, r.text
    assert r.json()["data"]["username"] == "other"

    assert client.get("/api/admin/profile", headers=auth_header(token)).status_code == 401

    db.expire_all()
    assert db.get(Admin, other_id) is None
    assert db.scalar(select(AdminSession).where(AdminSession.admin_id == other_id)) is None
    assert db.scalar(select(AdminPermission).where(AdminPermission.admin_id == other_id)) is None
