import json
import logging
import uuid

from app.core.logger import JSONFormatter
from app.services.notifications import build_link, send_password_reset_link, send_password_setup_link


def test_build_link_encodes_token():
    link = build_link("/member/setup-password", "a.b+c")
    assert link.endswith("/member/setup-password?token=a.b%2Bc")


def test_links_never_log_the_token(caplog):
    member_id = uuid.uuid4()
    with caplog.at_level(logging.INFO, logger="app.services.notifications"):
        setup = send_password_setup_link(member_id, "alice@test.com", "secret-setup-token")
        reset = send_password_reset_link(uuid.uuid4(), "root@test.com", "secret-reset-token", kind="admin")

    assert "secret-setup-token" in setup
    assert "/admin/reset-password?" in reset
    assert caplog.records
    for record in caplog.records:
        assert "secret" not in record.getMessage()
    assert caplog.records[0].member_id == member_id
    assert hasattr(caplog.records[1], "admin_id")


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "Admin logged in", None, None)
    record.admin_id = uuid.UUID("00000000-0000-0000-0000-000000000001")
    record.action = "admin_login"

    out = json.loads(JSONFormatter().format(record))

    assert out["level"] == "INFO"
    assert out["message"] == "Admin logged in"
    assert out["admin_id"] == "00000000-0000-0000-0000-000000000001"
    assert out["action"] == "admin_login"
    assert "member_id" not in out
