import uuid
from datetime import timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.errors import TokenExpired, TokenMalformed, TokenPurposeMismatch
from app.core.security import (
    KIND_ADMIN,
    KIND_MEMBER,
    PURPOSE_PASSWORD_RESET,
    PURPOSE_PASSWORD_SETUP,
    PURPOSE_SESSION,
    default_ttl,
    issue_token,
    token_fingerprint,
    verify_token,
)


def test_reset_token_round_trip():
    subject = uuid.uuid4()
    token = issue_token(subject, PURPOSE_PASSWORD_RESET, kind=KIND_MEMBER, version=3)

    claims = verify_token(token, PURPOSE_PASSWORD_RESET)
    assert claims.subject_id == subject
    assert claims.purpose == PURPOSE_PASSWORD_RESET
    assert claims.kind == KIND_MEMBER
    assert claims.version == 3
    assert claims.expires_at > claims.issued_at


def test_reset_token_is_not_a_setup_token():
    token = issue_token(uuid.uuid4(), PURPOSE_PASSWORD_RESET, kind=KIND_MEMBER)
    with pytest.raises(TokenPurposeMismatch):
        verify_token(token, PURPOSE_PASSWORD_SETUP)


def test_setup_token_is_not_a_session_token():
    token = issue_token(uuid.uuid4(), PURPOSE_PASSWORD_SETUP, kind=KIND_MEMBER)
    with pytest.raises(TokenPurposeMismatch):
        verify_token(token, PURPOSE_SESSION)


def test_member_session_token_rejected_for_admin_kind():
    token = issue_token(uuid.uuid4(), PURPOSE_SESSION, kind=KIND_MEMBER)
    with pytest.raises(TokenPurposeMismatch):
        verify_token(token, PURPOSE_SESSION, kind=KIND_ADMIN)


def test_expired_token():
    token = issue_token(uuid.uuid4(), PURPOSE_PASSWORD_RESET, kind=KIND_MEMBER, ttl=timedelta(seconds=-5))
    with pytest.raises(TokenExpired):
        verify_token(token, PURPOSE_PASSWORD_RESET)


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
def test_malformed_token(token):
    with pytest.raises(TokenMalformed):
        verify_token(token, PURPOSE_SESSION)


def test_token_signed_with_other_secret_is_malformed():
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "purpose": PURPOSE_SESSION, "kind": KIND_MEMBER, "iat": 0, "exp": 4102444800},
        "some-other-secret",
        algorithm=settings.ALGORITHM,
    )
    with pytest.raises(TokenMalformed):
        verify_token(token, PURPOSE_SESSION)


def test_token_without_purpose_is_malformed():
    token = jwt.encode({"sub": str(uuid.uuid4()), "exp": 4102444800}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    with pytest.raises(TokenMalformed):
        verify_token(token, PURPOSE_SESSION)


def test_default_ttls():
    assert default_ttl(PURPOSE_PASSWORD_RESET, KIND_MEMBER) == timedelta(minutes=60)
    assert default_ttl(PURPOSE_PASSWORD_SETUP, KIND_MEMBER) == timedelta(hours=24)
    assert default_ttl(PURPOSE_SESSION, KIND_ADMIN) == timedelta(minutes=settings.ADMIN_SESSION_EXPIRE_MINUTES)
    assert default_ttl(PURPOSE_SESSION, KIND_MEMBER) == timedelta(minutes=settings.MEMBER_SESSION_EXPIRE_MINUTES)


def test_tokens_issued_in_same_second_differ():
    subject = uuid.uuid4()
    a = issue_token(subject, PURPOSE_SESSION, kind=KIND_ADMIN)
    b = issue_token(subject, PURPOSE_SESSION, kind=KIND_ADMIN)
    assert a != b
    assert token_fingerprint(a) != token_fingerprint(b)
    assert len(token_fingerprint(a)) == 64
