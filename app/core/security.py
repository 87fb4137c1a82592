"""
security.py

비밀번호 해싱 및 JWT 토큰 발급/검증을 담당하는 보안 유틸리티 모음.

이 파일은 인증(auth) 로직에서 사용하는
저수준(low-level) 보안 기능만을 제공하며,
라우터나 비즈니스 로직은 포함하지 않는다.

주요 기능:
- 비밀번호 해싱 및 검증 (bcrypt, 회원 cost 10 / 관리자 cost 12)
- 용도(purpose)가 지정된 JWT 발급: session / password_reset / password_setup
- JWT 디코딩 및 용도 검증
- 세션 토큰 지문(sha256) 계산

설계 원칙:
- 토큰에 purpose 를 넣어 재설정 토큰을 설정 토큰으로(또는 그 반대로) 재사용하지 못하게 함
- 토큰에 kind(member / admin) 를 넣어 회원 토큰으로 관리자 API 접근 불가
- 토큰에 ver(credential_version) 를 넣어 비밀번호 변경 후 기존 토큰을 폐기 처리
- 시간 기반(exp) 만료는 UTC 기준으로 처리

관련 파일:
- app.core.config        : JWT 시크릿 키 / 만료 / 해시 비용 설정
- app.services.gate      : 세션 토큰을 실제로 검증하는 인증 게이트
- app.services.credentials : 비밀번호 저장/검증

"""

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.clock import utcnow
from app.core.config import settings
from app.core.errors import PasswordTooLong, TokenExpired, TokenMalformed, TokenPurposeMismatch


# bcrypt 기반 비밀번호 해싱 컨텍스트
# deprecated="auto"로 향후 알고리즘 교체 가능하도록 설정

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt 해시 앞 29자: "$2b$" + cost(2) + "$" + salt(22)
_BCRYPT_SALT_PREFIX_LEN = 29


# bcrypt 는 비밀번호의 앞 72 바이트만 사용하므로 그보다 긴 입력은 받지 않는다
BCRYPT_MAX_PASSWORD_BYTES = 72


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES


"""
비밀번호 해싱 함수

- 평문 비밀번호를 bcrypt 해시로 변환 (매번 새로운 salt)
- rounds 미지정 시 회원용 cost 사용
- 72 바이트를 넘는 비밀번호는 PasswordTooLong
- DB에는 해시 값만 저장

"""

def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    if password_too_long(password):
        raise PasswordTooLong()
    handler = pwd_context.handler("bcrypt").using(rounds=rounds or settings.MEMBER_BCRYPT_ROUNDS)
    return handler.hash(password)


# 해시에 포함된 salt 부분만 추출 (조회용 salt 컬럼 값)
def salt_of(password_hash: str) -> str:
    return password_hash[:_BCRYPT_SALT_PREFIX_LEN]


# cost 별 더미 해시 (실제 계정과 같은 cost 로 비교해야 응답 시간이 같아진다)
_dummy_hashes: dict[int, str] = {}


def dummy_hash(rounds: Optional[int] = None) -> str:
    rounds = rounds or settings.MEMBER_BCRYPT_ROUNDS
    if rounds not in _dummy_hashes:
        _dummy_hashes[rounds] = get_password_hash(uuid.uuid4().hex, rounds=rounds)
    return _dummy_hashes[rounds]


# 존재하지 않는 계정 로그인 시도에도 같은 cost 의 해시 비교 비용을 지불하여
# 계정 존재 여부가 응답 시간으로 드러나지 않게 함
def dummy_verify(rounds: Optional[int] = None) -> None:
    pwd_context.verify("dummy-password", dummy_hash(rounds))


"""
비밀번호 검증 함수

- 사용자가 입력한 평문 비밀번호와
  DB에 저장된 해시 값을 비교
- 해시가 없으면(비밀번호 미설정 계정) 더미 검증으로 응답 시간을 맞춘 뒤 False
- 72 바이트를 넘는 입력은 저장될 수 없으므로 더미 검증 후 False
  (앞 72 바이트만 같은 비밀번호가 통과하지 않도록)

"""

def verify_password(plain: str, hashed: Optional[str], rounds: Optional[int] = None) -> bool:
    if not hashed or password_too_long(plain):
        dummy_verify(rounds)
        return False
    return pwd_context.verify(plain, hashed)


TokenPurpose = Literal["session", "password_reset", "password_setup"]
PrincipalKind = Literal["member", "admin"]

PURPOSE_SESSION: TokenPurpose = "session"
PURPOSE_PASSWORD_RESET: TokenPurpose = "password_reset"
PURPOSE_PASSWORD_SETUP: TokenPurpose = "password_setup"

KIND_MEMBER: PrincipalKind = "member"
KIND_ADMIN: PrincipalKind = "admin"


def default_ttl(purpose: TokenPurpose, kind: PrincipalKind) -> timedelta:
    if purpose == PURPOSE_PASSWORD_RESET:
        return timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    if purpose == PURPOSE_PASSWORD_SETUP:
        return timedelta(hours=settings.PASSWORD_SETUP_EXPIRE_HOURS)
    if kind == KIND_ADMIN:
        return timedelta(minutes=settings.ADMIN_SESSION_EXPIRE_MINUTES)
    return timedelta(minutes=settings.MEMBER_SESSION_EXPIRE_MINUTES)


@dataclass(frozen=True)
class TokenClaims:
    subject_id: uuid.UUID
    purpose: str
    kind: str
    version: int
    issued_at: datetime
    expires_at: datetime


"""
JWT 토큰 발급 함수

- subject(sub): 회원/관리자 ID
- purpose     : session / password_reset / password_setup
- kind        : member / admin
- ver         : 발급 시점의 credential_version
- iat / exp   : 발급 / 만료 시각 (UTC timestamp)
- jti         : 같은 초에 발급된 토큰도 서로 다른 값이 되도록 하는 고유 ID

"""

def issue_token(
    subject_id: uuid.UUID | str,
    purpose: TokenPurpose,
    *,
    kind: PrincipalKind,
    version: int = 0,
    ttl: Optional[timedelta] = None,
) -> str:
    now = utcnow()
    expire = now + (ttl if ttl is not None else default_ttl(purpose, kind))
    payload = {
        "sub": str(subject_id),
        "purpose": purpose,
        "kind": kind,
        "ver": version,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


"""
JWT 토큰 검증 함수

- 서명 / 만료 검증
- purpose 가 기대한 용도와 다르면 TokenPurposeMismatch
- kind 가 지정된 경우 다르면 TokenPurposeMismatch
- 구조가 잘못된 경우 TokenMalformed, 만료된 경우 TokenExpired

"""

def verify_token(
    token: str,
    expected_purpose: TokenPurpose,
    *,
    kind: Optional[PrincipalKind] = None,
) -> TokenClaims:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as e:
        raise TokenExpired() from e
    except JWTError as e:
        raise TokenMalformed() from e

    purpose = payload.get("purpose")
    sub = payload.get("sub")
    if not purpose or not sub:
        raise TokenMalformed()

    if purpose != expected_purpose:
        raise TokenPurposeMismatch()
    if kind is not None and payload.get("kind") != kind:
        raise TokenPurposeMismatch()

    try:
        subject_id = uuid.UUID(sub)
        version = int(payload.get("ver", 0))
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError) as e:
        raise TokenMalformed() from e

    return TokenClaims(
        subject_id=subject_id,
        purpose=purpose,
        kind=payload.get("kind", KIND_MEMBER),
        version=version,
        issued_at=issued_at,
        expires_at=expires_at,
    )


# 세션 테이블 / 캐시 키로 사용하는 토큰 지문
def token_fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
