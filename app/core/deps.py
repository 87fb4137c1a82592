"""
deps.py

FastAPI 의존성(Depends) 모음.

- get_db              : 요청 단위 DB 세션 (app.state.database 핸들에서 생성)
- get_recorder        : 감사/활동 기록기 (app.state.recorder)
- get_principal_cache : 인증 주체 캐시 (app.state.principal_cache)
- get_current_admin / get_current_member : 세션 토큰 -> Principal
- require_role(min_role)                 : 역할 순위 비교
- require_permission(resource, action)   : 정책 표 + 허용 목록 검사

인증 실패는 Unauthenticated(401), 권한 부족은 Forbidden(403) 으로 올리고
app.main 의 공통 예외 핸들러가 응답으로 변환한다.

"""

from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.cache import PrincipalCache
from app.core.errors import Forbidden, Unauthenticated
from app.core.policy import Principal, authorize, has_grant, required_role
from app.core.security import KIND_ADMIN, KIND_MEMBER
from app.db.session import Database
from app.models.admin import AdminRole
from app.services.admin_log import AuditRecorder
from app.services.gate import authenticate

# Swagger Authorize에서 "Bearer 토큰" 입력받는 스키마
bearer_scheme = HTTPBearer(auto_error=False)


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)) -> Generator[Session, None, None]:
    db = database.session()
    try:
        yield db
    finally:
        db.close()


def get_recorder(request: Request) -> AuditRecorder:
    return request.app.state.recorder


def get_principal_cache(request: Request) -> Optional[PrincipalCache]:
    return getattr(request.app.state, "principal_cache", None)


def get_bearer_token(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if cred is None or not cred.credentials:
        raise Unauthenticated()
    return cred.credentials


def get_current_admin(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
) -> Principal:
    return authenticate(db, token, cache=cache, kind=KIND_ADMIN)


def get_current_member(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    cache: Optional[PrincipalCache] = Depends(get_principal_cache),
) -> Principal:
    return authenticate(db, token, cache=cache, kind=KIND_MEMBER)


def _role_name(role: Optional[AdminRole]) -> Optional[str]:
    return role.value if role is not None else None


def require_role(min_role: AdminRole):
    def _checker(principal: Principal = Depends(get_current_admin)) -> Principal:
        if not authorize(principal, min_role):
            raise Forbidden(
                f"Requires role >= {min_role.value}",
                required=min_role.value,
                current=_role_name(principal.role),
            )
        return principal
    return _checker


"""
정책 표 기반 권한 검사 의존성

- 라우터 정의 시점에 (resource, action) 을 정책 표에서 조회 (없으면 import 시 KeyError)
- 역할 순위가 부족하면 Forbidden(required / current 포함)
- super_admin 이 아니면 admin_permissions 허용 목록도 확인

"""

def require_permission(resource: str, action: str):
    min_role = required_role(resource, action)

    def _checker(principal: Principal = Depends(get_current_admin)) -> Principal:
        if not authorize(principal, min_role):
            raise Forbidden(
                f"Requires role >= {min_role.value}",
                required=min_role.value,
                current=_role_name(principal.role),
            )
        if principal.role != AdminRole.SUPER_ADMIN and not has_grant(principal.permissions, resource, action):
            raise Forbidden(
                f"Missing permission: {resource}.{action}",
                required=min_role.value,
                current=_role_name(principal.role),
            )
        return principal
    return _checker


