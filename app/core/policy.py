"""
policy.py

권한(Authorization) 정책 정의 파일.

역할 계층과 "리소스/행위 -> 최소 역할" 정책 표를 한 곳에 모아 두고,
인증 게이트(app.core.deps.require_permission)가 모든 엔드포인트에서
동일한 방식으로 이 표를 조회한다.

주요 기능:
- 역할 순위: 없음(0) < admin(1) < super_admin(2)
- authorize(principal, required_role): 순위 비교
- POLICY: (resource, action) -> 최소 역할
- has_grant: admin_permissions 허용 목록 판정 (행이 없으면 거부)

설계 원칙:
- 엔드포인트마다 역할을 직접 비교하지 않고 이 표만 참조
- 표에 없는 (resource, action) 조합은 프로그래밍 오류로 보고 즉시 KeyError
- super_admin 은 허용 목록 검사를 건너뜀

"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Iterable, Optional, Tuple

from app.models.admin import AdminRole


ROLE_LEVEL = {
    None: 0,
    AdminRole.ADMIN: 1,
    AdminRole.SUPER_ADMIN: 2,
}

# (resource, action, allowed)
Grant = Tuple[str, str, bool]

MANAGE = "manage"


@dataclass(frozen=True)
class Principal:
    """인증된 행위자(회원 또는 관리자)의 요청 단위 스냅샷."""

    id: uuid.UUID
    kind: str
    username: str
    role: Optional[AdminRole] = None
    permissions: FrozenSet[Grant] = field(default_factory=frozenset)
    expires_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role is not None


def rank(role: Optional[AdminRole]) -> int:
    return ROLE_LEVEL[role]


def authorize(principal: Principal, required_role: Optional[AdminRole]) -> bool:
    return rank(principal.role) >= rank(required_role)


POLICY = {
    ("members", "read"): AdminRole.ADMIN,
    ("members", "write"): AdminRole.ADMIN,
    ("applications", "read"): AdminRole.ADMIN,
    ("applications", "write"): AdminRole.ADMIN,
    ("activities", "read"): AdminRole.ADMIN,
    ("audit_logs", "read"): AdminRole.SUPER_ADMIN,
    ("admin_users", "read"): AdminRole.SUPER_ADMIN,
    ("admin_users", "write"): AdminRole.SUPER_ADMIN,
    ("lifecycle", "run"): AdminRole.SUPER_ADMIN,
}

# 신규 관리자 기본 허용 목록
DEFAULT_ADMIN_GRANTS: Tuple[Tuple[str, str], ...] = (
    ("members", MANAGE),
    ("applications", MANAGE),
    ("content", MANAGE),
    ("testimonials", MANAGE),
    ("activities", "read"),
)

# 초기 SUPER_ADMIN 허용 목록 (super_admin 은 검사를 건너뛰지만 강등 시를 대비해 기록)
SUPER_ADMIN_GRANTS: Tuple[Tuple[str, str], ...] = DEFAULT_ADMIN_GRANTS + (
    ("bookings", MANAGE),
    ("backups", MANAGE),
    ("admin_users", MANAGE),
    ("audit_logs", MANAGE),
    ("reports", MANAGE),
    ("settings", MANAGE),
    ("notifications", MANAGE),
    ("lifecycle", MANAGE),
)


def required_role(resource: str, action: str) -> AdminRole:
    return POLICY[(resource, action)]


"""
허용 목록 판정

- 명시적 거부(allowed=False) 행이 하나라도 있으면 거부
- 해당 action 또는 manage 에 대한 허용 행이 있으면 허용
- 아무 행도 없으면 거부 (deny-by-default)

"""

def has_grant(grants: Iterable[Grant], resource: str, action: str) -> bool:
    matched = [allowed for (res, act, allowed) in grants if res == resource and act in (action, MANAGE)]
    if not matched:
        return False
    return all(matched)
