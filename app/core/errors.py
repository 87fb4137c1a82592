"""
errors.py

인증 / 권한 / 저장소 도메인 예외 정의.

서비스 계층은 HTTP 를 모르는 이 예외들만 발생시키고,
라우터 또는 app.main 의 공통 예외 핸들러가 HTTP 응답으로 변환한다.

- detail  : 사용자에게 노출되는 메시지
- context : 응답 바디에 함께 실리는 부가 정보 (예: required / current role)
"""


class IdentityError(Exception):
    status_code = 400
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None, **context):
        self.detail = detail or self.default_detail
        self.context = context
        super().__init__(self.detail)


class NotFound(IdentityError):
    status_code = 404
    default_detail = "Not found"


class InvalidCredentials(IdentityError):
    status_code = 401
    default_detail = "Invalid credentials"


class AccountNotActive(IdentityError):
    status_code = 403
    default_detail = "Account is not active"


class DuplicateUsername(IdentityError):
    status_code = 409
    default_detail = "Username or email already exists"


# 토큰 관련 예외 (비밀번호 재설정/설정 링크는 400, 세션 토큰은 게이트에서 401 로 변환)
class TokenError(IdentityError):
    status_code = 400
    default_detail = "Invalid token"


class TokenExpired(TokenError):
    default_detail = "Token has expired"


class TokenMalformed(TokenError):
    default_detail = "Invalid token"


class TokenPurposeMismatch(TokenError):
    default_detail = "Token is not valid for this operation"


class TokenRevoked(TokenError):
    default_detail = "Token is no longer valid"


class Unauthenticated(IdentityError):
    status_code = 401
    default_detail = "Not authenticated"


class Forbidden(IdentityError):
    status_code = 403
    default_detail = "Insufficient permissions"


class StoreUnavailable(IdentityError):
    status_code = 503
    default_detail = "Store unavailable"


# 허용되지 않는 상태 전이 (예: 비밀번호 없는 회원을 active 로)
class InvalidStateTransition(IdentityError):
    status_code = 409
    default_detail = "Status change is not allowed"


# bcrypt 입력 한도(72 바이트) 초과
class PasswordTooLong(IdentityError):
    status_code = 400
    default_detail = "Password must be at most 72 bytes"


class DuplicateEmail(IdentityError):
    status_code = 409
    default_detail = "An application with this email already exists"
