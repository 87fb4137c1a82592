from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from app.core.security import BCRYPT_MAX_PASSWORD_BYTES, password_too_long


class CamelModel(BaseModel):
    # 프론트엔드는 camelCase, 파이썬 쪽은 snake_case 모두 허용
    model_config = ConfigDict(populate_by_name=True)


# 새 비밀번호는 bcrypt 입력 한도(72 바이트) 이내여야 함 (문자 수가 아니라 UTF-8 바이트 기준)
def check_password_bytes(value: str) -> str:
    if password_too_long(value):
        raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return value


NewPassword = Annotated[str, Field(min_length=8), AfterValidator(check_password_bytes)]


class MemberLoginRequest(CamelModel):
    identifier: str = Field(..., min_length=1)  # username 또는 이메일
    password: str = Field(..., min_length=1)

class MemberLoginResponse(CamelModel):
    token: str
    member_id: str = Field(serialization_alias="memberId")
    username: str
    full_name: str = Field(serialization_alias="fullName")

class AdminLoginRequest(CamelModel):
    identifier: str = Field(..., min_length=1)  # username 또는 이메일
    password: str = Field(..., min_length=1)

class ForgotPasswordRequest(CamelModel):
    email: EmailStr

class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: NewPassword = Field(..., alias="newPassword")

class SetupPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    password: NewPassword

class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: NewPassword = Field(..., alias="newPassword")
    confirm_password: NewPassword = Field(..., alias="confirmPassword")

