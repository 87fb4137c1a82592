import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.admin import AdminRole
from app.schemas.auth import CamelModel, NewPassword


class AdminCreateRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=255)
    email: EmailStr
    password: NewPassword
    role: AdminRole = AdminRole.ADMIN
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    phone: str | None = None

class RoleUpdate(BaseModel):
    role: AdminRole

class AdminStatusUpdate(CamelModel):
    is_active: bool = Field(..., alias="isActive")

class PermissionItem(BaseModel):
    resource: str = Field(..., min_length=1, max_length=100)
    action: str = Field(..., min_length=1, max_length=100)
    allowed: bool = True

class PermissionsUpdate(BaseModel):
    permissions: list[PermissionItem]

class AdminPasswordReset(CamelModel):
    new_password: NewPassword = Field(..., alias="newPassword")


# 관리자 응답용 (비밀번호 해시 / salt 제외)
class AdminResponse(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    role: AdminRole
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)  # SQLAlchemy → Pydantic 변환
