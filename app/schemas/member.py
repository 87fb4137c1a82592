import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.member import ApplicationStatus, MemberStatus
from app.schemas.auth import CamelModel


class ApplicationDecisionRequest(CamelModel):
    status: Literal["approved", "rejected"]
    review_comment: str | None = Field(None, alias="reviewComment")

class MemberStatusUpdate(BaseModel):
    status: MemberStatus


# 회원 응답용 (자격 증명 제외)
class MemberResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    membership_number: str | None = None
    application_status: ApplicationStatus
    member_status: MemberStatus
    review_comment: str | None = None
    renewal_date: datetime | None = None
    created_at: datetime
    username: str | None = None
    email: str | None = None

    model_config = ConfigDict(from_attributes=True)


# 가입 신청 접수 (공개 API)
class ApplicationCreateRequest(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100, alias="firstName")
    last_name: str = Field(..., min_length=1, max_length=100, alias="lastName")
    email: EmailStr
    phone: str | None = Field(None, max_length=30)
