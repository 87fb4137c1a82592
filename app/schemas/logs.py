import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from app.models.admin_log import ActivityPriority, AuditStatus


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    admin_id: uuid.UUID | None = None
    admin_username: str | None = None
    action: str
    resource_type: str
    resource_id: str | None = None
    old_values: Any = None
    new_values: Any = None
    ip_address: str | None = None
    user_agent: str | None = None
    status: AuditStatus
    details: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class ActivityResponse(BaseModel):
    id: uuid.UUID
    activity_type: str
    title: str
    message: str
    priority: ActivityPriority
    related_entity: str | None = None
    related_id: str | None = None
    admin_id: uuid.UUID | None = None
    details: Any = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
