# Base.metadata 에 모든 테이블을 등록하기 위한 모델 import
from app.models.member import ApplicationStatus, Member, MemberAuthentication, MemberContactDetails, MemberStatus  # noqa: F401
from app.models.admin import Admin, AdminPermission, AdminRole, AdminSession  # noqa: F401
from app.models.admin_log import ActivityPriority, AdminActivity, AdminAuditLog, AuditStatus  # noqa: F401
