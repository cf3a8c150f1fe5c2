from fpcp.models.email_preference import EmailPreference, preference_enabled
from fpcp.models.email_queue import EmailStatus, QueuedEmail, TemplateType
from fpcp.models.profile import Profile, UserRole
from fpcp.models.project import Project, ProjectStatus
from fpcp.models.project_member import MemberStatus, ProjectMember

__all__ = [
    "EmailPreference",
    "EmailStatus",
    "MemberStatus",
    "Profile",
    "Project",
    "ProjectMember",
    "ProjectStatus",
    "QueuedEmail",
    "TemplateType",
    "UserRole",
    "preference_enabled",
]
