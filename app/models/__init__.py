"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from app.models.base import Base, TimestampMixin, UUIDMixin
from app.models.member import OrgMember, OrgRole
from app.models.organization import Organization
from app.models.user import User
from app.models.invite_link import InviteLink
from app.models.join_request import JoinRequest, JoinRequestStatus
from app.models.job import Job, JobStatus
from app.models.candidate import Candidate
from app.models.application import Application, ApplicationStatus
from app.models.activity_log import ActivityLog

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "Organization",
    "User",
    "OrgMember",
    "OrgRole",
    "InviteLink",
    "JoinRequest",
    "JoinRequestStatus",
    "Job",
    "JobStatus",
    "Candidate",
    "Application",
    "ApplicationStatus",
    "ActivityLog",
]
