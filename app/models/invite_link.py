"""
InviteLink ORM model.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ColumnElement,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    and_,
    func,
    or_,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, UUIDMixin
from app.models.member import OrgRole

if TYPE_CHECKING:
    from app.models.organization import Organization
    from app.models.user import User


class InviteLink(Base, UUIDMixin):
    """
    Shareable, bounded-use, expiring link granting membership at a fixed role.

    ``token`` is random hex and never the primary key, so link ids cannot be
    enumerated into working invitations. Revocation is a soft delete.
    """

    __tablename__ = "invite_links"
    __table_args__ = (
        CheckConstraint("use_count >= 0", name="use_count_non_negative"),
        CheckConstraint(
            "max_uses IS NULL OR use_count <= max_uses",
            name="use_count_within_max",
        ),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_by_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    role: Mapped[OrgRole] = mapped_column(
        Enum(OrgRole, name="org_role"), nullable=False, default=OrgRole.member
    )
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    use_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="invite_links"
    )
    created_by: Mapped[User] = relationship("User")

    @classmethod
    def usable_at(cls, now: datetime) -> ColumnElement[bool]:
        """Not revoked and not expired."""
        return and_(cls.revoked_at.is_(None), cls.expires_at > now)

    @classmethod
    def redeemable_at(cls, now: datetime) -> ColumnElement[bool]:
        """Usable and still under its use limit, evaluated against current row values."""
        return and_(
            cls.usable_at(now),
            or_(cls.max_uses.is_(None), cls.use_count < cls.max_uses),
        )

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.use_count >= self.max_uses

    def __repr__(self) -> str:
        return f"<InviteLink id={self.id} org_id={self.org_id} uses={self.use_count}/{self.max_uses}>"
