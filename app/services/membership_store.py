"""
Membership data access.

Owns Organization and OrgMember records and the rule that a user
holds at most one membership per organization. Every write path that
creates a membership goes through ``add_member_if_absent``, which relies
on the (user_id, org_id) unique constraint instead of check-then-insert.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Table, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Conflict, InternalError, NotFound, Unavailable
from app.models.member import OrgMember, OrgRole
from app.models.organization import Organization

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewMembership:
    member_id: UUID
    role: OrgRole


class MembershipStore:
    """Data access for tenancy records, bound to one request session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Unit of work
    # -----------------------------------------------------------------------

    @asynccontextmanager
    async def guard(self, operation: str, entity_id: Any = None) -> AsyncIterator[AsyncSession]:
        """
        Translate store failures raised by the enclosed statements.

        Typed failures propagate unchanged. Store timeouts and lost
        connections become ``Unavailable``; other store errors are logged
        with the operation name and entity id and become a generic
        ``InternalError``.
        """
        try:
            yield self.db
        except (PoolTimeoutError, asyncio.TimeoutError, OperationalError) as exc:
            logger.warning(
                "Store unavailable during %s (entity_id=%s): %s",
                operation, entity_id, type(exc).__name__,
            )
            raise Unavailable() from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                logger.warning("Store connection lost during %s (entity_id=%s)", operation, entity_id)
                raise Unavailable() from exc
            logger.exception("Store error during %s (entity_id=%s)", operation, entity_id)
            raise InternalError() from exc
        except SQLAlchemyError as exc:
            logger.exception("Store error during %s (entity_id=%s)", operation, entity_id)
            raise InternalError() from exc

    @asynccontextmanager
    async def atomic(self, operation: str, entity_id: Any = None) -> AsyncIterator[AsyncSession]:
        """
        Run the enclosed statements as one transaction.

        Commits on clean exit. Any exception rolls back every write made
        since the transaction began, then store failures are translated
        as in ``guard``.
        """
        async with self.guard(operation, entity_id):
            try:
                yield self.db
                await self.db.commit()
            except Exception:
                await self._rollback_quietly(operation, entity_id)
                raise

    async def _rollback_quietly(self, operation: str, entity_id: Any) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback failed during %s (entity_id=%s)", operation, entity_id)

    def insert(self, table: Table | type[Any]) -> Any:
        """Dialect-specific INSERT that supports ON CONFLICT DO NOTHING."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite.insert(table)
        return postgresql.insert(table)

    # -----------------------------------------------------------------------
    # Organizations
    # -----------------------------------------------------------------------

    async def get_organization(self, org_id: UUID) -> Organization | None:
        result = await self.db.execute(
            select(Organization).where(Organization.id == org_id)
        )
        return result.scalar_one_or_none()

    async def resolve_org_id(self, slug: str) -> UUID | None:
        result = await self.db.execute(
            select(Organization.id).where(Organization.slug == slug)
        )
        return result.scalar_one_or_none()

    async def insert_organization(self, name: str, slug: str) -> UUID | None:
        """Insert unless the slug is taken. Returns None on slug conflict."""
        stmt = (
            self.insert(Organization)
            .values(id=uuid4(), name=name, slug=slug)
            .on_conflict_do_nothing(index_elements=["slug"])
            .returning(Organization.id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_organization(self, name: str, slug: str, owner_id: UUID) -> Organization:
        """Create an organization and its initial owner in one transaction."""
        async with self.atomic("create_organization", slug):
            org_id = await self.insert_organization(name, slug)
            if org_id is None:
                raise Conflict("Organization slug is already taken", code="SLUG_TAKEN")

            owner = await self.add_member_if_absent(owner_id, org_id, OrgRole.owner)
            if owner is None:
                raise Conflict("Owner membership already exists")

        async with self.guard("create_organization", slug):
            org = await self.get_organization(org_id)
        if org is None:
            raise NotFound("Organization not found", code="ORG_NOT_FOUND")
        return org

    # -----------------------------------------------------------------------
    # Memberships
    # -----------------------------------------------------------------------

    async def get_role(self, user_id: UUID, org_id: UUID) -> OrgRole | None:
        result = await self.db.execute(
            select(OrgMember.role).where(
                OrgMember.user_id == user_id,
                OrgMember.org_id == org_id,
            )
        )
        return result.scalar_one_or_none()

    async def is_member(self, user_id: UUID, org_id: UUID) -> bool:
        result = await self.db.execute(
            select(OrgMember.id)
            .where(
                OrgMember.user_id == user_id,
                OrgMember.org_id == org_id,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def add_member_if_absent(
        self, user_id: UUID, org_id: UUID, role: OrgRole
    ) -> NewMembership | None:
        """
        INSERT ... ON CONFLICT (user_id, org_id) DO NOTHING RETURNING.

        Returns None when another transaction already created the
        membership, so callers can tell "inserted" from "no-op" without
        re-querying.
        """
        stmt = (
            self.insert(OrgMember)
            .values(id=uuid4(), user_id=user_id, org_id=org_id, role=role)
            .on_conflict_do_nothing(index_elements=["user_id", "org_id"])
            .returning(OrgMember.id, OrgMember.role)
        )
        result = await self.db.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return NewMembership(member_id=row.id, role=OrgRole(row.role))

    async def lookup_role(self, user_id: UUID, org_id: UUID) -> OrgRole | None:
        """``get_role`` with store failures translated, for the authorization gateway."""
        async with self.guard("lookup_role", org_id):
            return await self.get_role(user_id, org_id)
