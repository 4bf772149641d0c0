"""Tenant scope and capability checks.

Every engine operation calls ``require_tenant`` first, before any business
computation, and receives an already-resolved tenant identifier. Tenant
discovery belongs to the authentication layer.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.errors import Forbidden, NotFound
from settlement_engine.models import Employee, Tenant


class AuthorizationService:
    """Resolves tenants and actors and enforces administrator capability."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def require_tenant(self, tenant_id: UUID) -> Tenant:
        """Load the tenant or raise NotFound."""
        tenant = await self.session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFound("Tenant", tenant_id)
        return tenant

    async def get_actor(self, tenant_id: UUID, actor_id: UUID | None) -> Employee:
        """Load the acting employee within the tenant.

        An actor from another tenant, or no actor at all, is forbidden rather
        than not-found so that tenant membership is not disclosed.
        """
        if actor_id is None:
            raise Forbidden("An authenticated actor is required")
        result = await self.session.execute(
            select(Employee).where(
                Employee.employee_id == actor_id,
                Employee.tenant_id == tenant_id,
            )
        )
        actor = result.scalar_one_or_none()
        if actor is None or actor.status != "active":
            raise Forbidden(
                "Actor is not an active member of this tenant",
                {"actor_id": str(actor_id), "tenant_id": str(tenant_id)},
            )
        return actor

    async def require_admin(self, tenant_id: UUID, actor_id: UUID | None) -> Employee:
        """Load the actor and require administrator capability."""
        actor = await self.get_actor(tenant_id, actor_id)
        if not actor.is_admin:
            raise Forbidden(
                "Only administrators can approve or settle time entries",
                {"actor_id": str(actor_id), "tenant_id": str(tenant_id)},
            )
        return actor
