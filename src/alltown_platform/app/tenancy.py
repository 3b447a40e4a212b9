"""Tenant context resolution: map an inbound request to a tenant id."""

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from alltown_platform.app.config import get_settings
from alltown_platform.domain.models import Tenant
from alltown_platform.infra.database import get_db
from alltown_platform.services.errors import NotFoundError

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"


def _normalize_host(host: str) -> str:
    return host.split(":", 1)[0].strip().lower().rstrip(".")


async def resolve_tenant_id(
    db: AsyncSession,
    host: str | None,
    explicit_tenant_id: str | None = None,
) -> str:
    """Resolve a tenant id.

    Precedence: explicit header, custom domain, ``<sub>.<root_domain>``,
    then the configured default tenant.
    """
    settings = get_settings()

    if explicit_tenant_id:
        result = await db.execute(
            select(Tenant).where(Tenant.id == explicit_tenant_id, Tenant.is_active.is_(True))
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError(f"Tenant {explicit_tenant_id} not found")
        return explicit_tenant_id

    host = _normalize_host(host or "")
    if host:
        result = await db.execute(
            select(Tenant.id).where(Tenant.custom_domain == host, Tenant.is_active.is_(True))
        )
        tenant_id = result.scalar_one_or_none()
        if tenant_id:
            return tenant_id

        root = settings.root_domain.lower()
        if host.endswith("." + root):
            subdomain = host[: -len(root) - 1]
            if subdomain and subdomain != "www":
                result = await db.execute(
                    select(Tenant.id).where(
                        Tenant.subdomain == subdomain, Tenant.is_active.is_(True)
                    )
                )
                tenant_id = result.scalar_one_or_none()
                if tenant_id:
                    return tenant_id
                logger.debug("No tenant for subdomain %s, using default", subdomain)

    return settings.default_tenant_id


async def get_tenant_id(request: Request, db: AsyncSession = Depends(get_db)) -> str:
    """Dependency: the tenant id for this request."""
    try:
        tenant_id = await resolve_tenant_id(
            db,
            request.headers.get("host"),
            request.headers.get(TENANT_HEADER),
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    request.state.tenant_id = tenant_id
    return tenant_id
