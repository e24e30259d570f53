"""
Tenant resolution.

A request names its tenant through one of four sources, tried in order:

  1. subdomain of the Host header     (acme.physiohub.com)
  2. X-Tenant-Slug header             (API clients)
  3. ?tenant= query parameter         (development and tests)
  4. {tenantSlug} path parameter      (routes that carry the tenant in the URL)

The first source yielding a well-formed slug wins; a malformed candidate is
ignored and the next source is tried. The candidate is matched against both
the slug and the subdomain of directory entries. Resolution fails closed:
no candidate, no match and a non-accessible status are all errors.
"""

import ipaddress
import logging

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from physiohub.config import Settings, settings
from physiohub.exceptions import TenantInactiveError, TenantNotFoundError, TenantNotIdentifiedError
from physiohub.schemas.tenant import TenantInfo
from physiohub.services.tenant_service import get_tenant_by_slug, touch_activity
from physiohub.tenancy.naming import is_valid_slug
from physiohub.utils.background import spawn

logger = logging.getLogger(__name__)

SOURCE_SUBDOMAIN = "subdomain"
SOURCE_HEADER = "header"
SOURCE_QUERY = "query"
SOURCE_PATH = "path"


def _slug_from_host(host: str | None, reserved: frozenset[str]) -> str | None:
    """
    Extract the tenant slug from the first label of the host.

    Examples:
        "acme.physiohub.com:8080" -> "acme"
        "www.physiohub.com"       -> None (reserved)
        "physiohub.com"           -> None (fewer than three labels)
        "10.0.0.12"               -> None (IP literal)
    """
    if not host:
        return None
    hostname = host.split(":")[0].strip().lower().rstrip(".")
    try:
        ipaddress.ip_address(hostname)
        return None
    except ValueError:
        pass
    labels = hostname.split(".")
    if len(labels) < 3 or any(not label for label in labels):
        return None
    first = labels[0]
    if first in reserved or not is_valid_slug(first):
        return None
    return first


class TenantResolver:
    """Maps an incoming request to the tenant it targets."""

    def __init__(self, config: Settings = settings):
        self.header = config.tenant_header
        self.query_param = config.tenant_query_param
        self.path_param = config.tenant_path_param
        self.reserved = frozenset(s.lower() for s in config.reserved_subdomains)

    def extract_candidate(self, request: Request) -> tuple[str, str] | None:
        """Return ``(slug, source)`` for the highest-priority usable signal, or None."""
        slug = _slug_from_host(request.headers.get("host"), self.reserved)
        if slug:
            return slug, SOURCE_SUBDOMAIN

        candidates = (
            (request.headers.get(self.header), SOURCE_HEADER),
            (request.query_params.get(self.query_param), SOURCE_QUERY),
            (request.path_params.get(self.path_param), SOURCE_PATH),
        )
        for value, source in candidates:
            if value is None:
                continue
            value = value.strip().lower()
            if is_valid_slug(value):
                return value, source
            logger.debug("Ignoring malformed tenant %s value: %r", source, value)
        return None

    async def resolve(self, request: Request, db: AsyncSession) -> TenantInfo:
        """
        Resolve the request's tenant.

        Raises:
            TenantNotIdentifiedError: no source carried a usable slug
            TenantNotFoundError: no tenant has that slug or subdomain
            TenantInactiveError: the tenant exists but may not be accessed
        """
        candidate = self.extract_candidate(request)
        if candidate is None:
            raise TenantNotIdentifiedError()
        return await self._lookup(request, db, *candidate)

    async def resolve_optional(self, request: Request, db: AsyncSession) -> TenantInfo | None:
        """Like ``resolve`` but returns None when the request names no tenant at all."""
        candidate = self.extract_candidate(request)
        if candidate is None:
            return None
        return await self._lookup(request, db, *candidate)

    async def _lookup(self, request: Request, db: AsyncSession, slug: str, source: str) -> TenantInfo:
        tenant = await get_tenant_by_slug(slug, db)
        if tenant is None:
            logger.info("Tenant '%s' not found (source=%s)", slug, source)
            raise TenantNotFoundError(slug)

        if not tenant.is_accessible:
            tenant_status = tenant.status if tenant.is_active else "inactive"
            logger.info("Tenant '%s' rejected with status %s", slug, tenant_status)
            raise TenantInactiveError(slug, tenant_status)

        info = TenantInfo.from_tenant(tenant)
        database = getattr(request.app.state, "tenant_db", None)
        if database is not None:
            spawn(touch_activity(tenant.id, database), f"last_activity_at for tenant {tenant.id}")

        logger.debug("Resolved tenant %s via %s", info.slug, source)
        return info
