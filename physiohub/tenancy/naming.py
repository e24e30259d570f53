"""
Tenant schema naming.

A tenant's schema name is a pure function of its id: the configured prefix
followed by the canonical UUID with dashes replaced by underscores. UUIDs
never contain underscores, so the mapping is collision-free and can be
recomputed anywhere without a lookup table.

Schema names are never built from user input. ``validate_schema_name`` is
the gate every SQL-facing helper goes through before an identifier reaches
the database.
"""

import re
import uuid

from physiohub.config import settings
from physiohub.exceptions import InvalidSchemaNameError

# PostgreSQL truncates identifiers at 63 bytes
_MAX_IDENTIFIER_LENGTH = 63

_SLUG_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")


def _schema_re(prefix: str) -> re.Pattern:
    return re.compile(rf"^{re.escape(prefix)}[0-9a-f]{{8}}(?:_[0-9a-f]{{4}}){{3}}_[0-9a-f]{{12}}$")


def schema_name_for(tenant_id: str, prefix: str | None = None) -> str:
    """
    Derive the schema name of a tenant from its id.

    Raises:
        InvalidSchemaNameError: if ``tenant_id`` is not a UUID
    """
    prefix = settings.tenant_schema_prefix if prefix is None else prefix
    try:
        canonical = str(uuid.UUID(str(tenant_id)))
    except (ValueError, AttributeError, TypeError):
        raise InvalidSchemaNameError(f"{prefix}{tenant_id}")
    name = prefix + canonical.replace("-", "_")
    return validate_schema_name(name, prefix=prefix)


def validate_schema_name(name: str, prefix: str | None = None) -> str:
    """Return ``name`` unchanged if it is a well-formed tenant schema name."""
    prefix = settings.tenant_schema_prefix if prefix is None else prefix
    if not isinstance(name, str) or len(name) > _MAX_IDENTIFIER_LENGTH or not _schema_re(prefix).match(name):
        raise InvalidSchemaNameError(str(name))
    return name


def is_valid_slug(value: str | None) -> bool:
    """URL-safe slug: lowercase letters, digits and inner hyphens."""
    return bool(value) and bool(_SLUG_RE.match(value))
