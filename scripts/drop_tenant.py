"""
Permanently delete a tenant: its private schema, users, settings and
directory entry. There is no undo.

    python -m scripts.drop_tenant acme
    python -m scripts.drop_tenant acme --confirm-slug acme   # non-interactive
"""

import argparse
import asyncio
import logging
import sys

from physiohub.config import settings
from physiohub.exceptions import PhysioHubError
from physiohub.middleware.logging import setup_structured_logging
from physiohub.services.tenant_service import delete_tenant, get_tenant_by_slug
from physiohub.tenancy.schema_client import TenantDatabase

logger = logging.getLogger("physiohub.scripts.drop_tenant")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Drop a tenant and all of its data")
    parser.add_argument("slug", help="slug of the tenant to delete")
    parser.add_argument(
        "--confirm-slug",
        help="the slug typed a second time; prompted for when omitted",
    )
    return parser.parse_args(argv)


async def drop(slug: str, confirmed: bool) -> int:
    database = TenantDatabase.from_settings(settings)
    try:
        async with database.session() as db:
            tenant = await get_tenant_by_slug(slug, db)
            if tenant is None or tenant.slug != slug:
                logger.error("No tenant with slug '%s'", slug)
                return 1
            name = await delete_tenant(tenant.id, db, database, confirm=confirmed)
        logger.warning("Tenant '%s' (%s) deleted", name, slug)
        return 0
    except PhysioHubError as e:
        logger.error("%s: %s", e.error_code.value, e.message)
        return 1
    finally:
        await database.dispose()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_structured_logging(json_format=False)

    typed = args.confirm_slug
    if typed is None:
        print(f"This permanently deletes tenant '{args.slug}' and ALL of its data.")
        typed = input("Type the tenant slug again to confirm: ").strip()

    if typed != args.slug:
        logger.error("Confirmation did not match; nothing was deleted")
        return 2

    return asyncio.run(drop(args.slug, confirmed=True))


if __name__ == "__main__":
    sys.exit(main())
