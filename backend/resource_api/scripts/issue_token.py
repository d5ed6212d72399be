"""CLI utility to provision a tenant and print an access token for it."""

from __future__ import annotations

import argparse
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from .. import models
from ..database import session_scope
from ..security import Identity, Role, create_access_token

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create the tenant if needed and print a bearer token scoped to it."
    )
    parser.add_argument("--tenant", required=True, help="Tenant slug (created when missing)")
    parser.add_argument("--name", default=None, help="Display name for a new tenant")
    parser.add_argument(
        "--role",
        choices=[Role.ADMIN.value, Role.MANAGER.value, Role.CONTRIBUTOR.value],
        default=Role.ADMIN.value,
    )
    parser.add_argument("--subject", default="cli", help="Value of the token's sub claim")
    parser.add_argument(
        "--expires-minutes",
        type=int,
        default=None,
        help="Token lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def provision_tenant(db: Session, slug: str, name: Optional[str] = None) -> models.Tenant:
    """Return the tenant with ``slug``, creating it when it does not exist."""

    tenant = db.query(models.Tenant).filter(models.Tenant.slug == slug).first()
    if tenant is not None:
        LOGGER.debug("Tenant %s already exists", slug)
        return tenant
    tenant = models.Tenant(slug=slug, name=name or slug)
    db.add(tenant)
    db.flush()
    LOGGER.info("Provisioned tenant %s (%s)", slug, tenant.id)
    return tenant


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    with session_scope() as db:
        tenant_id = provision_tenant(db, args.tenant, args.name).id

    expires_in = (
        timedelta(minutes=args.expires_minutes) if args.expires_minutes else None
    )
    token = create_access_token(
        Identity(subject=args.subject, role=Role(args.role), tenant_id=tenant_id),
        expires_in=expires_in,
    )
    print(token)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
