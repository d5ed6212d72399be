"""Bearer token authentication and tenant/role authorization."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import AuthenticationError, PermissionDeniedError

JWT_SECRET_ENV = "JWT_SECRET"
ACCESS_TOKEN_EXPIRE_MINUTES_ENV = "ACCESS_TOKEN_EXPIRE_MINUTES"
DEFAULT_ACCESS_TOKEN_MINUTES = 8 * 60

bearer_scheme = HTTPBearer(auto_error=False)


class SecurityConfigurationError(RuntimeError):
    """Raised when mandatory security settings are missing or invalid."""


class Role(str, Enum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    CONTRIBUTOR = "Contributor"
    SUPER_ADMIN = "SuperAdmin"


EDITOR_ROLES = frozenset({Role.ADMIN, Role.MANAGER})


@dataclass(frozen=True)
class Identity:
    """Claims carried by an access token."""

    subject: str
    role: Role
    tenant_id: Optional[str] = None


@dataclass(frozen=True)
class TenantIdentity:
    """An identity that is guaranteed to be scoped to one tenant."""

    subject: str
    role: Role
    tenant_id: str

    @property
    def can_edit(self) -> bool:
        return self.role in EDITOR_ROLES


@lru_cache(maxsize=1)
def _signing_key() -> bytes:
    """HMAC key from ``JWT_SECRET``; base64url secrets are decoded first."""

    secret = os.getenv(JWT_SECRET_ENV)
    if not secret:
        raise SecurityConfigurationError(f"Environment variable '{JWT_SECRET_ENV}' is required")
    try:
        return base64.urlsafe_b64decode(secret)
    except (ValueError, binascii.Error):
        return secret.encode("utf-8")


def _to_segment(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _from_segment(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _json_segment(document: dict[str, Any]) -> str:
    return _to_segment(json.dumps(document, separators=(",", ":")).encode("utf-8"))


def _signature(key: bytes, header: str, body: str) -> bytes:
    return hmac.new(key, f"{header}.{body}".encode("ascii"), hashlib.sha256).digest()


_TOKEN_HEADER = {"typ": "JWT", "alg": "HS256"}


def _sign_claims(claims: dict[str, Any], key: bytes) -> str:
    header = _json_segment(_TOKEN_HEADER)
    body = _json_segment(claims)
    return ".".join((header, body, _to_segment(_signature(key, header, body))))


def _verified_claims(token: str, key: bytes) -> dict[str, Any]:
    parts = token.split(".")
    if len(parts) != 3:
        raise AuthenticationError("Invalid token")
    header, body, signature = parts
    try:
        provided = _from_segment(signature)
        if not hmac.compare_digest(provided, _signature(key, header, body)):
            raise AuthenticationError("Invalid token")
        claims = json.loads(_from_segment(body))
    except (ValueError, binascii.Error, UnicodeError) as exc:
        raise AuthenticationError("Invalid token") from exc

    if not isinstance(claims, dict) or "exp" not in claims:
        raise AuthenticationError("Invalid token")
    try:
        expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError) as exc:
        raise AuthenticationError("Invalid token") from exc
    if expires_at <= datetime.now(timezone.utc):
        raise AuthenticationError("Token expired")
    return claims


def _default_token_lifetime() -> timedelta:
    raw = os.getenv(ACCESS_TOKEN_EXPIRE_MINUTES_ENV, "").strip()
    if not raw:
        return timedelta(minutes=DEFAULT_ACCESS_TOKEN_MINUTES)
    if not raw.lstrip("-").isdigit():
        raise SecurityConfigurationError(f"{ACCESS_TOKEN_EXPIRE_MINUTES_ENV} must be an integer")
    minutes = int(raw)
    if minutes <= 0:
        raise SecurityConfigurationError(f"{ACCESS_TOKEN_EXPIRE_MINUTES_ENV} must be positive")
    return timedelta(minutes=minutes)


def create_access_token(identity: Identity, *, expires_in: Optional[timedelta] = None) -> str:
    """Sign an HS256 token for ``identity``."""

    expiry = datetime.now(timezone.utc) + (expires_in or _default_token_lifetime())
    claims: dict[str, Any] = {
        "sub": identity.subject,
        "role": identity.role.value,
        "exp": int(expiry.timestamp()),
    }
    if identity.tenant_id:
        claims["tenantId"] = identity.tenant_id
    return _sign_claims(claims, _signing_key())


def decode_access_token(token: str) -> Identity:
    claims = _verified_claims(token, _signing_key())
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthenticationError("Invalid token")
    try:
        role = Role(claims.get("role"))
    except ValueError as exc:
        raise AuthenticationError("Invalid token") from exc
    tenant_id = claims.get("tenantId")
    if tenant_id is not None and not isinstance(tenant_id, str):
        raise AuthenticationError("Invalid token")
    return Identity(subject=subject, role=role, tenant_id=tenant_id or None)


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing Authorization header")
    return decode_access_token(credentials.credentials.strip())


def require_tenant(identity: Identity = Depends(get_current_identity)) -> TenantIdentity:
    """FastAPI dependency that only admits tenant-scoped tokens."""

    if not identity.tenant_id or identity.role is Role.SUPER_ADMIN:
        raise PermissionDeniedError("Tenant-scoped token required")
    return TenantIdentity(
        subject=identity.subject, role=identity.role, tenant_id=identity.tenant_id
    )


def require_editor(identity: TenantIdentity = Depends(require_tenant)) -> TenantIdentity:
    """Contributors can only read; mutations need Admin or Manager."""

    if not identity.can_edit:
        raise PermissionDeniedError("Admin or Manager access required")
    return identity
