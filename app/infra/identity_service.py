# app/infra/identity_service.py
"""
Identity service client (GoTrue-compatible auth API).

Endpoints used:
- ``GET /auth/v1/user``                 validate an access token (bearer or session)
- ``GET /auth/v1/admin/users/{id}``     look up an owner's email / display name

Error classification:
- 401 / 403 on token validation  -> ``None`` (invalid or expired token)
- 404 on user lookup             -> ``None`` (unknown user)
- anything else                  -> ``IdentityServiceError`` (transport problem)

Callers treat ``IdentityServiceError`` as "identity unknown"; it is never
turned into a 5xx by itself.

HTTP session lifecycle:
- Uses the shared identity session from app.infra.http_client.
- Call close_all_sessions() during application shutdown.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Optional
from urllib.parse import unquote

import aiohttp

from app.core.lost_found.domain import CallerCredentials, OwnerIdentity
from app.infra.http_client import get_identity_session
from app.infra.logging_config import get_logger

logger = get_logger(__name__)

_DISPLAY_NAME_KEYS = ("display_name", "full_name", "name")


class IdentityServiceError(Exception):
    """Identity service unreachable or returned an unexpected response."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(f"Identity service error {status}: {message}")


def session_access_token(raw: str | None) -> str | None:
    """
    Extract the access token from a session cookie value.

    Accepts either the bare JWT or the JSON-array form
    ``["<access_token>", "<refresh_token>", ...]`` (optionally URL-encoded).
    """
    if not raw:
        return None
    value = unquote(raw).strip()
    if value.startswith("["):
        try:
            parts = json.loads(value)
        except ValueError:
            return None
        if isinstance(parts, list) and parts and isinstance(parts[0], str):
            return parts[0] or None
        return None
    return value or None


def _to_identity(payload: dict[str, Any]) -> Optional[OwnerIdentity]:
    user_id = payload.get("id")
    if not user_id:
        return None
    metadata = payload.get("user_metadata") or {}
    display_name = None
    for key in _DISPLAY_NAME_KEYS:
        candidate = metadata.get(key)
        if isinstance(candidate, str) and candidate.strip():
            display_name = candidate.strip()
            break
    return OwnerIdentity(
        id=str(user_id),
        email=payload.get("email") or None,
        display_name=display_name,
    )


class HttpIdentityService:
    """aiohttp client for the identity service."""

    def __init__(
        self,
        base_url: str | None,
        service_key: str | None = None,
        *,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._service_key = service_key
        self._timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self._base_url)

    def _headers(self, token: str) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {token}"}
        if self._service_key:
            headers["apikey"] = self._service_key
        return headers

    async def _get_json(self, path: str, token: str) -> tuple[int, Any]:
        url = f"{self._base_url}{path}"
        session = get_identity_session(self._timeout_seconds)
        try:
            async with session.get(url, headers=self._headers(token)) as resp:
                if resp.status != 200:
                    return resp.status, None
                return resp.status, await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise IdentityServiceError(0, f"{type(exc).__name__}: {exc}") from exc

    async def validate_bearer_token(self, token: str) -> Optional[str]:
        identity = await self._user_for_token(token)
        return identity.id if identity else None

    async def get_session_identity(self, credentials: CallerCredentials) -> Optional[str]:
        token = session_access_token(credentials.session_token)
        if not token:
            return None
        identity = await self._user_for_token(token)
        return identity.id if identity else None

    async def _user_for_token(self, token: str) -> Optional[OwnerIdentity]:
        if not self.enabled or not token:
            return None

        status, payload = await self._get_json("/auth/v1/user", token)
        if status in (401, 403):
            logger.debug(f"Identity token rejected: status={status}")
            return None
        if status != 200 or not isinstance(payload, dict):
            raise IdentityServiceError(status, "token validation failed")
        return _to_identity(payload)

    async def lookup_user_by_id(self, user_id: str) -> Optional[OwnerIdentity]:
        if not self.enabled or not self._service_key:
            logger.debug("Owner lookup skipped: identity service key not configured")
            return None

        status, payload = await self._get_json(f"/auth/v1/admin/users/{user_id}", self._service_key)
        if status == 404:
            return None
        if status != 200 or not isinstance(payload, dict):
            raise IdentityServiceError(status, "user lookup failed")
        return _to_identity(payload)
