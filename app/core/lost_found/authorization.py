# app/core/lost_found/authorization.py
"""
Caller identity resolution for ownership-gated operations.

Resolution order:
1. Bearer token (``Authorization: Bearer ...``) validated by the identity service
2. Session token (cookie) read through the identity service
3. Anonymous (``None``) - not an error; the caller decides what that means
"""
from __future__ import annotations

from typing import Optional

from app.core.lost_found.domain import Animal, CallerCredentials
from app.core.lost_found.ports import IdentityService
from app.infra.logging_config import get_logger

logger = get_logger(__name__)


class AuthorizationResolver:
    def __init__(self, identity: IdentityService) -> None:
        self._identity = identity

    async def resolve_caller_identity(self, credentials: CallerCredentials) -> Optional[str]:
        if credentials.is_empty:
            return None

        if credentials.bearer_token:
            try:
                subject_id = await self._identity.validate_bearer_token(credentials.bearer_token)
            except Exception as exc:
                # Identity service unreachable: fall back to the session below
                logger.warning(f"Bearer token validation failed: {type(exc).__name__}: {exc}")
                subject_id = None
            if subject_id:
                return subject_id
            logger.debug("Bearer token rejected, falling back to session")

        try:
            subject_id = await self._identity.get_session_identity(credentials)
        except Exception as exc:
            logger.warning(f"Session lookup failed: {type(exc).__name__}: {exc}")
            return None

        return subject_id or None

    @staticmethod
    def is_owner(identity: Optional[str], animal: Animal) -> bool:
        return identity is not None and identity == animal.owner_id
