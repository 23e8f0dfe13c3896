# app/core/lost_found/ports.py
from __future__ import annotations
from datetime import datetime
from typing import Protocol, Optional

from app.core.lost_found.domain import (
    Animal,
    CallerCredentials,
    ContactPreferences,
    OwnerIdentity,
)
from app.core.lost_found.templates import RenderedMessage


# ============================================================================
# ASYNC PROTOCOLS
# ============================================================================

class AnimalRepository(Protocol):
    async def get_animal_by_id(self, animal_id: str) -> Optional[Animal]: ...
    async def set_lost_mode(
        self,
        animal_id: str,
        lost: bool,
        *,
        now: datetime,
        lost_message: Optional[str] = None,
        last_seen_location: Optional[str] = None,
    ) -> tuple[bool, Animal]:
        """
        Atomically read the stored lost_mode and write the new lost/found
        columns.  Returns (previous lost_mode, updated animal); raises
        NotFoundError for an unknown id.
        """
        ...


class ContactPreferencesStore(Protocol):
    async def get_by_animal_id(self, animal_id: str) -> Optional[ContactPreferences]: ...


class IdentityService(Protocol):
    async def validate_bearer_token(self, token: str) -> Optional[str]:
        """
        Subject id for a valid token, None for an invalid/expired one.
        Raises only on transport problems.
        """
        ...

    async def get_session_identity(self, credentials: CallerCredentials) -> Optional[str]: ...

    async def lookup_user_by_id(self, user_id: str) -> Optional[OwnerIdentity]: ...


class DeliveryChannel(Protocol):
    @property
    def name(self) -> str: ...

    def is_configured(self) -> bool: ...

    async def send(self, to: str, message: RenderedMessage) -> None:
        """Deliver one message. Raises on provider failure."""
        ...
