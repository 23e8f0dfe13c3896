# app/infra/memory_store.py
"""
In-memory implementations of the lost/found collaborators.

Used for ``STORAGE_BACKEND=memory`` (local development) and in tests.
State lives in plain dicts; nothing survives a restart.
"""
from __future__ import annotations

import asyncio
import dataclasses
from datetime import datetime
from typing import Iterable, Optional

from app.core.lost_found.domain import (
    Animal,
    CallerCredentials,
    ContactPreferences,
    OwnerIdentity,
    lost_mode_fields,
)
from app.core.lost_found.errors import NotFoundError


class InMemoryAnimalRepository:
    def __init__(self, animals: Iterable[Animal] = ()) -> None:
        self._animals: dict[str, Animal] = {a.id: a for a in animals}
        self._lock = asyncio.Lock()

    def add(self, animal: Animal) -> None:
        self._animals[animal.id] = animal

    async def get_animal_by_id(self, animal_id: str) -> Optional[Animal]:
        return self._animals.get(animal_id)

    async def set_lost_mode(
        self,
        animal_id: str,
        lost: bool,
        *,
        now: datetime,
        lost_message: Optional[str] = None,
        last_seen_location: Optional[str] = None,
    ) -> tuple[bool, Animal]:
        async with self._lock:
            current = self._animals.get(animal_id)
            if current is None:
                raise NotFoundError("Animal not found")
            previous_lost = bool(current.lost_mode)
            fields = lost_mode_fields(
                previous_lost, lost, now,
                lost_message=lost_message,
                last_seen_location=last_seen_location,
            )
            updated = dataclasses.replace(current, **fields)
            self._animals[animal_id] = updated
            return previous_lost, updated


class InMemoryContactPreferencesStore:
    def __init__(self, preferences: Iterable[ContactPreferences] = ()) -> None:
        self._prefs: dict[str, ContactPreferences] = {p.animal_id: p for p in preferences}

    def put(self, prefs: ContactPreferences) -> None:
        self._prefs[prefs.animal_id] = prefs

    async def get_by_animal_id(self, animal_id: str) -> Optional[ContactPreferences]:
        return self._prefs.get(animal_id)


class InMemoryIdentityService:
    """
    Token -> user id map plus a user directory.

    Bearer and session tokens share the same map.
    """

    def __init__(
        self,
        users: Iterable[OwnerIdentity] = (),
        tokens: dict[str, str] | None = None,
    ) -> None:
        self._users: dict[str, OwnerIdentity] = {u.id: u for u in users}
        self._tokens: dict[str, str] = dict(tokens or {})

    def add_user(self, user: OwnerIdentity, *tokens: str) -> None:
        self._users[user.id] = user
        for token in tokens:
            self._tokens[token] = user.id

    async def validate_bearer_token(self, token: str) -> Optional[str]:
        return self._tokens.get(token)

    async def get_session_identity(self, credentials: CallerCredentials) -> Optional[str]:
        if not credentials.session_token:
            return None
        return self._tokens.get(credentials.session_token)

    async def lookup_user_by_id(self, user_id: str) -> Optional[OwnerIdentity]:
        return self._users.get(user_id)
