# app/infra/pg_animal_repo_async.py
"""
Async PostgreSQL repositories for pets and contact preferences (asyncpg).

Tables (owned by the CRUD layer, read/updated here):
- pets(id uuid, name, owner_user_id, lost_mode, lost_since, last_seen_location, lost_message)
- contact_prefs(pet_id uuid, show_email, show_phone, show_sms, email, phone)

Ids are compared as ``uuid`` so lookups hit the primary key index; a
string that is not a UUID can never match a row.
"""
from __future__ import annotations
import uuid
from datetime import datetime
from typing import Optional

import asyncpg

from app.core.lost_found.domain import Animal, ContactPreferences, lost_mode_fields
from app.core.lost_found.errors import NotFoundError
from app.infra.db_async import db_conn
from app.infra.logging_config import get_logger

logger = get_logger(__name__)

_PET_COLUMNS = "id, name, owner_user_id, lost_mode, lost_since, last_seen_location, lost_message"


def _as_uuid(animal_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(animal_id))
    except ValueError:
        return None


def _row_to_animal(row: asyncpg.Record) -> Animal:
    return Animal(
        id=str(row["id"]),
        name=row["name"] or "",
        owner_id=str(row["owner_user_id"]),
        lost_mode=bool(row["lost_mode"]),
        lost_since=row["lost_since"],
        last_seen_location=row["last_seen_location"],
        lost_message=row["lost_message"],
    )


class AsyncPostgresAnimalRepository:
    """asyncpg implementation of AnimalRepository."""

    async def get_animal_by_id(self, animal_id: str) -> Optional[Animal]:
        pet_id = _as_uuid(animal_id)
        if pet_id is None:
            return None

        async with db_conn() as conn:
            row = await conn.fetchrow(
                f"SELECT {_PET_COLUMNS} FROM pets WHERE id = $1",
                pet_id,
            )
        return _row_to_animal(row) if row else None

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
        Write the lost/found columns and return ``(previous lost_mode, animal)``.

        The row is locked with ``FOR UPDATE`` so concurrent transitions on the
        same pet serialise and exactly one of them observes the change.
        """
        pet_id = _as_uuid(animal_id)
        if pet_id is None:
            raise NotFoundError("Animal not found")

        async with db_conn(transactional=True) as conn:
            previous = await conn.fetchval(
                "SELECT lost_mode FROM pets WHERE id = $1 FOR UPDATE",
                pet_id,
            )
            if previous is None:
                raise NotFoundError("Animal not found")

            previous_lost = bool(previous)
            fields = lost_mode_fields(
                previous_lost, lost, now,
                lost_message=lost_message,
                last_seen_location=last_seen_location,
            )
            columns = list(fields)
            assignments = ", ".join(f"{col} = ${i}" for i, col in enumerate(columns, start=2))
            row = await conn.fetchrow(
                f"UPDATE pets SET {assignments} WHERE id = $1 RETURNING {_PET_COLUMNS}",
                pet_id,
                *(fields[col] for col in columns),
            )

        logger.debug(
            f"Pet lost_mode {previous_lost} -> {lost}: columns={columns}",
            extra={"animal_id": animal_id},
        )
        return previous_lost, _row_to_animal(row)


class AsyncPostgresContactPreferencesStore:
    """asyncpg implementation of ContactPreferencesStore."""

    async def get_by_animal_id(self, animal_id: str) -> Optional[ContactPreferences]:
        pet_id = _as_uuid(animal_id)
        if pet_id is None:
            return None

        async with db_conn() as conn:
            row = await conn.fetchrow(
                """
                SELECT pet_id, show_email, show_phone, show_sms, email, phone
                FROM contact_prefs
                WHERE pet_id = $1
                """,
                pet_id,
            )

        if row is None:
            return None

        return ContactPreferences(
            animal_id=str(row["pet_id"]),
            show_email=bool(row["show_email"]),
            show_phone=bool(row["show_phone"]),
            show_sms=bool(row["show_sms"]),
            email=row["email"],
            phone=row["phone"],
        )
