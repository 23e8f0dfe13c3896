# app/core/lost_found/domain.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


# ============================================================================
# ENUMS
# ============================================================================

class TransitionTarget(str, Enum):
    LOST = "lost"
    FOUND = "found"


class EventKind(str, Enum):
    OWNER_MARKED_LOST = "owner_marked_lost"
    OWNER_MARKED_FOUND = "owner_marked_found"
    THIRD_PARTY_REPORTED_FOUND = "third_party_reported_found"
    THIRD_PARTY_REPORTED_LOST = "third_party_reported_lost"


class RecipientRole(str, Enum):
    OWNER = "owner"
    FINDER = "finder"
    REPORTER = "reporter"


# ============================================================================
# PERSISTED RECORDS (owned by the CRUD layer; read here)
# ============================================================================

@dataclass
class Animal:
    """
    Animal profile as seen by the lost/found core.

    Only ``lost_mode``, ``lost_since``, ``lost_message`` and
    ``last_seen_location`` are ever written from this package.
    """
    id: str
    name: str
    owner_id: str
    lost_mode: bool = False
    lost_since: Optional[datetime] = None
    last_seen_location: Optional[str] = None
    lost_message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "lost_mode": self.lost_mode,
            "lost_since": self.lost_since.isoformat() if self.lost_since else None,
            "last_seen_location": self.last_seen_location,
            "lost_message": self.lost_message,
        }


@dataclass
class ContactPreferences:
    """Per-animal owner contact visibility."""
    animal_id: str
    show_email: bool = False
    show_phone: bool = False
    show_sms: bool = False
    email: Optional[str] = None
    phone: Optional[str] = None

    def email_address(self, fallback: Optional[str] = None) -> Optional[str]:
        """Visible email: preference value first, then ``fallback``."""
        if not self.show_email:
            return None
        return _clean(self.email) or _clean(fallback)

    def sms_number(self) -> Optional[str]:
        if not self.show_sms:
            return None
        return _clean(self.phone)


@dataclass
class OwnerIdentity:
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def greeting_name(self) -> str:
        if self.display_name:
            return self.display_name
        if self.email:
            return self.email.split("@", 1)[0]
        return "Pet Owner"


# ============================================================================
# REQUEST-SCOPED VALUES (never persisted)
# ============================================================================

@dataclass
class ThirdPartyContact:
    """Finder or reporter details supplied inline with one request."""
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass
class CallerCredentials:
    """Credentials extracted from an inbound request by the transport layer."""
    bearer_token: Optional[str] = None
    session_token: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.bearer_token or self.session_token)


@dataclass
class TransitionContext:
    caller: CallerCredentials = field(default_factory=CallerCredentials)
    last_seen_location: Optional[str] = None
    lost_message: Optional[str] = None


@dataclass
class TransitionResult:
    animal: Animal
    previous_lost: bool
    new_lost: bool
    changed: bool
    notification_scheduled: bool = False


@dataclass
class NotificationEvent:
    kind: EventKind
    animal_id: str
    actor: Optional[ThirdPartyContact] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    location_hint: Optional[str] = None


# ============================================================================
# DISPATCH RESULTS
# ============================================================================

@dataclass
class NotifyOutcome:
    recipient_role: RecipientRole
    channel: str
    ok: bool
    skipped: bool = False
    error: Optional[str] = None


@dataclass
class NotifyResultBag:
    """Aggregated outcomes of one dispatch. Returned, never raised."""
    event_kind: EventKind
    animal_id: str
    outcomes: list[NotifyOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def all_ok(self) -> bool:
        return self.error is None and all(o.ok for o in self.outcomes)

    @property
    def failures(self) -> list[NotifyOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def outcomes_for(self, role: RecipientRole) -> list[NotifyOutcome]:
        return [o for o in self.outcomes if o.recipient_role == role]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    return text or None


# ============================================================================
# FIELD RULES
# ============================================================================

def clip_text(value: Optional[str], limit: int) -> Optional[str]:
    """Strip and bound free text before it is stored or embedded in messages."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    return text[:limit]


def lost_mode_fields(
    previous_lost: bool,
    lost: bool,
    now: datetime,
    lost_message: Optional[str] = None,
    last_seen_location: Optional[str] = None,
) -> dict:
    """
    Column values for a lost/found write, given the stored ``lost_mode``.

    Found clears the lost details.  Lost keeps an existing ``lost_since`` and
    only overwrites message/location when new values are supplied.
    """
    if not lost:
        return {"lost_mode": False, "lost_since": None, "lost_message": None}

    fields: dict = {"lost_mode": True}
    if not previous_lost:
        fields["lost_since"] = now
    if lost_message is not None:
        fields["lost_message"] = lost_message
    if last_seen_location is not None:
        fields["last_seen_location"] = last_seen_location
    return fields
