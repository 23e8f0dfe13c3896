# tests/conftest.py
"""Pytest configuration and fixtures"""
import asyncio
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.lost_found.authorization import AuthorizationResolver  # noqa: E402
from app.core.lost_found.dispatcher import NotificationDispatcher  # noqa: E402
from app.core.lost_found.domain import Animal, ContactPreferences, OwnerIdentity  # noqa: E402
from app.core.lost_found.transitions import StatusTransitionHandler  # noqa: E402
from app.infra.memory_store import (  # noqa: E402
    InMemoryAnimalRepository,
    InMemoryContactPreferencesStore,
    InMemoryIdentityService,
)
from app.infra.metrics import get_metrics_collector  # noqa: E402

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)

OWNER_ID = "user-owner"
OWNER_TOKEN = "owner-token"
STRANGER_ID = "user-stranger"
STRANGER_TOKEN = "stranger-token"
ANIMAL_ID = "pet-1"


# ============================================================================
# Test doubles
# ============================================================================

class RecordingChannel:
    """DeliveryChannel double: records sends, optionally fails or stalls."""

    def __init__(self, name: str, *, configured: bool = True, error: Exception | None = None,
                 delay: float = 0.0):
        self._name = name
        self.configured = configured
        self.error = error
        self.delay = delay
        self.sent: list = []

    @property
    def name(self) -> str:
        return self._name

    def is_configured(self) -> bool:
        return self.configured

    async def send(self, to, message) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append((to, message))

    @property
    def recipients(self) -> list[str]:
        return [to for to, _ in self.sent]


class CollectingSpawn:
    """Replaces safe_create_task: keeps coroutines so tests can run them explicitly."""

    def __init__(self):
        self.pending: list = []
        self.names: list[str] = []

    def __call__(self, coro, *, name=None):
        self.pending.append(coro)
        self.names.append(name)
        return coro

    async def run_all(self) -> list:
        pending, self.pending = self.pending, []
        return [await coro for coro in pending]

    def close(self) -> None:
        for coro in self.pending:
            coro.close()
        self.pending = []


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def reset_metrics():
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def owner():
    return OwnerIdentity(id=OWNER_ID, email="owner@example.com", display_name="Alex")


@pytest.fixture
def animal():
    return Animal(id=ANIMAL_ID, name="Biscuit", owner_id=OWNER_ID)


@pytest.fixture
def animals(animal):
    return InMemoryAnimalRepository([animal])


@pytest.fixture
def preferences():
    return InMemoryContactPreferencesStore([
        ContactPreferences(
            animal_id=ANIMAL_ID,
            show_email=True,
            show_sms=True,
            email="alex.contact@example.com",
            phone="+15551234567",
        )
    ])


@pytest.fixture
def identity(owner):
    service = InMemoryIdentityService()
    service.add_user(owner, OWNER_TOKEN)
    service.add_user(OwnerIdentity(id=STRANGER_ID, email="stranger@example.com"), STRANGER_TOKEN)
    return service


@pytest.fixture
def email_channel():
    return RecordingChannel("email")


@pytest.fixture
def sms_channel():
    return RecordingChannel("sms")


@pytest.fixture
def dispatcher(animals, preferences, identity, email_channel, sms_channel):
    return NotificationDispatcher(
        animals=animals,
        preferences=preferences,
        identity=identity,
        email_channel=email_channel,
        sms_channel=sms_channel,
        app_name="EGGPLANT.FISH",
        timeout_seconds=0.5,
    )


@pytest.fixture
def spawn():
    collector = CollectingSpawn()
    yield collector
    collector.close()


@pytest.fixture
def handler(animals, identity, dispatcher, spawn, clock):
    return StatusTransitionHandler(
        animals=animals,
        resolver=AuthorizationResolver(identity),
        dispatcher=dispatcher,
        spawn=spawn,
        clock=clock,
    )


@pytest.fixture
def channel_factory():
    """Build extra RecordingChannel doubles (failing, unconfigured, slow)."""
    return RecordingChannel
