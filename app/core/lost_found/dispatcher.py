# app/core/lost_found/dispatcher.py
"""
Notification fan-out for lost/found events.

For one ``NotificationEvent`` the dispatcher:
1. resolves recipients (owner always; finder/reporter when they left an email)
2. gates owner channels on contact preferences (flag AND value)
3. renders one explicit template per recipient, masking third-party contacts
4. runs every send concurrently, each bounded by a timeout
5. folds everything into a ``NotifyResultBag``

``dispatch`` never raises.  An unconfigured channel counts as a successful
skip; a configured channel that errors or times out is recorded with
``ok=False`` and does not affect sibling sends.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from app.core.lost_found.domain import (
    Animal,
    ContactPreferences,
    EventKind,
    NotificationEvent,
    NotifyOutcome,
    NotifyResultBag,
    OwnerIdentity,
    RecipientRole,
    ThirdPartyContact,
    clip_text,
)
from app.core.lost_found.errors import ChannelNotConfiguredError
from app.core.lost_found.masking import mask_address, mask_contact
from app.core.lost_found.ports import (
    AnimalRepository,
    ContactPreferencesStore,
    DeliveryChannel,
    IdentityService,
)
from app.core.lost_found.templates import (
    CommonContext,
    RecipientPayload,
    RenderedMessage,
    render_fallback,
    render_found_to_owner,
    render_lost_to_owner,
    render_reported_found_to_finder,
    render_reported_found_to_owner,
    render_reported_lost_to_owner,
    render_reported_lost_to_reporter,
)
from app.infra.logging_config import get_logger, LogContext
from app.infra.metrics import AppMetrics

logger = get_logger(__name__)

RenderFn = Callable[[Animal, RecipientPayload, CommonContext], RenderedMessage]


@dataclass(frozen=True)
class Scenario:
    owner_template: RenderFn
    third_party_template: Optional[RenderFn] = None
    third_party_role: Optional[RecipientRole] = None


_SCENARIOS: dict[EventKind, Scenario] = {
    EventKind.OWNER_MARKED_LOST: Scenario(render_lost_to_owner),
    EventKind.OWNER_MARKED_FOUND: Scenario(render_found_to_owner),
    EventKind.THIRD_PARTY_REPORTED_FOUND: Scenario(
        render_reported_found_to_owner,
        render_reported_found_to_finder,
        RecipientRole.FINDER,
    ),
    EventKind.THIRD_PARTY_REPORTED_LOST: Scenario(
        render_reported_lost_to_owner,
        render_reported_lost_to_reporter,
        RecipientRole.REPORTER,
    ),
}


class NotificationDispatcher:
    def __init__(
        self,
        *,
        animals: AnimalRepository,
        preferences: ContactPreferencesStore,
        identity: IdentityService,
        email_channel: DeliveryChannel,
        sms_channel: DeliveryChannel,
        app_name: str,
        timeout_seconds: float = 8.0,
        max_text_length: int = 300,
    ) -> None:
        self.animals = animals
        self.preferences = preferences
        self.identity = identity
        self.email_channel = email_channel
        self.sms_channel = sms_channel
        self.app_name = app_name
        self.timeout_seconds = timeout_seconds
        self.max_text_length = max_text_length

    async def dispatch(self, event: NotificationEvent) -> NotifyResultBag:
        bag = NotifyResultBag(event_kind=event.kind, animal_id=event.animal_id)
        log_ctx = LogContext(logger, animal_id=event.animal_id, event_kind=event.kind.value)

        try:
            animal = await self.animals.get_animal_by_id(event.animal_id)
            if animal is None:
                log_ctx.warning("Animal disappeared before notifications were sent")
                bag.error = "Animal not found"
                AppMetrics.dispatch_finished(event.kind.value, "error")
                return bag

            bag.outcomes = await self._fan_out(event, animal, log_ctx)
        except Exception as exc:
            log_ctx.error(f"Dispatch aborted: {type(exc).__name__}: {exc}", exc_info=True)
            bag.error = str(exc) or type(exc).__name__
            AppMetrics.dispatch_finished(event.kind.value, "error")
            return bag

        for outcome in bag.failures:
            log_ctx.warning(
                f"Notification failed: role={outcome.recipient_role.value}, "
                f"channel={outcome.channel}, error={outcome.error}"
            )
        AppMetrics.dispatch_finished(event.kind.value, "ok" if bag.all_ok else "partial")
        return bag

    # ------------------------------------------------------------------
    # Recipient resolution
    # ------------------------------------------------------------------

    async def _fan_out(
        self,
        event: NotificationEvent,
        animal: Animal,
        log_ctx: LogContext,
    ) -> list[NotifyOutcome]:
        scenario = _SCENARIOS[event.kind]
        prefs, owner = await asyncio.gather(
            self._load_preferences(animal.id, log_ctx),
            self._lookup_owner(animal.owner_id, log_ctx),
        )

        ctx = CommonContext(app_name=self.app_name, timestamp_iso=event.timestamp.isoformat())
        location = clip_text(event.location_hint, self.max_text_length)
        actor = event.actor or ThirdPartyContact()
        actor_email = clip_text(actor.email, self.max_text_length)
        actor_name = clip_text(actor.name, self.max_text_length)

        sends: list[Awaitable[NotifyOutcome]] = []

        # Finder / reporter: inline contact, no preference gating
        if scenario.third_party_template is not None and actor_email:
            message = self._render(
                scenario.third_party_template,
                animal,
                RecipientPayload(name=actor_name, location_hint=location),
                ctx,
            )
            sends.append(self._deliver(
                scenario.third_party_role, self.email_channel, actor_email, message, log_ctx,
            ))

        # Owner
        counterpart = None
        if scenario.third_party_role is not None:
            counterpart = mask_contact(actor_email) if actor_email else (actor_name or "Anonymous reporter")
        owner_message = self._render(
            scenario.owner_template,
            animal,
            RecipientPayload(
                name=owner.greeting_name if owner else "Pet Owner",
                counterpart_contact=counterpart,
                location_hint=location,
            ),
            ctx,
        )

        owner_email = prefs.email_address(fallback=owner.email if owner else None) if prefs else None
        owner_phone = prefs.sms_number() if prefs else None

        for channel, address in ((self.email_channel, owner_email), (self.sms_channel, owner_phone)):
            if address:
                sends.append(self._deliver(RecipientRole.OWNER, channel, address, owner_message, log_ctx))
            else:
                sends.append(self._gated_off(RecipientRole.OWNER, channel.name, log_ctx))

        return list(await asyncio.gather(*sends))

    async def _load_preferences(
        self, animal_id: str, log_ctx: LogContext
    ) -> Optional[ContactPreferences]:
        try:
            return await self.preferences.get_by_animal_id(animal_id)
        except Exception as exc:
            log_ctx.warning(f"Contact preferences unavailable: {type(exc).__name__}: {exc}")
            return None

    async def _lookup_owner(self, owner_id: str, log_ctx: LogContext) -> Optional[OwnerIdentity]:
        try:
            return await self.identity.lookup_user_by_id(owner_id)
        except Exception as exc:
            log_ctx.warning(f"Owner lookup failed: {type(exc).__name__}: {exc}")
            return None

    def _render(
        self,
        template: RenderFn,
        animal: Animal,
        payload: RecipientPayload,
        ctx: CommonContext,
    ) -> RenderedMessage:
        try:
            return template(animal, payload, ctx)
        except Exception:
            logger.error(f"Template {template.__name__} failed, using fallback", exc_info=True)
            return render_fallback(self.app_name)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _gated_off(
        self, role: RecipientRole, channel_name: str, log_ctx: LogContext
    ) -> NotifyOutcome:
        log_ctx.debug(f"{channel_name} disabled by contact preferences for {role.value}")
        AppMetrics.notification_skipped(channel_name, role.value)
        return NotifyOutcome(recipient_role=role, channel=channel_name, ok=True, skipped=True)

    async def _deliver(
        self,
        role: RecipientRole,
        channel: DeliveryChannel,
        address: str,
        message: RenderedMessage,
        log_ctx: LogContext,
    ) -> NotifyOutcome:
        dest = mask_address(channel.name, address)
        try:
            if not channel.is_configured():
                raise ChannelNotConfiguredError(f"{channel.name} channel not configured")
            with AppMetrics.track_send_time(channel.name):
                await asyncio.wait_for(channel.send(address, message), timeout=self.timeout_seconds)
        except ChannelNotConfiguredError:
            log_ctx.info(f"{channel.name} not configured; skipping {role.value} notification")
            AppMetrics.notification_skipped(channel.name, role.value)
            return NotifyOutcome(recipient_role=role, channel=channel.name, ok=True, skipped=True)
        except asyncio.TimeoutError:
            error = f"{channel.name} send timed out after {self.timeout_seconds}s"
        except Exception as exc:
            error = str(exc) or type(exc).__name__
        else:
            AppMetrics.notification_sent(channel.name, role.value)
            log_ctx.info(f"{channel.name} sent to {role.value}: dest={dest}")
            return NotifyOutcome(recipient_role=role, channel=channel.name, ok=True)

        AppMetrics.notification_failed(channel.name, role.value)
        log_ctx.warning(f"{channel.name} to {role.value} failed: dest={dest}, error={error}")
        return NotifyOutcome(recipient_role=role, channel=channel.name, ok=False, error=error)
