# app/core/lost_found/transitions.py
"""
Lost/found status transitions.

Workflow: load -> (authorize) -> persist -> schedule notification.

The mutation is awaited before returning; the notification is handed to the
dispatcher as a detached task so the HTTP response never waits on email/SMS
delivery.  Notifications are emitted only when the status actually changed,
so repeated "mark lost" calls do not re-alert the owner.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from app.core.lost_found.authorization import AuthorizationResolver
from app.core.lost_found.domain import (
    EventKind,
    NotificationEvent,
    NotifyResultBag,
    ThirdPartyContact,
    TransitionContext,
    TransitionResult,
    TransitionTarget,
    clip_text,
)
from app.core.lost_found.errors import NotFoundError, UnauthorizedError, ValidationError
from app.core.lost_found.ports import AnimalRepository
from app.infra.background_tasks import safe_create_task
from app.infra.logging_config import get_logger, LogContext
from app.infra.metrics import AppMetrics

logger = get_logger(__name__)

SpawnFn = Callable[..., Any]

_REPORT_KINDS = frozenset({
    EventKind.THIRD_PARTY_REPORTED_FOUND,
    EventKind.THIRD_PARTY_REPORTED_LOST,
})


class EventDispatcher(Protocol):
    async def dispatch(self, event: NotificationEvent) -> NotifyResultBag: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusTransitionHandler:
    """
    Application service for owner-driven status changes and third-party reports.

    Stateless apart from injected collaborators; safe to share across requests.
    """

    def __init__(
        self,
        *,
        animals: AnimalRepository,
        resolver: AuthorizationResolver,
        dispatcher: EventDispatcher,
        spawn: SpawnFn = safe_create_task,
        clock: Callable[[], datetime] = _utcnow,
        max_text_length: int = 300,
    ) -> None:
        self.animals = animals
        self.resolver = resolver
        self.dispatcher = dispatcher
        self._spawn = spawn
        self._clock = clock
        self._max_text_length = max_text_length

    async def apply_transition(
        self,
        animal_id: str,
        target: TransitionTarget | str,
        context: TransitionContext | None = None,
    ) -> TransitionResult:
        context = context or TransitionContext()
        try:
            target = TransitionTarget(target)
        except ValueError:
            raise ValidationError(f"Unknown status: {target!r}")

        log_ctx = LogContext(logger, animal_id=animal_id)

        animal = await self.animals.get_animal_by_id(animal_id)
        if animal is None:
            AppMetrics.transition_rejected("not_found")
            raise NotFoundError("Animal not found")

        if target is TransitionTarget.FOUND:
            # Only the registered owner may clear a lost status
            identity = await self.resolver.resolve_caller_identity(context.caller)
            if not self.resolver.is_owner(identity, animal):
                AppMetrics.transition_rejected("not_owner")
                log_ctx.warning(
                    f"Found transition rejected: caller={'anonymous' if identity is None else 'non-owner'}"
                )
                raise UnauthorizedError("Only the pet owner can mark as found")

            kind = EventKind.OWNER_MARKED_FOUND
            lost_message = None
            location_hint = None
        else:
            kind = EventKind.OWNER_MARKED_LOST
            lost_message = clip_text(context.lost_message, self._max_text_length)
            location_hint = clip_text(context.last_seen_location, self._max_text_length)

        # Previous state comes from the write itself; the read above may be stale
        new_lost = target is TransitionTarget.LOST
        previous_lost, updated = await self.animals.set_lost_mode(
            animal_id,
            new_lost,
            now=self._clock(),
            lost_message=lost_message,
            last_seen_location=location_hint,
        )
        changed = previous_lost != new_lost
        AppMetrics.status_transition(target.value, changed)
        log_ctx.info(
            f"Status set to {target.value}: prev_lost={previous_lost}, changed={changed}"
        )

        scheduled = False
        if changed:
            self._emit(NotificationEvent(
                kind=kind,
                animal_id=animal_id,
                timestamp=self._clock(),
                location_hint=location_hint,
            ))
            scheduled = True

        return TransitionResult(
            animal=updated,
            previous_lost=previous_lost,
            new_lost=new_lost,
            changed=changed,
            notification_scheduled=scheduled,
        )

    async def submit_report(
        self,
        animal_id: str,
        kind: EventKind,
        reporter: ThirdPartyContact | None = None,
        location_hint: str | None = None,
    ) -> bool:
        """
        Accept a "found" / "lost" report from someone other than the owner.

        The animal record is not modified; only notifications are scheduled.
        """
        if kind not in _REPORT_KINDS:
            raise ValidationError(f"Not a third-party report: {kind}")

        animal = await self.animals.get_animal_by_id(animal_id)
        if animal is None:
            raise NotFoundError("Animal not found")

        AppMetrics.report_received(kind.value)
        self._emit(NotificationEvent(
            kind=kind,
            animal_id=animal_id,
            actor=reporter or ThirdPartyContact(),
            timestamp=self._clock(),
            location_hint=clip_text(location_hint, self._max_text_length),
        ))
        return True

    # ------------------------------------------------------------------
    # Notification hand-off
    # ------------------------------------------------------------------

    def _emit(self, event: NotificationEvent) -> None:
        self._spawn(
            self._dispatch_and_log(event),
            name=f"notify:{event.kind.value}:{event.animal_id}",
        )

    async def _dispatch_and_log(self, event: NotificationEvent) -> NotifyResultBag:
        bag = await self.dispatcher.dispatch(event)
        log_ctx = LogContext(logger, animal_id=event.animal_id, event_kind=event.kind.value)
        if bag.all_ok:
            log_ctx.info(f"Notifications done: {len(bag.outcomes)} outcome(s)")
        else:
            log_ctx.warning(
                f"Notifications finished with failures: error={bag.error}, "
                f"failed={[f'{o.recipient_role.value}/{o.channel}' for o in bag.failures]}"
            )
        return bag
