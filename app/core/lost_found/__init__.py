# app/core/lost_found/__init__.py
"""
Lost/found core: status transitions, caller authorization, and owner /
finder / reporter notifications.

No framework imports live here; the transport builds ``CallerCredentials``
and calls ``StatusTransitionHandler``.
"""
from app.core.lost_found.authorization import AuthorizationResolver  # noqa: F401
from app.core.lost_found.dispatcher import NotificationDispatcher  # noqa: F401
from app.core.lost_found.domain import (  # noqa: F401
    Animal,
    CallerCredentials,
    ContactPreferences,
    EventKind,
    NotificationEvent,
    NotifyOutcome,
    NotifyResultBag,
    OwnerIdentity,
    RecipientRole,
    ThirdPartyContact,
    TransitionContext,
    TransitionResult,
    TransitionTarget,
)
from app.core.lost_found.errors import (  # noqa: F401
    ChannelNotConfiguredError,
    ChannelSendError,
    LostFoundError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.core.lost_found.masking import mask_contact, mask_phone  # noqa: F401
from app.core.lost_found.templates import RenderedMessage  # noqa: F401
from app.core.lost_found.transitions import StatusTransitionHandler  # noqa: F401
