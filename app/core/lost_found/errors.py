# app/core/lost_found/errors.py
"""
Typed domain errors for lost/found status operations.

Each error maps to a specific HTTP status code.  The transport layer
catches ``LostFoundError`` subtypes and converts them to ``HTTPException``
without embedding business logic in the route handlers.

Notification delivery never raises these: channel problems are reported
as ``NotifyOutcome`` entries instead.
"""
from __future__ import annotations


class LostFoundError(Exception):
    """Base class for all lost/found domain errors."""

    status_code: int = 500

    def __init__(self, detail: str = "Internal error"):
        self.detail = detail
        super().__init__(detail)


class ValidationError(LostFoundError):
    """Invalid request payload (400)."""

    status_code = 400


class UnauthorizedError(LostFoundError):
    """Caller is not allowed to perform the transition (401)."""

    status_code = 401


class NotFoundError(LostFoundError):
    """Animal not found (404)."""

    status_code = 404


# ============================================================================
# Delivery channel errors (reported as outcomes, never surfaced to callers)
# ============================================================================

class ChannelError(Exception):
    """Base class for delivery channel problems."""


class ChannelNotConfiguredError(ChannelError):
    """Provider credentials are absent; the send is skipped, not failed."""


class ChannelSendError(ChannelError):
    """Provider rejected the message or could not be reached."""
