# app/core/lost_found/templates.py
"""
Notification templates for lost/found scenarios.

One function per scenario, each returning a ``RenderedMessage``.  All
functions are pure: no I/O, no clock reads (the timestamp comes in via
``CommonContext``), so the same inputs always render the same text.

Scenarios:
- lost_to_owner              owner marked the animal lost
- found_to_owner             owner marked the animal found
- reported_found_to_finder   acknowledgement to someone who found it
- reported_found_to_owner    lead for the owner (finder contact masked)
- reported_lost_to_owner     alert for the owner (reporter contact masked)
- reported_lost_to_reporter  acknowledgement to someone who reported it lost
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from app.core.lost_found.domain import Animal

SMS_TEXT_LIMIT = 140


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    text: str


@dataclass(frozen=True)
class CommonContext:
    app_name: str
    timestamp_iso: str


@dataclass(frozen=True)
class RecipientPayload:
    """
    Per-recipient values a template may reference.

    ``counterpart_contact`` is the *already masked* contact of the opposite
    party (or a display name when no address was given).
    """
    name: Optional[str] = None
    counterpart_contact: Optional[str] = None
    location_hint: Optional[str] = None


def _animal_name(animal: "Animal", default: str) -> str:
    return (animal.name or "").strip() or default


# ============================================================================
# OWNER-DRIVEN TRANSITIONS
# ============================================================================

def render_lost_to_owner(
    animal: "Animal", recipient: RecipientPayload, ctx: CommonContext
) -> RenderedMessage:
    name = _animal_name(animal, "Your pet")
    location = recipient.location_hint or animal.last_seen_location or "Unknown"
    return RenderedMessage(
        subject=f"[{name}] has been marked as \"Lost\"",
        text=(
            f"Hello {recipient.name or 'Pet Owner'},\n"
            f"\n"
            f"Your pet \"{name}\" has been marked as LOST.\n"
            f"If this action was not made by you, please check on your pet "
            f"immediately and also review your account security.\n"
            f"\n"
            f"We recommend that you:\n"
            f"1) Search your nearby area and ask neighbors;\n"
            f"2) Ensure your collar tag and contact information are correct;\n"
            f"3) Keep your notifications on and watch for any incoming reports.\n"
            f"\n"
            f"- {ctx.app_name} Team\n"
            f"(Time: {ctx.timestamp_iso}, Last seen location: {location})"
        ),
    )


def render_found_to_owner(
    animal: "Animal", recipient: RecipientPayload, ctx: CommonContext
) -> RenderedMessage:
    name = _animal_name(animal, "Your pet")
    return RenderedMessage(
        subject=f"[{name}] has been marked as \"Found\"",
        text=(
            f"Hello {recipient.name or 'Pet Owner'},\n"
            f"\n"
            f"Great news! Your pet \"{name}\" has been marked as FOUND.\n"
            f"\n"
            f"We suggest that you:\n"
            f"1) Confirm that your contact information is still up to date;\n"
            f"2) Thank anyone who helped you during the search.\n"
            f"\n"
            f"- {ctx.app_name} Team\n"
            f"(Time: {ctx.timestamp_iso})"
        ),
    )


# ============================================================================
# THIRD-PARTY "FOUND" REPORTS
# ============================================================================

def render_reported_found_to_finder(
    animal: "Animal", recipient: RecipientPayload, ctx: CommonContext
) -> RenderedMessage:
    name = _animal_name(animal, "Pet")
    return RenderedMessage(
        subject=f"You have reported finding [{name}]",
        text=(
            f"Hello {recipient.name or 'Friend'},\n"
            f"\n"
            f"Thank you for your help! You have reported that you found the "
            f"pet \"{name}\". We have notified the owner.\n"
            f"\n"
            f"Please keep your contact information available - the owner will "
            f"reach out to you soon (please do not share sensitive information "
            f"publicly).\n"
            f"\n"
            f"Tips:\n"
            f"- If possible, provide water or temporary shelter in a safe way;\n"
            f"- If an in-person handover is needed, always choose a safe and "
            f"public location.\n"
            f"\n"
            f"- {ctx.app_name} Team\n"
            f"(Time: {ctx.timestamp_iso})"
        ),
    )


def render_reported_found_to_owner(
    animal: "Animal", recipient: RecipientPayload, ctx: CommonContext
) -> RenderedMessage:
    name = _animal_name(animal, "Your pet")
    return RenderedMessage(
        subject=f"Possible lead: Someone reported finding [{name}]",
        text=(
            f"Hello {recipient.name or 'Pet Owner'},\n"
            f"\n"
            f"We received a lead: someone has reported possibly finding your "
            f"pet \"{name}\".\n"
            f"Please contact the reporter through the system and verify the "
            f"details as soon as possible.\n"
            f"\n"
            f"Summary of the lead:\n"
            f"- Reporter contact: {recipient.counterpart_contact or 'Anonymous reporter'}\n"
            f"- Found location: {recipient.location_hint or 'Not provided'}\n"
            f"- Time: {ctx.timestamp_iso}\n"
            f"\n"
            f"Reminder: For your safety, use the in-app communication first, "
            f"and take caution when arranging any in-person meetings.\n"
            f"\n"
            f"- {ctx.app_name} Team"
        ),
    )


# ============================================================================
# THIRD-PARTY "LOST" REPORTS
# ============================================================================

def render_reported_lost_to_owner(
    animal: "Animal", recipient: RecipientPayload, ctx: CommonContext
) -> RenderedMessage:
    name = _animal_name(animal, "Your pet")
    return RenderedMessage(
        subject=f"Alert: Someone reported that your pet [{name}] is lost",
        text=(
            f"Hello {recipient.name or 'Pet Owner'},\n"
            f"\n"
            f"Alert: someone has reported that your pet \"{name}\" is "
            f"possibly lost.\n"
            f"Please verify this report and take action as needed.\n"
            f"\n"
            f"Summary of the report:\n"
            f"- Reporter contact: {recipient.counterpart_contact or 'Anonymous reporter'}\n"
            f"- Last seen location: {recipient.location_hint or 'Not provided'}\n"
            f"- Time: {ctx.timestamp_iso}\n"
            f"\n"
            f"If your pet is safe with you, no action is required.\n"
            f"\n"
            f"- {ctx.app_name} Team"
        ),
    )


def render_reported_lost_to_reporter(
    animal: "Animal", recipient: RecipientPayload, ctx: CommonContext
) -> RenderedMessage:
    name = _animal_name(animal, "Pet")
    return RenderedMessage(
        subject=f"You have reported that [{name}] is lost",
        text=(
            f"Hello {recipient.name or 'Friend'},\n"
            f"\n"
            f"Thank you for your help! You have reported that the pet "
            f"\"{name}\" may be lost. We have notified the owner.\n"
            f"\n"
            f"If you see the pet again, please submit a new report with the "
            f"location so the owner can follow up.\n"
            f"\n"
            f"- {ctx.app_name} Team\n"
            f"(Time: {ctx.timestamp_iso})"
        ),
    )


# ============================================================================
# FALLBACKS / CHANNEL FORMATTING
# ============================================================================

def render_fallback(app_name: str) -> RenderedMessage:
    """Safe default used when a scenario template cannot be rendered."""
    return RenderedMessage(
        subject=f"{app_name}: pet status update",
        text=(
            "There is an update about a pet linked to your contact details. "
            f"Please open {app_name} for details.\n"
            f"\n"
            f"- {app_name} Team"
        ),
    )


def format_sms_body(message: RenderedMessage) -> str:
    """Subject, blank line, then the first 140 characters of the text."""
    return f"{message.subject}\n\n{message.text[:SMS_TEXT_LIMIT]}..."
