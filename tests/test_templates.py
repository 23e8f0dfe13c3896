# tests/test_templates.py
"""Tests for scenario templates (app/core/lost_found/templates.py)."""
from __future__ import annotations

import pytest

from app.core.lost_found.domain import Animal
from app.core.lost_found.templates import (
    CommonContext,
    RecipientPayload,
    RenderedMessage,
    format_sms_body,
    render_fallback,
    render_found_to_owner,
    render_lost_to_owner,
    render_reported_found_to_finder,
    render_reported_found_to_owner,
    render_reported_lost_to_owner,
    render_reported_lost_to_reporter,
)

CTX = CommonContext(app_name="EGGPLANT.FISH", timestamp_iso="2026-03-14T09:30:00+00:00")

ALL_TEMPLATES = [
    render_lost_to_owner,
    render_found_to_owner,
    render_reported_found_to_finder,
    render_reported_found_to_owner,
    render_reported_lost_to_owner,
    render_reported_lost_to_reporter,
]


@pytest.fixture
def pet():
    return Animal(id="pet-1", name="Biscuit", owner_id="u1", last_seen_location="Oak Park")


# ============================================================================
# Common properties
# ============================================================================

class TestAllTemplates:
    @pytest.mark.parametrize("template", ALL_TEMPLATES)
    def test_deterministic(self, template, pet):
        payload = RecipientPayload(name="Alex", counterpart_contact="s***m@x.com")
        assert template(pet, payload, CTX) == template(pet, payload, CTX)

    @pytest.mark.parametrize("template", ALL_TEMPLATES)
    def test_mentions_animal_and_signature(self, template, pet):
        msg = template(pet, RecipientPayload(), CTX)
        assert "Biscuit" in msg.subject
        assert "- EGGPLANT.FISH Team" in msg.text

    @pytest.mark.parametrize("template", ALL_TEMPLATES)
    def test_includes_timestamp(self, template, pet):
        msg = template(pet, RecipientPayload(), CTX)
        assert CTX.timestamp_iso in msg.text


# ============================================================================
# Owner templates
# ============================================================================

class TestOwnerTemplates:
    def test_lost_subject(self, pet):
        msg = render_lost_to_owner(pet, RecipientPayload(name="Alex"), CTX)
        assert msg.subject == '[Biscuit] has been marked as "Lost"'
        assert msg.text.startswith("Hello Alex,")

    def test_lost_prefers_event_location(self, pet):
        msg = render_lost_to_owner(pet, RecipientPayload(location_hint="Beach"), CTX)
        assert "Last seen location: Beach" in msg.text

    def test_lost_falls_back_to_stored_location(self, pet):
        msg = render_lost_to_owner(pet, RecipientPayload(), CTX)
        assert "Last seen location: Oak Park" in msg.text

    def test_found_subject(self, pet):
        msg = render_found_to_owner(pet, RecipientPayload(), CTX)
        assert msg.subject == '[Biscuit] has been marked as "Found"'
        assert msg.text.startswith("Hello Pet Owner,")

    def test_unnamed_animal(self):
        nameless = Animal(id="p", name="  ", owner_id="u")
        msg = render_found_to_owner(nameless, RecipientPayload(), CTX)
        assert msg.subject == '[Your pet] has been marked as "Found"'


# ============================================================================
# Third-party templates
# ============================================================================

class TestThirdPartyTemplates:
    def test_found_to_owner_shows_counterpart(self, pet):
        msg = render_reported_found_to_owner(
            pet, RecipientPayload(counterpart_contact="s***m@x.com", location_hint="Mall"), CTX,
        )
        assert msg.subject == "Possible lead: Someone reported finding [Biscuit]"
        assert "Reporter contact: s***m@x.com" in msg.text
        assert "Found location: Mall" in msg.text

    def test_found_to_owner_defaults(self, pet):
        msg = render_reported_found_to_owner(pet, RecipientPayload(), CTX)
        assert "Reporter contact: Anonymous reporter" in msg.text
        assert "Found location: Not provided" in msg.text

    def test_found_to_finder_greets_friend(self, pet):
        msg = render_reported_found_to_finder(pet, RecipientPayload(), CTX)
        assert msg.text.startswith("Hello Friend,")

    def test_lost_to_owner(self, pet):
        msg = render_reported_lost_to_owner(pet, RecipientPayload(location_hint="Pier 4"), CTX)
        assert msg.subject == "Alert: Someone reported that your pet [Biscuit] is lost"
        assert "Last seen location: Pier 4" in msg.text

    def test_lost_to_reporter(self, pet):
        msg = render_reported_lost_to_reporter(pet, RecipientPayload(name="Jo"), CTX)
        assert msg.subject == "You have reported that [Biscuit] is lost"
        assert msg.text.startswith("Hello Jo,")


# ============================================================================
# Fallback / SMS
# ============================================================================

class TestFallbackAndSms:
    def test_fallback(self):
        msg = render_fallback("EGGPLANT.FISH")
        assert msg.subject == "EGGPLANT.FISH: pet status update"
        assert "- EGGPLANT.FISH Team" in msg.text

    def test_sms_body_truncates_text(self):
        msg = RenderedMessage(subject="Subject", text="x" * 500)
        body = format_sms_body(msg)
        assert body == "Subject\n\n" + "x" * 140 + "..."

    def test_sms_body_short_text(self):
        body = format_sms_body(RenderedMessage(subject="S", text="short"))
        assert body == "S\n\nshort..."
