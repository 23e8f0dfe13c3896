# tests/test_authorization.py
"""Tests for AuthorizationResolver (app/core/lost_found/authorization.py)."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from app.core.lost_found.authorization import AuthorizationResolver
from app.core.lost_found.domain import Animal, CallerCredentials


def _identity(bearer=None, session=None) -> AsyncMock:
    svc = AsyncMock()
    svc.validate_bearer_token.return_value = bearer
    svc.get_session_identity.return_value = session
    return svc


class TestResolveCallerIdentity:
    @pytest.mark.asyncio
    async def test_bearer_wins(self):
        svc = _identity(bearer="u1", session="u2")
        resolver = AuthorizationResolver(svc)

        result = await resolver.resolve_caller_identity(
            CallerCredentials(bearer_token="t", session_token="s")
        )

        assert result == "u1"
        svc.get_session_identity.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_bearer_falls_back_to_session(self):
        svc = _identity(bearer=None, session="u2")
        resolver = AuthorizationResolver(svc)

        result = await resolver.resolve_caller_identity(
            CallerCredentials(bearer_token="bad", session_token="s")
        )

        assert result == "u2"

    @pytest.mark.asyncio
    async def test_bearer_transport_error_falls_back_to_session(self):
        svc = _identity(session="u2")
        svc.validate_bearer_token.side_effect = ConnectionError("unreachable")
        resolver = AuthorizationResolver(svc)

        result = await resolver.resolve_caller_identity(
            CallerCredentials(bearer_token="t", session_token="s")
        )

        assert result == "u2"

    @pytest.mark.asyncio
    async def test_no_bearer_skips_validation(self):
        svc = _identity(session="u2")
        resolver = AuthorizationResolver(svc)

        await resolver.resolve_caller_identity(CallerCredentials(session_token="s"))

        svc.validate_bearer_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_anonymous(self):
        resolver = AuthorizationResolver(_identity())
        assert await resolver.resolve_caller_identity(CallerCredentials()) is None

    @pytest.mark.asyncio
    async def test_session_error_means_anonymous(self):
        svc = _identity()
        svc.get_session_identity.side_effect = RuntimeError("boom")
        resolver = AuthorizationResolver(svc)

        assert await resolver.resolve_caller_identity(CallerCredentials(session_token="s")) is None

    @pytest.mark.asyncio
    async def test_empty_subject_is_anonymous(self):
        resolver = AuthorizationResolver(_identity(session=""))
        assert await resolver.resolve_caller_identity(CallerCredentials(session_token="s")) is None


class TestIsOwner:
    def test_owner(self):
        assert AuthorizationResolver.is_owner("u1", Animal(id="p", name="n", owner_id="u1"))

    def test_other_user(self):
        assert not AuthorizationResolver.is_owner("u2", Animal(id="p", name="n", owner_id="u1"))

    def test_anonymous(self):
        assert not AuthorizationResolver.is_owner(None, Animal(id="p", name="n", owner_id="u1"))
