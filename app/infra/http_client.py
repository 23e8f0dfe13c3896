# app/infra/http_client.py
"""
Shared aiohttp sessions.

One lazily created ``ClientSession`` per outbound service so token checks
and user lookups reuse pooled keep-alive connections instead of opening a
session per request.  Today only the identity service goes through here;
email and SMS use their providers' blocking clients.

``close_all_sessions()`` runs from the FastAPI lifespan on shutdown.
"""
from __future__ import annotations

import aiohttp

from app.infra.logging_config import get_logger

logger = get_logger(__name__)

# profile -> (connect timeout seconds, connection pool limit)
_PROFILES: dict[str, tuple[float, int]] = {
    "identity": (3.0, 10),
}

_sessions: dict[str, aiohttp.ClientSession] = {}


def _session_for(profile: str, total_timeout: float) -> aiohttp.ClientSession:
    session = _sessions.get(profile)
    if session is not None and not session.closed:
        return session

    connect_timeout, limit = _PROFILES[profile]
    session = aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=total_timeout, connect=min(connect_timeout, total_timeout)),
        connector=aiohttp.TCPConnector(limit=limit, keepalive_timeout=30, enable_cleanup_closed=True),
    )
    _sessions[profile] = session
    logger.debug(f"HTTP session '{profile}' opened (limit={limit}, total={total_timeout}s)")
    return session


def get_identity_session(total_timeout: float = 5.0) -> aiohttp.ClientSession:
    """Session for token validation and admin user lookups."""
    return _session_for("identity", total_timeout)


async def close_all_sessions() -> None:
    while _sessions:
        profile, session = _sessions.popitem()
        if not session.closed:
            await session.close()
            logger.debug(f"HTTP session '{profile}' closed")
