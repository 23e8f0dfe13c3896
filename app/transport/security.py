# app/transport/security.py
"""
Request security helpers.

- Caller credential extraction (bearer header + session cookie), handed to the
  core as ``CallerCredentials``; the core decides what an identity may do
- OWASP response headers
- Error sanitization for client-facing 500 responses
- Metrics endpoint guard
"""
import hmac

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config import settings
from app.core.lost_found.domain import CallerCredentials

# Security scheme for OpenAPI docs - shows "Authorize" button
bearer_scheme = HTTPBearer(
    scheme_name="Owner Token",
    description="Identity service access token (without 'Bearer ' prefix)",
    auto_error=False,  # Anonymous callers are allowed; the core rejects them where it matters
)

metrics_bearer_scheme = HTTPBearer(
    scheme_name="Metrics Token",
    description="METRICS_TOKEN value",
    auto_error=False,
)


async def get_caller_credentials(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CallerCredentials:
    """
    Dependency: collect whatever credentials the caller sent.

    Missing or malformed credentials are not an error here.
    """
    bearer = credentials.credentials.strip() if credentials and credentials.credentials else None
    session = request.cookies.get(settings.session_cookie_name) or None
    return CallerCredentials(bearer_token=bearer or None, session_token=session)


# Applied to every response; endpoints may override Cache-Control
_API_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}
_DEFAULT_CACHE_CONTROL = "no-store, no-cache, must-revalidate"
_HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeaders:
    """OWASP recommended headers for a JSON-only API."""

    @staticmethod
    def add_security_headers(response):
        response.headers.update(_API_HEADERS)
        response.headers.setdefault("Cache-Control", _DEFAULT_CACHE_CONTROL)
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = _HSTS
        return response


# Exception class name -> client-facing text in production
_GENERIC_ERRORS = {
    "IdentityServiceError": "Identity service unavailable",
    "PostgresError": "Service temporarily unavailable",
    "InterfaceError": "Service temporarily unavailable",
    "ConnectionError": "Service temporarily unavailable",
    "TimeoutError": "Request timeout",
    "ValueError": "Invalid input",
}


def sanitize_error_message(error: Exception, is_production: bool) -> str:
    """Full text in dev; a generic message in production so internals never leak."""
    if not is_production:
        return str(error)
    for cls in type(error).__mro__:
        if cls.__name__ in _GENERIC_ERRORS:
            return _GENERIC_ERRORS[cls.__name__]
    return "An error occurred"


def require_metrics_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(metrics_bearer_scheme),
) -> None:
    """
    Dependency for the metrics endpoint.

    With METRICS_TOKEN set the caller must present it as a Bearer token.
    Without it the endpoint is open outside production and hidden in production.
    """
    if settings.metrics_token:
        supplied = credentials.credentials if credentials else ""
        if not hmac.compare_digest(supplied.encode(), settings.metrics_token.encode()):
            raise HTTPException(status_code=401, detail="Invalid metrics token")
        return

    if settings.is_production:
        raise HTTPException(status_code=404, detail="Not found")
