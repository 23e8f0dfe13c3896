# app/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: Literal["dev", "staging", "prod"] = "dev"
    app_name: str = "EGGPLANT.FISH"  # Shown in notification signatures
    log_level: str = "INFO"

    # Storage
    # "memory"   - in-process dictionaries (dev / tests)
    # "postgres" - asyncpg pool against the pets / contact_prefs tables
    storage_backend: Literal["memory", "postgres"] = "memory"
    database_url: str | None = None
    pg_pool_min: int = 2
    pg_pool_max: int = 10

    # Identity service (GoTrue-style auth API)
    identity_base_url: str | None = None  # e.g. https://xyz.supabase.co
    identity_service_key: str | None = None  # Service-role key, required for user lookups
    identity_timeout_seconds: float = 5.0
    session_cookie_name: str = "sb-access-token"

    # Email notifications (SMTP, STARTTLS)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str | None = None  # Falls back to smtp_user

    # SMS notifications (Twilio)
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None

    # Notification delivery
    channel_timeout_seconds: float = 8.0  # Per-send bound; timeouts are recorded as failures
    max_free_text_length: int = 300  # Location / message fields embedded in outbound text

    # Monitoring
    metrics_token: str | None = None  # Bearer token for GET /metrics; unset = non-prod only

    # Feature Flags
    enable_request_logging: bool = True

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"

    @property
    def email_enabled(self) -> bool:
        """Check if SMTP credentials are configured"""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    @property
    def sms_enabled(self) -> bool:
        """Check if Twilio credentials are configured"""
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_from_number
        )

    @property
    def identity_enabled(self) -> bool:
        return bool(self.identity_base_url)

    @property
    def email_sender(self) -> str | None:
        return self.smtp_from or self.smtp_user

    def validate_required_for_production(self) -> list[str]:
        """Validate that required settings exist for production"""
        if not self.is_production:
            return []

        missing = []

        required_fields = [
            ("identity_base_url", self.identity_base_url),
            ("identity_service_key", self.identity_service_key),
        ]
        if self.storage_backend == "postgres":
            required_fields.append(("database_url", self.database_url))

        for field_name, value in required_fields:
            if not value:
                missing.append(field_name)

        return missing


def warn_on_risky_config(s: "Settings") -> list[str]:
    warnings: list[str] = []

    # --- Storage ---
    if s.is_production and s.storage_backend == "memory":
        warnings.append("prod: storage_backend=memory (status changes are lost on restart).")

    # --- Identity ---
    if not s.identity_enabled:
        warnings.append(
            "identity_base_url is not set: every caller is anonymous and 'found' transitions will be rejected."
        )
    elif not s.identity_service_key:
        warnings.append("identity_service_key is missing: owner lookups will return no email/name.")

    # --- Delivery channels (absence is tolerated, sends are skipped) ---
    if not s.email_enabled:
        warnings.append("SMTP credentials missing: email notifications will be skipped.")
    if not s.sms_enabled:
        warnings.append("Twilio credentials missing: SMS notifications will be skipped.")

    if s.channel_timeout_seconds <= 0:
        warnings.append("channel_timeout_seconds must be positive; sends will time out immediately.")

    return warnings


def validate_or_warn(s: "Settings") -> None:
    """
    In prod: enforce required settings (hard fail).
    In non-prod: warn only.
    """
    missing = s.validate_required_for_production()

    # Hard errors in production
    if missing:
        raise RuntimeError(f"Missing required settings for production: {', '.join(missing)}")

    # Warnings (all envs)
    for msg in warn_on_risky_config(s):
        print(f"[WARN][config] {msg}")

settings = Settings()
validate_or_warn(settings)
