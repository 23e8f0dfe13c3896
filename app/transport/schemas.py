# app/transport/schemas.py
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Deliberately loose: rejects obvious garbage, leaves deliverability to SMTP
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

FREE_TEXT_MAX = 300


class StatusUpdateIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: Literal["lost", "found"]
    last_seen_location: str | None = Field(default=None, max_length=FREE_TEXT_MAX)
    lost_message: str | None = Field(default=None, max_length=FREE_TEXT_MAX)


class ReportFoundIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    finder_name: str | None = Field(default=None, max_length=FREE_TEXT_MAX)
    finder_email: str | None = Field(default=None, max_length=254, pattern=EMAIL_PATTERN)
    found_location: str | None = Field(default=None, max_length=FREE_TEXT_MAX)
    message: str | None = Field(default=None, max_length=FREE_TEXT_MAX)


class ReportLostIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reporter_name: str | None = Field(default=None, max_length=FREE_TEXT_MAX)
    reporter_email: str | None = Field(default=None, max_length=254, pattern=EMAIL_PATTERN)
    last_seen_location: str | None = Field(default=None, max_length=FREE_TEXT_MAX)
    message: str | None = Field(default=None, max_length=FREE_TEXT_MAX)


class StatusUpdateOut(BaseModel):
    animal: dict
    prev_lost: bool
    new_lost: bool
    status_changed: bool
    notification_scheduled: bool


class ReportOut(BaseModel):
    ok: bool = True
    notification_scheduled: bool
    message: str
