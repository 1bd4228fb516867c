"""Contact form request/response models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ContactSubmission(BaseModel):
    """One contact-form submission. Read-only; never persisted."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = ""
    email: str = ""
    message: str = ""
    recaptcha_token: Optional[str] = Field(
        default=None,
        validation_alias="recaptchaToken",
    )

    @field_validator("name", "email", "message", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        # Non-string JSON values count as absent; the validator reports them.
        if not isinstance(value, str):
            return ""
        return value.strip()

    @field_validator("recaptcha_token", mode="before")
    @classmethod
    def _coerce_token(cls, value):
        if not isinstance(value, str):
            return None
        return value.strip() or None

    def as_classifier_payload(self) -> dict[str, str]:
        return {"name": self.name, "email": self.email, "message": self.message}


class PipelineResult(BaseModel):
    """The single response payload for ``POST /api/contact``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    email_sent: bool = False
    ai_decision: Optional[str] = None
    ai_reason: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RecaptchaToggleResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    recaptcha_enabled: bool
    state: str
