"""Form-related Pydantic models"""
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Dict, Any, Optional, List, Set

from waitlist.models.contacts import ResendMapping
from waitlist.models.events import EventKind
from waitlist.models.fields import FieldSpec, FieldValue, DEFAULT_FIELDS
from waitlist.models.webhooks import WebhookSpec


class SecurityConfig(BaseModel):
    """Bot protection switches"""
    enable_honeypot: bool = True
    check_submission_time: bool = True
    min_submission_time_ms: int = Field(1500, ge=0)
    enable_captcha: bool = False
    captcha_site_key: Optional[str] = None
    captcha_action: str = "submit_waitlist"
    captcha_min_score: float = 0.5
    captcha_allowed_actions: Optional[List[str]] = None


class AnalyticsConfig(BaseModel):
    """Which events are forwarded to analytics sinks"""
    enabled: bool = True
    track_events: Optional[Set[EventKind]] = None

    @field_validator("track_events", mode="before")
    @classmethod
    def parse_events(cls, value):
        if value is None:
            return None
        return {EventKind(v) for v in value}


class FormMessages(BaseModel):
    """User-facing copy"""
    success_title: str = "You're on the list!"
    success_description: str = "Thank you for joining our waitlist. We'll keep you updated."
    submission_failed: str = "Something went wrong. Please try again."
    captcha_failed: str = "Security verification failed. Please try again."


class FormConfig(BaseModel):
    """Everything a waitlist form needs at mount time"""
    audience_id: str = ""
    fields: List[FieldSpec] = Field(default_factory=lambda: list(DEFAULT_FIELDS))
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    mapping: ResendMapping = Field(default_factory=ResendMapping)
    webhooks: List[WebhookSpec] = []
    messages: FormMessages = Field(default_factory=FormMessages)

    @model_validator(mode="after")
    def check_unique_names(self):
        names = [f.name for f in self.fields]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate field names: {', '.join(sorted(duplicates))}")
        return self

    @property
    def captcha_enabled(self) -> bool:
        return bool(self.security.enable_captcha and self.security.captcha_site_key)


class SubmissionContext(BaseModel):
    """Per-attempt security inputs"""
    model_config = ConfigDict(frozen=True)

    started_at: float
    honeypot_field_name: str
    honeypot_value: FieldValue = None
    captcha_token: Optional[str] = None


class FormDescriptor(BaseModel):
    """What a renderer needs to draw a server-backed form"""
    model_config = ConfigDict(populate_by_name=True)

    fields: List[FieldSpec]
    honeypot_field_name: str = Field(alias="honeypotFieldName")
    form_token: str = Field(alias="formToken")
    captcha_site_key: Optional[str] = Field(None, alias="captchaSiteKey")
    honeypot_attributes: Dict[str, Any] = Field(alias="honeypotAttributes")


class FormSubmitRequest(BaseModel):
    """Form submission request"""
    model_config = ConfigDict(populate_by_name=True)

    form_token: str = Field(alias="formToken")
    values: Dict[str, FieldValue]
    captcha_token: Optional[str] = Field(None, alias="captchaToken")


class FormSubmitResponse(BaseModel):
    """Form submission response"""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    field_errors: Optional[Dict[str, str]] = Field(None, alias="fieldErrors")
