"""Webhook-related Pydantic models"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any, Set, Union, Literal

from waitlist.models.events import EventKind, ErrorDetail


class WebhookSpec(BaseModel):
    """A configured webhook receiver"""
    url: str
    subscribed_events: Set[EventKind] = Field(default_factory=lambda: set(EventKind))
    field_selection: Union[Literal["all"], List[str]] = "all"
    headers: Dict[str, str] = {}
    retry: bool = False
    max_retries: int = Field(3, ge=0)

    @field_validator("subscribed_events", mode="before")
    @classmethod
    def parse_events(cls, value):
        if value is None:
            return set(EventKind)
        return {EventKind(v) for v in value}


class WebhookPayload(BaseModel):
    """JSON body delivered to a webhook receiver"""
    model_config = ConfigDict(populate_by_name=True)

    event: EventKind
    timestamp: str
    field: Optional[str] = None
    form_data: Optional[Dict[str, Any]] = Field(None, alias="formData")
    response: Optional[Dict[str, Any]] = None
    error: Optional[ErrorDetail] = None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WebhookProxyRequest(BaseModel):
    """Body posted to the webhook proxy by browser clients"""
    model_config = ConfigDict(populate_by_name=True)

    destination: Optional[str] = None
    headers: Dict[str, str] = {}
    payload: Optional[Dict[str, Any]] = None
    secret_key: Optional[str] = Field(None, alias="secretKey")


class DeliveryReport(BaseModel):
    """What happened to one webhook delivery"""
    url: str
    delivered: bool
    attempts: int = 0
    status_code: Optional[int] = None
    skipped: bool = False
