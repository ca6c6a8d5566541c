"""Event-related Pydantic models"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum


class EventKind(str, Enum):
    """Kinds of events emitted by a waitlist form"""
    FIELD_FOCUS = "field_focus"
    SUBMIT = "submit"
    SUCCESS = "success"
    ERROR = "error"
    SECURITY = "security"

    @classmethod
    def _missing_(cls, value):
        # "view" is the legacy name of the one-time mount signal
        if value == "view":
            return cls.FIELD_FOCUS
        return None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    """Error information carried by error events"""
    message: str
    code: Optional[str] = None


class EventRecord(BaseModel):
    """Immutable record handed to event subscribers"""
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    timestamp: datetime = Field(default_factory=utc_now)
    field: Optional[str] = None
    form_data: Optional[Dict[str, Any]] = None
    response: Optional[Dict[str, Any]] = None
    error: Optional[ErrorDetail] = None
    security_type: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
