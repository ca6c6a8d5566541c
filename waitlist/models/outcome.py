"""Pipeline state and outcome models"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Union, Literal, Annotated
from enum import Enum

from waitlist.models.contacts import ContactRecord


class FormState(str, Enum):
    """States of the submission state machine"""
    IDLE = "idle"
    VALIDATING = "validating"
    SECURITY_CHECK = "security_check"
    CAPTCHA_PENDING = "captcha_pending"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    SUPPRESSED = "suppressed"
    FAILED = "failed"

    @property
    def in_flight(self) -> bool:
        return self in IN_FLIGHT_STATES

    @property
    def terminal(self) -> bool:
        return self in (FormState.SUCCEEDED, FormState.SUPPRESSED)


IN_FLIGHT_STATES = frozenset({
    FormState.VALIDATING,
    FormState.SECURITY_CHECK,
    FormState.CAPTCHA_PENDING,
    FormState.SUBMITTING,
})


class ErrorKind(str, Enum):
    """Failure families surfaced by the pipeline"""
    CAPTCHA = "captcha"
    NETWORK = "network"
    BACKEND_REJECTED = "backend_rejected"
    BACKEND_FAULT = "backend_fault"
    UNEXPECTED = "unexpected"


class BotReason(str, Enum):
    HONEYPOT_FILLED = "honeypot_filled"
    TOO_FAST = "too_fast"


class SuccessOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    record: ContactRecord

    @property
    def renders_as_success(self) -> bool:
        return True


class ErrorOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["error"] = "error"
    kind: ErrorKind
    message: str
    detail: str
    code: Optional[str] = None

    @property
    def renders_as_success(self) -> bool:
        return False


class SuppressedOutcome(BaseModel):
    """Bot-like submission; shown to the sender exactly like a success"""
    model_config = ConfigDict(frozen=True)

    status: Literal["suppressed"] = "suppressed"
    reason: BotReason

    @property
    def renders_as_success(self) -> bool:
        return True


PipelineOutcome = Annotated[
    Union[SuccessOutcome, ErrorOutcome, SuppressedOutcome],
    Field(discriminator="status"),
]
