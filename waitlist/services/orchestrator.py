"""
Submission pipeline for a single waitlist form.

Validation, bot checks, optional CAPTCHA, registration, then event and
webhook notification. Every failure past the submit event is converted
into an error outcome here; nothing escapes to the host application.
"""
from typing import Any, Callable, Dict, Optional
import logging

from waitlist.exceptions import (
    CaptchaError,
    RegistrationError,
    RegistrationNetworkError,
    RegistrationRejectedError,
)
from waitlist.models.events import EventKind, EventRecord, ErrorDetail
from waitlist.models.fields import FieldValidation, FieldValue, FormValues
from waitlist.models.forms import FormConfig, SubmissionContext
from waitlist.models.outcome import (
    BotReason,
    ErrorKind,
    ErrorOutcome,
    FormState,
    PipelineOutcome,
    SuccessOutcome,
    SuppressedOutcome,
)
from waitlist.services.captcha import CaptchaVerifier, TokenSource
from waitlist.services.event_bus import EventBus
from waitlist.services.registration import RegistrationClient
from waitlist.services.security import SecurityGate, generate_honeypot_field_name, now_ms
from waitlist.services.validation import field_errors, is_form_valid, validate_form
from waitlist.services.webhooks import WebhookDispatcher

logger = logging.getLogger(__name__)


class WaitlistForm:
    """
    One mounted form instance and its submission state machine.

    idle -> validating -> security_check -> (captcha_pending ->) submitting
    -> succeeded | suppressed | failed

    Only one submission runs at a time; submit() while one is in flight, or
    after succeeded or suppressed, is ignored and returns None.

    failed is not terminal: submit() may be called again straight from it
    and keeps the entered values so the visitor can retry. Going back to
    idle with default values only happens through reset(), the way a host
    clears the form after showing the error.
    """

    def __init__(
        self,
        config: FormConfig,
        registration: RegistrationClient,
        *,
        event_bus: Optional[EventBus] = None,
        dispatcher: Optional[WebhookDispatcher] = None,
        captcha: Optional[CaptchaVerifier] = None,
        token_source: Optional[TokenSource] = None,
        security_gate: Optional[SecurityGate] = None,
        clock: Callable[[], float] = now_ms,
        honeypot_field_name: Optional[str] = None,
        started_at: Optional[float] = None,
    ):
        security = config.security
        self.config = config
        self.registration = registration
        self.bus = event_bus or EventBus()
        self.dispatcher = dispatcher or WebhookDispatcher(config.webhooks)
        self.token_source = token_source
        self.captcha = captcha or CaptchaVerifier(
            action=security.captcha_action,
            min_score=security.captcha_min_score,
            allowed_actions=security.captcha_allowed_actions,
        )
        self.clock = clock
        self.security_gate = security_gate or SecurityGate(
            enable_honeypot=security.enable_honeypot,
            check_submission_time=security.check_submission_time,
            min_submission_time_ms=security.min_submission_time_ms,
            clock=clock,
        )

        self.honeypot_field_name = honeypot_field_name or generate_honeypot_field_name()
        self.started_at = started_at if started_at is not None else clock()
        self.honeypot_value: FieldValue = ""
        self.values: FormValues = self._initial_values()
        self.validation_results: Dict[str, FieldValidation] = {}
        self.state = FormState.IDLE
        self.error_message: Optional[str] = None
        self.outcome: Optional[PipelineOutcome] = None

        self._mounted = True
        self._viewed = False

    def _initial_values(self) -> FormValues:
        return {spec.name: spec.initial_value() for spec in self.config.fields}

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def display_state(self) -> str:
        """What the visitor sees; suppressed submissions look successful"""
        if self.state in (FormState.SUCCEEDED, FormState.SUPPRESSED):
            return "success"
        if self.state == FormState.FAILED:
            return "error"
        if self.state.in_flight:
            return "submitting"
        return "idle"

    @property
    def field_errors(self) -> Dict[str, str]:
        return field_errors(self.validation_results)

    def _emit(self, kind: EventKind, **data: Any) -> EventRecord:
        record = EventRecord(kind=kind, **data)
        self.bus.emit(record)
        return record

    async def mount(self) -> None:
        """Emit the one-time view signal"""
        if self._viewed or not self._mounted:
            return
        self._viewed = True
        record = self._emit(EventKind.FIELD_FOCUS)
        self.dispatcher.dispatch_in_background(record)

    def unmount(self) -> None:
        """Tear down; results of a call still in flight are discarded"""
        self._mounted = False

    async def focus_field(self, name: str) -> None:
        if not self._mounted:
            return
        record = self._emit(EventKind.FIELD_FOCUS, field=name)
        self.dispatcher.dispatch_in_background(record)

    def set_value(self, name: str, value: FieldValue) -> None:
        if name == self.honeypot_field_name:
            self.honeypot_value = value
            return
        self.values[name] = value
        if name in self.validation_results and not self.validation_results[name].valid:
            self.validation_results[name] = FieldValidation(valid=True)

    def reset(self) -> None:
        """Back to idle with default values and a fresh timing start"""
        if self.state.in_flight:
            return
        self.state = FormState.IDLE
        self.values = self._initial_values()
        self.honeypot_value = ""
        self.validation_results = {}
        self.error_message = None
        self.outcome = None
        self.started_at = self.clock()

    async def submit(self) -> Optional[PipelineOutcome]:
        """
        Run the pipeline once

        Returns:
            The outcome, or None when the submit was ignored, failed local
            validation, or the form was unmounted before the result arrived
        """
        if self.state.in_flight or self.state.terminal:
            logger.info(f"Submit ignored in state {self.state.value}")
            return None

        self.state = FormState.VALIDATING
        self.error_message = None
        values = dict(self.values)
        context = SubmissionContext(
            started_at=self.started_at,
            honeypot_field_name=self.honeypot_field_name,
            honeypot_value=self.honeypot_value,
        )
        submit_record = self._emit(EventKind.SUBMIT, form_data=values)

        try:
            self.validation_results = validate_form(values, self.config.fields)
            if not is_form_valid(self.validation_results):
                self.state = FormState.IDLE
                return None

            self.state = FormState.SECURITY_CHECK
            bot_check = self.security_gate.check(context.honeypot_value, context.started_at)
            if bot_check.is_bot:
                return self._suppress(bot_check.reason)

            self.dispatcher.dispatch_in_background(submit_record)

            if self.config.captcha_enabled:
                self.state = FormState.CAPTCHA_PENDING
                try:
                    await self._run_captcha()
                except CaptchaError as e:
                    if not self._mounted:
                        return None
                    logger.warning(f"reCAPTCHA rejected submission: {e.message}")
                    return self._fail(ErrorOutcome(
                        kind=ErrorKind.CAPTCHA,
                        message=self.config.messages.captcha_failed,
                        detail=e.message,
                        code=e.code,
                    ), values)
                if not self._mounted:
                    return None

            self.state = FormState.SUBMITTING
            try:
                contact = await self.registration.register(values)
            except RegistrationError as e:
                if not self._mounted:
                    return None
                return self._fail(self._registration_error(e), values)
            if not self._mounted:
                return None

            return self._succeed(contact, values)

        except Exception as e:
            if not self._mounted:
                return None
            logger.error(f"Unexpected error during submission: {e}")
            return self._fail(ErrorOutcome(
                kind=ErrorKind.UNEXPECTED,
                message=self.config.messages.submission_failed,
                detail=str(e) or e.__class__.__name__,
            ), values)

    async def _run_captcha(self) -> None:
        if self.token_source is None:
            raise CaptchaError("No reCAPTCHA token source configured", status_code=500, code="not_configured")
        await self.captcha.run(self.token_source)

    def _registration_error(self, error: RegistrationError) -> ErrorOutcome:
        fallback = self.config.messages.submission_failed
        if isinstance(error, RegistrationNetworkError):
            return ErrorOutcome(kind=ErrorKind.NETWORK, message=fallback, detail=error.message, code=error.code)
        kind = ErrorKind.BACKEND_REJECTED if isinstance(error, RegistrationRejectedError) else ErrorKind.BACKEND_FAULT
        return ErrorOutcome(kind=kind, message=error.message or fallback, detail=error.message or fallback, code=error.code)

    def _suppress(self, reason: BotReason) -> SuppressedOutcome:
        logger.warning(f"Bot activity detected: {reason.value}")
        self.state = FormState.SUPPRESSED
        self.outcome = SuppressedOutcome(reason=reason)
        self._emit(EventKind.SECURITY, security_type="bot_detected", details={"reason": reason.value})
        return self.outcome

    def _succeed(self, contact, values: FormValues) -> SuccessOutcome:
        self.state = FormState.SUCCEEDED
        self.outcome = SuccessOutcome(record=contact)
        record = self._emit(
            EventKind.SUCCESS,
            form_data=values,
            response=contact.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        self.dispatcher.dispatch_in_background(record)
        return self.outcome

    def _fail(self, outcome: ErrorOutcome, values: FormValues) -> ErrorOutcome:
        self.state = FormState.FAILED
        self.outcome = outcome
        self.error_message = outcome.message
        record = self._emit(
            EventKind.ERROR,
            form_data=values,
            error=ErrorDetail(message=outcome.detail, code=outcome.code),
        )
        self.dispatcher.dispatch_in_background(record)
        return outcome

    async def drain(self) -> None:
        """Wait for webhook deliveries started by this form"""
        await self.dispatcher.drain()
