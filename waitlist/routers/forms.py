"""Server-rendered waitlist form: the whole submission pipeline runs here"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import JSONResponse
import logging

from waitlist.config import Settings, get_settings
from waitlist.models.forms import (
    FormConfig,
    FormDescriptor,
    FormSubmitRequest,
    FormSubmitResponse,
    SecurityConfig,
)
from waitlist.models.webhooks import WebhookSpec
from waitlist.services.captcha import CaptchaVerifier, StaticTokenSource
from waitlist.services.form_tokens import (
    FormTokenClaims,
    InvalidFormToken,
    SpentFormTokens,
    read_form_token,
    sign_form_token,
)
from waitlist.services.orchestrator import WaitlistForm
from waitlist.services.registration import DirectRegistrationClient, RegistrationClient
from waitlist.services.security import HONEYPOT_ATTRIBUTES, generate_honeypot_field_name, now_ms
from waitlist.services.webhooks import ExecutionContext, WebhookDispatcher

logger = logging.getLogger(__name__)
router = APIRouter()
spent_tokens = SpentFormTokens()


def get_form_config(settings: Settings = Depends(get_settings)) -> FormConfig:
    """Form configuration derived from the application settings"""
    return FormConfig(
        audience_id=settings.resend_audience_id,
        security=SecurityConfig(
            min_submission_time_ms=settings.min_submission_time_ms,
            enable_captcha=bool(settings.recaptcha_site_key),
            captcha_site_key=settings.recaptcha_site_key or None,
            captcha_min_score=settings.recaptcha_min_score,
            captcha_allowed_actions=settings.recaptcha_allowed_actions or None,
        ),
        webhooks=[WebhookSpec(url=url, retry=settings.webhook_retry) for url in settings.webhook_urls],
    )


def get_registration_client(
    settings: Settings = Depends(get_settings),
    config: FormConfig = Depends(get_form_config),
) -> RegistrationClient:
    if not settings.resend_api_key:
        logger.error("Resend API key is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error: missing API key")
    return DirectRegistrationClient(
        settings.resend_api_key,
        config.audience_id,
        mapping=config.mapping,
        fields=config.fields,
        base_url=settings.resend_api_url,
    )


def get_form_captcha_verifier(
    settings: Settings = Depends(get_settings),
    config: FormConfig = Depends(get_form_config),
) -> CaptchaVerifier:
    return CaptchaVerifier(
        action=config.security.captcha_action,
        min_score=config.security.captcha_min_score,
        allowed_actions=config.security.captcha_allowed_actions,
        secret_key=settings.recaptcha_secret_key or None,
        verify_url=settings.recaptcha_verify_url,
    )


def get_webhook_dispatcher(config: FormConfig = Depends(get_form_config)) -> WebhookDispatcher:
    return WebhookDispatcher(config.webhooks, context=ExecutionContext.SERVER)


@router.get("/form", response_model=FormDescriptor, response_model_by_alias=True)
async def get_form(
    settings: Settings = Depends(get_settings),
    config: FormConfig = Depends(get_form_config),
):
    """Describe the form and issue a signed token that starts the submission timer"""
    claims = FormTokenClaims(started_at=now_ms(), honeypot_field_name=generate_honeypot_field_name())
    return FormDescriptor(
        fields=config.fields,
        honeypot_field_name=claims.honeypot_field_name,
        form_token=sign_form_token(claims, settings.form_signing_secret),
        captcha_site_key=config.security.captcha_site_key if config.captcha_enabled else None,
        honeypot_attributes=HONEYPOT_ATTRIBUTES,
    )


@router.post("/submit", response_model=FormSubmitResponse, response_model_by_alias=True, response_model_exclude_none=True)
async def submit_form(
    body: FormSubmitRequest,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    config: FormConfig = Depends(get_form_config),
    registration: RegistrationClient = Depends(get_registration_client),
    captcha: CaptchaVerifier = Depends(get_form_captcha_verifier),
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher),
):
    """Handle a waitlist submission (PUBLIC endpoint)"""
    try:
        claims = read_form_token(body.form_token, settings.form_signing_secret, settings.form_token_max_age_sec)
    except InvalidFormToken as e:
        logger.warning(f"Rejected waitlist submission: {e}")
        raise HTTPException(status_code=400, detail={"success": False, "error": "Invalid or expired form"})

    if not spent_tokens.spend(claims, settings.form_token_max_age_sec):
        logger.warning("Rejected waitlist submission: form token already used")
        raise HTTPException(status_code=400, detail={"success": False, "error": "Invalid or expired form"})

    form = WaitlistForm(
        config,
        registration,
        dispatcher=dispatcher,
        captcha=captcha,
        token_source=StaticTokenSource(body.captcha_token),
        honeypot_field_name=claims.honeypot_field_name,
        started_at=claims.started_at,
    )
    for spec in config.fields:
        if spec.name in body.values:
            form.set_value(spec.name, body.values[spec.name])
    form.set_value(claims.honeypot_field_name, body.values.get(claims.honeypot_field_name, ""))

    outcome = await form.submit()
    background_tasks.add_task(form.drain)

    # Returned rather than raised so the webhook drain still runs
    if outcome is None:
        # Nothing was sent anywhere, the visitor may correct the values and retry
        spent_tokens.release(claims)
        return JSONResponse(status_code=422, content={"success": False, "fieldErrors": form.field_errors})

    if outcome.renders_as_success:
        return FormSubmitResponse(success=True, message=config.messages.success_title)

    return JSONResponse(status_code=400, content={"success": False, "error": outcome.message})
