"""CAPTCHA proxy: verifies reCAPTCHA tokens with the secret key"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from waitlist.config import Settings, get_settings
from waitlist.exceptions import CaptchaError
from waitlist.middleware.rate_limit import RateLimiter, rate_limited
from waitlist.models.captcha import CaptchaVerifyRequest
from waitlist.services.captcha import CaptchaVerifier, evaluate_verification

logger = logging.getLogger(__name__)
router = APIRouter()

limiter = RateLimiter()


def get_captcha_verifier(settings: Settings = Depends(get_settings)) -> CaptchaVerifier:
    return CaptchaVerifier(
        min_score=settings.recaptcha_min_score,
        allowed_actions=settings.recaptcha_allowed_actions,
        secret_key=settings.recaptcha_secret_key,
        verify_url=settings.recaptcha_verify_url,
    )


@router.post("")
async def recaptcha_proxy(
    body: CaptchaVerifyRequest,
    settings: Settings = Depends(get_settings),
    verifier: CaptchaVerifier = Depends(get_captcha_verifier),
    _: None = Depends(rate_limited(limiter)),
):
    """Verify a token and apply the score/action policy (PUBLIC endpoint)"""
    if not body.token:
        raise HTTPException(status_code=400, detail={"success": False, "error": "Token is required"})

    if not settings.recaptcha_secret_key:
        logger.error("reCAPTCHA secret key is not configured")
        raise HTTPException(
            status_code=500,
            detail={"success": False, "error": "Server configuration error: missing secret key"},
        )

    try:
        data = await verifier.fetch(body.token)
        if not data.success:
            logger.warning(f"reCAPTCHA verification failed: {data.error_codes}")
            raise HTTPException(status_code=400, detail={"success": False, "error-codes": data.error_codes})

        if body.action and data.action != body.action:
            logger.warning(f"reCAPTCHA action mismatch: expected {body.action}, got {data.action}")
            raise HTTPException(
                status_code=400,
                detail={"success": False, "error": f"Action mismatch: expected {body.action}, got {data.action}"},
            )

        evaluate_verification(data, min_score=verifier.min_score, allowed_actions=verifier.allowed_actions)

    except CaptchaError as e:
        raise HTTPException(status_code=e.status_code, detail={"success": False, "error": e.message})

    logger.info(f"reCAPTCHA verified, score: {data.score}")
    return data.model_dump(by_alias=True, exclude_none=True)
