"""Application configuration"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)

DEFAULT_FORM_SIGNING_SECRET = "change-me"


class Settings(BaseSettings):
    """Application settings"""

    # Resend (mailing-list backend)
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com"
    resend_audience_id: str = ""
    allowed_audiences: List[str] = []

    # reCAPTCHA
    recaptcha_site_key: str = ""
    recaptcha_secret_key: str = ""
    recaptcha_verify_url: str = "https://www.google.com/recaptcha/api/siteverify"
    recaptcha_min_score: float = 0.5
    recaptcha_allowed_actions: List[str] = ["submit_waitlist"]

    # Webhook proxy
    webhook_allowed_destinations: List[str] = []
    webhook_proxy_secret: str = ""
    webhook_default_headers: Dict[str, str] = {}

    # Proxy rate limiting (0 disables)
    rate_limit_max: int = 0
    rate_limit_window_sec: int = 60
    # Only enable behind a reverse proxy that sets X-Forwarded-For itself
    trust_forwarded_for: bool = False

    # Server-rendered waitlist form
    webhook_urls: List[str] = []
    webhook_retry: bool = True
    min_submission_time_ms: int = 1500
    form_signing_secret: str = DEFAULT_FORM_SIGNING_SECRET
    form_token_max_age_sec: int = 60 * 60 * 24

    # Application
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def check_form_signing_secret(settings: Settings) -> None:
    """
    Refuse the placeholder form signing secret outside development

    Anyone who knows it can forge form tokens and skip the timing check.
    """
    if settings.form_signing_secret != DEFAULT_FORM_SIGNING_SECRET:
        return
    if settings.environment == "development":
        logger.warning("FORM_SIGNING_SECRET is not set; form tokens use the development default")
        return
    raise RuntimeError("FORM_SIGNING_SECRET must be set outside development")
