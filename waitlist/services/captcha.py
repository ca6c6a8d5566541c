"""reCAPTCHA token acquisition and verification"""
from abc import ABC, abstractmethod
from typing import Dict, Any, Iterable, Optional
import asyncio
import httpx
import logging

from waitlist.exceptions import CaptchaError
from waitlist.models.captcha import CaptchaVerification

logger = logging.getLogger(__name__)

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
DEFAULT_ACTION = "submit_waitlist"
DEFAULT_MIN_SCORE = 0.5


def evaluate_verification(
    data: CaptchaVerification,
    min_score: float = DEFAULT_MIN_SCORE,
    allowed_actions: Optional[Iterable[str]] = None,
) -> CaptchaVerification:
    """
    Apply the acceptance policy to a verification result

    Order: backend success flag, score, action allow-list.

    Raises:
        CaptchaError: 400 when the backend rejected the token,
            403 when the score or action fails the policy
    """
    if not data.success:
        detail = ", ".join(data.error_codes) or data.error or "verification-failed"
        raise CaptchaError(f"Verification failed: {detail}", status_code=400, code="verification_failed")

    if data.score is None or data.score < min_score:
        raise CaptchaError(
            f"reCAPTCHA score too low: {data.score} (minimum: {min_score})",
            status_code=403,
            code="score_too_low",
        )

    allowed = list(allowed_actions or [])
    if allowed and data.action not in allowed:
        raise CaptchaError("Action not allowed", status_code=403, code="action_not_allowed")

    return data


class TokenSource(ABC):
    """
    Client-side half of the protocol: load the verification script once,
    then hand out tokens scoped to an action.

    One source is shared by every form on the same page; the load runs at
    most once and concurrent callers wait for the same load.
    """

    def __init__(self):
        self._load_task: Optional[asyncio.Task] = None

    @property
    def loaded(self) -> bool:
        return (
            self._load_task is not None
            and self._load_task.done()
            and not self._load_task.cancelled()
            and self._load_task.exception() is None
        )

    async def _load(self) -> None:
        """Load the verification script; sources with nothing to load keep this no-op"""

    @abstractmethod
    async def _execute(self, action: str) -> Optional[str]:
        """Produce a token for the given action"""

    async def ensure_loaded(self) -> None:
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._load())
        try:
            await asyncio.shield(self._load_task)
        except Exception as e:
            # Forget the failed load so a later attempt can try again
            self._load_task = None
            logger.error(f"reCAPTCHA: failed to load script: {e}")
            raise CaptchaError(f"Failed to load reCAPTCHA script: {e}", status_code=500, code="script_load_failed")

    async def acquire(self, action: str = DEFAULT_ACTION) -> str:
        await self.ensure_loaded()
        try:
            token = await self._execute(action)
        except CaptchaError:
            raise
        except Exception as e:
            logger.error(f"reCAPTCHA: execution failed: {e}")
            raise CaptchaError(f"reCAPTCHA execution failed: {e}", status_code=500, code="execution_failed")

        if not token:
            raise CaptchaError("reCAPTCHA returned an empty token", status_code=400, code="token_required")
        return token


class StaticTokenSource(TokenSource):
    """Token already obtained by the browser and posted along with the form"""

    def __init__(self, token: Optional[str]):
        super().__init__()
        self.token = token

    async def _execute(self, action: str) -> Optional[str]:
        return self.token


class CaptchaVerifier:
    """Server half of the protocol: verify a token via the proxy or siteverify"""

    def __init__(
        self,
        action: str = DEFAULT_ACTION,
        min_score: float = DEFAULT_MIN_SCORE,
        allowed_actions: Optional[Iterable[str]] = None,
        proxy_endpoint: Optional[str] = None,
        secret_key: Optional[str] = None,
        verify_url: str = RECAPTCHA_VERIFY_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.action = action
        self.min_score = min_score
        self.allowed_actions = list(allowed_actions) if allowed_actions else None
        self.proxy_endpoint = proxy_endpoint
        self.secret_key = secret_key
        self.verify_url = verify_url
        self.transport = transport

    async def _post(self, url: str, **kwargs) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
                response = await client.post(url, **kwargs)
            data = response.json()
        except (httpx.RequestError, ValueError) as e:
            logger.error(f"reCAPTCHA: verification request failed: {e}")
            raise CaptchaError(f"Verification request failed: {e}", status_code=500, code="verification_error")

        if not isinstance(data, dict):
            raise CaptchaError("Malformed verification response", status_code=500, code="verification_error")

        if response.status_code >= 400:
            detail = data.get("error") or ", ".join(data.get("error-codes") or []) or "Verification failed"
            status_code = 500 if response.status_code >= 500 else response.status_code
            logger.warning(f"reCAPTCHA: verification rejected ({response.status_code}): {detail}")
            raise CaptchaError(detail, status_code=status_code, code="verification_failed")
        return data

    async def fetch(self, token: Optional[str]) -> CaptchaVerification:
        """Ask the verification backend about a token, without applying the policy"""
        if not token:
            raise CaptchaError("Token is required", status_code=400, code="token_required")

        if self.proxy_endpoint:
            logger.info(f"reCAPTCHA: verifying token via proxy (length: {len(token)})")
            data = await self._post(self.proxy_endpoint, json={"token": token, "action": self.action})
        elif self.secret_key:
            logger.info(f"reCAPTCHA: verifying token directly (length: {len(token)})")
            data = await self._post(self.verify_url, data={"secret": self.secret_key, "response": token})
        else:
            raise CaptchaError(
                "No reCAPTCHA verification method configured (provide a proxy endpoint or secret key)",
                status_code=500,
                code="not_configured",
            )

        return CaptchaVerification.model_validate(data)

    async def verify(self, token: Optional[str]) -> CaptchaVerification:
        """
        Verify a token and apply the acceptance policy

        Raises:
            CaptchaError: on any rejection; rejections are terminal
        """
        data = await self.fetch(token)
        result = evaluate_verification(data, min_score=self.min_score, allowed_actions=self.allowed_actions)
        logger.info(f"reCAPTCHA: verification successful, score: {result.score}")
        return result

    async def run(self, source: TokenSource) -> CaptchaVerification:
        token = await source.acquire(self.action)
        return await self.verify(token)
