"""Honeypot and timing heuristics for bot detection"""
from dataclasses import dataclass
from typing import Callable, Optional
import logging
import secrets
import string
import time

from waitlist.models.outcome import BotReason

logger = logging.getLogger(__name__)

DEFAULT_MIN_SUBMISSION_TIME_MS = 1500

# Labels a form-filling bot is likely to treat as a real input
HONEYPOT_LABELS = ("website", "company_url", "homepage", "fax_number", "nickname")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

# Attributes a renderer applies to hide the honeypot from people and assistive tech
HONEYPOT_ATTRIBUTES = {
    "style": {
        "position": "absolute",
        "left": "-9999px",
        "top": "-9999px",
        "opacity": 0,
        "height": 0,
        "width": 0,
        "z-index": -1,
        "overflow": "hidden",
        "pointer-events": "none",
    },
    "tabindex": -1,
    "aria-hidden": "true",
    "autocomplete": "off",
}


def now_ms() -> float:
    return time.time() * 1000


def generate_honeypot_field_name() -> str:
    """Plausible field label plus a random suffix, e.g. ``website_k3x9qa``"""
    label = secrets.choice(HONEYPOT_LABELS)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{label}_{suffix}"


def is_honeypot_filled(value) -> bool:
    if value is None or value is False:
        return False
    return str(value) != ""


@dataclass(frozen=True)
class BotCheck:
    is_bot: bool
    reason: Optional[BotReason] = None


NOT_BOT = BotCheck(is_bot=False)


class SecurityGate:
    """Classifies a submission attempt as bot-like or not"""

    def __init__(
        self,
        enable_honeypot: bool = True,
        check_submission_time: bool = True,
        min_submission_time_ms: int = DEFAULT_MIN_SUBMISSION_TIME_MS,
        clock: Callable[[], float] = now_ms,
    ):
        self.enable_honeypot = enable_honeypot
        self.check_submission_time = check_submission_time
        self.min_submission_time_ms = min_submission_time_ms
        self.clock = clock

    def is_too_fast(self, started_at: float) -> bool:
        return self.clock() - started_at < self.min_submission_time_ms

    def check(self, honeypot_value, started_at: float) -> BotCheck:
        """
        Run the enabled checks, honeypot first

        Args:
            honeypot_value: Value of the hidden field at submit time
            started_at: Mount timestamp in milliseconds

        Returns:
            BotCheck with the first matching reason
        """
        if self.enable_honeypot and is_honeypot_filled(honeypot_value):
            return BotCheck(is_bot=True, reason=BotReason.HONEYPOT_FILLED)

        if self.check_submission_time and self.is_too_fast(started_at):
            return BotCheck(is_bot=True, reason=BotReason.TOO_FAST)

        return NOT_BOT
