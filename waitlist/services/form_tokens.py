"""Signed form tokens for server-rendered waitlist forms"""
from dataclasses import dataclass, field
from typing import Callable, Dict
import base64
import hashlib
import hmac
import json
import secrets

from waitlist.services.security import now_ms


class InvalidFormToken(ValueError):
    """Token is malformed, tampered with, or expired"""


@dataclass(frozen=True)
class FormTokenClaims:
    started_at: float
    honeypot_field_name: str
    nonce: str = field(default_factory=lambda: secrets.token_urlsafe(16))


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _signature(body: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), body.encode(), hashlib.sha256).digest()
    return _b64encode(digest)


def sign_form_token(claims: FormTokenClaims, secret: str) -> str:
    """Encode the render time and honeypot name so the submit route can trust them"""
    body = _b64encode(json.dumps({"s": claims.started_at, "h": claims.honeypot_field_name, "n": claims.nonce}).encode())
    return f"{body}.{_signature(body, secret)}"


def read_form_token(
    token: str,
    secret: str,
    max_age_sec: int,
    clock: Callable[[], float] = now_ms,
) -> FormTokenClaims:
    """
    Check the signature and age of a form token

    Raises:
        InvalidFormToken: if the token cannot be trusted
    """
    body, _, signature = token.partition(".")
    if not body or not signature:
        raise InvalidFormToken("Malformed form token")

    if not secrets.compare_digest(signature, _signature(body, secret)):
        raise InvalidFormToken("Bad form token signature")

    try:
        data = json.loads(_b64decode(body))
        claims = FormTokenClaims(
            started_at=float(data["s"]),
            honeypot_field_name=str(data["h"]),
            nonce=str(data["n"]),
        )
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidFormToken(f"Unreadable form token: {e}")

    if clock() - claims.started_at > max_age_sec * 1000:
        raise InvalidFormToken("Form token expired")
    return claims


class SpentFormTokens:
    """
    Nonces of form tokens that already carried a submission

    Entries are dropped once the token they belong to would have expired
    anyway, so the map only holds tokens that could still be replayed.
    """

    def __init__(self, clock: Callable[[], float] = now_ms):
        self.clock = clock
        self._expires_at: Dict[str, float] = {}

    def spend(self, claims: FormTokenClaims, max_age_sec: int) -> bool:
        """
        Mark a token as used

        Returns:
            False if the token was already spent
        """
        now = self.clock()
        self._expires_at = {nonce: at for nonce, at in self._expires_at.items() if at > now}
        if claims.nonce in self._expires_at:
            return False
        self._expires_at[claims.nonce] = claims.started_at + max_age_sec * 1000
        return True

    def release(self, claims: FormTokenClaims) -> None:
        """Give a token back when its submission never reached the pipeline"""
        self._expires_at.pop(claims.nonce, None)

    def __len__(self) -> int:
        return len(self._expires_at)

    def reset(self) -> None:
        self._expires_at.clear()
