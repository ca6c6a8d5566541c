"""Shared fakes for the waitlist tests."""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import httpx

from waitlist.config import Settings
from waitlist.models.contacts import ContactRecord


class FakeClock:
    """Millisecond clock the test moves by hand."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeRegistration:
    """Registration client double; optionally blocks until released."""

    def __init__(
        self,
        contact_id: str = "abc",
        error: Optional[Exception] = None,
        block: bool = False,
    ):
        self.contact_id = contact_id
        self.error = error
        self.calls: List[Dict[str, Any]] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        if not block:
            self.release.set()

    async def register(self, values) -> ContactRecord:
        self.calls.append(dict(values))
        self.started.set()
        await self.release.wait()
        if self.error:
            raise self.error
        return ContactRecord(id=self.contact_id, email=values.get("email"), audience_id="aud_1")


class RecordingTransport:
    """httpx.MockTransport wrapper that keeps every request it answered."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []
        self._responder = responder
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    def json_bodies(self) -> List[Any]:
        return [json.loads(request.content) for request in self.requests]


def json_response(status_code: int, body: Any) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status_code, json=body)


def status_sequence(*status_codes: int) -> Callable[[httpx.Request], httpx.Response]:
    """Answer with the given statuses in order, repeating the last one."""
    remaining = list(status_codes)

    def respond(request: httpx.Request) -> httpx.Response:
        status_code = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return httpx.Response(status_code, json={"status": status_code})

    return respond


def make_settings(**overrides) -> Settings:
    values = {
        "resend_api_key": "re_test",
        "recaptcha_secret_key": "recaptcha-secret",
        "form_signing_secret": "test-secret",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
