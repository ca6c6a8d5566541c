import re

from waitlist.models.outcome import BotReason
from waitlist.services.security import (
    HONEYPOT_ATTRIBUTES,
    HONEYPOT_LABELS,
    SecurityGate,
    generate_honeypot_field_name,
)
from tests.helpers import FakeClock


def test_honeypot_name_is_label_plus_suffix() -> None:
    name = generate_honeypot_field_name()

    label, _, suffix = name.rpartition("_")
    assert label in HONEYPOT_LABELS
    assert re.fullmatch(r"[a-z0-9]{6}", suffix)


def test_honeypot_names_vary() -> None:
    names = {generate_honeypot_field_name() for _ in range(20)}
    assert len(names) > 1


def test_honeypot_is_hidden_from_people_and_assistive_tech() -> None:
    assert HONEYPOT_ATTRIBUTES["tabindex"] == -1
    assert HONEYPOT_ATTRIBUTES["aria-hidden"] == "true"
    assert HONEYPOT_ATTRIBUTES["autocomplete"] == "off"
    assert HONEYPOT_ATTRIBUTES["style"]["left"] == "-9999px"


def test_filled_honeypot_is_bot_like() -> None:
    gate = SecurityGate(clock=FakeClock(10_000))

    check = gate.check("spam", started_at=0)

    assert check.is_bot
    assert check.reason == BotReason.HONEYPOT_FILLED


def test_honeypot_is_checked_before_timing() -> None:
    gate = SecurityGate(clock=FakeClock(100))

    check = gate.check("spam", started_at=0)

    assert check.reason == BotReason.HONEYPOT_FILLED


def test_fast_submission_is_bot_like() -> None:
    clock = FakeClock(0)
    gate = SecurityGate(clock=clock)
    clock.advance(500)

    check = gate.check("", started_at=0)

    assert check.is_bot
    assert check.reason == BotReason.TOO_FAST


def test_submission_at_threshold_passes() -> None:
    gate = SecurityGate(min_submission_time_ms=1500, clock=FakeClock(1500))

    assert not gate.check("", started_at=0).is_bot


def test_disabled_checks_never_flag() -> None:
    gate = SecurityGate(enable_honeypot=False, check_submission_time=False, clock=FakeClock(1))

    check = gate.check("spam", started_at=0)

    assert not check.is_bot
    assert check.reason is None
