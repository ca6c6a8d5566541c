import logging

import pytest

from waitlist.config import DEFAULT_FORM_SIGNING_SECRET, check_form_signing_secret
from tests.helpers import make_settings


def test_default_secret_is_refused_in_production() -> None:
    settings = make_settings(form_signing_secret=DEFAULT_FORM_SIGNING_SECRET, environment="production")

    with pytest.raises(RuntimeError):
        check_form_signing_secret(settings)


def test_default_secret_only_warns_in_development(caplog) -> None:
    settings = make_settings(form_signing_secret=DEFAULT_FORM_SIGNING_SECRET, environment="development")

    with caplog.at_level(logging.WARNING, logger="waitlist.config"):
        check_form_signing_secret(settings)

    assert "FORM_SIGNING_SECRET" in caplog.text


def test_configured_secret_passes() -> None:
    check_form_signing_secret(make_settings(environment="production"))
