import pytest

from waitlist.exceptions import RegistrationRejectedError
from waitlist.models.forms import FormConfig, SecurityConfig
from waitlist.models.webhooks import WebhookSpec
from waitlist.routers import forms
from waitlist.services.captcha import CaptchaVerifier
from waitlist.services.form_tokens import FormTokenClaims, sign_form_token
from waitlist.services.security import now_ms
from waitlist.services.webhooks import WebhookDispatcher
from tests.helpers import FakeRegistration, RecordingTransport, json_response

HONEYPOT = "website_abc123"


@pytest.fixture
def registration(app):
    fake = FakeRegistration(contact_id="abc")
    app.dependency_overrides[forms.get_registration_client] = lambda: fake
    return fake


@pytest.fixture
def form_config(app):
    config = FormConfig(audience_id="aud_1")
    app.dependency_overrides[forms.get_form_config] = lambda: config
    return config


def form_token(settings, age_ms: float = 5_000) -> str:
    claims = FormTokenClaims(started_at=now_ms() - age_ms, honeypot_field_name=HONEYPOT)
    return sign_form_token(claims, settings.form_signing_secret)


def test_form_descriptor(client, form_config) -> None:
    response = client.get("/api/waitlist/form")

    assert response.status_code == 200
    body = response.json()
    assert [field["name"] for field in body["fields"]] == ["email"]
    assert body["honeypotFieldName"]
    assert body["formToken"]
    assert body["captchaSiteKey"] is None
    assert body["honeypotAttributes"]["tabindex"] == -1


def test_submit_registers_contact(client, settings, form_config, registration) -> None:
    response = client.post("/api/waitlist/submit", json={
        "formToken": form_token(settings),
        "values": {"email": "jane@acme.io", HONEYPOT: ""},
    })

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "You're on the list!"}
    assert registration.calls == [{"email": "jane@acme.io"}]


def test_honeypot_submission_looks_successful(client, settings, form_config, registration) -> None:
    response = client.post("/api/waitlist/submit", json={
        "formToken": form_token(settings),
        "values": {"email": "jane@acme.io", HONEYPOT: "spam"},
    })

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert registration.calls == []


def test_instant_submission_looks_successful(client, settings, form_config, registration) -> None:
    response = client.post("/api/waitlist/submit", json={
        "formToken": form_token(settings, age_ms=100),
        "values": {"email": "jane@acme.io"},
    })

    assert response.json()["success"] is True
    assert registration.calls == []


def test_invalid_values(client, settings, form_config, registration) -> None:
    response = client.post("/api/waitlist/submit", json={
        "formToken": form_token(settings),
        "values": {"email": "nope"},
    })

    assert response.status_code == 422
    assert response.json() == {"success": False, "fieldErrors": {"email": "Please enter a valid email address"}}


def test_backend_rejection(app, client, settings, form_config) -> None:
    app.dependency_overrides[forms.get_registration_client] = lambda: FakeRegistration(
        error=RegistrationRejectedError("Invalid email")
    )

    response = client.post("/api/waitlist/submit", json={
        "formToken": form_token(settings),
        "values": {"email": "jane@acme.io"},
    })

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid email"}


def test_tampered_token(client, form_config, registration) -> None:
    response = client.post("/api/waitlist/submit", json={
        "formToken": "forged.token",
        "values": {"email": "jane@acme.io"},
    })

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid or expired form"}
    assert registration.calls == []


def test_captcha_rejection(app, client, settings, registration) -> None:
    config = FormConfig(
        audience_id="aud_1",
        security=SecurityConfig(enable_captcha=True, captcha_site_key="site-key"),
    )
    app.dependency_overrides[forms.get_form_config] = lambda: config
    recorder = RecordingTransport(json_response(200, {"success": True, "score": 0.2, "action": "submit_waitlist"}))
    app.dependency_overrides[forms.get_form_captcha_verifier] = lambda: CaptchaVerifier(
        secret_key="recaptcha-secret", transport=recorder.transport
    )

    response = client.post("/api/waitlist/submit", json={
        "formToken": form_token(settings),
        "values": {"email": "jane@acme.io"},
        "captchaToken": "tok",
    })

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Security verification failed. Please try again."}
    assert registration.calls == []


def test_webhooks_are_delivered(app, client, settings, form_config, registration) -> None:
    recorder = RecordingTransport(json_response(200, {}))
    app.dependency_overrides[forms.get_webhook_dispatcher] = lambda: WebhookDispatcher(
        [WebhookSpec(url="https://hooks.test/a")], transport=recorder.transport
    )

    client.post("/api/waitlist/submit", json={
        "formToken": form_token(settings),
        "values": {"email": "jane@acme.io"},
    })

    assert sorted(body["event"] for body in recorder.json_bodies()) == ["submit", "success"]


def test_form_token_is_single_use(client, settings, form_config, registration) -> None:
    token = form_token(settings)

    responses = [
        client.post("/api/waitlist/submit", json={"formToken": token, "values": {"email": email}})
        for email in ("jane@acme.io", "john@acme.io", "joan@acme.io")
    ]

    assert [response.status_code for response in responses] == [200, 400, 400]
    assert responses[1].json() == {"success": False, "error": "Invalid or expired form"}
    assert registration.calls == [{"email": "jane@acme.io"}]


def test_token_survives_invalid_values(client, settings, form_config, registration) -> None:
    token = form_token(settings)

    first = client.post("/api/waitlist/submit", json={"formToken": token, "values": {"email": "nope"}})
    second = client.post("/api/waitlist/submit", json={"formToken": token, "values": {"email": "jane@acme.io"}})

    assert first.status_code == 422
    assert second.status_code == 200
    assert registration.calls == [{"email": "jane@acme.io"}]


def test_suppressed_submission_spends_the_token(client, settings, form_config, registration) -> None:
    token = form_token(settings)

    client.post("/api/waitlist/submit", json={"formToken": token, "values": {"email": "jane@acme.io", HONEYPOT: "spam"}})
    retry = client.post("/api/waitlist/submit", json={"formToken": token, "values": {"email": "jane@acme.io"}})

    assert retry.status_code == 400
    assert registration.calls == []
