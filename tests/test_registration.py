import httpx
import pytest

from waitlist.exceptions import (
    RegistrationFaultError,
    RegistrationNetworkError,
    RegistrationRejectedError,
)
from waitlist.models.contacts import ResendMapping
from waitlist.models.fields import FieldSpec
from waitlist.services.registration import (
    DirectRegistrationClient,
    ProxiedRegistrationClient,
    build_contact,
)
from tests.helpers import RecordingTransport, json_response

MAPPING = ResendMapping(first_name="first", last_name="last", metadata=["company"])
VALUES = {"email": " jane@acme.io ", "first": "Jane", "last": "Doe", "company": "Acme", "role": "dev"}


def test_build_contact_splits_identity_and_metadata() -> None:
    fields = [FieldSpec(name="role", label="Role", is_metadata=True)]

    contact = build_contact(VALUES, MAPPING, fields)

    assert contact == {
        "email": "jane@acme.io",
        "first_name": "Jane",
        "last_name": "Doe",
        "metadata": {"company": "Acme", "role": "dev"},
    }


def test_build_contact_with_default_mapping() -> None:
    contact = build_contact({"email": "jane@acme.io", "company": "Acme"}, ResendMapping())

    assert contact["first_name"] is None
    assert contact["metadata"] == {}


@pytest.mark.asyncio
async def test_direct_registration_creates_contact() -> None:
    recorder = RecordingTransport(json_response(200, {"object": "contact", "id": "abc"}))
    client = DirectRegistrationClient("re_test", "aud_1", mapping=MAPPING, transport=recorder.transport)

    record = await client.register(VALUES)

    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.resend.com/audiences/aud_1/contacts"
    assert request.headers["Authorization"] == "Bearer re_test"
    assert recorder.json_bodies()[0] == {
        "email": "jane@acme.io",
        "unsubscribed": False,
        "first_name": "Jane",
        "last_name": "Doe",
        "metadata": {"company": "Acme"},
    }
    assert record.id == "abc"
    assert record.audience_id == "aud_1"
    assert record.created_at


@pytest.mark.asyncio
async def test_direct_registration_rejection() -> None:
    recorder = RecordingTransport(
        json_response(422, {"statusCode": 422, "message": "Invalid email", "name": "validation_error"})
    )
    client = DirectRegistrationClient("re_test", "aud_1", transport=recorder.transport)

    with pytest.raises(RegistrationRejectedError) as exc_info:
        await client.register({"email": "jane@acme.io"})

    assert exc_info.value.message == "Invalid email"
    assert exc_info.value.code == "validation_error"


@pytest.mark.asyncio
async def test_direct_registration_fault() -> None:
    recorder = RecordingTransport(json_response(500, {"message": "Internal error"}))
    client = DirectRegistrationClient("re_test", "aud_1", transport=recorder.transport)

    with pytest.raises(RegistrationFaultError):
        await client.register({"email": "jane@acme.io"})


@pytest.mark.asyncio
async def test_direct_registration_network_failure() -> None:
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = DirectRegistrationClient("re_test", "aud_1", transport=httpx.MockTransport(refuse))

    with pytest.raises(RegistrationNetworkError):
        await client.register({"email": "jane@acme.io"})


@pytest.mark.asyncio
async def test_proxied_registration_posts_expected_body() -> None:
    recorder = RecordingTransport(json_response(200, {
        "id": "abc",
        "email": "jane@acme.io",
        "audienceId": "aud_1",
        "createdAt": "2026-01-01T00:00:00+00:00",
    }))
    client = ProxiedRegistrationClient("https://app.test/api/resend-proxy", "aud_1", mapping=MAPPING, transport=recorder.transport)

    record = await client.register(VALUES)

    assert recorder.json_bodies()[0] == {
        "audienceId": "aud_1",
        "email": "jane@acme.io",
        "fields": {"company": "Acme", "firstName": "Jane", "lastName": "Doe"},
    }
    assert record.id == "abc"
    assert record.created_at == "2026-01-01T00:00:00+00:00"


@pytest.mark.asyncio
async def test_proxied_registration_surfaces_proxy_error() -> None:
    recorder = RecordingTransport(json_response(400, {"error": "Invalid email"}))
    client = ProxiedRegistrationClient("https://app.test/api/resend-proxy", "aud_1", transport=recorder.transport)

    with pytest.raises(RegistrationRejectedError) as exc_info:
        await client.register({"email": "jane@acme.io"})

    assert exc_info.value.message == "Invalid email"


@pytest.mark.asyncio
async def test_proxied_registration_fault() -> None:
    recorder = RecordingTransport(json_response(500, {"error": "Server configuration error"}))
    client = ProxiedRegistrationClient("https://app.test/api/resend-proxy", "aud_1", transport=recorder.transport)

    with pytest.raises(RegistrationFaultError):
        await client.register({"email": "jane@acme.io"})
