"""Contact registration with the mailing-list backend"""
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Protocol
import httpx
import logging

from waitlist.exceptions import (
    RegistrationError,
    RegistrationFaultError,
    RegistrationNetworkError,
    RegistrationRejectedError,
)
from waitlist.models.contacts import ContactRecord, ResendMapping
from waitlist.models.fields import FieldSpec, FormValues
from waitlist.services.resend_client import RESEND_API_URL, ResendAPIError, ResendAudienceClient

logger = logging.getLogger(__name__)


class RegistrationClient(Protocol):
    """What the orchestrator calls, whichever mode is configured"""

    async def register(self, values: FormValues) -> ContactRecord:
        ...


def build_contact(
    values: FormValues,
    mapping: ResendMapping,
    fields: Optional[List[FieldSpec]] = None,
) -> Dict[str, Any]:
    """
    Split form values into identity attributes and metadata

    Args:
        values: Current form values
        mapping: Which fields hold email / first name / last name / metadata
        fields: Field specs; fields flagged is_metadata are added to metadata

    Returns:
        Dict with email, first_name, last_name and metadata keys
    """
    email = values.get(mapping.email)
    contact: Dict[str, Any] = {
        "email": email.strip() if isinstance(email, str) else email,
        "first_name": None,
        "last_name": None,
        "metadata": {},
    }

    if mapping.first_name and values.get(mapping.first_name):
        contact["first_name"] = values[mapping.first_name]
    if mapping.last_name and values.get(mapping.last_name):
        contact["last_name"] = values[mapping.last_name]

    metadata_names = list(mapping.metadata)
    for spec in fields or []:
        if spec.is_metadata and spec.name not in metadata_names:
            metadata_names.append(spec.name)

    for name in metadata_names:
        if values.get(name) is not None:
            contact["metadata"][name] = values[name]

    return contact


def _error_for_status(status_code: int, message: str, code: Optional[str] = None) -> RegistrationError:
    if status_code >= 500:
        return RegistrationFaultError(message, status_code=status_code, code=code)
    return RegistrationRejectedError(message, status_code=status_code, code=code)


class DirectRegistrationClient:
    """Server-side mode: talks to Resend with the secret API key"""

    def __init__(
        self,
        api_key: str,
        audience_id: str,
        mapping: Optional[ResendMapping] = None,
        fields: Optional[List[FieldSpec]] = None,
        base_url: str = RESEND_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.audience_id = audience_id
        self.mapping = mapping or ResendMapping()
        self.fields = fields or []
        self.resend = ResendAudienceClient(api_key, base_url=base_url, transport=transport)

    async def register(self, values: FormValues) -> ContactRecord:
        contact = build_contact(values, self.mapping, self.fields)
        try:
            data = await self.resend.create_contact(
                self.audience_id,
                contact["email"],
                first_name=contact["first_name"],
                last_name=contact["last_name"],
                metadata=contact["metadata"] or None,
            )
        except ResendAPIError as e:
            raise _error_for_status(e.status_code, e.message, e.name)
        except httpx.RequestError as e:
            logger.error(f"Resend request failed: {e}")
            raise RegistrationNetworkError(f"Could not reach the mailing-list backend: {e}")

        return ContactRecord(
            id=data.get("id", ""),
            email=contact["email"],
            audience_id=self.audience_id,
            created_at=datetime.now(timezone.utc).isoformat(),
        )


class ProxiedRegistrationClient:
    """Browser-style mode: posts to the same-origin registration proxy"""

    def __init__(
        self,
        proxy_endpoint: str,
        audience_id: str,
        mapping: Optional[ResendMapping] = None,
        fields: Optional[List[FieldSpec]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.proxy_endpoint = proxy_endpoint
        self.audience_id = audience_id
        self.mapping = mapping or ResendMapping()
        self.fields = fields or []
        self.transport = transport

    def _request_body(self, values: FormValues) -> Dict[str, Any]:
        contact = build_contact(values, self.mapping, self.fields)
        extra: Dict[str, Any] = dict(contact["metadata"])
        if contact["first_name"]:
            extra["firstName"] = contact["first_name"]
        if contact["last_name"]:
            extra["lastName"] = contact["last_name"]
        return {"audienceId": self.audience_id, "email": contact["email"], "fields": extra}

    async def register(self, values: FormValues) -> ContactRecord:
        body = self._request_body(values)
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
                response = await client.post(self.proxy_endpoint, json=body)
        except httpx.RequestError as e:
            logger.error(f"Registration proxy unreachable: {e}")
            raise RegistrationNetworkError(f"Could not reach the registration service: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code >= 400:
            message = data.get("error") or data.get("message") or f"Registration failed ({response.status_code})"
            raise _error_for_status(response.status_code, message, data.get("code"))

        return ContactRecord.model_validate(data)
