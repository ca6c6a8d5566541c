"""Resend audience contacts API client"""
from typing import Dict, Any, List, Optional
import httpx
import logging

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com"


class ResendAPIError(Exception):
    """Non-2xx answer from Resend"""

    def __init__(self, status_code: int, message: str, name: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.name = name or "unknown_error"


class ResendAudienceClient:
    """
    Thin async wrapper around /audiences/{audience_id}/contacts

    Transport failures surface as httpx.RequestError; callers decide how to
    report them.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = RESEND_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _contacts_url(self, audience_id: str, contact: Optional[str] = None) -> str:
        url = f"{self.base_url}/audiences/{audience_id}/contacts"
        return f"{url}/{contact}" if contact else url

    async def _request(self, method: str, url: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.request(
                method,
                url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json"
                },
                json=json
            )

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}
        if not isinstance(data, dict):
            data = {"data": data}

        if response.status_code >= 400:
            logger.warning(f"Resend API error {response.status_code}: {data}")
            raise ResendAPIError(
                response.status_code,
                data.get("message") or data.get("error") or "Unknown error",
                data.get("name"),
            )

        return data

    async def create_contact(
        self,
        audience_id: str,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        unsubscribed: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"email": email, "unsubscribed": unsubscribed}
        if first_name:
            body["first_name"] = first_name
        if last_name:
            body["last_name"] = last_name
        if metadata:
            body["metadata"] = metadata
        return await self._request("POST", self._contacts_url(audience_id), json=body)

    async def update_contact(self, audience_id: str, id_or_email: str, **changes) -> Dict[str, Any]:
        body = {k: v for k, v in changes.items() if v is not None}
        return await self._request("PATCH", self._contacts_url(audience_id, id_or_email), json=body)

    async def remove_contact(self, audience_id: str, id_or_email: str) -> Dict[str, Any]:
        return await self._request("DELETE", self._contacts_url(audience_id, id_or_email))

    async def get_contact(self, audience_id: str, id_or_email: str) -> Dict[str, Any]:
        return await self._request("GET", self._contacts_url(audience_id, id_or_email))

    async def list_contacts(self, audience_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", self._contacts_url(audience_id))
        return data.get("data", [])
