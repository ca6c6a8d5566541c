"""Webhook proxy: forwards browser-originated event payloads to receivers"""
from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Optional
import httpx
import logging

from waitlist.config import Settings, get_settings
from waitlist.middleware.rate_limit import RateLimiter, rate_limited
from waitlist.models.webhooks import WebhookProxyRequest

logger = logging.getLogger(__name__)
router = APIRouter()

limiter = RateLimiter()


def get_forward_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport used for outbound forwarding; None means the network"""
    return None


def is_destination_allowed(destination: str, allowed_prefixes) -> bool:
    if not allowed_prefixes:
        return True
    return any(destination.startswith(prefix) for prefix in allowed_prefixes)


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


@router.post("")
async def webhook_proxy(
    body: WebhookProxyRequest,
    settings: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_forward_transport),
    _: None = Depends(rate_limited(limiter)),
):
    """
    Forward a payload to an allowed destination (PUBLIC endpoint)

    The receiver's answer is relayed as {success, statusCode, response};
    a non-2xx answer from the receiver is not an error of the proxy itself.
    """
    if not body.destination or body.payload is None:
        raise HTTPException(status_code=400, detail="Missing required fields: destination and payload")

    if settings.webhook_proxy_secret and body.secret_key != settings.webhook_proxy_secret:
        logger.warning("Webhook proxy called with an invalid secret key")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not is_destination_allowed(body.destination, settings.webhook_allowed_destinations):
        logger.warning(f"Webhook destination not allowed: {body.destination}")
        raise HTTPException(status_code=403, detail="Destination not allowed")

    headers = {
        "Content-Type": "application/json",
        **settings.webhook_default_headers,
        **body.headers,
    }

    try:
        async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
            response = await client.post(body.destination, json=body.payload, headers=headers)
    except httpx.RequestError as e:
        logger.error(f"Webhook forwarding to {body.destination} failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to forward webhook: {e}")

    logger.info(f"Webhook forwarded to {body.destination}: {response.status_code}")
    return {
        "success": response.is_success,
        "statusCode": response.status_code,
        "response": _response_body(response),
    }
