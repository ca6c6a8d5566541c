"""Registration proxy: keeps the Resend API key on the server"""
from fastapi import APIRouter, Depends, HTTPException
from datetime import datetime, timezone
from typing import Dict, Any
import httpx
import logging

from waitlist.config import Settings, get_settings
from waitlist.middleware.rate_limit import RateLimiter, rate_limited
from waitlist.models.contacts import ContactAction, RegistrationProxyRequest
from waitlist.services.resend_client import ResendAPIError, ResendAudienceClient

logger = logging.getLogger(__name__)
router = APIRouter()

limiter = RateLimiter()

IDENTITY_FIELDS = ("firstName", "lastName")


def get_resend_client(settings: Settings = Depends(get_settings)) -> ResendAudienceClient:
    return ResendAudienceClient(settings.resend_api_key, base_url=settings.resend_api_url)


def _contact_ref(body: RegistrationProxyRequest) -> str:
    ref = body.id or body.email
    if not ref:
        raise HTTPException(status_code=400, detail="Missing required field: id or email")
    return ref


async def _create(body: RegistrationProxyRequest, resend: ResendAudienceClient) -> Dict[str, Any]:
    if not body.email:
        raise HTTPException(status_code=400, detail="Missing required field: email")
    email = body.email

    metadata = {k: v for k, v in body.fields.items() if k not in IDENTITY_FIELDS}
    data = await resend.create_contact(
        body.audience_id,
        email,
        first_name=body.fields.get("firstName"),
        last_name=body.fields.get("lastName"),
        unsubscribed=bool(body.unsubscribed),
        metadata=metadata or None,
    )

    logger.info(f"Contact created in audience {body.audience_id}: {data.get('id')}")
    return {
        "id": data.get("id"),
        "email": email,
        "audienceId": body.audience_id,
        "createdAt": datetime.now(timezone.utc).isoformat(),
        **body.fields,
    }


@router.post("")
async def resend_proxy(
    body: RegistrationProxyRequest,
    settings: Settings = Depends(get_settings),
    resend: ResendAudienceClient = Depends(get_resend_client),
    _: None = Depends(rate_limited(limiter)),
):
    """
    Forward a contact operation to Resend (PUBLIC endpoint)

    Supported actions: create (default), update, remove, get, list
    """
    audience_id = body.audience_id
    if not audience_id:
        raise HTTPException(status_code=400, detail="Missing required field: audienceId")

    if settings.allowed_audiences and audience_id not in settings.allowed_audiences:
        logger.warning(f"Rejected registration for audience not in allow-list: {audience_id}")
        raise HTTPException(status_code=403, detail="Audience ID not allowed")

    if not settings.resend_api_key:
        logger.error("Resend API key is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error: missing API key")

    try:
        if body.action == ContactAction.CREATE:
            return await _create(body, resend)

        if body.action == ContactAction.UPDATE:
            return await resend.update_contact(
                audience_id,
                _contact_ref(body),
                first_name=body.fields.get("firstName"),
                last_name=body.fields.get("lastName"),
                unsubscribed=body.unsubscribed,
            )

        if body.action == ContactAction.REMOVE:
            return await resend.remove_contact(audience_id, _contact_ref(body))

        if body.action == ContactAction.GET:
            return await resend.get_contact(audience_id, _contact_ref(body))

        contacts = await resend.list_contacts(audience_id)
        return {"data": contacts}

    except ResendAPIError as e:
        if e.status_code >= 500:
            logger.error(f"Resend fault ({e.status_code}): {e.message}")
            raise HTTPException(status_code=500, detail={"error": e.message, "code": e.name})
        raise HTTPException(status_code=400, detail={"error": e.message, "code": e.name})
    except httpx.RequestError as e:
        logger.error(f"Resend unreachable: {e}")
        raise HTTPException(status_code=500, detail="Failed to reach the mailing-list backend")
