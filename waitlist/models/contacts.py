"""Contact registration Pydantic models"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List, Dict, Any
from enum import Enum


class ResendMapping(BaseModel):
    """Which form fields feed which contact attributes"""
    email: str = "email"
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    metadata: List[str] = []


class ContactAction(str, Enum):
    """Operations accepted by the registration proxy"""
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"
    GET = "get"
    LIST = "list"


class RegistrationProxyRequest(BaseModel):
    """Body posted to the registration proxy"""
    model_config = ConfigDict(populate_by_name=True)

    audience_id: Optional[str] = Field(None, alias="audienceId")
    email: Optional[EmailStr] = None
    fields: Dict[str, Any] = {}
    action: ContactAction = ContactAction.CREATE
    id: Optional[str] = None
    unsubscribed: Optional[bool] = None


class ContactRecord(BaseModel):
    """Contact created in the mailing-list backend"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    email: Optional[str] = None
    audience_id: Optional[str] = Field(None, alias="audienceId")
    created_at: Optional[str] = Field(None, alias="createdAt")
