"""CAPTCHA verification Pydantic models"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


class CaptchaVerifyRequest(BaseModel):
    """Body posted to the CAPTCHA proxy"""
    token: Optional[str] = None
    action: Optional[str] = None


class CaptchaVerification(BaseModel):
    """Verification data returned by siteverify (and relayed by the proxy)"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    success: bool = False
    score: Optional[float] = None
    action: Optional[str] = None
    challenge_ts: Optional[str] = None
    hostname: Optional[str] = None
    error: Optional[str] = None
    error_codes: List[str] = Field(default_factory=list, alias="error-codes")
