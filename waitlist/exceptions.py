"""Exceptions raised inside the submission pipeline"""
from typing import Optional


class WaitlistError(Exception):
    """Base class for pipeline failures"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class CaptchaError(WaitlistError):
    """CAPTCHA token could not be obtained or was rejected"""

    def __init__(self, message: str, status_code: int = 400, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.status_code = status_code


class RegistrationError(WaitlistError):
    """Mailing-list backend did not create the contact"""

    status_code: Optional[int] = None


class RegistrationNetworkError(RegistrationError):
    """No response from the backend"""


class RegistrationRejectedError(RegistrationError):
    """Backend answered 4xx"""

    def __init__(self, message: str, status_code: int = 400, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.status_code = status_code


class RegistrationFaultError(RegistrationError):
    """Backend answered 5xx"""

    def __init__(self, message: str, status_code: int = 500, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.status_code = status_code
