from typing import Optional

from pydantic import Field

from .common import RequestModel


class RegisterRequest(RequestModel):
    name: str
    email: str
    password: str
    department: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(RequestModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UpdateProfileRequest(RequestModel):
    name: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None


class ChangePasswordRequest(RequestModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class ForgotPasswordRequest(RequestModel):
    email: Optional[str] = None


class ResetPasswordRequest(RequestModel):
    new_password: Optional[str] = Field(None, description="Replacement password")
