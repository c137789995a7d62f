from typing import Optional

from .common import RequestModel


class CreateUserRequest(RequestModel):
    name: str
    email: str
    password: str
    role: str = "user"
    department: Optional[str] = None
    phone: Optional[str] = None


class UpdateUserRequest(RequestModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None


class ChangeRoleRequest(RequestModel):
    role: Optional[str] = None


class AdminResetPasswordRequest(RequestModel):
    new_password: Optional[str] = None
