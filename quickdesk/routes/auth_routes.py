# quickdesk/routes/auth_routes.py
"""Authentication routes: registration, login, profile and password flows"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from quickdesk.core.config import Settings
from quickdesk.core.database import get_db
from quickdesk.core.logger import get_logger
from quickdesk.dependencies import get_app_settings, get_email_service
from quickdesk.middleware.auth_middleware import get_current_user
from quickdesk.models import User
from quickdesk.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
)
from quickdesk.schemas.common import api_response
from quickdesk.services.auth_service import AuthService
from quickdesk.services.email_service import EmailService
from quickdesk.services.serializers import user_profile

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", status_code=201)
def register(
    req: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Register a new requester account.

    Returns:
        {success, message, data: {user, token}}
    """
    result = AuthService.register(
        db,
        settings,
        email_service,
        name=req.name,
        email=req.email,
        password=req.password,
        department=req.department,
        phone=req.phone
    )
    return api_response(result, "User registered successfully")


@router.post("/login")
def login(
    req: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
):
    """Login with email and password"""
    result = AuthService.login(db, settings, req.email, req.password)
    return api_response(result, "Login successful")


@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    """Current user's profile"""
    return api_response({"user": user_profile(user)})


@router.put("/profile")
def update_profile(
    req: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    profile = AuthService.update_profile(
        db, user, name=req.name, department=req.department, phone=req.phone
    )
    return api_response({"user": profile}, "Profile updated successfully")


@router.put("/change-password")
def change_password(
    req: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    AuthService.change_password(db, user, req.current_password, req.new_password)
    return api_response(message="Password changed successfully")


@router.post("/forgot-password")
def forgot_password(
    req: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Email a one-hour password reset link"""
    AuthService.forgot_password(db, email_service, req.email)
    return api_response(message="Password reset email sent successfully")


@router.put("/reset-password/{token}")
def reset_password(
    token: str,
    req: ResetPasswordRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
):
    """Consume a reset token; logs the user in with a fresh token"""
    result = AuthService.reset_password(db, settings, token, req.new_password)
    return api_response(result, "Password reset successful")


@router.post("/logout")
def logout(user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy"""
    logger.info(f"✓ User logged out: {user.email}")
    return api_response(message="Logged out successfully")
