# quickdesk/services/auth_service.py
"""Authentication service - handles registration, login, tokens and password management"""
import hashlib
import secrets
from datetime import timedelta
from typing import Dict, Any, Optional
from uuid import UUID

import bcrypt
import jwt
from sqlalchemy import func
from sqlalchemy.orm import Session

from quickdesk.core.config import Settings
from quickdesk.core.logger import get_logger
from quickdesk.models import User, UserRole
from quickdesk.services.email_service import EmailDeliveryError, EmailService
from quickdesk.services.serializers import user_profile
from quickdesk.utils.datetime_utils import get_utc_now
from quickdesk.utils.exceptions import ValidationError, UnauthorizedError, ConflictError, NotFoundError
from quickdesk.utils.validators import validate_email, validate_password, validate_name

logger = get_logger(__name__)

RESET_TOKEN_TTL = timedelta(hours=1)


class AuthService:
    """Service for authentication and password management"""

    @staticmethod
    def hash_password(password: str) -> str:
        """
        Hash password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Bcrypt hash string
        """
        salt = bcrypt.gensalt(rounds=12)
        hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """
        Verify password against hash.

        Args:
            plain_password: Plain text password
            hashed_password: Bcrypt hash

        Returns:
            True if password matches, False otherwise
        """
        try:
            return bcrypt.checkpw(
                plain_password.encode('utf-8'),
                hashed_password.encode('utf-8')
            )
        except ValueError as e:
            logger.error(f"Password verification error: {e}")
            return False

    @staticmethod
    def create_jwt_token(settings: Settings, user_id, role) -> str:
        """
        Create a signed, time-limited token for an authenticated user.

        Args:
            settings: Settings carrying the secret, algorithm and lifetime
            user_id: User UUID
            role: User role

        Returns:
            JWT token string
        """
        now = get_utc_now()
        payload = {
            "sub": str(user_id),
            "role": role.value if hasattr(role, "value") else role,
            "exp": now + timedelta(days=settings.jwt_expiration_days),
            "iat": now
        }
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    @staticmethod
    def verify_jwt_token(settings: Settings, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode JWT token.

        Returns:
            Token payload dict if valid, None otherwise
        """
        try:
            return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None

    @staticmethod
    def hash_reset_token(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode('utf-8')).hexdigest()

    @staticmethod
    def find_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.lower()).first()

    @staticmethod
    def _session_payload(settings: Settings, user: User) -> Dict[str, Any]:
        return {
            "user": user_profile(user),
            "token": AuthService.create_jwt_token(settings, user.id, user.role),
        }

    @staticmethod
    def register(
        db: Session,
        settings: Settings,
        email_service: EmailService,
        name: str,
        email: str,
        password: str,
        department: Optional[str] = None,
        phone: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Register a new `user`-role account.

        Returns:
            Dict with public profile and token

        Raises:
            ValidationError: If name/email/password invalid
            ConflictError: If email already exists
        """
        name = validate_name(name)
        email = validate_email(email)
        validate_password(password)

        if AuthService.find_by_email(db, email):
            raise ConflictError("User already exists with this email")

        user = User(
            name=name,
            email=email,
            password_hash=AuthService.hash_password(password),
            role=UserRole.USER,
            department=department,
            phone=phone,
            is_active=True
        )
        db.add(user)
        db.commit()
        logger.info(f"✓ User registered: {email}")

        try:
            email_service.send_welcome_email(user)
        except EmailDeliveryError as e:
            logger.error(f"Error sending welcome email: {e}")

        return AuthService._session_payload(settings, user)

    @staticmethod
    def login(db: Session, settings: Settings, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """
        Authenticate a user by email and password.

        Raises:
            ValidationError: If email or password missing
            UnauthorizedError: If credentials invalid or account deactivated
        """
        if not email or not password:
            raise ValidationError("Please provide email and password")

        user = AuthService.find_by_email(db, email.strip())
        if not user:
            logger.warning(f"Login attempt with non-existent email: {email}")
            raise UnauthorizedError("Invalid credentials")

        if not user.is_active:
            logger.warning(f"Login attempt for deactivated account: {email}")
            raise UnauthorizedError("Account is deactivated. Please contact administrator.")

        if not AuthService.verify_password(password, user.password_hash):
            logger.warning(f"Failed login attempt for: {email}")
            raise UnauthorizedError("Invalid credentials")

        user.last_login = get_utc_now()
        db.commit()

        logger.info(f"✓ User logged in: {user.email}")
        return AuthService._session_payload(settings, user)

    @staticmethod
    def authenticate_token(db: Session, settings: Settings, token: Optional[str]) -> User:
        """
        Resolve a bearer token to an active user.

        Raises:
            UnauthorizedError: If token missing, invalid, expired, or user gone/deactivated
        """
        if not token:
            raise UnauthorizedError("Not authorized to access this route")

        payload = AuthService.verify_jwt_token(settings, token)
        if not payload or not payload.get("sub"):
            raise UnauthorizedError("Not authorized to access this route")

        try:
            user_id = UUID(str(payload["sub"]))
        except ValueError:
            raise UnauthorizedError("Not authorized to access this route")

        user = db.get(User, user_id)
        if not user:
            raise UnauthorizedError("No user found with this token")
        if not user.is_active:
            raise UnauthorizedError("User account is deactivated")
        return user

    @staticmethod
    def update_profile(
        db: Session,
        user: User,
        name: Optional[str] = None,
        department: Optional[str] = None,
        phone: Optional[str] = None
    ) -> Dict[str, Any]:
        """Update the caller's own name, department and phone. Empty values keep the current ones."""
        if name:
            user.name = validate_name(name)
        if department:
            user.department = department
        if phone:
            user.phone = phone
        db.commit()
        return user_profile(user)

    @staticmethod
    def change_password(db: Session, user: User, current_password: Optional[str], new_password: Optional[str]) -> None:
        """
        Change the caller's password.

        Raises:
            ValidationError: If fields missing, current password wrong or new password too short
        """
        if not current_password or not new_password:
            raise ValidationError("Please provide current password and new password")

        if not AuthService.verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        validate_password(new_password)
        user.password_hash = AuthService.hash_password(new_password)
        db.commit()
        logger.info(f"✓ Password changed for: {user.email}")

    @staticmethod
    def forgot_password(db: Session, email_service: EmailService, email: Optional[str]) -> None:
        """
        Issue a one-hour reset token and email the reset link.

        Only the sha256 digest of the token is stored.

        Raises:
            ValidationError: If email missing
            NotFoundError: If no user has that email
            EmailDeliveryError: If the email could not be sent (token is cleared)
        """
        if not email:
            raise ValidationError("Please provide email address")

        user = AuthService.find_by_email(db, email.strip())
        if not user:
            raise NotFoundError("No user found with this email address")

        raw_token = secrets.token_hex(20)
        user.reset_password_token = AuthService.hash_reset_token(raw_token)
        user.reset_password_expire = get_utc_now() + RESET_TOKEN_TTL
        db.commit()

        try:
            email_service.send_password_reset_email(user, raw_token)
        except EmailDeliveryError:
            logger.error(f"Error sending password reset email to {user.email}")
            user.reset_password_token = None
            user.reset_password_expire = None
            db.commit()
            raise

    @staticmethod
    def reset_password(db: Session, settings: Settings, raw_token: str, new_password: Optional[str]) -> Dict[str, Any]:
        """
        Consume a reset token and set a new password.

        Raises:
            ValidationError: If password missing/short or token invalid/expired
        """
        if not new_password:
            raise ValidationError("Please provide new password")

        hashed = AuthService.hash_reset_token(raw_token)
        user = db.query(User).filter(
            User.reset_password_token == hashed,
            User.reset_password_expire > get_utc_now()
        ).first()
        if not user:
            raise ValidationError("Invalid or expired reset token")

        validate_password(new_password)
        user.password_hash = AuthService.hash_password(new_password)
        user.reset_password_token = None
        user.reset_password_expire = None
        db.commit()

        logger.info(f"✓ Password reset for: {user.email}")
        return AuthService._session_payload(settings, user)
