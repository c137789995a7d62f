# quickdesk/routes/user_routes.py
"""User management routes"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quickdesk.core.database import get_db
from quickdesk.core.logger import get_logger
from quickdesk.middleware.auth_middleware import get_current_user, require_roles
from quickdesk.models import User, UserRole
from quickdesk.schemas.common import api_response
from quickdesk.schemas.user import (
    AdminResetPasswordRequest,
    ChangeRoleRequest,
    CreateUserRequest,
    UpdateUserRequest,
)
from quickdesk.services.serializers import user_profile
from quickdesk.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

admin_only = require_roles(UserRole.ADMIN)


@router.get("/agents")
def get_agents(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Active agents and admins, for assignment pickers"""
    return api_response({"agents": UserService.get_agents(db)})


@router.get("/stats")
def get_user_stats(
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    return api_response(UserService.get_stats(db))


@router.get("")
def get_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None),
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Paginated users with their ticket counts"""
    result = UserService.list_users(
        db, page=page, limit=limit, role=role, is_active=is_active, search=search
    )
    return api_response(result)


@router.post("", status_code=201)
def create_user(
    req: CreateUserRequest,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    profile = UserService.create_user(
        db,
        name=req.name,
        email=req.email,
        password=req.password,
        role=req.role,
        department=req.department,
        phone=req.phone
    )
    return api_response({"user": profile}, "User created successfully")


@router.get("/{user_id}")
def get_user(
    user_id: str,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    return api_response(UserService.get_user(db, user_id))


@router.put("/{user_id}")
def update_user(
    user_id: str,
    req: UpdateUserRequest,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    profile = UserService.update_user(
        db,
        admin,
        user_id,
        name=req.name,
        email=req.email,
        role=req.role,
        department=req.department,
        phone=req.phone,
        is_active=req.is_active
    )
    return api_response({"user": profile}, "User updated successfully")


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    UserService.delete_user(db, admin, user_id)
    return api_response(message="User deleted successfully")


@router.put("/{user_id}/toggle-status")
def toggle_user_status(
    user_id: str,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Activate or deactivate an account"""
    user = UserService.toggle_status(db, user_id)
    state = "activated" if user.is_active else "deactivated"
    return api_response({"user": user_profile(user)}, f"User {state} successfully")


@router.put("/{user_id}/role")
def change_user_role(
    user_id: str,
    req: ChangeRoleRequest,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    profile = UserService.change_role(db, admin, user_id, req.role)
    return api_response({"user": profile}, "User role updated successfully")


@router.get("/{user_id}/activity")
def get_user_activity(
    user_id: str,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    return api_response(UserService.get_activity(db, user_id))


@router.put("/{user_id}/reset-password")
def reset_user_password(
    user_id: str,
    req: AdminResetPasswordRequest,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    UserService.reset_password(db, user_id, req.new_password)
    return api_response(message="Password reset successfully")


@router.get("/{user_id}/tickets")
def get_user_tickets(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Tickets created by one user, with filters and that user's ticket stats"""
    result = UserService.get_user_tickets(
        db,
        user_id,
        page=page,
        limit=limit,
        status=status,
        priority=priority,
        category=category,
        search=search,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by
    )
    return api_response(result)


@router.get("/{user_id}/tickets/summary")
def get_user_ticket_summary(
    user_id: str,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    return api_response(UserService.get_user_ticket_summary(db, user_id))
