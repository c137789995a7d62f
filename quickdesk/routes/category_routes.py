# quickdesk/routes/category_routes.py
"""Ticket category routes"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quickdesk.core.database import get_db
from quickdesk.middleware.auth_middleware import get_current_user, require_roles
from quickdesk.models import User, UserRole
from quickdesk.schemas.category import (
    BulkUpdateCategoriesRequest,
    CreateCategoryRequest,
    UpdateCategoryRequest,
)
from quickdesk.schemas.common import api_response
from quickdesk.services.category_service import CategoryService

router = APIRouter(prefix="/api/categories", tags=["Categories"])

staff_only = require_roles(UserRole.ADMIN, UserRole.AGENT)
admin_only = require_roles(UserRole.ADMIN)


@router.get("")
def get_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Active categories unless isActive says otherwise"""
    result = CategoryService.list_categories(
        db, page=page, limit=limit, is_active=is_active, search=search
    )
    return api_response(result)


@router.get("/stats")
def get_category_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return api_response(CategoryService.get_stats(db))


@router.put("/bulk")
def bulk_update_categories(
    req: BulkUpdateCategoriesRequest,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Activate, deactivate or patch several categories at once"""
    modified = CategoryService.bulk_update(db, req.category_ids, req.action, req.data)
    return api_response(
        {"modified_count": modified},
        f"Successfully updated {modified} category(ies)"
    )


@router.get("/{category_id}")
def get_category(
    category_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return api_response({"category": CategoryService.get_category(db, category_id)})


@router.post("", status_code=201)
def create_category(
    req: CreateCategoryRequest,
    user: User = Depends(staff_only),
    db: Session = Depends(get_db)
):
    category = CategoryService.create_category(
        db, user, name=req.name, description=req.description, color=req.color
    )
    return api_response({"category": category}, "Category created successfully")


@router.put("/{category_id}")
def update_category(
    category_id: str,
    req: UpdateCategoryRequest,
    user: User = Depends(staff_only),
    db: Session = Depends(get_db)
):
    category = CategoryService.update_category(
        db,
        category_id,
        name=req.name,
        description=req.description,
        color=req.color,
        is_active=req.is_active
    )
    return api_response({"category": category}, "Category updated successfully")


@router.delete("/{category_id}")
def delete_category(
    category_id: str,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    CategoryService.delete_category(db, category_id)
    return api_response(message="Category deleted successfully")
