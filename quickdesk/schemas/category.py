from typing import Any, Dict, List, Optional

from pydantic import Field

from .common import RequestModel


class CreateCategoryRequest(RequestModel):
    name: str = Field(..., max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = None


class UpdateCategoryRequest(RequestModel):
    name: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = None
    is_active: Optional[bool] = None


class BulkUpdateCategoriesRequest(RequestModel):
    category_ids: Optional[List[str]] = None
    action: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
