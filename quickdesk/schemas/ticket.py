from typing import List, Optional, Union

from pydantic import Field

from .common import RequestModel


class UpdateTicketRequest(RequestModel):
    """Partial ticket update. Which fields apply depends on the caller's capabilities."""
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    assigned_to: Optional[str] = None
    tags: Optional[Union[str, List[str]]] = None
    due_date: Optional[str] = None
    resolution: Optional[str] = None


class AddCommentRequest(RequestModel):
    content: Optional[str] = None
    is_internal: bool = False


class RateTicketRequest(RequestModel):
    rating: Optional[Union[int, float]] = None
    feedback: Optional[str] = Field(None, max_length=500)


class AssignTicketRequest(RequestModel):
    assigned_to: Optional[str] = Field(None, description="User id of the agent or admin")


class CloseTicketRequest(RequestModel):
    resolution: Optional[str] = None
