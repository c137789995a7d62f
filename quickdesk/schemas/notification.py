from typing import Any, Dict, Optional

from .common import RequestModel


class CreateNotificationRequest(RequestModel):
    recipient: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    type: str = "system"
    priority: str = "medium"
    related_ticket: Optional[str] = None
    action_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
