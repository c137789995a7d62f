# quickdesk/schemas/__init__.py
from .common import RequestModel, api_response, error_body, pagination

__all__ = [
    "RequestModel",
    "api_response",
    "error_body",
    "pagination",
]
