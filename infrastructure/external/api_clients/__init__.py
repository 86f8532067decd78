"""
REST API client building blocks for external gateways.
"""
from .base import BaseAPIClient, APIResponse, APIError, ServerError

__all__ = [
    "BaseAPIClient",
    "APIResponse",
    "APIError",
    "ServerError",
]
