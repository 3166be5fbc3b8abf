"""Service layer utilities consolidating reusable business logic."""

from .upstream_client import upstream_client, get_upstream_client
from .openai_service import chat_completion_service

__all__ = [
    "upstream_client",
    "get_upstream_client",
    "chat_completion_service",
]
