"""
nanobanana_api package - OpenAI compatible relay for the NanoBanana upstream
"""

from .config import settings, get_settings, Settings
from .helpers import debug_log, info_log, error_log, configure_structlog
from .schemas import ChatRequest, ModelsResponse, Model, UpstreamPayload, UpstreamResult
from .exceptions import APIError, UnauthorizedError, NotFoundError, UpstreamError, InternalError

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "debug_log",
    "info_log",
    "error_log",
    "configure_structlog",
    "ChatRequest",
    "ModelsResponse",
    "Model",
    "UpstreamPayload",
    "UpstreamResult",
    "APIError",
    "UnauthorizedError",
    "NotFoundError",
    "UpstreamError",
    "InternalError",
]
