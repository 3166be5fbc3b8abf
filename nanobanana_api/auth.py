"""
Bearer token check for the versioned /v1 namespace
"""

from typing import Optional

from fastapi import Depends, Header

from .config import Settings, get_settings
from .exceptions import UnauthorizedError
from .helpers import debug_log


def is_authorized(authorization: Optional[str], settings: Settings) -> bool:
    """Exact match against ``Bearer <API_MASTER_KEY>``; key "1" opens access."""
    if settings.open_access:
        return True
    if not authorization:
        return False
    return authorization.strip() == f"Bearer {settings.API_MASTER_KEY}"


async def require_api_key(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not is_authorized(authorization, settings):
        debug_log("[AUTH] 鉴权失败", has_header=authorization is not None)
        raise UnauthorizedError()
