"""
CORS middleware.
Answers every preflight with 204 and stamps the CORS headers on all responses.
"""
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .helpers import debug_log

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """Preflight short-circuits routing and auth; everything else gets the headers appended."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            debug_log("[CORS] 预检请求", path=request.url.path)
            return Response(status_code=204, headers=CORS_HEADERS)

        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response
