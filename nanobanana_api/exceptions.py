"""
API error taxonomy and the JSON error body every failure is rendered with
"""

from typing import Optional

import orjson
from fastapi import HTTPException
from fastapi.responses import Response

ERROR_MEDIA_TYPE = "application/json; charset=utf-8"


class APIError(HTTPException):
    """HTTPException carrying an OpenAI-style error ``code``."""

    code = "internal_error"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(status_code=status_code or 500, detail=message)
        if code:
            self.code = code

    @property
    def message(self) -> str:
        return self.detail


class UnauthorizedError(APIError):
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized: Invalid Bearer Token"):
        super().__init__(message, status_code=401)


class NotFoundError(APIError):
    code = "not_found"

    def __init__(self, path: str):
        super().__init__(f"Path not found: {path}", status_code=404)


class UpstreamError(APIError):
    code = "upstream_error"

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Upstream Error ({status_code}): {body}", status_code=status_code)


class InternalError(APIError):
    code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


def error_body(message: str, code: str) -> dict:
    return {"error": {"message": message, "type": "api_error", "code": code}}


def error_response(message: str, status_code: int, code: str) -> Response:
    """构建统一格式的错误响应"""
    return Response(
        content=orjson.dumps(error_body(message, code)),
        status_code=status_code,
        media_type=ERROR_MEDIA_TYPE,
    )


def api_error_response(exc: APIError) -> Response:
    return error_response(exc.message, exc.status_code, exc.code)
