"""
OpenAI API endpoints
"""

import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from .auth import require_api_key
from .config import Settings, get_settings
from .exceptions import APIError, InternalError, NotFoundError
from .helpers import (
    error_log,
    debug_log,
    bind_request_context,
    reset_request_context,
    request_stage_log,
)
from .schemas import ModelsResponse, Model
from .services.openai_service import REQUEST_CONTEXT_KEYS, chat_completion_service
from .services.upstream_client import UpstreamClient, get_upstream_client

OWNED_BY = "nanobanana"

ANY_METHOD = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]

# /v1 下的所有路径（包括不存在的路径）都先经过鉴权
router = APIRouter(prefix="/v1", dependencies=[Depends(require_api_key)])

service = chat_completion_service


# 与上游保持一致：/v1/models 不区分请求方法
@router.api_route("/models", methods=ANY_METHOD)
async def list_models(settings: Settings = Depends(get_settings)):
    """List available models"""
    current_time = int(time.time())
    return ModelsResponse(
        data=[
            Model(id=model_id, created=current_time, owned_by=OWNED_BY)
            for model_id in settings.MODELS
        ]
    )


@router.post("/chat/completions")
async def chat_completions(
    http_request: Request,
    settings: Settings = Depends(get_settings),
    client: UpstreamClient = Depends(get_upstream_client),
):
    """处理 chat completion 请求，支持流式和非流式"""
    completion_id = service.new_completion_id()
    bind_request_context(request_id=completion_id)

    try:
        try:
            request = service.parse_request(await http_request.body())
        except ValidationError as exc:
            raise InternalError(f"Invalid request body: {exc.errors()[0]['msg']}") from exc

        is_stream = request.is_stream
        bind_request_context(model=request.model, mode="stream" if is_stream else "non_stream")
        request_stage_log(
            "received",
            "收到客户端请求",
            model=request.model,
            stream=is_stream,
            message_count=len(request.messages or []),
        )
        debug_log("客户端请求体详情", request_body=request.model_dump())

        content, result = await service.fetch_result(request, client)

        if not is_stream:
            request_stage_log("non_stream_mode", "使用非流式模式")
            try:
                return service.build_non_stream_response(completion_id, request, content, result)
            finally:
                reset_request_context(*REQUEST_CONTEXT_KEYS)

        request_stage_log("stream_mode", "使用流式模式", content_length=len(content))
        return StreamingResponse(
            service.stream_response(completion_id, request, content, settings),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
            },
        )

    except APIError as exc:
        reset_request_context(*REQUEST_CONTEXT_KEYS)
        error_log("[REQUEST] 请求失败", status_code=exc.status_code, code=exc.code, error=exc.message[:200])
        raise
    except Exception as exc:
        reset_request_context(*REQUEST_CONTEXT_KEYS)
        error_log("处理请求时发生错误", error=str(exc), error_type=type(exc).__name__)
        raise InternalError(str(exc)) from exc


@router.api_route(
    "/{path:path}",
    methods=ANY_METHOD,
    include_in_schema=False,
)
async def not_found(request: Request):
    """/v1 下未知路径（鉴权通过后）统一返回 not_found"""
    raise NotFoundError(request.url.path)
