"""Service layer orchestrating OpenAI-compatible chat completions."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Tuple

from fastuuid import uuid4

from ..config import Settings
from ..helpers import (
    debug_log,
    reset_request_context,
    request_stage_log,
)
from ..schemas import ChatRequest, UpstreamPayload, UpstreamResult
from .chunk_builder import chunk_builder
from .pseudo_stream import Sleep, stream_events
from .response_parser import response_parser
from .upstream_client import UpstreamClient

# 上游只接受这一个模型，调用方请求的 model 会被替换（响应中仍回显调用方的 model）
UPSTREAM_MODEL = "openai/gpt-oss-20b:free"
UPSTREAM_DOMAIN = "nanobananaprompt.org"

REQUEST_CONTEXT_KEYS = ("request_id", "model", "mode")


class ChatCompletionService:
    """Encapsulate chat completion workflow independent of FastAPI layer."""

    def __init__(self) -> None:
        self.parser = response_parser
        self.chunk = chunk_builder

    def new_completion_id(self) -> str:
        return f"req-{uuid4()}"

    def parse_request(self, body: bytes) -> ChatRequest:
        return ChatRequest.model_validate_json(body)

    def build_payload(self, request: ChatRequest) -> UpstreamPayload:
        return UpstreamPayload(
            model=UPSTREAM_MODEL,
            messages=request.upstream_messages(),
            domain=UPSTREAM_DOMAIN,
            cost=0,
        )

    async def fetch_result(
        self, request: ChatRequest, client: UpstreamClient
    ) -> Tuple[str, UpstreamResult]:
        """调用上游一次，返回 (格式化后的正文, 原始解析结果)"""
        data = await client.complete(self.build_payload(request))
        result = self.parser.parse(data)
        content = self.parser.final_content(result)
        debug_log("上游内容已格式化", has_reasoning=bool(result.reasoning), content_length=len(content))
        return content, result

    def build_non_stream_response(
        self, completion_id: str, request: ChatRequest, content: str, result: UpstreamResult
    ) -> dict:
        request_stage_log(
            "non_stream_completed",
            "非流式响应完成",
            has_thinking=bool(result.reasoning),
            has_usage=result.usage is not None,
        )
        return self.chunk.build_completion(completion_id, request.model, content, result.usage)

    async def stream_response(
        self,
        completion_id: str,
        request: ChatRequest,
        content: str,
        settings: Settings,
        sleep: Sleep = asyncio.sleep,
    ) -> AsyncIterator[str]:
        request_stage_log(
            "stream_dispatch",
            "开始推送伪流式数据",
            chunk_size=settings.STREAM_CHUNK_SIZE,
            delay_ms=settings.STREAM_CHUNK_DELAY_MS,
        )
        try:
            async for event in stream_events(
                completion_id,
                request.model,
                content,
                chunk_size=settings.STREAM_CHUNK_SIZE,
                delay=settings.stream_chunk_delay,
                sleep=sleep,
            ):
                yield event
            request_stage_log("stream_finished", "流式响应生成器完成")
        finally:
            reset_request_context(*REQUEST_CONTEXT_KEYS)


chat_completion_service = ChatCompletionService()
