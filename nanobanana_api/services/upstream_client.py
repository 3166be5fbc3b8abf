"""Shared HTTP client for the single upstream chat endpoint."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx
import orjson

from ..config import Settings, settings as default_settings
from ..exceptions import UpstreamError
from ..header_manager import get_disguise_headers
from ..helpers import info_log, debug_log, error_log, perf_timer, request_stage_log
from ..schemas import UpstreamPayload


def _connection_pool_config(settings: Settings) -> Dict[str, object]:
    return {
        "limits": httpx.Limits(
            max_keepalive_connections=20,
            max_connections=100,
            keepalive_expiry=30,
        ),
        "timeout": httpx.Timeout(
            connect=10.0,
            read=settings.UPSTREAM_TIMEOUT,
            write=30.0,
            pool=10.0,
        ),
        "http2": settings.UPSTREAM_HTTP2,
        "follow_redirects": True,
    }


class UpstreamClient:
    """Own the pooled ``httpx.AsyncClient`` and issue upstream chat calls."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or default_settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return self.settings.UPSTREAM_URL

    async def get_or_create_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                info_log("[CLIENT] 创建上游客户端", upstream=self.url)
                config = _connection_pool_config(self.settings)
                if self._transport is not None:
                    config["transport"] = self._transport
                self._client = httpx.AsyncClient(**config)
            return self._client

    async def aclose(self) -> None:
        async with self._client_lock:
            client = self._client
            self._client = None

        if client is None:
            return

        try:
            await client.aclose()
            info_log("[CLIENT] 上游客户端已关闭")
        except Exception as exc:  # pragma: no cover - 问题记录即可
            error_log("[CLIENT] 关闭上游客户端失败", error=str(exc))

    async def complete(self, payload: UpstreamPayload) -> Any:
        """
        向上游发起一次阻塞式请求并返回解析后的 JSON

        Raises:
            UpstreamError: 上游返回非 2xx 状态码
            httpx.HTTPError: 网络层失败
            orjson.JSONDecodeError: 响应体不是合法 JSON
        """
        client = await self.get_or_create_client()
        headers = get_disguise_headers(self.url)
        body = orjson.dumps(payload.model_dump())

        request_stage_log(
            "upstream_request",
            "向上游发起请求",
            upstream=self.url,
            message_count=len(payload.messages),
        )
        debug_log("上游请求体详情", request_body=body.decode("utf-8"))

        with perf_timer("上游响应耗时"):
            response = await client.post(self.url, content=body, headers=headers)

        if not response.is_success:
            error_text = response.text
            error_log(
                "上游返回错误",
                status_code=response.status_code,
                error_detail=error_text[:200],
            )
            raise UpstreamError(response.status_code, error_text)

        request_stage_log(
            "upstream_response",
            "上游响应成功",
            status_code=response.status_code,
        )
        return orjson.loads(response.content)


upstream_client = UpstreamClient()


def get_upstream_client() -> UpstreamClient:
    return upstream_client
