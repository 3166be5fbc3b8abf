# tests/conftest.py
from __future__ import annotations

from typing import Callable, List

import httpx
import orjson
import pytest
from fastapi.testclient import TestClient

from main import app
from nanobanana_api.config import Settings, get_settings
from nanobanana_api.services.upstream_client import UpstreamClient, get_upstream_client

UPSTREAM_URL = "https://assets.chooat.com/api/openrouter-notlogin"


def make_settings(**overrides) -> Settings:
    values = {
        "API_MASTER_KEY": "1",
        "UPSTREAM_URL": UPSTREAM_URL,
        "STREAM_CHUNK_DELAY_MS": 0,
        "LOG_LEVEL": "false",
    }
    values.update(overrides)
    return Settings(**values)


class FakeUpstream:
    """MockTransport handler recording every outbound request."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = lambda request: self.reply("")

    @staticmethod
    def reply(content: str = "", reasoning: str = None, usage: dict = None, status_code: int = 200) -> httpx.Response:
        message = {"role": "assistant", "content": content}
        if reasoning is not None:
            message["reasoning"] = reasoning
        body = {"choices": [{"index": 0, "message": message}]}
        if usage is not None:
            body["usage"] = usage
        return httpx.Response(status_code, content=orjson.dumps(body))

    def respond_with(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.responder = responder

    def answer(self, content: str = "", reasoning: str = None, usage: dict = None) -> None:
        self.respond_with(lambda request: self.reply(content, reasoning, usage))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def payloads(self) -> List[dict]:
        return [orjson.loads(request.content) for request in self.requests]


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def client(settings: Settings, upstream: FakeUpstream):
    upstream_client = UpstreamClient(settings, transport=httpx.MockTransport(upstream))
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_upstream_client] = lambda: upstream_client
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def secret_client(upstream: FakeUpstream):
    locked = make_settings(API_MASTER_KEY="secret")
    upstream_client = UpstreamClient(locked, transport=httpx.MockTransport(upstream))
    app.dependency_overrides[get_settings] = lambda: locked
    app.dependency_overrides[get_upstream_client] = lambda: upstream_client
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def parse_sse(text: str) -> List[str]:
    """Split an SSE body into the payloads after ``data: ``."""
    events = []
    for block in text.split("\n\n"):
        if block.startswith("data: "):
            events.append(block[len("data: "):])
    return events
