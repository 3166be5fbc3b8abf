"""
/v1/chat/completions: upstream payload, non-stream and pseudo-stream output, error mapping
"""

import httpx
import orjson
import pytest

from conftest import UPSTREAM_URL, parse_sse

USER_MESSAGES = [{"role": "user", "content": "你好，用一句话介绍一下自己。"}]


def test_exactly_one_upstream_call_with_fixed_model(client, upstream):
    upstream.answer("hi")

    response = client.post(
        "/v1/chat/completions",
        json={"model": "gpt-4o-mini", "messages": USER_MESSAGES, "stream": False},
    )

    assert response.status_code == 200
    assert len(upstream.requests) == 1
    sent = upstream.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == UPSTREAM_URL
    assert upstream.payloads[0] == {
        "model": "openai/gpt-oss-20b:free",
        "messages": USER_MESSAGES,
        "domain": "nanobananaprompt.org",
        "cost": 0,
    }


def test_messages_forwarded_as_sent(client, upstream):
    messages = [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": [{"type": "text", "text": "hello"}], "name": "alice"},
    ]

    client.post("/v1/chat/completions", json={"model": "x", "messages": messages, "stream": False})

    assert upstream.payloads[0]["messages"] == messages


def test_disguise_headers(client, upstream):
    client.post("/v1/chat/completions", json={"model": "x", "messages": USER_MESSAGES, "stream": False})

    headers = upstream.requests[0].headers
    assert headers["host"] == "assets.chooat.com"
    assert headers["origin"] == "https://nanobananaprompt.org"
    assert headers["referer"] == "https://nanobananaprompt.org/"
    assert "Chrome/142.0.0.0" in headers["user-agent"]
    assert headers["content-type"] == "application/json"
    assert headers["accept-language"] == "zh-CN,zh;q=0.9,en;q=0.8"
    assert headers["sec-fetch-site"] == "cross-site"
    assert headers["priority"] == "u=1, i"


def test_non_stream_response_shape(client, upstream):
    usage = {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15}
    upstream.answer("Hello there", usage=usage)

    response = client.post(
        "/v1/chat/completions",
        json={"model": "gpt-4o-mini", "messages": USER_MESSAGES, "stream": False},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["id"].startswith("req-")
    assert data["object"] == "chat.completion"
    assert data["model"] == "gpt-4o-mini"
    assert isinstance(data["created"], int)
    assert data["choices"] == [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Hello there"},
            "finish_reason": "stop",
        }
    ]
    assert data["usage"] == usage


def test_non_stream_zero_usage_when_absent(client, upstream):
    upstream.answer("ok")

    data = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES, "stream": False}
    ).json()

    assert data["usage"] == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


def test_reasoning_is_quoted_before_answer(client, upstream):
    upstream.answer("answer", reasoning="step1\nstep2")

    data = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES, "stream": False}
    ).json()

    assert data["choices"][0]["message"]["content"] == (
        "> **Thinking Process:**\n> step1\n> step2\n\n---\n\nanswer"
    )


def test_stream_is_default(client, upstream):
    upstream.answer("ABCDEFGHIJ")

    response = client.post("/v1/chat/completions", json={"model": "gpt-4o-mini", "messages": USER_MESSAGES})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"

    events = parse_sse(response.text)
    assert events[-1] == "[DONE]"
    chunks = [orjson.loads(event) for event in events[:-1]]
    assert len(chunks) == 3
    assert [chunk["choices"][0]["delta"] for chunk in chunks] == [
        {"content": "ABCDE"},
        {"content": "FGHIJ"},
        {},
    ]
    assert [chunk["choices"][0]["finish_reason"] for chunk in chunks] == [None, None, "stop"]
    assert {chunk["object"] for chunk in chunks} == {"chat.completion.chunk"}
    assert {chunk["model"] for chunk in chunks} == {"gpt-4o-mini"}
    assert len({chunk["id"] for chunk in chunks}) == 1
    assert response.text.endswith("data: [DONE]\n\n")


def test_stream_reassembles_formatted_content(client, upstream):
    upstream.answer("final answer", reasoning="thinking")

    response = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES, "stream": True}
    )

    chunks = [orjson.loads(event) for event in parse_sse(response.text)[:-1]]
    text = "".join(chunk["choices"][0]["delta"].get("content", "") for chunk in chunks)
    assert text == "> **Thinking Process:**\n> thinking\n\n---\n\nfinal answer"
    assert len(upstream.requests) == 1


def test_upstream_error_keeps_status_and_body(client, upstream):
    upstream.respond_with(lambda request: httpx.Response(503, text="overloaded"))

    response = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES, "stream": False}
    )

    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "upstream_error"
    assert error["type"] == "api_error"
    assert "overloaded" in error["message"]
    assert error["message"] == "Upstream Error (503): overloaded"


def test_upstream_error_in_stream_mode_is_plain_json(client, upstream):
    upstream.respond_with(lambda request: httpx.Response(429, text="slow down"))

    response = client.post("/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES})

    assert response.status_code == 429
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["error"]["code"] == "upstream_error"
    assert len(upstream.requests) == 1


def test_invalid_upstream_json_is_internal_error(client, upstream):
    upstream.respond_with(lambda request: httpx.Response(200, text="<html>blocked</html>"))

    response = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES, "stream": False}
    )

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "internal_error"


def test_network_failure_is_internal_error(client, upstream):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    upstream.respond_with(refuse)

    response = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES, "stream": False}
    )

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "internal_error"
    assert "connection refused" in error["message"]


def test_malformed_body_is_internal_error(client, upstream):
    response = client.post(
        "/v1/chat/completions",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "internal_error"
    assert response.headers["content-type"] == "application/json; charset=utf-8"
    assert upstream.requests == []


def test_missing_messages_forwarded_as_empty_list(client, upstream):
    upstream.answer("ok")

    response = client.post("/v1/chat/completions", json={"stream": False})

    assert response.status_code == 200
    assert upstream.payloads[0]["messages"] == []
    assert response.json()["model"] is None


def test_upstream_client_reuses_and_closes_pool(settings, upstream):
    import asyncio

    from nanobanana_api.schemas import UpstreamPayload
    from nanobanana_api.services.upstream_client import UpstreamClient

    upstream.answer("pooled")
    client = UpstreamClient(settings, transport=httpx.MockTransport(upstream))
    payload = UpstreamPayload(model="openai/gpt-oss-20b:free", messages=[], domain="nanobananaprompt.org")

    async def run():
        first = await client.get_or_create_client()
        data = await client.complete(payload)
        second = await client.get_or_create_client()
        await client.aclose()
        await client.aclose()
        return first is second, data

    same, data = asyncio.run(run())

    assert same
    assert data["choices"][0]["message"]["content"] == "pooled"
    assert len(upstream.requests) == 1


@pytest.mark.parametrize(
    "message",
    [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "describe"},
                {"type": "image_url", "image_url": {"url": "http://x/a.png", "format": "png"}},
            ],
        },
        {
            "role": "user",
            "content": [{"type": "image_url", "image_url": "http://x/a.png"}],
        },
        {"role": "user", "content": {"text": "hi"}},
        {"role": "tool", "tool_call_id": "call_1", "content": None, "extra": [1, 2]},
    ],
)
def test_unusual_message_shapes_forwarded_verbatim(client, upstream, message):
    upstream.answer("ok")

    response = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": [message], "stream": False}
    )

    assert response.status_code == 200
    assert upstream.payloads[0]["messages"] == [message]


def test_upstream_redirect_is_followed(client, upstream):
    moved = UPSTREAM_URL + "/moved"

    def redirect(request):
        if str(request.url) == UPSTREAM_URL:
            return httpx.Response(307, headers={"Location": moved})
        return upstream.reply("after redirect")

    upstream.respond_with(redirect)

    response = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES, "stream": False}
    )

    assert response.status_code == 200
    assert response.json()["choices"][0]["message"]["content"] == "after redirect"
    assert [str(request.url) for request in upstream.requests] == [UPSTREAM_URL, moved]
    assert upstream.payloads[1]["messages"] == USER_MESSAGES


@pytest.mark.parametrize("stream", ["false", 0, None, "no"])
def test_only_literal_false_disables_streaming(client, upstream, stream):
    upstream.answer("streamed")

    response = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES, "stream": stream}
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert parse_sse(response.text)[-1] == "[DONE]"


def test_empty_upstream_usage_passed_through(client, upstream):
    upstream.answer("ok", usage={})

    data = client.post(
        "/v1/chat/completions", json={"model": "m", "messages": USER_MESSAGES, "stream": False}
    ).json()

    assert data["usage"] == {}
