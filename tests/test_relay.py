"""
Tests for the chat relay: validation, model resolution, error
classification, reply extraction and stream pass-through.
"""

import json

import httpx
import pytest

from chatrelay.backends import InworldUpstream
from chatrelay.errors import (
    InvalidRequest,
    Unconfigured,
    UpstreamAuthError,
    UpstreamError,
    UpstreamThrottled,
)
from chatrelay.relay import ChatRelay, build_system_prompt

HI = {"messages": [{"role": "user", "content": "hi"}]}


def make_relay(test_cfg, handler=None, api_key="k"):
    transport = httpx.MockTransport(handler) if handler else None
    upstream = InworldUpstream(url="https://up.test/chat", api_key=api_key, transport=transport)
    return ChatRelay(test_cfg, upstream=upstream)


def inworld_reply(text):
    return httpx.Response(200, json={"result": {"choices": [{"message": {"content": text}}]}})


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("body", [
    None,
    [],
    "hi",
    {},
    {"messages": "hi"},
    {"messages": {"role": "user"}},
    {"messages": ["hi"]},
])
def test_validate_rejects(body):
    with pytest.raises(InvalidRequest):
        ChatRelay.validate(body)


def test_validate_accepts_empty_list():
    assert ChatRelay.validate({"messages": []}) == []


@pytest.mark.asyncio
async def test_invalid_request_checked_before_credentials(test_cfg):
    relay = make_relay(test_cfg, api_key="")
    with pytest.raises(InvalidRequest) as exc:
        await relay.relay({"model": "openai:gpt-4.1"})
    assert exc.value.status_code == 400


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

def test_system_prompt_first(test_cfg):
    relay = make_relay(test_cfg)
    out = relay.build_messages([{"role": "user", "content": "hi"}])
    assert out[0]["role"] == "system"
    assert "Ada" in out[0]["content"]
    assert "ada.example" in out[0]["content"]
    assert out[1] == {"role": "user", "content": "hi"}


def test_unknown_roles_become_user(test_cfg):
    out = make_relay(test_cfg).build_messages([
        {"role": ["user"], "content": "a"},
        {"role": "narrator", "content": "b"},
        {"content": "c"},
        {"role": "assistant", "content": "d"},
    ])
    assert [m["role"] for m in out[1:]] == ["user", "user", "user", "assistant"]


@pytest.mark.asyncio
async def test_non_string_role_reaches_upstream_as_user(test_cfg):
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return inworld_reply("ok")

    result = await make_relay(test_cfg, handler).relay(
        {"messages": [{"role": {"x": 1}, "content": "hi"}]}
    )
    assert result.response == "ok"
    assert seen["messages"][1] == {"role": "MESSAGE_ROLE_USER", "content": "hi"}


def test_system_prompt_defaults():
    assert "the site owner" in build_system_prompt(None)


@pytest.mark.asyncio
async def test_relay_sends_translated_payload(test_cfg):
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return inworld_reply("hello")

    relay = make_relay(test_cfg, handler)
    body = {
        "messages": [{"role": "user", "content": "hi"}],
        "model": "groq:llama-3.1-8b-instant",
        # client cannot override generation parameters
        "temperature": 2.0,
    }
    result = await relay.relay(body)

    assert result.response == "hello"
    assert result.model == "llama-3.1-8b-instant"
    assert seen["servingId"]["modelId"]["serviceProvider"] == "SERVICE_PROVIDER_GROQ"
    assert seen["textGenerationConfig"] == {"maxTokens": 1024, "temperature": 0.7}
    assert seen["messages"][0]["role"] == "MESSAGE_ROLE_SYSTEM"
    assert seen["messages"][1] == {"role": "MESSAGE_ROLE_USER", "content": "hi"}


@pytest.mark.asyncio
async def test_unknown_model_uses_default(test_cfg):
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return inworld_reply("ok")

    result = await make_relay(test_cfg, handler).relay({**HI, "model": "madeup:thing"})
    assert result.model == "gpt-4.1-nano"
    assert seen["servingId"]["modelId"]["serviceProvider"] == "SERVICE_PROVIDER_OPENAI"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_no_credential_is_unconfigured(test_cfg):
    called = []

    def handler(request):
        called.append(request)
        return inworld_reply("never")

    relay = make_relay(test_cfg, handler, api_key="")
    with pytest.raises(Unconfigured) as exc:
        await relay.relay(HI)
    assert exc.value.status_code == 500
    assert exc.value.response
    assert not called


@pytest.mark.asyncio
@pytest.mark.parametrize("status, err_cls, http_status", [
    (401, UpstreamAuthError, 500),
    (403, UpstreamAuthError, 500),
    (429, UpstreamThrottled, 429),
    (500, UpstreamError, 500),
    (404, UpstreamError, 500),
])
async def test_upstream_status_classification(test_cfg, status, err_cls, http_status):
    def handler(request):
        return httpx.Response(status, json={"message": "nope"})

    with pytest.raises(err_cls) as exc:
        await make_relay(test_cfg, handler).relay(HI)
    assert exc.value.status_code == http_status
    assert exc.value.response


@pytest.mark.asyncio
async def test_throttled_has_retry_hint(test_cfg):
    def handler(request):
        return httpx.Response(429, json={})

    with pytest.raises(UpstreamThrottled) as exc:
        await make_relay(test_cfg, handler).relay(HI)
    assert "try again" in exc.value.response.lower()


@pytest.mark.asyncio
async def test_upstream_error_carries_detail(test_cfg):
    def handler(request):
        return httpx.Response(500, json={"message": "model exploded"})

    with pytest.raises(UpstreamError) as exc:
        await make_relay(test_cfg, handler).relay(HI)
    assert exc.value.envelope() == {
        "error": "upstream_error",
        "response": "Something went wrong with the AI. Please try again.",
        "detail": "model exploded",
    }


@pytest.mark.asyncio
async def test_upstream_unreachable(test_cfg):
    def handler(request):
        raise httpx.ConnectTimeout("slow")

    with pytest.raises(UpstreamError):
        await make_relay(test_cfg, handler).relay(HI)


@pytest.mark.asyncio
async def test_unrecognised_reply_shape(test_cfg):
    def handler(request):
        return httpx.Response(200, json={"weird": True})

    with pytest.raises(UpstreamError) as exc:
        await make_relay(test_cfg, handler).relay(HI)
    assert exc.value.detail == "No response from AI"


@pytest.mark.asyncio
async def test_openai_shape_accepted(test_cfg):
    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": "plain openai"}}]})

    result = await make_relay(test_cfg, handler).relay(HI)
    assert result.response == "plain openai"
    assert result.to_dict() == {"response": "plain openai", "model": "gpt-4.1-nano"}


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_stream_is_passed_through(test_cfg, sse):
    chunks = [b'data: {"choices":[{"delta":{"content":"Hi"}}]}\n\n', b"data: [DONE]\n\n"]

    result = await make_relay(test_cfg, lambda r: sse(chunks)).relay(HI)
    assert result.is_stream
    body = b"".join([c async for c in result.stream])
    assert body == b"".join(chunks)


@pytest.mark.asyncio
async def test_stream_interruption_synthesizes_frame(test_cfg, sse):
    chunks = [b'data: {"response":"par']

    def handler(request):
        return sse(chunks, error=httpx.ReadError("connection reset"))

    result = await make_relay(test_cfg, handler).relay(HI)
    body = b"".join([c async for c in result.stream]).decode()

    assert body.startswith('data: {"response":"par\n')
    frames = [line for line in body.splitlines() if line.startswith("data: ")]
    assert json.loads(frames[-2][6:])["error"] == "stream_interrupted"
    assert frames[-1] == "data: [DONE]"


@pytest.mark.asyncio
async def test_stream_decoding_failure_synthesizes_frame(test_cfg, sse):
    def handler(request):
        return sse([b'data: {"response":"ok"}\n\n'], error=httpx.DecodingError("invalid distance too far back"))

    result = await make_relay(test_cfg, handler).relay(HI)
    body = b"".join([c async for c in result.stream]).decode()

    frames = [line for line in body.splitlines() if line.startswith("data: ")]
    assert frames[0] == 'data: {"response":"ok"}'
    assert json.loads(frames[-2][6:]) == {
        "error": "stream_interrupted",
        "response": "The connection to the AI was interrupted. Please try again.",
    }
    assert frames[-1] == "data: [DONE]"
