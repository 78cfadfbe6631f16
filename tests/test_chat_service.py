"""
tests/test_chat_service.py
~~~~~~~~~~~~~~~~~~~~~~~~~~
Chat proxy: message assembly and the upstream call.
"""

from __future__ import annotations

import json

import httpx
import pytest

from tailwatch.chat_service import SYSTEM_PROMPT, ask, build_messages, clean_conversation
from tailwatch.errors import UpstreamError
from tailwatch.state_normalizer import normalize_state

BASE = "https://llm.test/v1"


@pytest.fixture
async def client():
    async with httpx.AsyncClient() as cli:
        yield cli


def test_clean_conversation_drops_malformed_turns():
    turns = clean_conversation(
        [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "tool", "content": "nope"},
            {"role": "user", "content": 42},
            "garbage",
        ]
    )
    assert turns == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
    ]


def test_build_messages_order():
    messages = build_messages("Where is it?", [{"role": "user", "content": "hi"}])
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[1] == {"role": "user", "content": "hi"}
    assert messages[-1] == {"role": "user", "content": "Where is it?"}


def test_build_messages_with_state(raw_state, clock):
    snap = normalize_state(raw_state(), clock=clock)
    messages = build_messages("Status?", state=snap)

    assert messages[1]["role"] == "system"
    assert "abc123" in messages[1]["content"]
    assert "DAL123" in messages[1]["content"]


async def test_ask_returns_assistant_message(httpx_mock, client):
    reply = {"role": "assistant", "content": "It is over JFK."}
    httpx_mock.add_response(json={"choices": [{"message": reply}]})

    message = await ask(client, "Where?", api_key="sk-test", base_url=BASE, model="m1")

    assert message == reply
    request = httpx_mock.get_request()
    assert request.url.path == "/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "m1"
    assert body["messages"][-1] == {"role": "user", "content": "Where?"}


async def test_ask_without_key(client):
    with pytest.raises(UpstreamError):
        await ask(client, "Where?", api_key=None)


async def test_ask_upstream_error_message(httpx_mock, client):
    httpx_mock.add_response(
        status_code=401, json={"error": {"message": "Incorrect API key provided"}}
    )
    with pytest.raises(UpstreamError) as info:
        await ask(client, "Where?", api_key="bad", base_url=BASE)
    assert "Incorrect API key" in info.value.message


async def test_ask_malformed_answer(httpx_mock, client):
    httpx_mock.add_response(json={"choices": []})
    with pytest.raises(UpstreamError):
        await ask(client, "Where?", api_key="sk-test", base_url=BASE)


async def test_ask_network_error(httpx_mock, client):
    httpx_mock.add_exception(httpx.ReadTimeout("timeout"))
    with pytest.raises(UpstreamError):
        await ask(client, "Where?", api_key="sk-test", base_url=BASE)
