"""chat_service.py
~~~~~~~~~~~~~~~~~~
Forward a user question about the tracked aircraft to a chat-completion
API (OpenAI-compatible ``/chat/completions``) and hand back the assistant
message.

Stateless: the browser keeps the conversation and sends it with every
prompt. When a snapshot is supplied, a second system message gives the
model a plain-English description of it.
"""

from __future__ import annotations

import logging
from typing import Any, Final, Iterable

import httpx

from .api_logging import logged_request
from .errors import UpstreamError
from .formatters import describe_state
from .state_normalizer import StateSnapshot

LOG = logging.getLogger("chat")

SYSTEM_PROMPT: Final[str] = (
    "You are an assistant that summarizes aircraft data and provides insights."
)
ALLOWED_ROLES: Final[frozenset[str]] = frozenset({"system", "user", "assistant"})


def clean_conversation(conversation: Iterable[Any] | None) -> list[dict[str, str]]:
    """Keep only well-formed ``{"role", "content"}`` turns."""
    turns: list[dict[str, str]] = []
    for turn in conversation or []:
        if not isinstance(turn, dict):
            continue
        role, content = turn.get("role"), turn.get("content")
        if role in ALLOWED_ROLES and isinstance(content, str):
            turns.append({"role": role, "content": content})
    return turns


def build_messages(
    prompt: str,
    conversation: Iterable[Any] | None = None,
    state: StateSnapshot | None = None,
) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    if state is not None:
        messages.append(
            {"role": "system", "content": f"Current aircraft data: {describe_state(state)}"}
        )
    messages.extend(clean_conversation(conversation))
    messages.append({"role": "user", "content": prompt})
    return messages


async def ask(
    client: httpx.AsyncClient,
    prompt: str,
    *,
    api_key: str | None,
    conversation: Iterable[Any] | None = None,
    state: StateSnapshot | None = None,
    base_url: str = "https://api.openai.com/v1",
    model: str = "gpt-3.5-turbo",
) -> dict[str, Any]:
    """
    Return the assistant message dict (``{"role": "assistant", "content": …}``).

    Raises:
        UpstreamError: no API key configured, HTTP/network failure or an
                       answer without choices.
    """
    if not api_key:
        raise UpstreamError("Chat assistant is not configured (OPENAI_API_KEY unset)")

    payload = {"model": model, "messages": build_messages(prompt, conversation, state)}
    url = f"{base_url.rstrip('/')}/chat/completions"

    try:
        resp = await logged_request(
            client,
            "post",
            url,
            json=payload,
            headers={"Authorization": f"Bearer {api_key}"},
            raise_for_status=False,
        )
    except httpx.HTTPError as exc:
        raise UpstreamError(f"Chat request failed: {exc}") from exc

    if resp.status_code != 200:
        try:
            reason = resp.json()["error"]["message"]
        except Exception:  # noqa: BLE001 – error body is best-effort
            reason = f"HTTP {resp.status_code}"
        LOG.warning("[chat] completion failed: %s", reason)
        raise UpstreamError(f"Chat request failed: {reason}")

    try:
        message = resp.json()["choices"][0]["message"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise UpstreamError(f"Chat response malformed: {exc}") from exc

    return message


__all__ = ["SYSTEM_PROMPT", "ask", "build_messages", "clean_conversation"]
