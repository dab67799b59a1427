"""Text-generation clients.

Every component that needs a model takes an `LLM`: an async callable
`(stage, messages) -> str`. `stage` names the caller ("character",
"summarizer", "hero_chat") and only shows up in logs. `messages` is the
ordered system/user/assistant conversation.

HttpLLM talks to a KoboldCpp or OpenAI-compatible server over HTTP. It
either returns text or raises LLMError; callers decide what a failure
turns into. A role with no connection gets no client at all.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Literal, Protocol

import httpx

from hero_campaign.models import ChatMessage

logger = logging.getLogger(__name__)

ProviderFormat = Literal["koboldcpp", "openai"]


class LLM(Protocol):
    async def __call__(self, stage: str, messages: list[ChatMessage]) -> str: ...


class LLMError(RuntimeError):
    """The text-generation service was unreachable or answered badly."""


_ROLE_LABELS = {"system": "System", "user": "User", "assistant": "Assistant"}


def flatten_messages(messages: list[ChatMessage]) -> str:
    """Render a chat as one completion prompt ending in an open assistant turn.

    KoboldCpp's generate endpoint has no notion of roles.
    """
    parts = [f"{_ROLE_LABELS[m.role]}: {m.content}" for m in messages]
    parts.append("Assistant:")
    return "\n\n".join(parts)


def _kobold_body(messages: list[ChatMessage], model: str) -> dict[str, Any]:
    return {"prompt": flatten_messages(messages)}


def _kobold_text(data: dict[str, Any]) -> str:
    results = data.get("results")
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        raise LLMError("Unexpected response format from KoboldCpp")
    text = results[0].get("text")
    if not isinstance(text, str):
        raise LLMError("Unexpected response format from KoboldCpp")
    return text


def _openai_body(messages: list[ChatMessage], model: str) -> dict[str, Any]:
    body: dict[str, Any] = {"messages": [m.model_dump() for m in messages]}
    if model:
        body["model"] = model
    return body


def _openai_text(data: dict[str, Any]) -> str:
    choices = data.get("choices")
    first = choices[0] if isinstance(choices, list) and choices else None
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise LLMError("Unexpected response format from OpenAI-compatible server")
    return content


# format -> (endpoint path, request body builder, response text extractor)
_WIRE: dict[str, tuple[str, Callable[..., dict[str, Any]], Callable[[dict[str, Any]], str]]] = {
    "koboldcpp": ("/api/v1/generate", _kobold_body, _kobold_text),
    "openai": ("/v1/chat/completions", _openai_body, _openai_text),
}


class HttpLLM:
    """Async HTTP client for one configured connection.

    Args:
        provider_url:    Server base URL, e.g. "http://localhost:5001".
        api_key:         Sent as a Bearer token when non-empty.
        provider_format: "koboldcpp" (flattened prompt) or "openai" (chat messages).
        model:           Model name; only the openai format sends it.
        timeout:         Seconds before a request is abandoned.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 120.0,
    ) -> None:
        if provider_format not in _WIRE:
            raise ValueError(f"Unsupported provider format {provider_format!r}")
        self.url = provider_url.rstrip("/") + _WIRE[provider_format][0]
        self.provider_format = provider_format
        self._api_key = api_key
        self._model = model
        self._timeout = timeout

    async def __call__(self, stage: str, messages: list[ChatMessage]) -> str:
        _, build_body, extract_text = _WIRE[self.provider_format]
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        logger.debug("llm request stage=%s url=%s messages=%d", stage, self.url, len(messages))
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self.url, json=build_body(messages, self._model), headers=headers,
                )
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to {self.url}") from e
        except httpx.TimeoutException as e:
            raise LLMError(f"Request to {self.url} timed out after {self._timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(f"{self.url} answered HTTP {e.response.status_code}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError(f"{self.url} returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise LLMError("Unexpected response format: expected a JSON object")

        text = extract_text(data)
        logger.debug("llm response stage=%s chars=%d", stage, len(text))
        return text
