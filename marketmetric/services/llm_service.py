"""Chat completion gateway.

Talks to any OpenAI-compatible chat completions endpoint (Groq by default)
through the OpenAI SDK. The client is built once at startup by
``init_client``; a missing credential surfaces there as a
ConfigurationError instead of a half-working client.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from marketmetric.errors import ConfigurationError, NetworkError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "deepseek-r1-distill-llama-70b"

CONTEXT_LENGTH_MARKERS = (
    "context_length_exceeded",
    "context length",
    "maximum context",
    "context window",
    "too many tokens",
    "reduce the length",
)


@dataclass(frozen=True)
class Completion:
    text: str
    # True when the canned answer stood in for a rejected prompt.
    degraded: bool = False


def mask_key(key: str) -> str:
    return f"{key[:4]}***" if key else ""


def init_client(api_key: str, base_url: str = DEFAULT_BASE_URL) -> OpenAI:
    key = (api_key or "").strip()
    if not key:
        raise ConfigurationError("LLM API key is not configured", details="Set LLM_API_KEY or GROQ_API_KEY")
    logger.info("LLM client using key %s at %s", mask_key(key), base_url)
    # One request per call; failures go straight back to the caller.
    return OpenAI(api_key=key, base_url=base_url or DEFAULT_BASE_URL, max_retries=0)


def _error_body_text(e: "openai.APIStatusError") -> str:
    body = e.body
    if body is None:
        try:
            return e.response.text or e.message
        except Exception:
            return e.message
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body)
    except (TypeError, ValueError):
        return str(body)


def is_context_length_error(body: str) -> bool:
    low = (body or "").lower()
    return any(marker in low for marker in CONTEXT_LENGTH_MARKERS)


def complete(
    client: Optional[OpenAI],
    prompt: str,
    max_tokens: int,
    *,
    model: str = DEFAULT_MODEL,
    temperature: float = 0.1,
    system: Optional[str] = None,
    canned: str = "",
) -> Completion:
    """Send one chat completion and return the first choice's text.

    ``canned`` is returned, marked degraded, instead of raising when the
    provider rejects the prompt as too long for the model's context window.
    """
    if client is None:
        raise ConfigurationError("LLM client not available", details="Set LLM_API_KEY or GROQ_API_KEY")

    messages: List[Dict[str, Any]] = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})

    try:
        res = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except openai.APIConnectionError as e:
        raise NetworkError("Could not reach the LLM provider", details=f"{type(e).__name__}: {e}") from e
    except openai.APIStatusError as e:
        body = _error_body_text(e)
        if is_context_length_error(body):
            logger.warning("LLM context length exceeded (status %s); using canned completion", e.status_code)
            return Completion(text=canned, degraded=True)
        raise ProviderError(f"LLM provider returned status {e.status_code}", status=e.status_code, body=body) from e
    except openai.OpenAIError as e:
        raise ProviderError(f"LLM request failed: {type(e).__name__}", body=str(e)) from e

    choices = getattr(res, "choices", None)
    if not choices:
        raise ProviderError("Unexpected response from LLM provider", body="Response has no choices")

    message = getattr(choices[0], "message", None)
    text = (getattr(message, "content", None) or "") if message is not None else ""
    return Completion(text=text)
