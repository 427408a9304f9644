"""HTTP client for OpenRouter chat completions (model playground).

OpenRouter exposes an OpenAI-compatible ``/chat/completions`` endpoint.
Every failure (missing key, HTTP error, provider error body, timeout) is
returned in the result's ``error`` field so one bad model never fails a
multi-model run.
"""

import math
import time
from typing import Any

import httpx

from mission_control.core.pricing import calculate_cost
from mission_control.observability import get_logger
from mission_control.settings import Settings

logger = get_logger(__name__)


def _result(model_id: str, elapsed_ms: int = 0, **fields: Any) -> dict[str, Any]:
    result: dict[str, Any] = {
        "model_id": model_id,
        "text": "",
        "input_tokens": 0,
        "output_tokens": 0,
        "cost": 0.0,
        "elapsed_ms": elapsed_ms,
    }
    result.update(fields)
    return result


def _token_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0
    return max(int(value), 0)


class OpenRouterClient:
    """Implements ICompletionClient from core/interfaces.py.

    Args:
        settings: Provides the API key, base URL, referer origin, token cap
            and the hard request timeout.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._api_key = settings.openrouter_api_key
        self._base_url = settings.openrouter_base_url.rstrip("/")
        self._timeout = settings.openrouter_timeout_seconds
        self._max_tokens = settings.openrouter_max_tokens
        self._referer = settings.public_origin
        self._transport = transport

    async def complete(self, model_id: str, prompt: str) -> dict[str, Any]:
        """Run a single-turn completion and price its usage.

        Args:
            model_id: Catalog model id, passed through to OpenRouter.
            prompt: User message content.

        Returns:
            Result dict with text, token counts, cost and elapsed_ms; ``error``
            is set instead of raising on failure.
        """
        if not self._api_key:
            return _result(model_id, error="OpenRouter API key is not configured")

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self._base_url}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "HTTP-Referer": self._referer,
                    },
                    json={
                        "model": model_id,
                        "messages": [{"role": "user", "content": prompt}],
                        "max_tokens": self._max_tokens,
                    },
                )
            elapsed_ms = int((time.monotonic() - start) * 1000)
            try:
                data = response.json()
            except ValueError:
                data = {}
        except httpx.HTTPError as exc:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning("openrouter_request_failed", model_id=model_id, error=str(exc))
            return _result(model_id, elapsed_ms, error=str(exc) or type(exc).__name__)

        error = data.get("error") if isinstance(data, dict) else None
        if response.is_error or error:
            message = error.get("message") if isinstance(error, dict) else None
            logger.warning("openrouter_completion_error", model_id=model_id, status_code=response.status_code)
            return _result(model_id, elapsed_ms, error=message or f"HTTP {response.status_code}")

        if not isinstance(data, dict):
            logger.warning("openrouter_malformed_response", model_id=model_id, status_code=response.status_code)
            return _result(model_id, elapsed_ms, error="Malformed provider response")

        choices = data.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else {}
        reply = first.get("message") if isinstance(first, dict) else None
        content = reply.get("content") if isinstance(reply, dict) else None
        text = content if isinstance(content, str) else ""
        usage = data.get("usage") if isinstance(data.get("usage"), dict) else {}
        input_tokens = _token_count(usage.get("prompt_tokens"))
        output_tokens = _token_count(usage.get("completion_tokens"))
        return _result(
            model_id,
            elapsed_ms,
            text=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=calculate_cost(model_id, input_tokens, output_tokens),
        )
