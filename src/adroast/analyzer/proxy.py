"""Vision analyzer that goes through the rate-limiting proxy.

Posts an OpenAI chat-completions body to the proxy's ``/api/analyze``
route. The proxy holds the upstream API key and enforces the per-client
call budget; a 429 from it surfaces as ``AnalyzerRateLimited``.
"""

from __future__ import annotations

import logging

import httpx

from adroast.analyzer.base import (
    AnalyzerError,
    AnalyzerRateLimited,
    VisionAnalyzer,
    parse_retry_after,
)
from adroast.analyzer.openai import build_chat_messages

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit reached. Please try again later."


class ProxyAnalyzer(VisionAnalyzer):
    """Sends frames to the adroast proxy rather than to the model directly."""

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        model: str = "gpt-4o-mini",
        system_prompt: str | None = None,
        max_tokens: int = 200,
        temperature: float = 0.9,
        image_detail: str = "low",
        jpeg_quality: int = 80,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            model=model,
            system_prompt=system_prompt,
            image_detail=image_detail,
            jpeg_quality=jpeg_quality,
        )
        self._base_url = base_url.rstrip("/")
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._client = client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
            logger.info("Initialized proxy client (base_url=%s)", self._base_url)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, b64_image: str, instructions: str) -> str:
        client = self._ensure_client()
        payload = {
            "model": self._model,
            "messages": build_chat_messages(instructions, b64_image, self._image_detail),
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "response_format": {"type": "json_object"},
        }
        try:
            resp = await client.post("/api/analyze", json=payload)
        except httpx.HTTPError as e:
            raise AnalyzerError(f"Proxy request failed: {e}", provider="proxy") from e

        if resp.status_code == 429:
            raise AnalyzerRateLimited(
                _json_field(resp, "message") or RATE_LIMIT_MESSAGE,
                provider="proxy",
                retry_after=parse_retry_after(resp.headers.get("Retry-After")),
            )
        if resp.is_error:
            raise AnalyzerError(
                f"API error: {resp.status_code}",
                provider="proxy",
                raw_response=resp.text,
            )

        try:
            data = resp.json()
            return data["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AnalyzerError(
                f"Unexpected proxy response: {e}",
                provider="proxy",
                raw_response=resp.text,
            ) from e

    async def health_check(self) -> bool:
        """Check that the proxy is up and holds an upstream key."""
        try:
            resp = await self._ensure_client().get("/api/health")
            resp.raise_for_status()
            return bool(resp.json().get("hasApiKey"))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Health check failed: %s", e)
            return False


def _json_field(resp: httpx.Response, field: str) -> str | None:
    try:
        data = resp.json()
    except ValueError:
        return None
    return data.get(field) if isinstance(data, dict) else None
