"""Anthropic Claude vision analyzer.

Uses the Anthropic Python SDK to send frames to Claude models with
vision capability.
"""

from __future__ import annotations

import logging

from adroast.analyzer.base import (
    USER_PROMPT,
    AnalyzerError,
    AnalyzerRateLimited,
    VisionAnalyzer,
    parse_retry_after,
)

logger = logging.getLogger(__name__)


class AnthropicAnalyzer(VisionAnalyzer):
    """Vision analyzer using Anthropic's Messages API.

    Example usage::

        analyzer = AnthropicAnalyzer(
            api_key="sk-ant-...",
            model="claude-sonnet-4-20250514",
        )
        outcome = await analyzer.analyze(frame, context)
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        system_prompt: str | None = None,
        max_tokens: int = 200,
        temperature: float = 0.9,
        jpeg_quality: int = 80,
    ) -> None:
        super().__init__(model=model, system_prompt=system_prompt, jpeg_quality=jpeg_quality)
        self._api_key = api_key
        self._max_tokens = max_tokens
        # The Messages API caps temperature at 1.0
        self._temperature = min(temperature, 1.0)
        self._client = None

    async def _ensure_client(self) -> None:
        """Lazily initialize the Anthropic async client."""
        if self._client is not None:
            return
        from anthropic import AsyncAnthropic
        self._client = AsyncAnthropic(api_key=self._api_key)
        logger.info("Initialized Anthropic client (model=%s)", self._model)

    async def _request(self, b64_image: str, instructions: str) -> str:
        import anthropic

        await self._ensure_client()
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": "image/jpeg",
                    "data": b64_image,
                },
            },
            {"type": "text", "text": USER_PROMPT},
        ]
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system=instructions,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.RateLimitError as e:
            raise AnalyzerRateLimited(
                "Rate limit reached. Please try again later.",
                provider="anthropic",
                retry_after=parse_retry_after(e.response.headers.get("retry-after")),
            ) from e
        except anthropic.AnthropicError as e:
            raise AnalyzerError(f"Anthropic API call failed: {e}", provider="anthropic") from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    async def health_check(self) -> bool:
        """Check if the Anthropic API is reachable."""
        try:
            await self._ensure_client()
            await self._client.models.list(limit=1)
            return True
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False
