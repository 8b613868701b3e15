"""OpenAI-compatible vision analyzer.

Works with OpenAI, OpenRouter, and any OpenAI-compatible API
by setting a custom base_url.
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
from adroast.utils.imaging import to_data_url

logger = logging.getLogger(__name__)


def build_chat_messages(instructions: str, b64_image: str, detail: str = "low") -> list[dict]:
    """Chat-completions message list for one frame."""
    return [
        {"role": "system", "content": instructions},
        {
            "role": "user",
            "content": [
                {
                    "type": "image_url",
                    "image_url": {
                        "url": to_data_url(b64_image),
                        "detail": detail,
                    },
                },
                {
                    "type": "text",
                    "text": USER_PROMPT,
                },
            ],
        },
    ]


class OpenAIAnalyzer(VisionAnalyzer):
    """Vision analyzer using OpenAI's chat completions API.

    Also works with OpenRouter and other OpenAI-compatible endpoints.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        system_prompt: str | None = None,
        max_tokens: int = 200,
        temperature: float = 0.9,
        image_detail: str = "low",
        jpeg_quality: int = 80,
    ) -> None:
        super().__init__(
            model=model,
            system_prompt=system_prompt,
            image_detail=image_detail,
            jpeg_quality=jpeg_quality,
        )
        self._api_key = api_key
        self._base_url = base_url
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._client = None

    async def _ensure_client(self) -> None:
        """Lazily initialize the OpenAI async client."""
        if self._client is not None:
            return
        from openai import AsyncOpenAI
        kwargs = {"api_key": self._api_key}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        self._client = AsyncOpenAI(**kwargs)
        logger.info("Initialized OpenAI client (model=%s, base_url=%s)", self._model, self._base_url)

    async def _request(self, b64_image: str, instructions: str) -> str:
        import openai

        await self._ensure_client()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                response_format={"type": "json_object"},
                messages=build_chat_messages(instructions, b64_image, self._image_detail),
            )
        except openai.RateLimitError as e:
            raise AnalyzerRateLimited(
                "Rate limit reached. Please try again later.",
                provider="openai",
                retry_after=parse_retry_after(e.response.headers.get("retry-after")),
            ) from e
        except openai.OpenAIError as e:
            raise AnalyzerError(f"OpenAI API call failed: {e}", provider="openai") from e

        if not response.choices:
            raise AnalyzerError("OpenAI returned no choices", provider="openai")
        return response.choices[0].message.content or ""

    async def health_check(self) -> bool:
        """Check if the API is reachable."""
        try:
            await self._ensure_client()
            await self._client.models.list()
            return True
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False
