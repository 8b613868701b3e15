"""Tests for the OpenAI and Anthropic analyzers with mocked SDK clients."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import openai
import pytest

from adroast.analyzer.anthropic import AnthropicAnalyzer
from adroast.analyzer.openai import OpenAIAnalyzer, build_chat_messages
from adroast.domain.models import CapturedFrame, Failed, Parsed


def _rate_limit_response(url: str) -> httpx.Response:
    return httpx.Response(
        429, headers={"retry-after": "20"}, request=httpx.Request("POST", url)
    )


class TestBuildChatMessages:

    def test_layout(self) -> None:
        messages = build_chat_messages("be snarky", "QUJD", detail="high")
        assert messages[0] == {"role": "system", "content": "be snarky"}
        image, text = messages[1]["content"]
        assert image["image_url"] == {"url": "data:image/jpeg;base64,QUJD", "detail": "high"}
        assert text == {"type": "text", "text": "What do you see?"}


class TestOpenAIAnalyzer:

    def _with_client(self, create: AsyncMock) -> OpenAIAnalyzer:
        analyzer = OpenAIAnalyzer(api_key="sk-test")
        analyzer._client = MagicMock()
        analyzer._client.chat.completions.create = create
        return analyzer

    @pytest.mark.asyncio
    async def test_reply_is_parsed(self, sample_frame: CapturedFrame) -> None:
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"commentary": "Yikes."}'))]
        )
        create = AsyncMock(return_value=response)
        outcome = await self._with_client(create).analyze(sample_frame)
        assert isinstance(outcome, Parsed)
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 200
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_no_choices_fails(self, sample_frame: CapturedFrame) -> None:
        create = AsyncMock(return_value=SimpleNamespace(choices=[]))
        outcome = await self._with_client(create).analyze(sample_frame)
        assert isinstance(outcome, Failed)

    @pytest.mark.asyncio
    async def test_rate_limit_error(self, sample_frame: CapturedFrame) -> None:
        error = openai.RateLimitError(
            "slow down",
            response=_rate_limit_response("https://api.openai.com/v1/chat/completions"),
            body=None,
        )
        outcome = await self._with_client(AsyncMock(side_effect=error)).analyze(sample_frame)
        assert isinstance(outcome, Failed)
        assert outcome.rate_limited is True
        assert outcome.retry_after == 20.0


class TestAnthropicAnalyzer:

    def test_temperature_capped(self) -> None:
        analyzer = AnthropicAnalyzer(api_key="sk-ant", temperature=1.4)
        assert analyzer._temperature == 1.0

    @pytest.mark.asyncio
    async def test_reply_text_blocks_joined(self, sample_frame: CapturedFrame) -> None:
        response = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text='{"commentary": '),
                SimpleNamespace(type="text", text='"Groundbreaking. Not."}'),
            ]
        )
        analyzer = AnthropicAnalyzer(api_key="sk-ant")
        analyzer._client = MagicMock()
        analyzer._client.messages.create = AsyncMock(return_value=response)

        outcome = await analyzer.analyze(sample_frame, "Theory: phones. Recent: shiny")
        assert isinstance(outcome, Parsed)
        assert outcome.observation.commentary_text == "Groundbreaking. Not."
        kwargs = analyzer._client.messages.create.call_args.kwargs
        assert "Theory: phones" in kwargs["system"]
        assert kwargs["messages"][0]["content"][0]["source"]["media_type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_rate_limit_error(self, sample_frame: CapturedFrame) -> None:
        error = anthropic.RateLimitError(
            "slow down",
            response=_rate_limit_response("https://api.anthropic.com/v1/messages"),
            body=None,
        )
        analyzer = AnthropicAnalyzer(api_key="sk-ant")
        analyzer._client = MagicMock()
        analyzer._client.messages.create = AsyncMock(side_effect=error)
        outcome = await analyzer.analyze(sample_frame)
        assert isinstance(outcome, Failed)
        assert outcome.rate_limited is True
