"""Vision analyzer module for adroast.

Provides a provider-agnostic interface for sending frames to
vision-capable language models and receiving tagged, structured
observations.

Public API:
    VisionAnalyzer -- Abstract base class
    OpenAIAnalyzer -- OpenAI / OpenRouter implementation
    AnthropicAnalyzer -- Claude API implementation
    ProxyAnalyzer -- Goes through the adroast rate-limiting proxy
"""

from adroast.analyzer.base import (
    AnalyzerError,
    AnalyzerRateLimited,
    VisionAnalyzer,
    parse_reply,
)

__all__ = [
    "VisionAnalyzer",
    "AnalyzerError",
    "AnalyzerRateLimited",
    "parse_reply",
    "AnthropicAnalyzer",
    "OpenAIAnalyzer",
    "ProxyAnalyzer",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "AnthropicAnalyzer":
        from adroast.analyzer.anthropic import AnthropicAnalyzer
        return AnthropicAnalyzer
    if name == "OpenAIAnalyzer":
        from adroast.analyzer.openai import OpenAIAnalyzer
        return OpenAIAnalyzer
    if name == "ProxyAnalyzer":
        from adroast.analyzer.proxy import ProxyAnalyzer
        return ProxyAnalyzer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
