"""Rate-limiting HTTP proxy for the adroast vision analyzer."""

from adroast.proxy.ratelimit import FixedWindowRateLimiter, RateLimitDecision

__all__ = ["FixedWindowRateLimiter", "RateLimitDecision", "create_app"]


def __getattr__(name: str) -> object:
    """Lazy import so the limiter is usable without the web stack."""
    if name == "create_app":
        from adroast.proxy.server import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
