"""FastAPI rate-limiting proxy in front of the vision model API.

Holds the upstream API key so clients never see it, and caps how many
analyze calls each client may make per window. Clients are keyed by the
first ``X-Forwarded-For`` entry, else the socket peer address.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from adroast.config.settings import Settings, load_settings
from adroast.proxy.ratelimit import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_URL = "https://api.openai.com/v1/chat/completions"


class ProxyStatus(BaseModel):
    status: str = "ok"
    hasApiKey: bool = False


def client_key(request: Request) -> str:
    """Identify the caller for rate limiting."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return request.client.host if request.client else "unknown"


def create_app(
    api_key: str = "",
    upstream_url: str = DEFAULT_UPSTREAM_URL,
    limiter: FixedWindowRateLimiter | None = None,
    http_client: httpx.AsyncClient | None = None,
    upstream_timeout: float = 30.0,
    purge_interval: float = 10 * 60,
) -> FastAPI:
    """Create and configure the proxy application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Startup
        app.state.purge_task = asyncio.create_task(
            _purge_periodically(app.state.limiter, purge_interval)
        )
        logger.info("Proxy started (upstream=%s, key configured=%s)", upstream_url, bool(api_key))
        yield
        # Shutdown
        app.state.purge_task.cancel()
        try:
            await app.state.purge_task
        except asyncio.CancelledError:
            pass
        if app.state.owns_client:
            await app.state.http_client.aclose()
        logger.info("Proxy stopped")

    app = FastAPI(
        title="adroast proxy",
        description="Rate-limited proxy for the adroast vision analyzer",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.limiter = limiter if limiter is not None else FixedWindowRateLimiter()
    app.state.owns_client = http_client is None
    app.state.http_client = http_client if http_client is not None else httpx.AsyncClient(timeout=upstream_timeout)

    @app.get("/api/health")
    async def health_check() -> ProxyStatus:
        return ProxyStatus(status="ok", hasApiKey=bool(api_key))

    @app.post("/api/analyze")
    async def analyze(request: Request) -> JSONResponse:
        if not api_key:
            return JSONResponse(
                status_code=400,
                content={"error": "Upstream API key not configured on server"},
            )

        limiter: FixedWindowRateLimiter = app.state.limiter
        key = client_key(request)
        decision = limiter.check(key)
        headers = {"X-RateLimit-Remaining": str(decision.remaining)}
        if not decision.allowed:
            headers["Retry-After"] = str(decision.retry_after)
            logger.info("Rate limit exceeded for %s", key)
            return JSONResponse(
                status_code=429,
                headers=headers,
                content={"error": "RATE_LIMIT", "message": "Rate limit exceeded. Try again later."},
            )

        try:
            body: Any = await request.json()
        except ValueError:
            return JSONResponse(
                status_code=400, headers=headers, content={"error": "Request body must be JSON"}
            )

        client: httpx.AsyncClient = app.state.http_client
        try:
            upstream = await client.post(
                upstream_url,
                json=body,
                headers={"Authorization": f"Bearer {api_key}"},
            )
        except httpx.HTTPError as e:
            logger.error("Upstream proxy error: %s", e)
            return JSONResponse(
                status_code=500, headers=headers, content={"error": "Failed to reach upstream API"}
            )

        if upstream.is_error:
            return JSONResponse(
                status_code=upstream.status_code, headers=headers, content={"error": upstream.text}
            )
        try:
            payload = upstream.json()
        except ValueError:
            logger.error("Upstream returned non-JSON body")
            return JSONResponse(
                status_code=502, headers=headers, content={"error": "Invalid upstream response"}
            )
        return JSONResponse(status_code=200, headers=headers, content=payload)

    return app


async def _purge_periodically(limiter: FixedWindowRateLimiter, interval: float) -> None:
    """Periodically drop expired rate-limit windows."""
    while True:
        try:
            await asyncio.sleep(interval)
            limiter.purge()
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.warning("Rate-limit purge error: %s", e)


def create_app_from_settings(settings: Settings) -> FastAPI:
    """Build the proxy from the ``proxy`` section and the OpenAI key."""
    px = settings.proxy
    return create_app(
        api_key=settings.openai_api_key.get_secret_value(),
        upstream_url=px.upstream_url,
        limiter=FixedWindowRateLimiter(max_calls=px.rate_limit_max, window=px.rate_limit_window),
        upstream_timeout=px.upstream_timeout,
        purge_interval=px.purge_interval,
    )


def run(settings: Settings) -> None:
    """Serve the proxy with uvicorn until interrupted."""
    uvicorn.run(create_app_from_settings(settings), host=settings.proxy.host, port=settings.proxy.port)


def main() -> None:
    """Entry point for running the proxy standalone."""
    run(load_settings())


if __name__ == "__main__":
    main()
