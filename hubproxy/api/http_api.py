"""
HTTP API adapter for the RunningHub proxy.

Architectural role:
- Expose the single proxy endpoint (`/api/proxy`, also mounted at `/`).
- Drain the inbound body, classify it, resolve a key and dispatch upstream.
- Map classification errors and upstream outcomes to HTTP status codes.

API request lifecycle (`POST /api/proxy`):
1. Reject non-POST methods (any verb) with 405 and `Allow: POST`.
2. Drain the raw body stream into one buffer.
3. Classify into an upload or a JSON command (`hubproxy.core.classifier`).
4. Resolve the secret for the requested index (`hubproxy.keys.pool`).
5. Send one upstream call and interpret it (`hubproxy.upstream.dispatcher`).
6. Write back the outcome.

Status mapping:
- Invalid request shape or unknown action -> 400 `{"error": ...}`.
- Upstream non-JSON reply -> 502 `PROXY_ERROR`.
- Queue-full or ordinary upstream reply -> 200 with upstream body verbatim.
- Any other failure, including a missing key pool -> 500 `PROXY_FATAL`.

Side effects:
- Owns an `httpx.AsyncClient` for the app lifetime unless a dispatcher is
  injected.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hubproxy.config import ProxyConfig
from hubproxy.core.classifier import classify, read_raw_body
from hubproxy.core.errors import InvalidRequest
from hubproxy.core.types import QueueFull, Success, UpstreamMalformed
from hubproxy.keys.pool import KeyPool
from hubproxy.upstream.dispatcher import UpstreamDispatcher


logger = logging.getLogger(__name__)

PROXY_PATHS = ("/api/proxy", "/")


def method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"error": "Method Not Allowed"},
        headers={"Allow": "POST"},
    )


def fatal_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": True, "code": "PROXY_FATAL", "msg": message},
    )


def outcome_response(outcome) -> JSONResponse:
    """Map an upstream outcome onto the inbound HTTP response."""
    if isinstance(outcome, UpstreamMalformed):
        return JSONResponse(
            status_code=502,
            content={
                "error": True,
                "code": "PROXY_ERROR",
                "msg": f"RunningHub error: {outcome.status} {outcome.status_text}",
            },
        )

    # Queue-full stays a 200 so clients read `code` from the body and retry.
    if isinstance(outcome, (QueueFull, Success)):
        return JSONResponse(status_code=200, content=outcome.body)

    raise TypeError(f"Unknown upstream outcome: {outcome!r}")


def create_app(
    config: ProxyConfig | None = None,
    key_pool: KeyPool | None = None,
    dispatcher: UpstreamDispatcher | None = None,
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        config: Runtime configuration; read from the environment when omitted.
        key_pool: Secret pool; built from `config.api_keys` when omitted.
        dispatcher: Upstream dispatcher; when omitted one is created in the
            lifespan around an app-owned `httpx.AsyncClient`.
    """
    config = config or ProxyConfig.from_env()
    key_pool = key_pool or KeyPool(config.api_keys)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.dispatcher is not None:
            yield
            return

        # timeout=None disables httpx's default; set UPSTREAM_TIMEOUT_SECONDS to bound it.
        async with httpx.AsyncClient(timeout=config.timeout_seconds) as client:
            app.state.dispatcher = UpstreamDispatcher(client, base_url=config.base_url)
            yield
            app.state.dispatcher = None

    app = FastAPI(title="hubproxy", lifespan=lifespan)
    app.state.config = config
    app.state.key_pool = key_pool
    app.state.dispatcher = dispatcher

    @app.exception_handler(StarletteHTTPException)
    async def proxy_method_handler(request: Request, exc: StarletteHTTPException):
        """Answer any non-POST method on the proxy paths with `Allow: POST`."""
        if exc.status_code == 405 and request.url.path in PROXY_PATHS:
            return method_not_allowed()
        return await http_exception_handler(request, exc)

    @app.get("/healthz")
    def healthz():
        """Liveness probe; does not touch the key pool or upstream."""
        return {"status": "ok"}

    async def proxy(request: Request):
        """
        Proxy one inbound request to RunningHub.

        Error handling strategy:
        - `InvalidRequest` returns 400 before any upstream call.
        - Every other exception is logged and returned as 500 `PROXY_FATAL`.
        """
        try:
            raw_body = await read_raw_body(request.stream())
            op = classify(request.headers, raw_body)
            key = request.app.state.key_pool.resolve_key(op.key_index)

            active = request.app.state.dispatcher
            if active is None:
                raise RuntimeError("Upstream dispatcher is not initialized")

            outcome = await active.dispatch(op, key)
            # Rendering can fail too (e.g. non-serializable body).
            response = outcome_response(outcome)
        except InvalidRequest as exc:
            logger.warning("Rejected request: %s", exc)
            return JSONResponse(status_code=400, content={"error": str(exc)})
        except Exception as exc:
            logger.exception("Fatal error in proxy")
            return fatal_response(str(exc) or exc.__class__.__name__)

        return response

    for path in PROXY_PATHS:
        app.add_api_route(path, proxy, methods=["POST"], include_in_schema=path != "/")

    return app


app = create_app()
