"""
FastAPI application — the chatrelay entry point.

Endpoints:
  POST /, /chat   relay a conversation (JSON reply or event-stream)
  GET  /, /chat   plain-text liveness banner
  GET  /models    model catalog for client selectors
  GET  /health    status + whether an upstream key is configured
  OPTIONS *       CORS preflight, wide open
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse

from chatrelay.catalog import list_models
from chatrelay.config import get_config
from chatrelay.errors import InvalidRequest, RelayError, UnhandledError
from chatrelay.relay import ChatRelay

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# ---------------------------------------------------------------------------
# Globals — initialized at startup
# ---------------------------------------------------------------------------
relay: ChatRelay | None = None


def _setup_logging(cfg: dict):
    log_cfg = cfg.get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        from pathlib import Path
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    global relay

    cfg = get_config()
    _setup_logging(cfg)
    logger = logging.getLogger(__name__)

    relay = ChatRelay(cfg)

    server = cfg.get("server", {})
    logger.info(
        "chatrelay started — listening on %s:%s, upstream %s (%s)",
        server.get("host", "0.0.0.0"),
        server.get("port", 8787),
        relay.upstream.name,
        relay.upstream.url,
    )
    if not relay.has_api_key:
        logger.warning("No upstream API key configured — chat requests will return 500")

    yield

    logger.info("chatrelay shutting down")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="chatrelay",
    description="Relay chat messages to an LLM API and stream the reply back.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def preflight(request: Request, call_next):
    """Any OPTIONS request answers with open CORS, preflight headers or not."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    return await call_next(request)


def _error_response(err: RelayError) -> JSONResponse:
    return JSONResponse(err.envelope(), status_code=err.status_code, headers=CORS_HEADERS)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

async def _handle_chat(request: Request):
    logger = logging.getLogger(__name__)
    try:
        try:
            body = await request.json()
        except ValueError as e:
            raise InvalidRequest("request body is not valid JSON") from e

        result = await relay.relay(body)
    except RelayError as e:
        if e.status_code >= 500:
            logger.warning("Chat request failed: %s (%s)", e.code, e)
        return _error_response(e)
    except Exception:
        logger.exception("Chat error")
        return _error_response(UnhandledError())

    if result.is_stream:
        return StreamingResponse(
            result.stream,
            media_type="text/event-stream",
            headers={
                **CORS_HEADERS,
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )
    return JSONResponse(result.to_dict(), headers=CORS_HEADERS)


@app.post("/")
async def chat_root(request: Request):
    return await _handle_chat(request)


@app.post("/chat")
async def chat(request: Request):
    """
    Main relay endpoint.
    Body: {"messages": [{"role", "content"}], "model": "<provider>:<model>"?}
    """
    return await _handle_chat(request)


@app.get("/")
@app.get("/chat")
async def banner():
    return PlainTextResponse(
        "Chat API is running. Send POST requests to interact.",
        headers=CORS_HEADERS,
    )


# ---------------------------------------------------------------------------
# Catalog / health
# ---------------------------------------------------------------------------

@app.get("/models")
async def models():
    """Available models for client dropdowns."""
    cfg = get_config()
    descriptors, default_id = list_models(cfg.get("models", {}).get("default"))
    return JSONResponse(
        {"models": [m.to_dict() for m in descriptors], "default": default_id},
        headers=CORS_HEADERS,
    )


@app.get("/health")
async def health():
    """Health check."""
    return JSONResponse(
        {
            "status": "ok",
            "timestamp": int(time.time() * 1000),
            "hasApiKey": bool(relay and relay.has_api_key),
        },
        headers=CORS_HEADERS,
    )

