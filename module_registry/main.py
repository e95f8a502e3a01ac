import logging

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, RedirectResponse, StreamingResponse
from starlette.requests import ClientDisconnect

from .config import (
    FRONTEND_ORIGINS,
    HOMEPAGE_URL,
    HOST,
    LEGACY_DATABASE_PATH,
    LEGACY_DATABASE_URL,
    LOG_LEVEL,
    PORT,
    UPSTREAM_TIMEOUT_SECONDS,
)
from .dispatch import NotFound, Redirect, plan_request
from .legacy import LegacyDatabase, load_legacy_database
from .providers import supported_domains
from .schemas import HealthResponse
from .upstream import build_async_client, fetch_unless_disconnected

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(levelname)s:%(name)s:%(message)s",
)

app = FastAPI(title="Module Registry")
app.state.legacy_database = LegacyDatabase()
logger = logging.getLogger(__name__)

origins = [origin.strip() for origin in FRONTEND_ORIGINS.split(",") if origin.strip()]
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "HEAD"],
        allow_headers=["*"],
    )

# Hop-by-hop headers are not relayed. The raw body is passed through still
# content-encoded, so Content-Length and Content-Encoding stay valid.
_SKIPPED_RESPONSE_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}


@app.on_event("startup")
def startup() -> None:
    app.state.legacy_database = load_legacy_database(
        path=LEGACY_DATABASE_PATH,
        url=LEGACY_DATABASE_URL,
    )
    app.state.http_client = build_async_client(UPSTREAM_TIMEOUT_SECONDS)
    logger.info(
        "Config PORT=%s LEGACY_DATABASE_URL=%s LEGACY_DATABASE_PATH=%s",
        PORT,
        "set" if bool(LEGACY_DATABASE_URL) else "missing",
        LEGACY_DATABASE_PATH,
    )


@app.on_event("shutdown")
async def shutdown() -> None:
    client = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()


def get_legacy_database(request: Request) -> LegacyDatabase:
    return request.app.state.legacy_database


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


@app.get("/health", response_model=HealthResponse)
def health(legacy: LegacyDatabase = Depends(get_legacy_database)):
    return HealthResponse(
        status="ok",
        providers=list(supported_domains()),
        legacy_packages=len(legacy),
    )


def request_path(request: Request) -> str:
    """Return the path as the client sent it, percent-escapes intact."""
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return request.url.path
    return raw_path.decode("latin-1").split("?", 1)[0]


async def _iter_body(upstream: httpx.Response):
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    finally:
        await upstream.aclose()


async def relay(request: Request, client: httpx.AsyncClient, url: str) -> Response:
    upstream = await fetch_unless_disconnected(client, url, request.receive)
    logger.info("Proxied %s -> %d", url, upstream.status_code)
    headers = [
        (name, value)
        for name, value in upstream.headers.multi_items()
        if name.lower() not in _SKIPPED_RESPONSE_HEADERS
    ]
    response = StreamingResponse(_iter_body(upstream), status_code=upstream.status_code)
    for name, value in headers:
        response.headers.append(name, value)
    return response


@app.api_route("/{full_path:path}", methods=["GET", "HEAD"])
async def resolve(
    request: Request,
    legacy: LegacyDatabase = Depends(get_legacy_database),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    path = request_path(request)
    try:
        plan = plan_request(
            path,
            request.headers.get("user-agent"),
            legacy,
            HOMEPAGE_URL,
            query=request.url.query,
        )
        if isinstance(plan, Redirect):
            return RedirectResponse(plan.location, status_code=301)
        if isinstance(plan, NotFound):
            logger.info("No package for %s", path)
            return PlainTextResponse("404 not found", status_code=404)
        return await relay(request, client, plan.url)
    except ClientDisconnect:
        # Nobody is left to read this.
        return Response(status_code=499)
    except Exception as exc:
        logger.exception("Failed to serve %s", path)
        return PlainTextResponse(str(exc), status_code=500)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)
