import asyncio
import logging
from typing import Awaitable, Callable
from urllib.request import Request, urlopen

import httpx
from starlette.requests import ClientDisconnect

logger = logging.getLogger(__name__)

USER_AGENT = "module-registry"

Receive = Callable[[], Awaitable[dict]]


def build_async_client(timeout_seconds: float = 30) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


async def open_stream(client: httpx.AsyncClient, url: str) -> httpx.Response:
    """Send a GET for `url` and return once the upstream headers arrive.

    Error statuses are returned like any other response. The caller owns the
    response and must close it after reading the body.
    """
    request = client.build_request("GET", url)
    return await client.send(request, stream=True)


async def _wait_for_disconnect(receive: Receive) -> None:
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return


async def fetch_unless_disconnected(
    client: httpx.AsyncClient, url: str, receive: Receive
) -> httpx.Response:
    """Race the upstream fetch against the client going away.

    Raises ClientDisconnect, after cancelling the fetch, when the client
    disconnects first.
    """
    fetch_task = asyncio.ensure_future(open_stream(client, url))
    watch_task = asyncio.ensure_future(_wait_for_disconnect(receive))
    done, _ = await asyncio.wait({fetch_task, watch_task}, return_when=asyncio.FIRST_COMPLETED)
    watch_task.cancel()
    if fetch_task in done:
        return fetch_task.result()

    fetch_task.cancel()
    logger.info("Client went away, abandoned fetch of %s", url)
    raise ClientDisconnect()


def fetch_text(url: str, timeout_seconds: float = 15) -> str:
    request = Request(url, headers={"User-Agent": USER_AGENT})
    with urlopen(request, timeout=timeout_seconds) as response:
        raw_bytes = response.read()

    try:
        return raw_bytes.decode("utf-8")
    except UnicodeDecodeError:
        return raw_bytes.decode("latin-1")
