from typing import Annotated, AsyncIterator

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from hls_proxy.configs import Settings, settings as app_settings
from hls_proxy.handlers import handle_preflight, handle_proxy_request
from hls_proxy.utils.http_utils import create_httpx_client, get_forwarded_headers

proxy_router = APIRouter()


def get_settings() -> Settings:
    return app_settings


async def get_http_client(settings: Annotated[Settings, Depends(get_settings)]) -> AsyncIterator[httpx.AsyncClient]:
    async with create_httpx_client(settings.transport_config) as client:
        yield client


def get_encoded_target(request: Request, path: str, settings: Settings) -> str:
    """
    Get the still-encoded target URL from the request.

    The server decodes the routed path once already, so the raw ASGI path is preferred
    to avoid decoding the target URL twice.

    Args:
        request (Request): The incoming HTTP request.
        path (str): The routed path parameter.
        settings (Settings): The proxy settings.

    Returns:
        str: The encoded target URL segment.
    """
    raw_path = request.scope.get("raw_path")
    prefix = settings.proxy_path_prefix.rstrip("/") + "/"
    if raw_path:
        raw_path = raw_path.decode("latin-1")
        if raw_path.startswith(prefix):
            return raw_path[len(prefix):]
    return path


@proxy_router.options("/{path:path}")
async def proxy_preflight(settings: Annotated[Settings, Depends(get_settings)]):
    """Answer CORS pre-flight requests."""
    return handle_preflight(settings)


@proxy_router.api_route("/{path:path}", methods=["GET", "HEAD", "POST"])
async def proxy_endpoint(
    request: Request,
    path: str,
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
) -> Response:
    """
    Proxy the percent-encoded URL carried in the path.

    HLS playlists come back rewritten so that sub-playlists, keys, init segments and media
    segments are requested through this endpoint too. Other content is returned unchanged.
    """
    encoded_target = get_encoded_target(request, path, settings)
    return await handle_proxy_request(encoded_target, get_forwarded_headers(request), settings, client)
