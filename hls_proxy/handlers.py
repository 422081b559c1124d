import logging
import typing

import httpx
from fastapi import Response
from fastapi.responses import JSONResponse

from .configs import Settings
from .const import CORS_HEADERS, EXCLUDED_RESPONSE_HEADERS, HLS_CONTENT_TYPE
from .errors import FetchError, InvalidTargetError, ProxyError, RecursionLimitError
from .schemas import ErrorResponse
from .utils.http_utils import ContentFetcher
from .utils.m3u8_processor import M3U8Processor, PlaylistKind, classify_playlist
from .utils.url_utils import decode_target_path

logger = logging.getLogger(__name__)


def cache_control(settings: Settings) -> str:
    return f"public, max-age={settings.cache_ttl}"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=dict(CORS_HEADERS),
    )


def handle_exceptions(exception: Exception) -> Response:
    """
    Handle exceptions and return appropriate HTTP responses.

    Args:
        exception (Exception): The exception that was raised.

    Returns:
        Response: A JSON error response corresponding to the exception type.
    """
    if isinstance(exception, InvalidTargetError):
        logger.debug(f"Rejected proxy request path: {exception.path!r}")
        return error_response(exception.status_code, str(exception))
    if isinstance(exception, FetchError):
        logger.error(f"Error fetching upstream content: {exception}")
    elif isinstance(exception, RecursionLimitError):
        logger.error(f"Master playlist chain too deep: {exception}")
    elif isinstance(exception, ProxyError):
        logger.error(f"Proxy error: {exception}")
    else:
        logger.exception(f"Internal server error while handling request: {exception}")
    return error_response(500, f"Proxy processing error: {exception}")


def prepare_response_headers(original_headers: httpx.Headers, settings: Settings) -> dict:
    """
    Prepare response headers for passed-through content.

    Upstream cache and cross-origin headers are replaced by the proxy's own policy.

    Args:
        original_headers (httpx.Headers): The headers of the upstream response.
        settings (Settings): The proxy settings.

    Returns:
        dict: The headers for the proxy response.
    """
    response_headers = {
        k: v
        for k, v in original_headers.items()
        if k.lower() not in EXCLUDED_RESPONSE_HEADERS and not k.lower().startswith("access-control-")
    }
    response_headers.update(CORS_HEADERS)
    response_headers["cache-control"] = cache_control(settings)
    return response_headers


def handle_preflight(settings: Settings) -> Response:
    headers = dict(CORS_HEADERS)
    headers["Access-Control-Max-Age"] = str(settings.preflight_max_age)
    return Response(status_code=204, headers=headers)


async def handle_proxy_request(
    encoded_path: str,
    request_headers: typing.Mapping[str, str],
    settings: Settings,
    client: httpx.AsyncClient,
) -> Response:
    """
    Handle a proxy request end to end.

    The target URL is decoded from the path and fetched. Playlists are rewritten so every
    reference points back at the proxy; anything else is returned as-is.

    Args:
        encoded_path (str): The percent-encoded target URL taken from the request path.
        request_headers (Mapping[str, str]): Client headers forwarded upstream.
        settings (Settings): The proxy settings.
        client (httpx.AsyncClient): The client used for every outbound request.

    Returns:
        Response: The rewritten playlist, the passed-through content or a JSON error.
    """
    try:
        target_url = decode_target_path(encoded_path)
        if not target_url:
            raise InvalidTargetError(encoded_path)

        logger.debug(f"Received proxy request for: {target_url}")
        fetcher = ContentFetcher(client, settings.user_agents, settings.default_accept_language)
        fetched = await fetcher.fetch(target_url, request_headers)

        content = fetched.text
        if classify_playlist(content, fetched.content_type) is PlaylistKind.NOT_PLAYLIST:
            logger.debug(f"Returning non-M3U8 content directly: {target_url}, Type: {fetched.content_type}")
            return Response(
                content=fetched.content,
                status_code=200,
                headers=prepare_response_headers(fetched.headers, settings),
            )

        logger.debug(f"Processing M3U8 content: {target_url}")
        processor = M3U8Processor(fetcher, settings.max_recursion, settings.proxy_path_prefix)
        processed = await processor.process_playlist(target_url, content, 0)
        headers = dict(CORS_HEADERS)
        headers["cache-control"] = cache_control(settings)
        return Response(content=processed, status_code=200, media_type=HLS_CONTENT_TYPE, headers=headers)
    except Exception as e:
        return handle_exceptions(e)
