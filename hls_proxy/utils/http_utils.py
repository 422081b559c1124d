import logging
import random
import typing
from dataclasses import dataclass, field

import httpx
from starlette.requests import Request

from hls_proxy.configs import TransportConfig
from hls_proxy.const import DEFAULT_USER_AGENT, FORWARDED_REQUEST_HEADERS
from hls_proxy.errors import FetchError
from hls_proxy.utils.url_utils import get_origin

logger = logging.getLogger(__name__)

ERROR_BODY_EXCERPT_LENGTH = 150


def create_httpx_client(transport_config: TransportConfig, follow_redirects: bool = True, **kwargs) -> httpx.AsyncClient:
    """
    Create an HTTPX AsyncClient configured from the transport settings.

    Args:
        transport_config (TransportConfig): Timeout, proxy and TLS settings.
        follow_redirects (bool): Whether to follow 3xx redirects automatically.
        **kwargs: Additional AsyncClient keyword arguments.

    Returns:
        httpx.AsyncClient: The configured client.
    """
    kwargs.setdefault("timeout", transport_config.timeout)
    return httpx.AsyncClient(
        mounts=transport_config.get_mounts(),
        follow_redirects=follow_redirects,
        verify=not transport_config.disable_ssl_verification_globally,
        **kwargs,
    )


def get_random_user_agent(user_agents: typing.Sequence[str]) -> str:
    if not user_agents:
        return DEFAULT_USER_AGENT
    return random.choice(user_agents)


def get_forwarded_headers(request: Request) -> dict:
    """
    Extract the client headers that are forwarded upstream.

    Args:
        request (Request): Incoming HTTP request.

    Returns:
        dict: Lower-cased header names mapped to their values.
    """
    return {k: v for k, v in request.headers.items() if k.lower() in FORWARDED_REQUEST_HEADERS}


@dataclass
class FetchedContent:
    url: str
    final_url: str
    status_code: int
    content: bytes
    content_type: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    encoding: typing.Optional[str] = None

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="replace")


class ContentFetcher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        user_agents: typing.Sequence[str] = (),
        default_accept_language: str = "zh-CN,zh;q=0.9,en;q=0.8",
    ):
        """
        Initializes the fetcher with the HTTP client that performs the outbound requests.

        Args:
            client (httpx.AsyncClient): The client to fetch with; its transport decides timeouts and proxies.
            user_agents (Sequence[str]): Pool of User-Agent strings, one is picked at random per request.
            default_accept_language (str): Accept-Language sent when the client did not provide one.
        """
        self.client = client
        self.user_agents = list(user_agents)
        self.default_accept_language = default_accept_language

    def build_headers(self, url: str, inbound_headers: typing.Optional[typing.Mapping[str, str]] = None) -> dict:
        inbound = {k.lower(): v for k, v in (inbound_headers or {}).items()}
        return {
            "User-Agent": get_random_user_agent(self.user_agents),
            "Accept": "*/*",
            "Accept-Language": inbound.get("accept-language") or self.default_accept_language,
            "Referer": inbound.get("referer") or get_origin(url) or url,
        }

    async def fetch(self, url: str, inbound_headers: typing.Optional[typing.Mapping[str, str]] = None) -> FetchedContent:
        """
        Fetch a URL and return its full body.

        Args:
            url (str): The absolute URL to fetch.
            inbound_headers (Mapping[str, str], optional): Client headers; Accept-Language and Referer are forwarded.

        Returns:
            FetchedContent: The body, content type and headers of the response.

        Raises:
            FetchError: If the upstream answered with a non-success status or could not be reached.
        """
        headers = self.build_headers(url, inbound_headers)
        logger.debug(f"Fetching: {url}")
        try:
            if not httpx.URL(url).host:
                raise httpx.InvalidURL(f"No host in URL: {url!r}")
            response = await self.client.get(url, headers=headers, follow_redirects=True)
        except (httpx.RequestError, httpx.InvalidURL, ValueError) as e:
            logger.debug(f"Fetch exception: {url}: {e}")
            raise FetchError(url, cause=e) from e

        if not response.is_success:
            try:
                error_body = response.text
            except Exception:
                error_body = ""
            logger.debug(f"Fetch failed: {response.status_code} {response.reason_phrase} - {url}")
            raise FetchError(
                url,
                status_code=response.status_code,
                status_text=response.reason_phrase,
                body_excerpt=error_body[:ERROR_BODY_EXCERPT_LENGTH],
            )

        final_url = str(response.url)
        if final_url != url:
            # Relative references keep resolving against the requested URL, not the redirect target.
            logger.debug(f"Fetch redirected: {url} -> {final_url}")

        fetched = FetchedContent(
            url=url,
            final_url=final_url,
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type", ""),
            headers=response.headers,
            encoding=response.encoding,
        )
        logger.debug(f"Fetch success: {url}, Content-Type: {fetched.content_type}, Length: {len(fetched.content)}")
        return fetched
