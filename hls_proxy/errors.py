from typing import Optional


class ProxyError(Exception):
    """Base exception for every failure the proxy reports."""

    status_code = 500


class InvalidTargetError(ProxyError):
    """The inbound path does not decode to an absolute http(s) URL."""

    status_code = 400

    def __init__(self, path: str):
        self.path = path
        super().__init__("Invalid proxy request path.")


class FetchError(ProxyError):
    """An outbound request failed, either with a non-success status or at the transport level."""

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        status_text: Optional[str] = None,
        body_excerpt: str = "",
        cause: Optional[BaseException] = None,
    ):
        self.url = url
        self.upstream_status = status_code
        self.status_text = status_text
        self.body_excerpt = body_excerpt
        self.cause = cause
        if status_code is not None:
            detail = f"HTTP error {status_code}: {status_text}. Body: {body_excerpt}"
        elif cause is not None:
            detail = str(cause) or type(cause).__name__
        else:
            detail = "request failed"
        super().__init__(f"Failed to fetch target URL {url}: {detail}")


class RecursionLimitError(ProxyError):
    """A chain of master playlists went deeper than the configured bound."""

    def __init__(self, url: str, depth: int, max_depth: int):
        self.url = url
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(f"Max recursion depth ({max_depth}) exceeded for master playlist: {url}")
