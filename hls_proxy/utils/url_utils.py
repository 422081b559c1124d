import logging
import re
from typing import Optional
from urllib import parse

logger = logging.getLogger(__name__)

ABSOLUTE_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

# A '%' that does not start a two-digit hex escape.
MALFORMED_ESCAPE_PATTERN = re.compile(r"%(?![0-9A-Fa-f]{2})")

DEFAULT_PORTS = {"http": 80, "https": 443}

# Characters encodeURIComponent leaves alone, beyond the ones quote() always keeps.
_PATH_SEGMENT_SAFE = "!*'()"


def is_absolute_url(url: str) -> bool:
    return bool(url) and ABSOLUTE_URL_PATTERN.match(url) is not None


def _split_origin(url: str) -> tuple[str, str]:
    """
    Split a URL into its origin and path.

    Raises:
        ValueError: If the URL has no scheme or host.
    """
    parsed = parse.urlsplit(url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"not an absolute URL: {url}")
    scheme = parsed.scheme.lower()
    host = f"[{parsed.hostname}]" if ":" in parsed.hostname else parsed.hostname
    port = parsed.port
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"
    return f"{scheme}://{host}", parsed.path


def get_origin(url: str) -> Optional[str]:
    try:
        return _split_origin(url)[0]
    except ValueError:
        return None


def compute_base_url(url: str) -> str:
    """
    Compute the directory-like base URL used to resolve references found in a playlist.

    Args:
        url (str): The URL the playlist was fetched from.

    Returns:
        str: The origin plus the path without its last segment, always ending in '/'.
    """
    if not url:
        return ""
    try:
        origin, path = _split_origin(url)
    except ValueError as e:
        logger.debug(f"Getting base URL failed: {url} - {e}")
        last_slash = url.rfind("/")
        if last_slash > url.find("://") + 2:
            return url[: last_slash + 1]
        return url + "/"

    if not path or path == "/":
        return f"{origin}/"
    return f"{origin}{path.rsplit('/', 1)[0]}/"


def resolve_url(base_url: str, url: str) -> str:
    """
    Resolve a playlist reference against a base URL.

    Absolute references are returned untouched. When the base cannot be parsed the
    two parts are joined so that exactly one '/' separates them.

    Args:
        base_url (str): The base URL of the playlist.
        url (str): The reference to resolve.

    Returns:
        str: The absolute URL.
    """
    if not base_url or not url:
        return url or ""
    if is_absolute_url(url):
        return url
    try:
        _split_origin(base_url)
        return parse.urljoin(base_url, url)
    except ValueError as e:
        logger.debug(f"Resolving URL failed: base={base_url}, rel={url} - {e}")

    if url.startswith("/"):
        origin = get_origin(base_url)
        return f"{origin}{url}" if origin else url

    if base_url.endswith("/"):
        return base_url + url
    return base_url[: base_url.rfind("/") + 1] + url


def decode_target_path(encoded_path: str) -> Optional[str]:
    """
    Decode the target URL carried in the proxy path.

    Args:
        encoded_path (str): The percent-encoded path segment.

    Returns:
        Optional[str]: The target URL, or None if the segment does not hold an absolute http(s) URL.
    """
    if not encoded_path:
        return None
    try:
        if MALFORMED_ESCAPE_PATTERN.search(encoded_path):
            raise ValueError("malformed percent escape")
        decoded_url = parse.unquote(encoded_path, errors="strict")
    except ValueError as e:
        logger.debug(f"Error decoding target URL: {encoded_path} - {e}")
        decoded_url = None

    if decoded_url and is_absolute_url(decoded_url):
        return decoded_url
    if is_absolute_url(encoded_path):
        logger.warning(f"Path was not encoded but looks like a URL: {encoded_path}")
        return encoded_path
    logger.debug(f"Invalid target URL format (decoded): {decoded_url}")
    return None


def encode_proxy_path(url: str, prefix: str = "/proxy") -> str:
    """
    Encode an absolute URL as a single path segment under the proxy mount prefix.

    Args:
        url (str): The absolute URL to route through the proxy.
        prefix (str): The mount prefix of the proxy routes.

    Returns:
        str: The proxy-relative path, e.g. '/proxy/https%3A%2F%2Fexample.com%2Flive.m3u8'.
    """
    if not url:
        return ""
    return f"{prefix.rstrip('/')}/{parse.quote(url, safe=_PATH_SEGMENT_SAFE)}"
