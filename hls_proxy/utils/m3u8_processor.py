import enum
import logging
import re

from hls_proxy.const import HLS_MIME_TYPES
from hls_proxy.errors import RecursionLimitError
from hls_proxy.utils.hls_utils import find_fallback_variant_uri, parse_variant_streams, select_best_variant
from hls_proxy.utils.http_utils import ContentFetcher
from hls_proxy.utils.url_utils import compute_base_url, encode_proxy_path, resolve_url

logger = logging.getLogger(__name__)

URI_ATTRIBUTE_PATTERN = re.compile(r'URI="([^"]+)"')

MASTER_PLAYLIST_MARKERS = ("#EXT-X-STREAM-INF", "#EXT-X-MEDIA:")


class PlaylistKind(enum.Enum):
    NOT_PLAYLIST = "not_playlist"
    MEDIA = "media"
    MASTER = "master"


def is_m3u8_content(content: str, content_type: str) -> bool:
    content_type = (content_type or "").lower()
    if any(mime in content_type for mime in HLS_MIME_TYPES):
        return True
    return bool(content) and content.strip().startswith("#EXTM3U")


def is_master_playlist(content: str) -> bool:
    return any(marker in content for marker in MASTER_PLAYLIST_MARKERS)


def classify_playlist(content: str, content_type: str) -> PlaylistKind:
    """
    Classifies a fetched body as a master playlist, a media playlist or something else.

    The check is substring based, so surrounding content and line order do not matter.

    Args:
        content (str): The response body.
        content_type (str): The declared Content-Type, empty if absent.

    Returns:
        PlaylistKind: The kind of content.
    """
    if not is_m3u8_content(content, content_type):
        return PlaylistKind.NOT_PLAYLIST
    if is_master_playlist(content):
        return PlaylistKind.MASTER
    return PlaylistKind.MEDIA


class M3U8Processor:
    def __init__(self, fetcher: ContentFetcher, max_recursion: int = 5, proxy_path_prefix: str = "/proxy"):
        """
        Initializes the M3U8Processor.

        Args:
            fetcher (ContentFetcher): Fetches the variant playlists chosen from master playlists.
            max_recursion (int): How many nested master playlists may be followed.
            proxy_path_prefix (str): The mount prefix rewritten references point to.
        """
        self.fetcher = fetcher
        self.max_recursion = max_recursion
        self.proxy_path_prefix = proxy_path_prefix

    def proxy_url(self, url: str, base_url: str) -> str:
        full_url = resolve_url(base_url, url)
        return encode_proxy_path(full_url, self.proxy_path_prefix)

    async def process_playlist(self, source_url: str, content: str, depth: int = 0) -> str:
        """
        Rewrites a playlist that has already been recognized as HLS.

        Args:
            source_url (str): The URL the playlist was fetched from.
            content (str): The playlist body.
            depth (int): The current master playlist depth.

        Returns:
            str: The rewritten media playlist.
        """
        if is_master_playlist(content):
            logger.debug(f"Detected master playlist: {source_url}")
            return await self.resolve_master(source_url, content, depth)
        logger.debug(f"Detected media playlist: {source_url}")
        return self.rewrite_media(source_url, content)

    def process_key_line(self, line: str, base_url: str) -> str:
        """
        Rewrites the first URI attribute of an #EXT-X-KEY or #EXT-X-MAP line.

        Args:
            line (str): The tag line.
            base_url (str): The base URL to resolve relative URIs.

        Returns:
            str: The line with its URI routed through the proxy.
        """
        uri_match = URI_ATTRIBUTE_PATTERN.search(line)
        if not uri_match:
            return line
        original_uri = uri_match.group(1)
        new_uri = self.proxy_url(original_uri, base_url)
        logger.debug(f"Processing URI attribute: Original='{original_uri}', Proxied='{new_uri}'")
        return f'{line[:uri_match.start()]}URI="{new_uri}"{line[uri_match.end():]}'

    def rewrite_media(self, source_url: str, content: str) -> str:
        """
        Rewrites every reference of a media playlist so it is fetched through the proxy.

        Empty lines are dropped except a final one, which keeps the trailing newline.

        Args:
            source_url (str): The URL the playlist was fetched from.
            content (str): The media playlist body.

        Returns:
            str: The rewritten playlist.
        """
        base_url = compute_base_url(source_url)
        lines = content.split("\n")
        processed_lines = []
        for index, raw_line in enumerate(lines):
            line = raw_line.strip()
            if not line:
                if index == len(lines) - 1:
                    processed_lines.append(line)
                continue
            if line.startswith(("#EXT-X-KEY", "#EXT-X-MAP")):
                processed_lines.append(self.process_key_line(line, base_url))
            elif line.startswith("#EXTINF"):
                processed_lines.append(line)
            elif not line.startswith("#"):
                processed_lines.append(self.proxy_url(line, base_url))
            else:
                processed_lines.append(line)
        return "\n".join(processed_lines)

    def select_variant_url(self, source_url: str, content: str) -> str | None:
        base_url = compute_base_url(source_url)
        best = select_best_variant(parse_variant_streams(content))
        if best is not None:
            logger.debug(f"Selected sub-playlist (Bandwidth: {best.bandwidth}): {best.uri}")
            return resolve_url(base_url, best.uri)

        logger.debug(f"No BANDWIDTH found in master playlist, trying first URI: {source_url}")
        fallback_uri = find_fallback_variant_uri(content)
        if fallback_uri:
            logger.debug(f"Fallback: Found first sub-playlist URI: {fallback_uri}")
            return resolve_url(base_url, fallback_uri)
        return None

    async def resolve_master(self, source_url: str, content: str, depth: int = 0) -> str:
        """
        Follows a master playlist down to a single media playlist and rewrites it.

        Each step selects one variant, fetches it and continues from the variant's own URL,
        so relative references are always resolved against the playlist they appear in.
        Fetches are strictly sequential.

        Args:
            source_url (str): The URL the master playlist was fetched from.
            content (str): The master playlist body.
            depth (int): The depth of this master playlist in the chain.

        Returns:
            str: The rewritten media playlist reached from the master playlist.

        Raises:
            RecursionLimitError: If the chain goes deeper than max_recursion.
            FetchError: If a variant playlist cannot be fetched.
        """
        while True:
            if depth > self.max_recursion:
                raise RecursionLimitError(source_url, depth, self.max_recursion)

            variant_url = self.select_variant_url(source_url, content)
            if not variant_url:
                logger.debug(f"No valid sub-playlist URI found in master: {source_url}. Processing as media playlist.")
                return self.rewrite_media(source_url, content)

            fetched = await self.fetcher.fetch(variant_url, {})
            variant_content = fetched.text
            kind = classify_playlist(variant_content, fetched.content_type)

            if kind is PlaylistKind.NOT_PLAYLIST:
                # Best effort: a variant that does not look like HLS is still rewritten line by line.
                logger.warning(
                    f"Fetched sub-playlist {variant_url} is not M3U8 (Type: {fetched.content_type}). "
                    "Treating as media playlist."
                )
                return self.rewrite_media(variant_url, variant_content)
            if kind is PlaylistKind.MEDIA:
                logger.debug(f"Detected media playlist: {variant_url}")
                return self.rewrite_media(variant_url, variant_content)

            logger.debug(f"Detected master playlist: {variant_url} (depth {depth + 1})")
            source_url, content, depth = variant_url, variant_content, depth + 1
