import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

ATTRIBUTE_PATTERN = re.compile(r'([A-Z0-9-]+)=("([^"]*)"|([^,]*))')


@dataclass
class VariantStream:
    uri: str
    bandwidth: int = 0
    attributes: Dict[str, str] = field(default_factory=dict)


def parse_attribute_list(attributes_str: str) -> Dict[str, str]:
    """
    Parses an HLS attribute list such as 'BANDWIDTH=800000,CODECS="avc1.4d401f,mp4a.40.2"'.

    Args:
        attributes_str (str): The part of the tag after the colon.

    Returns:
        Dict[str, str]: Attribute names mapped to their unquoted values.
    """
    attributes = {}
    for key, _, quoted_val, unquoted_val in ATTRIBUTE_PATTERN.findall(attributes_str):
        attributes[key] = quoted_val if quoted_val else unquoted_val
    return attributes


def parse_variant_streams(playlist_content: str) -> List[VariantStream]:
    """
    Parses the #EXT-X-STREAM-INF entries of a master playlist.

    Each entry takes the first following non-empty, non-comment line as its URI; scanning
    resumes after that line. Entries with no URI line are dropped.

    Args:
        playlist_content (str): The content of the M3U8 master playlist.

    Returns:
        List[VariantStream]: The variants in playlist order, URIs left unresolved.
    """
    streams = []
    lines = playlist_content.split("\n")

    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if line.startswith("#EXT-X-STREAM-INF"):
            _, _, attributes_str = line.partition(":")
            attributes = parse_attribute_list(attributes_str)
            bandwidth = attributes.get("BANDWIDTH", "")
            for j in range(i + 1, len(lines)):
                candidate = lines[j].strip()
                if candidate and not candidate.startswith("#"):
                    streams.append(
                        VariantStream(
                            uri=candidate,
                            bandwidth=int(bandwidth) if bandwidth.isdigit() else 0,
                            attributes=attributes,
                        )
                    )
                    i = j
                    break
        i += 1

    return streams


def select_best_variant(streams: List[VariantStream]) -> Optional[VariantStream]:
    """Pick the highest-bandwidth variant; on a tie the later one wins."""
    best = None
    for stream in streams:
        if best is None or stream.bandwidth >= best.bandwidth:
            best = stream
    return best


def find_fallback_variant_uri(playlist_content: str) -> Optional[str]:
    """
    Find the first sub-playlist reference in a master playlist without usable #EXT-X-STREAM-INF entries.
    """
    for line in playlist_content.split("\n"):
        line = line.strip()
        if line and not line.startswith("#") and (line.endswith(".m3u8") or ".m3u8?" in line):
            return line
    return None
