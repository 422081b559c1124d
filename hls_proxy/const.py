DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

HLS_CONTENT_TYPE = "application/vnd.apple.mpegurl"

HLS_MIME_TYPES = [
    "application/vnd.apple.mpegurl",
    "application/x-mpegurl",
    "audio/mpegurl",
]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}

# Upstream response headers that are never passed through for non-playlist content.
# The body is re-sent already decoded, so length and encoding headers no longer apply.
EXCLUDED_RESPONSE_HEADERS = [
    "cache-control",
    "content-encoding",
    "content-length",
    "transfer-encoding",
    "connection",
]

FORWARDED_REQUEST_HEADERS = [
    "accept-language",
    "referer",
]
