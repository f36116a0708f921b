"""
Helpers for validating and deriving WebSocket URLs
"""

from urllib.parse import urlparse, urlunparse


WEBSOCKET_SCHEMES = ("ws", "wss")


def is_valid_websocket_url(url: str) -> bool:
    """True if `url` is a ws:// or wss:// URL with a host"""
    if not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in WEBSOCKET_SCHEMES and bool(parsed.netloc)


def websocket_url_from_http(http_url: str) -> str:
    """
    Derive the WebSocket root URL for the server behind an HTTP(S) URL

    https maps to wss, anything else to ws. Only the host (and port) are
    kept: "https://example.com:8443/app?x=1" -> "wss://example.com:8443".
    """
    parsed = urlparse(http_url)
    if not parsed.netloc:
        raise ValueError(f"URL has no host: {http_url!r}")
    scheme = "wss" if parsed.scheme == "https" else "ws"
    return urlunparse((scheme, parsed.netloc, "", "", "", ""))
