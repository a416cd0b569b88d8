"""Extract the trainer token from a scanned QR payload.

Trainer cards encode a URL such as ``https://host/path?s=ABC123XYZ``; the
token is the value of the ``s`` query parameter.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

from ...core.errors import InvalidFormat

TOKEN_PARAM = "s"

# Schemes that are only meaningful with a host component
_HOST_SCHEMES = frozenset({"http", "https", "ws", "wss", "ftp"})

# Tabs and line breaks anywhere in a URL are dropped before parsing
_DROPPED_CHARS = str.maketrans("", "", "\t\n\r")


def extract_token(payload: str) -> str:
    """Return the ``s`` parameter of an absolute URL payload.

    Raises:
        InvalidFormat: the payload is not an absolute URL or carries no
            non-empty ``s`` parameter.
    """
    text = payload.strip().translate(_DROPPED_CHARS)
    if not text:
        raise InvalidFormat()

    try:
        parts = urlsplit(text)
        # .port validates the netloc and raises on garbage such as "host:abc"
        parts.port
    except ValueError as exc:
        raise InvalidFormat() from exc

    if not parts.scheme or any(ch.isspace() for ch in parts.scheme + parts.netloc):
        raise InvalidFormat()
    if parts.scheme.lower() in _HOST_SCHEMES and not parts.hostname:
        raise InvalidFormat()

    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == TOKEN_PARAM:
            if not value:
                raise InvalidFormat()
            return value

    raise InvalidFormat()


__all__ = ["TOKEN_PARAM", "extract_token"]
