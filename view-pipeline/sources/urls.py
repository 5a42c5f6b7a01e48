"""Post URL parsing."""

import re

# x.com / twitter.com status URLs, with optional subdomain and trailing path/query
_STATUS_URL = re.compile(
    r"^\s*(?:https?://)?"
    r"(?:www\.|mobile\.)?"
    r"(?:x\.com|twitter\.com)"
    r"/(?:[A-Za-z0-9_]{1,15}|i(?:/web)?)"
    r"/status(?:es)?/"
    r"(?P<id>\d{1,20})"
    r"(?:[/?#].*)?\s*$",
    re.IGNORECASE,
)

_BARE_ID = re.compile(r"^\s*(?P<id>\d{5,20})\s*$")


def extract_post_id(text: str | None) -> str | None:
    """Extract the post ID from a cell's text.

    Accepts:
    - https://x.com/<user>/status/<id> (also twitter.com, www., mobile.)
    - https://x.com/i/web/status/<id>
    - a bare numeric ID

    Returns:
        The numeric ID as a string, or None if the text holds no ID
    """
    if not text:
        return None

    match = _STATUS_URL.match(text) or _BARE_ID.match(text)
    if match is None:
        return None
    return match.group("id")
