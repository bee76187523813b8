"""
Header codec for the gateway's delimited header format.

Headers travel as a single string: ``key:value`` pairs joined by ``;;``.
"""

from typing import Dict, Mapping, Optional

PAIR_DELIMITER = ";;"
KEY_VALUE_SEPARATOR = ":"


def parse_headers(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse a delimited header string into a key/value mapping.

    The first colon of each pair splits key from value and both are
    trimmed. Pairs without a colon, or with the colon as the first or last
    character, are skipped. Later duplicates overwrite earlier ones.
    """
    headers: Dict[str, str] = {}
    if not raw or not raw.strip():
        return headers

    for pair in raw.split(PAIR_DELIMITER):
        colon_index = pair.find(KEY_VALUE_SEPARATOR)
        if 0 < colon_index < len(pair) - 1:
            key = pair[:colon_index].strip()
            value = pair[colon_index + 1:].strip()
            headers[key] = value

    return headers


def serialize_headers(headers: Mapping[str, str]) -> str:
    """Render a header mapping back into the delimited wire format."""
    return PAIR_DELIMITER.join(
        f"{key}{KEY_VALUE_SEPARATOR}{value}" for key, value in headers.items()
    )


def lookup_header(headers: Optional[Mapping[str, str]], name: str) -> str:
    """Return the first value whose key matches ``name`` ignoring case, else ``""``."""
    if not headers:
        return ""

    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value if value is not None else ""

    return ""
