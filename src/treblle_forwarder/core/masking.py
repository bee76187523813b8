"""
Keyword masking for outbound payloads.

Every key matching a configured keyword (case-insensitive, exact name) has
its value replaced with ``****`` before the payload leaves the service.
"""

from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

MASK = "****"

BUILTIN_MASK_KEYWORDS: Tuple[str, ...] = (
    "password",
    "pwd",
    "secret",
    "password_confirmation",
    "cc",
    "card_number",
    "ccv",
    "ssn",
    "credit_score",
)


class MaskKeywordSet:
    """
    Ordered, case-insensitive set of keys to mask.

    Seeded with the built-in keywords and extended from a comma-separated
    list. Immutable once built.
    """

    __slots__ = ("_keywords",)

    def __init__(self, keywords: Iterable[str] = BUILTIN_MASK_KEYWORDS) -> None:
        ordered: Dict[str, str] = {}
        for keyword in keywords:
            keyword = keyword.strip()
            if keyword and keyword.lower() not in ordered:
                ordered[keyword.lower()] = keyword
        self._keywords: Tuple[str, ...] = tuple(ordered.values())

    @classmethod
    def from_config(cls, additional: Optional[str] = None) -> "MaskKeywordSet":
        """Built-in keywords plus a comma-separated list of extras."""
        extra: List[str] = additional.split(",") if additional else []
        return cls([*BUILTIN_MASK_KEYWORDS, *extra])

    def __iter__(self) -> Iterator[str]:
        return iter(self._keywords)

    def __len__(self) -> int:
        return len(self._keywords)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and any(key.lower() == k.lower() for k in self._keywords)

    def __repr__(self) -> str:
        return f"MaskKeywordSet({list(self._keywords)!r})"


def mask_keyword(obj: Dict[str, Any], keyword: str) -> int:
    """
    Mask one keyword in a nested mapping, in place.

    Only mappings are descended; values inside lists are left alone.

    Returns:
        Number of values replaced
    """
    wanted = keyword.lower()
    masked = 0

    for key, value in obj.items():
        if str(key).lower() == wanted:
            obj[key] = MASK
            masked += 1
        elif isinstance(value, dict):
            masked += mask_keyword(value, keyword)

    return masked


class MaskingEngine:
    """Applies a MaskKeywordSet across a serialized payload tree."""

    def __init__(self, keywords: MaskKeywordSet) -> None:
        self.keywords = keywords
        logger.info("Masking engine initialized", total_mask_keys=len(keywords))

    def mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Mask every keyword across ``data`` in place and return it.

        ``data`` is the serialized ``data`` section (request, response,
        server, errors). Masking is idempotent.
        """
        total = 0
        for keyword in self.keywords:
            total += mask_keyword(data, keyword)

        if total:
            logger.debug("Masked sensitive fields", fields_masked=total)

        return data
