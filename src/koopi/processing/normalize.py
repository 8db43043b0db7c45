import re
from typing import Iterable, Optional, Sequence, Tuple

from ..config.rules import (
    CZ_TRANSLIT,
    DISCOUNT_DASHES,
    FORBIDDEN_GOODS,
    NOTE_REPLACEMENTS,
    SUBCATEGORY_RULES,
)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def sanitize_string(text: Optional[str]) -> str:
    """Collapse every whitespace run (newlines, nbsp) into a single space."""
    if not text:
        return ""
    return " ".join(text.split())


def normalize_key(text: Optional[str]) -> str:
    """Comparison form of a Czech string: 'Zálohovaná  LÁHEV!' -> 'zalohovana lahev'."""
    if not text:
        return ""
    s = text.lower().translate(CZ_TRANSLIT)
    s = _NON_ALNUM_RE.sub(" ", s)
    return s.strip()


def is_forbidden(name: str, forbidden: Iterable[str] = FORBIDDEN_GOODS) -> bool:
    lowered = name.lower()
    return any(token.lower() in lowered for token in forbidden)


def normalize_decimal(text: Optional[str]) -> str:
    """'24,90 Kč' -> '24.90 Kč' (Czech decimal comma to dot)."""
    return (text or "").strip().replace(",", ".")


def normalize_discount(text: Optional[str]) -> str:
    s = (text or "").strip()
    for dash in DISCOUNT_DASHES:
        s = s.replace(dash, "-")
    return s.strip()


def normalize_volume(text: Optional[str]) -> str:
    s = (text or "").strip()
    if s.startswith("/"):
        s = s[1:]
    return s.strip()


def normalize_note(
    text: Optional[str],
    replacements: Sequence[Tuple[str, str]] = NOTE_REPLACEMENTS,
) -> str:
    s = sanitize_string(text)
    for old, new in replacements:
        s = s.replace(old, new)
    return sanitize_string(s)


def derive_subcategory(
    note: str,
    rules: Sequence[Tuple[str, str]] = SUBCATEGORY_RULES,
) -> str:
    subcat = ""
    for needle, value in rules:
        if needle in note:
            subcat = value
    return subcat


def absolutize(url: Optional[str], host: str) -> str:
    """Prefix site-relative links with ``host``; empty links stay empty."""
    url = (url or "").strip()
    if not url or url.startswith("http"):
        return url
    return host + url
