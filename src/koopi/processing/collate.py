"""Czech collation as a precomputed sort key.

Czech alphabetical order differs from code-point order in three ways that
matter for product names:

* ``č ř š ž`` are letters of their own, sorted right after ``c r s z``;
* the digraph ``ch`` is a single letter sorted between ``h`` and ``i``;
* the remaining accented letters (``á ď é ě í ň ó ť ú ů ý``) sort together
  with their base letter and only break ties (secondary level).

Case is the last (tertiary) level with uppercase first, as in the CLDR Czech
tailoring. Input is NFC-normalized first so decomposed accents sort like the
precomposed letters, and the raw string is the final tie-break so the ordering
is total.
"""

from __future__ import annotations

import unicodedata
from functools import lru_cache
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")

CZECH_ALPHABET = [
    "a", "b", "c", "č", "d", "e", "f", "g", "h", "ch", "i", "j", "k", "l", "m",
    "n", "o", "p", "q", "r", "ř", "s", "š", "t", "u", "v", "w", "x", "y", "z", "ž",
]
_LETTER_RANK = {letter: i for i, letter in enumerate(CZECH_ALPHABET)}

# secondary weights of combining marks (acute before caron before ring)
_ACCENT_RANK = {
    "\u0301": 1,  # acute
    "\u0300": 2,  # grave
    "\u0306": 3,  # breve
    "\u0302": 4,  # circumflex
    "\u030c": 5,  # caron
    "\u030a": 6,  # ring
    "\u0308": 7,  # diaeresis
    "\u0303": 8,  # tilde
    "\u0327": 9,  # cedilla
}

_SPACE, _PUNCT, _DIGIT, _LETTER, _OTHER = range(5)

Weight = Tuple[int, int]
SortKey = Tuple[Tuple[Weight, ...], Tuple[int, ...], Tuple[int, ...], str]


def _accent_weight(marks: str) -> int:
    weight = 0
    for mark in marks:
        weight = weight * 16 + _ACCENT_RANK.get(mark, 10)
    return weight


def _char_weights(ch: str) -> Tuple[Weight, int]:
    if ch in _LETTER_RANK:
        return (_LETTER, _LETTER_RANK[ch]), 0
    if ch.isspace():
        return (_SPACE, 0), 0
    if ch.isdigit():
        return (_DIGIT, unicodedata.digit(ch, ord(ch))), 0

    decomposed = unicodedata.normalize("NFD", ch)
    base, marks = decomposed[0], decomposed[1:]
    if base in _LETTER_RANK:
        return (_LETTER, _LETTER_RANK[base]), _accent_weight(marks)
    if unicodedata.category(ch).startswith(("P", "S")):
        return (_PUNCT, ord(ch)), 0
    return (_OTHER, ord(ch)), 0


@lru_cache(maxsize=65536)
def czech_sort_key(text: str) -> SortKey:
    primary: List[Weight] = []
    secondary: List[int] = []
    tertiary: List[int] = []

    norm = unicodedata.normalize("NFC", text)
    i = 0
    while i < len(norm):
        raw = norm[i]
        ch = raw.lower()[:1] or raw
        if ch == "c" and norm[i + 1:i + 2].lower() == "h":
            primary.append((_LETTER, _LETTER_RANK["ch"]))
            secondary.append(0)
            tertiary.append(0 if raw.isupper() else 1)
            i += 2
            continue
        weight, accent = _char_weights(ch)
        primary.append(weight)
        secondary.append(accent)
        tertiary.append(0 if raw.isupper() else 1)
        i += 1

    return tuple(primary), tuple(secondary), tuple(tertiary), text


def sorted_czech(items: Iterable[T], key: Optional[Callable[[T], str]] = None) -> List[T]:
    if key is None:
        return sorted(items, key=lambda item: czech_sort_key(str(item)))
    return sorted(items, key=lambda item: czech_sort_key(key(item)))
