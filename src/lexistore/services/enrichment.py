"""Ingestion-time derivations stored alongside each entry.

``isRoot`` and ``strongsNumbers`` are computed once when entries are written
and kept denormalized; reads never recompute them.
"""

import unicodedata
from collections.abc import Iterable

from lexistore.models.entry import Entry

ALEF = "א"
TAV = "ת"
ROOT_CONSONANT_COUNT = 3
STRONGS_SEPARATOR = "/"


def strip_niqqud(text: str) -> str:
    """Remove vowel points and cantillation marks, keeping the consonants."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def count_consonants(text: str) -> int:
    """Count Hebrew letters, final forms included."""
    return sum(1 for ch in text if ALEF <= ch <= TAV)


def is_root_word(text: str) -> bool:
    return count_consonants(text) == ROOT_CONSONANT_COUNT


def lookup_lemma(entry: Entry) -> str:
    """Pick the consonantal string used to query the reference dataset.

    Prefers the entry's root, then its consonantal headword, then the
    pointed headword with niqqud removed.
    """
    for candidate in (entry.root, entry.hebrew_consonantal, entry.hebrew_word):
        if candidate:
            lemma = strip_niqqud(candidate).strip()
            if lemma:
                return lemma
    return ""


def join_numbers(numbers: Iterable[str]) -> str:
    unique = dict.fromkeys(number.strip() for number in numbers if number and number.strip())
    return STRONGS_SEPARATOR.join(unique)


def enrich_entry(entry: Entry, numbers: Iterable[str] = ()) -> Entry:
    """Return a copy with ``is_root`` derived and strongs numbers filled if missing."""
    updates: dict = {"is_root": is_root_word(entry.hebrew_word)}
    if not entry.strongs_numbers:
        updates["strongs_numbers"] = join_numbers(numbers)
    return entry.model_copy(update=updates)
