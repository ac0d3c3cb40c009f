"""Caption text normalisation and word lookup keys.

WHY: The same word reaches the engine as "Python,", "python" or
"(Python)". Unknown-word membership, the per-word translation cache and
glossary toggling all need one canonical key per word, while the overlay
must still display the word exactly as captioned.

HOW: A fixed punctuation character class is stripped for lookups;
case-folding turns the cleaned word into a key. Caption lines are
whitespace-collapsed so multi-line cues read as one line.

RULES:
- clean_word() keeps case (click lookups translate the word as written)
- word_key() is clean_word() case-folded; "" means "not a word"
- normalize_caption() never changes anything except whitespace
"""

from __future__ import annotations

import re
from typing import List

# Characters stripped from a word before lookup.
_PUNCTUATION_RE = re.compile(r"[.,/#!$%\^&*;:{}=\-_`~()]")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_word(word: str) -> str:
    """Strip lookup punctuation and surrounding whitespace, keeping case."""
    return _PUNCTUATION_RE.sub("", word).strip()


def word_key(word: str) -> str:
    """Return the case-folded lookup key for a displayed word."""
    return clean_word(word).casefold()


def normalize_caption(text: str) -> str:
    """Collapse runs of whitespace (including cue line breaks) and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def split_words(text: str) -> List[str]:
    """Split a caption line into display words."""
    return text.split()


def append_fragment(accumulator: str, fragment: str) -> str:
    """Append a fragment to an accumulator, space-joined.

    RULES:
    - No separator is added to an empty accumulator
    - No second space is added when the accumulator already ends in one
    """
    if accumulator and not accumulator.endswith(" "):
        accumulator += " "
    return accumulator + fragment
