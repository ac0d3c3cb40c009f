"""Glossary handling: protect user terms from mistranslation.

WHY: Learners keep a glossary of terms (product names, jargon) that must
come back verbatim. The generative provider can simply be told so; the
bulk provider cannot be instructed, so each term is swapped for a
numeric placeholder it will leave alone, then swapped back.

HOW: parse_glossary() normalises the stored term list. protect_terms()
replaces every whole-word, case-insensitive occurrence of the i-th term
with placeholder_for(i) (``999{i}999``) and returns the mapping.
restore_terms() substitutes the placeholders back. glossary_instruction()
builds the sentence appended to the generative prompt.

RULES:
- Term order is the glossary list order; placeholder indices follow it
- Duplicates collapse case-insensitively, first spelling wins
- Placeholders are digits only, so they survive translation untouched
- Restoring writes the glossary spelling of the term
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Sequence, Tuple, Union


def parse_glossary(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Normalise a stored glossary (comma string or list) to an ordered list."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)

    terms: List[str] = []
    seen = set()
    for item in items:
        term = item.strip()
        if not term:
            continue
        folded = term.casefold()
        if folded in seen:
            continue
        seen.add(folded)
        terms.append(term)
    return terms


def toggle_term(terms: Sequence[str], term: str) -> Tuple[List[str], bool]:
    """Add ``term`` or remove it if already present (case-insensitive).

    Returns:
        The new term list and True if the term was added, False if removed.
    """
    folded = term.casefold()
    kept = [t for t in terms if t.casefold() != folded]
    if len(kept) != len(terms):
        return kept, False
    return list(terms) + [term], True


def placeholder_for(index: int) -> str:
    return "999{}999".format(index)


def _term_pattern(term: str) -> "re.Pattern[str]":
    return re.compile(r"(?<!\w){}(?!\w)".format(re.escape(term)), re.IGNORECASE)


def protect_terms(text: str, terms: Sequence[str]) -> Tuple[str, Dict[str, str]]:
    """Replace glossary terms in ``text`` with numeric placeholders.

    Returns:
        The protected text and a mapping placeholder → original term,
        containing only the placeholders actually inserted.
    """
    placeholders: Dict[str, str] = {}
    for index, term in enumerate(terms):
        token = placeholder_for(index)
        text, count = _term_pattern(term).subn(token, text)
        if count:
            placeholders[token] = term
    return text, placeholders


def restore_terms(text: str, placeholders: Dict[str, str]) -> str:
    """Substitute placeholders in a translated text back to their terms."""
    # Longest placeholder first so "99910999" is not eaten by "9991".
    for token in sorted(placeholders, key=len, reverse=True):
        text = text.replace(token, placeholders[token])
    return text


def glossary_instruction(terms: Sequence[str]) -> str:
    """Natural-language instruction listing protected terms verbatim."""
    if not terms:
        return ""
    return (
        "Do not translate the following terms; keep them exactly as written: "
        "{}.".format(", ".join(terms))
    )
