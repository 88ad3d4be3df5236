"""Literal text matching helpers.

Matching here is plain case-insensitive tokenisation and substring search;
no stemming or semantics.
"""

import re
from typing import Optional, Set

_NON_WORD = re.compile(r"\W+")


def word_set(text: Optional[str]) -> Set[str]:
    """Split ``text`` on non-word characters into a lower-cased set of words.

    Example:
        >>> sorted(word_set("Cloud migration, cloud ops"))
        ['cloud', 'migration', 'ops']
    """
    if not text:
        return set()
    return {token for token in _NON_WORD.split(text.lower()) if token}


def contains_keyword(text: Optional[str], keyword: str) -> bool:
    """Case-insensitive substring test that tolerates a missing text."""
    if not text or not keyword:
        return False
    return keyword.lower() in text.lower()
