"""
Sanitizing and validation helpers for untrusted move text.

- sanitize_history(): whitelists algebraic-notation characters in caller-supplied
  move history before it is embedded in a model prompt, and bounds its length.
- clean_candidate()/extract_candidates(): normalize raw model completions into
  deduplicated candidate moves.
- select_candidate(): pick the accepted candidate from the legal SAN list,
  either first-match (arrival order) or most frequent.
"""
from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Literal, Optional

# Letters, digits, whitespace and , . - + # = ( )
UNSAFE_HISTORY_RE = re.compile(r"[^A-Za-z0-9\s,.\-+#=()]", re.ASCII)
WHITESPACE_RE = re.compile(r"\s+")
ELLIPSIS = "..."
DEFAULT_MAX_HISTORY = 2000

CandidatePolicy = Literal["first", "frequency"]
POLICIES = ("first", "frequency")


def sanitize_history(raw: object, max_length: int = DEFAULT_MAX_HISTORY) -> str:
    """Strip characters outside the notation whitelist and truncate. Never raises."""
    if not raw or not isinstance(raw, str):
        return ""
    return UNSAFE_HISTORY_RE.sub("", raw)[: max(0, max_length)]


def clean_candidate(raw: object) -> str:
    """Trim, drop all whitespace/newlines and ellipsis markers ('1... Nf6' -> '1Nf6')."""
    if not isinstance(raw, str):
        return ""
    return WHITESPACE_RE.sub("", raw.strip()).replace(ELLIPSIS, "")


def _cleaned(raw_texts: Iterable[object]) -> list[str]:
    return [c for c in (clean_candidate(t) for t in raw_texts) if len(c) > 1]


def extract_candidates(raw_texts: Iterable[object]) -> list[str]:
    """Cleaned, deduplicated candidates in first-seen order; single characters are noise."""
    return list(dict.fromkeys(_cleaned(raw_texts)))


def select_candidate(
    raw_texts: Iterable[object],
    legal: Iterable[str],
    policy: CandidatePolicy = "first",
) -> Optional[str]:
    """Return the accepted legal candidate, or None if no completion names a legal move."""
    legal_set = set(legal)
    cleaned = _cleaned(raw_texts)
    if policy == "frequency":
        counts = Counter(c for c in cleaned if c in legal_set)
        if not counts:
            return None
        # Counter.most_common keeps insertion order among equal counts
        return counts.most_common(1)[0][0]
    for cand in dict.fromkeys(cleaned):
        if cand in legal_set:
            return cand
    return None


__all__ = [
    "sanitize_history",
    "clean_candidate",
    "extract_candidates",
    "select_candidate",
    "CandidatePolicy",
    "POLICIES",
]
