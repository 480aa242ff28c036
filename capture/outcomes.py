"""
capture.outcomes
Matching a nested-outcome slug against the outcome cards / legend labels of an event page.

Ranked methods: exact (slugified title equals the slug) → image (slug appears in an
image src/srcset, raw or URL-decoded) → keyword (≥2 significant slug words appear in
the title). Keyword matching is inherently ambiguous for outcomes sharing words; ties
resolve to the first candidate and are flagged as ambiguous.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import unquote

STOPWORDS = frozenset({"will", "win", "the", "and", "for"})
MIN_KEYWORD_LEN = 4
MIN_KEYWORD_HITS = 2

_TRAILING_ID_RE = re.compile(r"-[A-Z]-[a-zA-Z0-9]+$")
_PERCENT_TAIL_RE = re.compile(r"\s*[<>]?\s*\d+(?:\.\d+)?\s*%\s*$")


def slugify(text: str) -> str:
    return re.sub(r"[^0-9a-z]+", "-", (text or "").lower()).strip("-")


def slug_keywords(slug: str) -> List[str]:
    """Significant words of a slug (longer than 3 chars, not a stopword)."""
    cleaned = _TRAILING_ID_RE.sub("", slug or "").lower()
    return [w for w in cleaned.split("-") if len(w) >= MIN_KEYWORD_LEN and w not in STOPWORDS]


@dataclass(frozen=True)
class OutcomeCandidate:
    index: int
    title: str
    image_srcs: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, d: Dict[str, Any], default_index: int = 0) -> "OutcomeCandidate":
        srcs = d.get("srcs") or d.get("image_srcs") or ()
        return cls(
            index=int(d.get("index", default_index)),
            title=str(d.get("title") or ""),
            image_srcs=tuple(str(s) for s in srcs if s),
        )


@dataclass(frozen=True)
class OutcomeMatch:
    index: int
    method: str
    ambiguous: bool = False


def _image_hit(slug: str, srcs: Iterable[str]) -> bool:
    s = slug.lower()
    for src in srcs:
        raw = src.lower()
        try:
            decoded = unquote(src).lower()
        except Exception:
            decoded = raw
        if s in raw or s in decoded:
            return True
    return False


def match_outcome(slug: str, candidates: Sequence[OutcomeCandidate]) -> Optional[OutcomeMatch]:
    """Find the candidate an outcome slug refers to, or None."""
    if not slug or not candidates:
        return None
    target = slug.lower()
    for c in candidates:
        if c.title and slugify(c.title) == target:
            return OutcomeMatch(c.index, "exact")
    for c in candidates:
        if _image_hit(target, c.image_srcs):
            return OutcomeMatch(c.index, "image")
    words = slug_keywords(slug)
    if len(words) < MIN_KEYWORD_HITS:
        return None
    scored = []
    for c in candidates:
        title = c.title.lower()
        hits = sum(1 for w in words if w in title)
        if hits >= MIN_KEYWORD_HITS:
            scored.append((hits, c))
    if not scored:
        return None
    best = max(h for h, _ in scored)
    tied = [c for h, c in scored if h == best]
    return OutcomeMatch(tied[0].index, "keyword", ambiguous=len(tied) > 1)


def first_candidate(candidates: Sequence[OutcomeCandidate]) -> Optional[OutcomeMatch]:
    """Fallback when nothing matched: the first card, flagged ambiguous."""
    if not candidates:
        return None
    return OutcomeMatch(candidates[0].index, "first", ambiguous=True)


def legend_candidates(labels: Sequence[str]) -> List[OutcomeCandidate]:
    """Legend labels ('Outcome A 37%') as title-only candidates."""
    return [OutcomeCandidate(i, _PERCENT_TAIL_RE.sub("", label).strip()) for i, label in enumerate(labels)]
