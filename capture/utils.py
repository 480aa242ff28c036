"""
capture.utils
Helpers: canonical URL resolution, title and file-name formatting, sizing, JSON output.
"""

from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from .constants import (
    CANONICAL_BASE,
    TARGET_DOMAIN,
    TITLE_SUFFIXES,
    TWITTER_RATIO,
    WORKING_VIEWPORT_EXTRA,
    WORKING_VIEWPORT_MIN_HEIGHT,
)
from .errors import InvalidInputError
from .models import CanonicalTarget

_PATH_RE = re.compile(r"^/(event|market)/(.+)")
_TRAILING_ID_RE = re.compile(r"-[A-Z]-[a-zA-Z0-9]+$")
_QUESTION_RE = re.compile(r"^(will|would|should|could|can|is|are|does|do|did|has|have|had)\s", re.IGNORECASE)
_ACRONYMS = {"us", "uk", "eu", "aoc"}
_SMALL_WORDS = {"the", "a", "an", "and", "or", "but", "for", "in", "on", "at", "to", "of"}


def _is_target_host(host: str) -> bool:
    host = host.lower().rstrip(".")
    return host == TARGET_DOMAIN or host.endswith("." + TARGET_DOMAIN)


def resolve_target(url: str) -> CanonicalTarget:
    """Parse a market URL into its canonical /event/ form.

    Accepts /event/<slug>[/<nested>] and /market/<slug>[/<nested>] on the target
    host (or a subdomain of it); anything else raises InvalidInputError.
    """
    raw = (url or "").strip()
    parsed = urlparse(raw)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidInputError(code="INVALID_URL", stage="resolve", message=f"not an http(s) URL: {raw!r}")
    if not _is_target_host(parsed.hostname):
        raise InvalidInputError(
            code="INVALID_URL",
            stage="resolve",
            message=f"host {parsed.hostname!r} is not {TARGET_DOMAIN}",
        )
    m = _PATH_RE.match(parsed.path or "")
    if not m:
        raise InvalidInputError(
            code="INVALID_URL",
            stage="resolve",
            message=f"path {parsed.path!r} is not /event/<slug> or /market/<slug>",
        )
    parts = [p for p in m.group(2).split("/") if p]
    if not parts:
        raise InvalidInputError(code="INVALID_URL", stage="resolve", message=f"missing slug in {raw!r}")
    slug = parts[0]
    nested = "/".join(parts[1:]) or None
    nav = f"{CANONICAL_BASE}/{slug}/{nested}" if nested else f"{CANONICAL_BASE}/{slug}"
    return CanonicalTarget(navigation_url=nav, event_slug=slug, nested_outcome_slug=nested)


def format_title_from_slug(slug: str) -> str:
    """Humanise an outcome slug: 'will-jd-vance-win-the-2028-us-...' -> 'Will jd vance win the 2028 US ...?'."""
    cleaned = _TRAILING_ID_RE.sub("", slug or "")
    words = [w for w in cleaned.split("-") if w]
    out = []
    for idx, word in enumerate(words):
        lower = word.lower()
        if lower in _ACRONYMS:
            out.append(word.upper())
        elif idx == 0:
            out.append(word[:1].upper() + word[1:].lower())
        elif word.isdigit():
            out.append(word)
        elif lower in _SMALL_WORDS:
            out.append(lower)
        elif word == word.upper() or re.search(r"[A-Z]", word[1:]):
            out.append(word[:1].upper() + word[1:])
        else:
            out.append(lower)
    formatted = " ".join(out)
    if _QUESTION_RE.match(formatted) and not formatted.endswith("?"):
        formatted += "?"
    return formatted


def clean_page_title(title: Optional[str]) -> str:
    """Strip the site suffix from a document title."""
    text = (title or "").strip()
    for suffix in TITLE_SUFFIXES:
        if text.endswith(suffix):
            return text[: -len(suffix)].strip()
    return text


def compute_dimensions(aspect: str, width: int) -> Tuple[int, int]:
    """Logical (width, height) of the artifact for an aspect."""
    if aspect == "square":
        return width, width
    # JS Math.round semantics (half rounds up) rather than banker's rounding
    return width, int(math.floor(width * TWITTER_RATIO + 0.5))


def working_viewport_height(height: int) -> int:
    """Taller viewport used while the page loads so lazy content renders."""
    return max(WORKING_VIEWPORT_MIN_HEIGHT, height + WORKING_VIEWPORT_EXTRA)


def iso_file_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with ':' and '.' replaced by '-' (2024-01-02T03-04-05-678Z)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return stamp.replace(":", "-").replace(".", "-")


def build_file_name(target: CanonicalTarget, aspect: str, now: Optional[datetime] = None) -> str:
    slug = re.sub(r"[^0-9A-Za-z_-]+", "-", target.file_slug).strip("-") or "market"
    prefix = "polymarket-square" if aspect == "square" else "polymarket"
    return f"{prefix}-{slug}-{iso_file_timestamp(now)}.png"


def write_json(path: str, obj: Dict[str, Any]) -> None:
    """Write JSON as UTF-8 with indentation."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)
