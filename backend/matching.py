"""
Candidate scoring, best-candidate selection per catalog and the combined
confidence score.

Similarity is the Jaccard ratio of the two token sets; callers subtract a small
penalty when a candidate and the query disagree on being live or a remix.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Set

from catalogs import Candidate

_SEPARATOR_RE = re.compile(r"[()\[\]\-_,.:/!]")
_WHITESPACE_RE = re.compile(r"\s+")

LIVE_MARKERS = ("live",)
MIX_MARKERS = ("remix", "mix")
MISMATCH_PENALTY = 0.1


def normalize(s: str) -> str:
    """Lowercase, turn separator punctuation into spaces and collapse whitespace."""
    if not isinstance(s, str):
        return ""
    s = s.lower()
    s = _SEPARATOR_RE.sub(" ", s)
    s = _WHITESPACE_RE.sub(" ", s).strip()
    return s


def tokens(s: str) -> Set[str]:
    return {token for token in normalize(s).split(" ") if token}


def similarity(a: str, b: str) -> float:
    """Jaccard similarity of the token sets of ``a`` and ``b``.

    Returns 0.0 when either side has no tokens.
    """
    a_tokens = tokens(a)
    b_tokens = tokens(b)
    if not a_tokens or not b_tokens:
        return 0.0
    common = len(a_tokens & b_tokens)
    return common / (len(a_tokens) + len(b_tokens) - common)


def _mentions(text: str, markers) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def heuristic_penalty(candidate_text: str, query: str) -> float:
    """Penalty for live/remix disagreement between a candidate and the query."""
    penalty = 0.0
    if _mentions(candidate_text, LIVE_MARKERS) != _mentions(query, LIVE_MARKERS):
        penalty += MISMATCH_PENALTY
    if _mentions(candidate_text, MIX_MARKERS) != _mentions(query, MIX_MARKERS):
        penalty += MISMATCH_PENALTY
    return penalty


def penalized_score(candidate_text: str, query: str) -> float:
    # Not floored; callers clamp.
    return similarity(candidate_text, query) - heuristic_penalty(candidate_text, query)


SPOTIFY_WEIGHT = 0.6
APPLE_WEIGHT = 0.4

# (inclusive lower bound, label), highest first
MATCH_TYPES = (
    (90, "exact"),
    (75, "high"),
    (50, "medium"),
    (25, "low"),
)
LOWEST_MATCH_TYPE = "very_low"


@dataclass(frozen=True)
class MatchResult:
    url: Optional[str] = None
    score: float = 0.0
    candidate: Optional[Candidate] = None


NO_MATCH = MatchResult()


@dataclass(frozen=True)
class Confidence:
    value: int
    match_type: str


def select_best(query: str, candidates: Sequence[Candidate]) -> MatchResult:
    """Pick the highest scoring candidate for ``query``.

    Candidates are scored on ``"<artists> <name>"`` with the live/remix
    penalties applied. Ties keep the earlier candidate, so provider order wins.
    The returned score is clamped at 0.
    """
    if not candidates:
        return NO_MATCH
    best: Optional[Candidate] = None
    best_score = -math.inf
    for candidate in candidates:
        score = penalized_score(candidate.combined_text, query)
        if score > best_score:
            best, best_score = candidate, score
    return MatchResult(url=best.url, score=max(best_score, 0.0), candidate=best)


def combine_scores(spotify_score: float, apple_score: float) -> float:
    if spotify_score and apple_score:
        return spotify_score * SPOTIFY_WEIGHT + apple_score * APPLE_WEIGHT
    return spotify_score or apple_score or 0.0


def match_type_for(confidence: int) -> str:
    for lower_bound, label in MATCH_TYPES:
        if confidence >= lower_bound:
            return label
    return LOWEST_MATCH_TYPE


def aggregate_confidence(spotify_score: float, apple_score: float) -> Confidence:
    raw = combine_scores(spotify_score, apple_score)
    if math.isnan(raw):
        value = 0
    else:
        # Half-up, not banker's rounding.
        value = int(math.floor(min(max(raw, 0.0), 1.0) * 100 + 0.5))
    return Confidence(value=value, match_type=match_type_for(value))


def expose_link(match: MatchResult, fallback_url: str, confidence: int, threshold: int) -> str:
    """Return the direct track link when it is trustworthy, else the search page."""
    if confidence >= threshold and match.url and match.score > 0:
        return match.url
    return fallback_url
