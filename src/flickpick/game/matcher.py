from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import List, Sequence

from .models import Candidate, MatchResult

NO_MATCH = MatchResult(matched=False, category=None, value=None, score=1.0)


@dataclass(frozen=True)
class MatchConfig:
    """Tuning for guess matching.

    ``threshold`` is the largest normalized distance (0 exact, 1 unrelated)
    still accepted as a match; ``min_match_chars`` is the minimum number of
    letters or digits a guess needs before it is compared at all.
    """

    threshold: float = 0.35
    min_match_chars: int = 2

    def __post_init__(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        if self.min_match_chars < 1:
            raise ValueError("min_match_chars must be at least 1")


def normalize_text(value: str | None) -> str:
    if not value:
        return ""
    text = unicodedata.normalize("NFKD", value)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[\W_]+", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text.casefold()


def _distance(left: str, right: str) -> float:
    if left == right:
        return 0.0
    return 1.0 - SequenceMatcher(None, left, right).ratio()


def _word_windows(words: Sequence[str], size: int) -> List[str]:
    if size <= 0 or size >= len(words):
        return []
    return [" ".join(words[start : start + size]) for start in range(len(words) - size + 1)]


def _alnum_count(value: str) -> int:
    return sum(1 for ch in value if ch.isalnum())


def candidate_distance(guess: str, candidate: str, min_window_chars: int = 1) -> float:
    """Distance between a normalized guess and a normalized candidate value.

    Besides the whole value, every run of consecutive candidate words as long
    as the guess is compared, so a surname alone can reach a full name.
    Windows with fewer than ``min_window_chars`` letters or digits (a middle
    initial, say) are ignored.
    """

    best = _distance(guess, candidate)
    for window in _word_windows(candidate.split(" "), len(guess.split(" "))):
        if best == 0.0:
            break
        if _alnum_count(window) < min_window_chars:
            continue
        best = min(best, _distance(guess, window))
    return best


def match(
    guess_text: str,
    candidates: Sequence[Candidate],
    config: MatchConfig | None = None,
) -> MatchResult:
    config = config or MatchConfig()

    raw = (guess_text or "").strip()
    if not raw or not candidates:
        return NO_MATCH

    guess = normalize_text(raw)
    meaningful = _alnum_count(guess)
    if meaningful < config.min_match_chars:
        return NO_MATCH

    best: Candidate | None = None
    best_distance = 1.0
    for candidate in candidates:
        value = normalize_text(candidate.value)
        if not value:
            continue
        distance = candidate_distance(guess, value, config.min_match_chars)
        # Strictly smaller only: the earliest candidate keeps a tie.
        if best is None or distance < best_distance:
            best = candidate
            best_distance = distance

    if best is None or best_distance > config.threshold:
        return NO_MATCH

    return MatchResult(
        matched=True,
        category=best.category,
        value=best.value,
        score=round(best_distance, 6),
    )
