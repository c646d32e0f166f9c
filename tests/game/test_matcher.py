from __future__ import annotations

import pytest

from flickpick.game import matcher
from flickpick.game.matcher import MatchConfig, match, normalize_text
from flickpick.game.models import Candidate


PULP_FICTION_POOL = [Candidate(value="Pulp Fiction", category="TITLE")]


def test_transposed_title_still_matches() -> None:
    result = match("pulp fictoin", PULP_FICTION_POOL)

    assert result.matched is True
    assert result.category == "TITLE"
    assert result.value == "Pulp Fiction"
    assert 0.0 < result.score <= 0.35


def test_unrelated_text_does_not_match() -> None:
    result = match("xyz completely unrelated", PULP_FICTION_POOL)

    assert result.matched is False
    assert result.category is None
    assert result.value is None
    assert result.score == 1.0


def test_exact_match_is_case_insensitive_and_trimmed() -> None:
    result = match("   PULP FICTION  ", PULP_FICTION_POOL)

    assert result.matched is True
    assert result.score == 0.0


def test_whitespace_guess_skips_distance_computation(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(*_args, **_kwargs):
        raise AssertionError("distance should not be computed")

    monkeypatch.setattr(matcher, "_distance", _fail)

    assert match("   \t ", PULP_FICTION_POOL).matched is False


def test_guess_below_minimum_length_cannot_match() -> None:
    pool = [Candidate(value="X", category="TITLE")]

    assert match("x", pool).matched is False
    assert match("x", pool, MatchConfig(min_match_chars=1)).matched is True


def test_empty_pool_returns_no_match() -> None:
    assert match("Pulp Fiction", []) == matcher.NO_MATCH


def test_surname_reaches_full_name() -> None:
    pool = [
        Candidate(value="Cast Away", category="TITLE"),
        Candidate(value="Tom Hanks", category="ACTOR"),
    ]

    result = match("hanks", pool)

    assert result.matched is True
    assert result.category == "ACTOR"
    assert result.value == "Tom Hanks"


def test_middle_initial_and_punctuation_are_tolerated() -> None:
    pool = [Candidate(value="Samuel L. Jackson", category="ACTOR")]

    assert match("samuel jackson", pool).matched is True


def test_short_guess_does_not_match_a_middle_initial() -> None:
    pool = [Candidate(value="Samuel L. Jackson", category="ACTOR")]

    assert match("xl", pool).matched is False
    assert match("lq", pool).matched is False
    assert match("jackson", pool).matched is True


def test_accents_are_folded() -> None:
    pool = [Candidate(value="Amélie", category="TITLE")]

    result = match("amelie", pool)

    assert result.matched is True
    assert result.score == 0.0


def test_tie_goes_to_first_candidate() -> None:
    director = Candidate(value="Quentin Tarantino", category="DIRECTOR")
    writer = Candidate(value="Quentin Tarantino", category="WRITER")

    assert match("quentin tarantino", [director, writer]).category == "DIRECTOR"
    assert match("quentin tarantino", [writer, director]).category == "WRITER"


def test_best_candidate_wins_over_earlier_weaker_one() -> None:
    pool = [
        Candidate(value="John Travers", category="WRITER"),
        Candidate(value="John Travolta", category="ACTOR"),
    ]

    result = match("john travolta", pool)

    assert result.category == "ACTOR"
    assert result.score == 0.0


def test_threshold_is_configurable() -> None:
    strict = MatchConfig(threshold=0.0)

    assert match("pulp fictoin", PULP_FICTION_POOL, strict).matched is False
    assert match("pulp fiction", PULP_FICTION_POOL, strict).matched is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"threshold": -0.1},
        {"threshold": 1.5},
        {"min_match_chars": 0},
    ],
)
def test_invalid_config_is_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        MatchConfig(**kwargs)


def test_normalize_text_collapses_punctuation() -> None:
    assert normalize_text("  Samuel L.  Jackson!! ") == "samuel l jackson"
    assert normalize_text(None) == ""
