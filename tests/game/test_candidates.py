from __future__ import annotations

from datetime import date
from typing import Dict, List, Sequence

from flickpick.game.candidates import actor_pool, build_answer_set, build_candidates
from flickpick.game.models import ChallengeContent, CreditInfo, ImageInfo


def make_content(tags: Dict[int, Sequence[int]] | None = None) -> ChallengeContent:
    credits = [
        CreditInfo(id=1, person_id=138, name="Quentin Tarantino", role="DIRECTOR"),
        CreditInfo(id=2, person_id=138, name="Quentin Tarantino", role="WRITER"),
        CreditInfo(id=3, person_id=139, name="Roger Avary", role="WRITER"),
        CreditInfo(id=4, person_id=8891, name="John Travolta", role="ACTOR", character="Vincent Vega"),
        CreditInfo(id=5, person_id=2231, name="Samuel L. Jackson", role="ACTOR", character="Jules Winnfield"),
        CreditInfo(id=6, person_id=62, name="Bruce Willis", role="ACTOR", character="Butch Coolidge"),
    ]
    images = [
        ImageInfo(
            id=10 + position,
            position=position,
            file_path=f"/still-{position}.jpg",
            actor_credit_ids=list((tags or {}).get(position, [])),
        )
        for position in (1, 2, 3)
    ]
    return ChallengeContent(
        challenge_id="challenge-1",
        date=date(2024, 11, 1),
        movie_id="movie-1",
        title="Pulp Fiction",
        credits=credits,
        images=images,
    )


def _actor_names(content: ChallengeContent, revealed: int) -> List[str]:
    return [
        candidate.value
        for candidate in build_candidates(content, revealed)
        if candidate.category == "ACTOR"
    ]


def test_candidates_are_ordered_by_category() -> None:
    candidates = build_candidates(make_content(), 1)

    assert [(c.category, c.value) for c in candidates] == [
        ("TITLE", "Pulp Fiction"),
        ("DIRECTOR", "Quentin Tarantino"),
        ("WRITER", "Quentin Tarantino"),
        ("WRITER", "Roger Avary"),
        ("ACTOR", "John Travolta"),
        ("ACTOR", "Samuel L. Jackson"),
        ("ACTOR", "Bruce Willis"),
    ]


def test_full_cast_is_used_when_no_image_is_curated() -> None:
    content = make_content()

    for revealed in (1, 2, 3):
        assert _actor_names(content, revealed) == ["John Travolta", "Samuel L. Jackson", "Bruce Willis"]


def test_curated_pool_grows_with_reveals_and_dedupes() -> None:
    content = make_content({1: [4], 2: [], 3: [6, 4]})

    assert _actor_names(content, 1) == ["John Travolta"]
    assert _actor_names(content, 2) == ["John Travolta"]
    assert _actor_names(content, 3) == ["John Travolta", "Bruce Willis"]


def test_pool_switches_to_curated_at_first_tagged_reveal() -> None:
    content = make_content({2: [5]})

    assert _actor_names(content, 1) == ["John Travolta", "Samuel L. Jackson", "Bruce Willis"]
    assert _actor_names(content, 2) == ["Samuel L. Jackson"]
    assert _actor_names(content, 3) == ["Samuel L. Jackson"]


def test_tags_pointing_at_non_actor_credits_are_ignored() -> None:
    content = make_content({1: [1, 4]})

    assert [credit.name for credit in actor_pool(content, 1)] == ["John Travolta"]


def test_duplicate_directors_collapse_to_one_candidate() -> None:
    content = make_content()
    content.credits.append(
        CreditInfo(id=7, person_id=138, name="Quentin Tarantino", role="DIRECTOR")
    )

    directors = [c for c in build_candidates(content, 1) if c.category == "DIRECTOR"]

    assert len(directors) == 1


def test_answer_set_uses_curated_actors_across_all_images() -> None:
    answers = build_answer_set(make_content({1: [4], 3: [5]}))

    assert answers.title == "Pulp Fiction"
    assert answers.directors == ["Quentin Tarantino"]
    assert answers.writers == ["Quentin Tarantino", "Roger Avary"]
    assert [(actor.name, actor.character) for actor in answers.actors] == [
        ("John Travolta", "Vincent Vega"),
        ("Samuel L. Jackson", "Jules Winnfield"),
    ]


def test_answer_set_falls_back_to_full_cast() -> None:
    answers = build_answer_set(make_content())

    assert len(answers.actors) == 3
