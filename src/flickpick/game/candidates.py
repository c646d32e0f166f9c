from __future__ import annotations

from typing import Iterable, List, Sequence

from .models import (
    TOTAL_IMAGES,
    ActorAnswer,
    AnswerSet,
    Candidate,
    ChallengeContent,
    CreditInfo,
    CreditRole,
)


def _dedupe_credits(credits: Iterable[CreditInfo]) -> List[CreditInfo]:
    seen: set[int] = set()
    result: List[CreditInfo] = []
    for credit in credits:
        if credit.person_id in seen:
            continue
        seen.add(credit.person_id)
        result.append(credit)
    return result


def _curated_actors(content: ChallengeContent, image_count: int) -> List[CreditInfo]:
    images = sorted(content.images, key=lambda image: image.position)[: max(image_count, 0)]
    tagged: List[CreditInfo] = []
    for image in images:
        for credit_id in image.actor_credit_ids:
            credit = content.credit_by_id(credit_id)
            if credit is not None and credit.role == "ACTOR":
                tagged.append(credit)
    return _dedupe_credits(tagged)


def actor_pool(content: ChallengeContent, revealed_image_count: int) -> List[CreditInfo]:
    """Actors guessable with the first ``revealed_image_count`` images visible.

    Curated image tags win once any revealed image carries them; until then
    the whole cast is in play.
    """

    curated = _curated_actors(content, revealed_image_count)
    if curated:
        return curated
    return _dedupe_credits(content.credits_for("ACTOR"))


def _role_candidates(content: ChallengeContent, role: CreditRole) -> List[Candidate]:
    return [
        Candidate(value=credit.name, category=role)
        for credit in _dedupe_credits(content.credits_for(role))
    ]


def build_candidates(content: ChallengeContent, revealed_image_count: int) -> List[Candidate]:
    candidates: List[Candidate] = [Candidate(value=content.title, category="TITLE")]
    candidates.extend(_role_candidates(content, "DIRECTOR"))
    candidates.extend(_role_candidates(content, "WRITER"))
    candidates.extend(
        Candidate(value=credit.name, category="ACTOR")
        for credit in actor_pool(content, revealed_image_count)
    )
    return candidates


def _names(credits: Sequence[CreditInfo]) -> List[str]:
    return [credit.name for credit in credits]


def build_answer_set(content: ChallengeContent) -> AnswerSet:
    actors = actor_pool(content, TOTAL_IMAGES)
    return AnswerSet(
        title=content.title,
        directors=_names(_dedupe_credits(content.credits_for("DIRECTOR"))),
        writers=_names(_dedupe_credits(content.credits_for("WRITER"))),
        actors=[ActorAnswer(name=credit.name, character=credit.character) for credit in actors],
    )
