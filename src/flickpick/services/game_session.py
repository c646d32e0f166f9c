from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import settings
from ..core.database import get_session_factory
from ..db import models
from ..game.candidates import build_answer_set, build_candidates
from ..game.errors import AlreadyCompleted, InvalidRequest, NoMoreImages
from ..game.matcher import MatchConfig, match
from ..game.models import (
    MAX_GUESS_LENGTH,
    REVEAL_PENALTY,
    GuessOutcome,
    GuessRecord,
    MovieSummary,
    ResultsPayload,
    RevealOutcome,
    SessionSummary,
    TodayState,
)
from . import session_repository as repo
from .challenges import image_payload, load_challenge_content, load_challenge_for_date

logger = logging.getLogger(__name__)


def match_config_from_settings() -> MatchConfig:
    return MatchConfig(
        threshold=settings.fuzzy_match_threshold,
        min_match_chars=settings.fuzzy_min_match_chars,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _guess_record(guess: models.Guess) -> GuessRecord:
    return GuessRecord(
        id=guess.id,
        guess_text=guess.guess_text,
        matched_category=guess.matched_category,
        matched_value=guess.matched_value,
        is_correct=guess.is_correct,
        created_at=guess.created_at,
    )


def _session_summary(record: models.GuessSession) -> SessionSummary:
    return SessionSummary(
        id=record.id,
        score=record.score,
        current_image_index=record.current_image_index,
        completed_at=record.completed_at,
        guesses=[_guess_record(guess) for guess in record.guesses],
    )


def _require_challenge_id(challenge_id: Optional[str]) -> str:
    value = (challenge_id or "").strip()
    if not value:
        raise InvalidRequest("challengeId is required")
    return value


class GameSessionService:
    """Per-player state machine for one day's challenge.

    A session is created lazily by the first guess, reveal or results
    request, moves through guesses and reveals while open, and is completed
    for good once the player gives up. The score only ever moves by atomic
    +1 (new correct answer) and -1 (image reveal) updates.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        match_config: Optional[MatchConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._match_config = match_config or MatchConfig()
        self._clock = clock

    async def submit_guess(
        self, player_id: str, challenge_id: Optional[str], guess_text: Optional[str]
    ) -> GuessOutcome:
        challenge_id = _require_challenge_id(challenge_id)
        text = (guess_text or "").strip()
        if not text:
            raise InvalidRequest("guessText is required")
        if len(text) > MAX_GUESS_LENGTH:
            raise InvalidRequest(f"guessText must be at most {MAX_GUESS_LENGTH} characters")

        content = await load_challenge_content(challenge_id)

        async with self._session_factory() as db:
            try:
                record = await repo.find_or_create_session(db, player_id, challenge_id)
                if record.completed_at is not None:
                    raise AlreadyCompleted("Challenge already completed")

                candidates = build_candidates(content, record.current_image_index + 1)
                result = match(text, candidates, self._match_config)

                is_duplicate = False
                if result.matched:
                    credited = await repo.list_credited(db, record.id)
                    is_duplicate = (result.category, result.value) in credited

                guess: Optional[models.Guess] = None
                if result.matched and not is_duplicate:
                    try:
                        async with db.begin_nested():
                            guess = await repo.add_guess(
                                db,
                                record.id,
                                guess_text=text,
                                matched_category=result.category,
                                matched_value=result.value,
                                is_correct=True,
                                created_at=self._clock(),
                            )
                    except IntegrityError:
                        # A concurrent submission credited the same answer first.
                        is_duplicate = True
                        guess = None

                if guess is None:
                    guess = await repo.add_guess(
                        db,
                        record.id,
                        guess_text=text,
                        matched_category=result.category,
                        matched_value=result.value,
                        is_correct=False,
                        created_at=self._clock(),
                    )

                # A zero delta still re-checks completion and returns the live score.
                score = await repo.apply_score_delta(db, record.id, 1 if guess.is_correct else 0)
                if score is None:
                    raise AlreadyCompleted("Challenge already completed")

                outcome = GuessOutcome(
                    guess=_guess_record(guess),
                    is_duplicate=is_duplicate,
                    session_score=score,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.debug(
            "Guess by %s on %s: matched=%s duplicate=%s score=%s",
            player_id,
            challenge_id,
            result.matched,
            is_duplicate,
            outcome.session_score,
        )
        return outcome

    async def reveal_next_image(self, player_id: str, challenge_id: Optional[str]) -> RevealOutcome:
        challenge_id = _require_challenge_id(challenge_id)
        content = await load_challenge_content(challenge_id)

        async with self._session_factory() as db:
            try:
                record = await repo.find_or_create_session(db, player_id, challenge_id)
                if record.completed_at is not None:
                    raise AlreadyCompleted("Challenge already completed")

                advanced = await repo.advance_image(db, record.id)
                if advanced is None:
                    current = await repo.get_session_by_id(db, record.id)
                    if current is not None and current.completed_at is not None:
                        raise AlreadyCompleted("Challenge already completed")
                    raise NoMoreImages("All images already revealed")

                index, score = advanced
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info("Player %s revealed image %s on %s (score %s)", player_id, index + 1, challenge_id, score)
        return RevealOutcome(
            current_image_index=index,
            score=score,
            penalty_applied=REVEAL_PENALTY,
            new_image=image_payload(content.images[index]),
        )

    async def finalize(self, player_id: str, challenge_id: Optional[str]) -> ResultsPayload:
        challenge_id = _require_challenge_id(challenge_id)
        content = await load_challenge_content(challenge_id)

        async with self._session_factory() as db:
            try:
                record = await repo.find_or_create_session(db, player_id, challenge_id)
                completed_now = await repo.mark_completed(db, record.id, self._clock())
                record = await repo.get_session_by_id(db, record.id, with_guesses=True)
                assert record is not None
                summary = _session_summary(record)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        if completed_now:
            logger.info("Player %s completed %s with score %s", player_id, challenge_id, summary.score)
        return ResultsPayload(
            movie=MovieSummary(
                title=content.title,
                release_year=content.release_year,
                overview=content.overview,
            ),
            answers=build_answer_set(content),
            session=summary,
        )

    async def load_today_state(self, player_id: str, day: date) -> TodayState:
        content = await load_challenge_for_date(day)

        async with self._session_factory() as db:
            try:
                record = await repo.get_session_for(
                    db, player_id, content.challenge_id, with_guesses=True
                )
                summary = _session_summary(record) if record is not None else None
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        index = summary.current_image_index if summary is not None else 0
        return TodayState(
            challenge_id=content.challenge_id,
            date=content.date,
            images=[image_payload(image) for image in content.images[: index + 1]],
            current_image_index=index,
            session=summary,
        )


def get_game_service() -> GameSessionService:
    return GameSessionService(
        session_factory=get_session_factory(),
        match_config=match_config_from_settings(),
    )
