from __future__ import annotations

from datetime import datetime
from typing import Optional, Set, Tuple

from sqlalchemy import insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..db import models
from ..game.models import MAX_IMAGE_INDEX, REVEAL_PENALTY


def _dialect_name(session: AsyncSession) -> str:
    bind = session.sync_session.bind
    if bind is None:
        return ""
    return bind.dialect.name


def _create_insert(session: AsyncSession, model, values):
    dialect = _dialect_name(session)
    if dialect == "postgresql":
        stmt = pg_insert(model)
    elif dialect == "sqlite":
        stmt = sqlite_insert(model)
    else:
        stmt = insert(model)
    return stmt.values(values)


async def get_session_for(
    session: AsyncSession,
    player_id: str,
    challenge_id: str,
    *,
    with_guesses: bool = False,
) -> Optional[models.GuessSession]:
    stmt = (
        select(models.GuessSession)
        .where(models.GuessSession.player_id == player_id)
        .where(models.GuessSession.challenge_id == challenge_id)
        .execution_options(populate_existing=True)
    )
    if with_guesses:
        stmt = stmt.options(selectinload(models.GuessSession.guesses))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def find_or_create_session(
    session: AsyncSession,
    player_id: str,
    challenge_id: str,
) -> models.GuessSession:
    """Return the (player, challenge) session, creating it if absent.

    Creation is a single conflict-ignoring insert against the
    (player_id, challenge_id) unique constraint, so concurrent callers all end
    up reading the one row that won.
    """

    values = {
        "player_id": player_id,
        "challenge_id": challenge_id,
        "current_image_index": 0,
        "score": 0,
    }
    stmt = _create_insert(session, models.GuessSession, values)
    if hasattr(stmt, "on_conflict_do_nothing"):
        stmt = stmt.on_conflict_do_nothing(
            index_elements=[models.GuessSession.player_id, models.GuessSession.challenge_id]
        )
        await session.execute(stmt)
    else:  # pragma: no cover - fallback for unsupported dialects
        existing = await get_session_for(session, player_id, challenge_id)
        if existing is not None:
            return existing
        try:
            async with session.begin_nested():
                await session.execute(stmt)
        except IntegrityError:
            # Another request created the row first; read theirs below.
            pass

    record = await get_session_for(session, player_id, challenge_id)
    assert record is not None
    return record


async def get_session_by_id(
    session: AsyncSession, session_id: int, *, with_guesses: bool = False
) -> Optional[models.GuessSession]:
    stmt = (
        select(models.GuessSession)
        .where(models.GuessSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    if with_guesses:
        stmt = stmt.options(selectinload(models.GuessSession.guesses))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def apply_score_delta(session: AsyncSession, session_id: int, delta: int) -> Optional[int]:
    """Atomically add ``delta`` to an open session's score.

    Returns the new score, or ``None`` when the session is already completed.
    """

    stmt = (
        update(models.GuessSession)
        .where(models.GuessSession.id == session_id)
        .where(models.GuessSession.completed_at.is_(None))
        .values(score=models.GuessSession.score + delta)
        .returning(models.GuessSession.score)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def advance_image(session: AsyncSession, session_id: int) -> Optional[Tuple[int, int]]:
    """Atomically reveal the next image and charge the reveal penalty.

    Returns ``(current_image_index, score)`` or ``None`` when the session is
    completed or already on the last image.
    """

    stmt = (
        update(models.GuessSession)
        .where(models.GuessSession.id == session_id)
        .where(models.GuessSession.completed_at.is_(None))
        .where(models.GuessSession.current_image_index < MAX_IMAGE_INDEX)
        .values(
            current_image_index=models.GuessSession.current_image_index + 1,
            score=models.GuessSession.score - REVEAL_PENALTY,
        )
        .returning(models.GuessSession.current_image_index, models.GuessSession.score)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    row = result.one_or_none()
    if row is None:
        return None
    return int(row[0]), int(row[1])


async def mark_completed(session: AsyncSession, session_id: int, completed_at: datetime) -> bool:
    stmt = (
        update(models.GuessSession)
        .where(models.GuessSession.id == session_id)
        .where(models.GuessSession.completed_at.is_(None))
        .values(completed_at=completed_at)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return bool(result.rowcount)


async def list_credited(session: AsyncSession, session_id: int) -> Set[Tuple[str, str]]:
    result = await session.execute(
        select(models.Guess.matched_category, models.Guess.matched_value)
        .where(models.Guess.session_id == session_id)
        .where(models.Guess.is_correct.is_(True))
    )
    return {(category, value) for category, value in result.all()}


async def add_guess(
    session: AsyncSession,
    session_id: int,
    *,
    guess_text: str,
    matched_category: Optional[str],
    matched_value: Optional[str],
    is_correct: bool,
    created_at: datetime,
) -> models.Guess:
    guess = models.Guess(
        session_id=session_id,
        guess_text=guess_text,
        matched_category=matched_category,
        matched_value=matched_value,
        is_correct=is_correct,
        created_at=created_at,
    )
    session.add(guess)
    await session.flush()
    return guess
