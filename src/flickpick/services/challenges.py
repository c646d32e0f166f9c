from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import settings
from ..core.database import get_session_factory
from ..db import models
from ..game.errors import InvalidRequest, NotFound
from ..game.models import TOTAL_IMAGES, ChallengeContent, CreditInfo, ImageInfo, ImagePayload
from .cache import get_cache

logger = logging.getLogger(__name__)

CHALLENGE_KEY_TEMPLATE = "challenge:{challenge_id}"


@dataclass
class ImageSpec:
    file_path: str
    width: Optional[int] = None
    height: Optional[int] = None
    actor_credit_ids: List[int] = field(default_factory=list)


def image_url(file_path: str) -> str:
    if file_path.startswith("http://") or file_path.startswith("https://"):
        return file_path
    return f"{settings.image_base_url.rstrip('/')}/{file_path.lstrip('/')}"


def image_payload(image: ImageInfo) -> ImagePayload:
    return ImagePayload(
        id=image.id,
        position=image.position,
        image_url=image_url(image.file_path),
        width=image.width,
        height=image.height,
    )


def _to_content(challenge: models.DailyChallenge) -> ChallengeContent:
    movie = challenge.movie
    credits = [
        CreditInfo(
            id=credit.id,
            person_id=credit.tmdb_person_id,
            name=credit.person_name,
            role=credit.role,
            character=credit.character,
        )
        for credit in movie.credits
    ]
    images = [
        ImageInfo(
            id=image.id,
            position=image.position,
            file_path=image.file_path,
            width=image.width,
            height=image.height,
            actor_credit_ids=[tag.credit_id for tag in image.actor_tags],
        )
        for image in sorted(challenge.images, key=lambda item: item.position)
    ]
    return ChallengeContent(
        challenge_id=challenge.id,
        date=challenge.date,
        movie_id=movie.id,
        title=movie.title,
        release_year=movie.release_year,
        overview=movie.overview,
        credits=credits,
        images=images,
    )


def _challenge_query():
    return select(models.DailyChallenge).options(
        selectinload(models.DailyChallenge.movie).selectinload(models.Movie.credits),
        selectinload(models.DailyChallenge.images).selectinload(models.ChallengeImage.actor_tags),
    )


async def fetch_challenge_content(
    session: AsyncSession, challenge_id: str
) -> Optional[ChallengeContent]:
    result = await session.execute(
        _challenge_query().where(models.DailyChallenge.id == challenge_id)
    )
    challenge = result.scalar_one_or_none()
    if challenge is None:
        return None
    return _to_content(challenge)


async def fetch_challenge_id_for_date(session: AsyncSession, day: date) -> Optional[str]:
    result = await session.execute(
        select(models.DailyChallenge.id).where(models.DailyChallenge.date == day)
    )
    return result.scalar_one_or_none()


async def load_challenge_content(challenge_id: str) -> ChallengeContent:
    """Return the challenge snapshot, from cache when possible."""

    cache = await get_cache(settings.redis_url)
    key = CHALLENGE_KEY_TEMPLATE.format(challenge_id=challenge_id)
    cached = await cache.get(key)
    if isinstance(cached, dict):
        return ChallengeContent.model_validate(cached)

    session_factory = get_session_factory()
    async with session_factory() as session:
        content = await fetch_challenge_content(session, challenge_id)
    if content is None:
        raise NotFound("Challenge not found")

    await cache.set(key, content.model_dump(mode="json"), ttl=settings.challenge_cache_ttl_seconds)
    return content


async def load_challenge_for_date(day: date) -> ChallengeContent:
    session_factory = get_session_factory()
    async with session_factory() as session:
        challenge_id = await fetch_challenge_id_for_date(session, day)
    if challenge_id is None:
        raise NotFound("No challenge available today")
    return await load_challenge_content(challenge_id)


async def invalidate_challenge(challenge_id: str) -> None:
    cache = await get_cache(settings.redis_url)
    await cache.delete(CHALLENGE_KEY_TEMPLATE.format(challenge_id=challenge_id))


async def create_challenge(
    session: AsyncSession,
    day: date,
    movie_id: str,
    images: Sequence[ImageSpec],
) -> models.DailyChallenge:
    """Create the challenge for ``day``. The caller owns the transaction."""

    if len(images) != TOTAL_IMAGES:
        raise InvalidRequest(f"A challenge needs exactly {TOTAL_IMAGES} images")

    existing = await fetch_challenge_id_for_date(session, day)
    if existing is not None:
        raise InvalidRequest(f"A challenge already exists for {day.isoformat()}")

    movie = await session.get(models.Movie, movie_id)
    if movie is None:
        raise NotFound("Movie not found")

    result = await session.execute(
        select(models.MovieCredit.id)
        .where(models.MovieCredit.movie_id == movie_id)
        .where(models.MovieCredit.role == "ACTOR")
    )
    actor_ids = set(result.scalars().all())

    challenge = models.DailyChallenge(id=str(uuid.uuid4()), date=day, movie_id=movie_id)
    for position, spec in enumerate(images, start=1):
        unknown = [credit_id for credit_id in spec.actor_credit_ids if credit_id not in actor_ids]
        if unknown:
            raise InvalidRequest(f"Image {position} tags credits that are not actors of this movie")
        image = models.ChallengeImage(
            position=position,
            file_path=spec.file_path,
            width=spec.width,
            height=spec.height,
        )
        image.actor_tags = [
            models.ChallengeImageActor(credit_id=credit_id, sort_order=order)
            for order, credit_id in enumerate(dict.fromkeys(spec.actor_credit_ids))
        ]
        challenge.images.append(image)

    session.add(challenge)
    await session.flush()
    logger.info("Created challenge %s for %s (movie %s)", challenge.id, day, movie_id)
    return challenge


async def delete_challenge_for_date(session: AsyncSession, day: date) -> Optional[str]:
    """Delete the day's challenge with every session and guess played on it."""

    challenge_id = await fetch_challenge_id_for_date(session, day)
    if challenge_id is None:
        return None

    session_ids = select(models.GuessSession.id).where(
        models.GuessSession.challenge_id == challenge_id
    )
    image_ids = select(models.ChallengeImage.id).where(
        models.ChallengeImage.challenge_id == challenge_id
    )
    await session.execute(delete(models.Guess).where(models.Guess.session_id.in_(session_ids)))
    await session.execute(
        delete(models.GuessSession).where(models.GuessSession.challenge_id == challenge_id)
    )
    await session.execute(
        delete(models.ChallengeImageActor).where(models.ChallengeImageActor.image_id.in_(image_ids))
    )
    await session.execute(
        delete(models.ChallengeImage).where(models.ChallengeImage.challenge_id == challenge_id)
    )
    await session.execute(delete(models.DailyChallenge).where(models.DailyChallenge.id == challenge_id))
    await invalidate_challenge(challenge_id)
    logger.info("Deleted challenge %s for %s", challenge_id, day)
    return challenge_id


async def reseed_challenge(
    session: AsyncSession,
    day: date,
    movie_id: str,
    images: Sequence[ImageSpec],
) -> models.DailyChallenge:
    await delete_challenge_for_date(session, day)
    return await create_challenge(session, day, movie_id, images)
