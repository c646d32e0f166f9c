from __future__ import annotations

import sys
from pathlib import Path
import asyncio
import uuid
from datetime import date
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from flickpick.core import database as db_module  # noqa: E402
from flickpick.db import models  # noqa: E402
from flickpick.db.models import Base  # noqa: E402
from flickpick.services import cache as cache_module  # noqa: E402
from flickpick.services import identity as identity_module  # noqa: E402
from flickpick.services.challenges import ImageSpec, create_challenge  # noqa: E402

# (tmdb person id, name, character)
Person = Tuple[int, str, Optional[str]]

PULP_FICTION_DIRECTORS: List[Person] = [(138, "Quentin Tarantino", None)]
PULP_FICTION_WRITERS: List[Person] = [(138, "Quentin Tarantino", None), (139, "Roger Avary", None)]
PULP_FICTION_CAST: List[Person] = [
    (8891, "John Travolta", "Vincent Vega"),
    (2231, "Samuel L. Jackson", "Jules Winnfield"),
    (139_001, "Uma Thurman", "Mia Wallace"),
    (62, "Bruce Willis", "Butch Coolidge"),
]

SeedChallenge = Callable[..., Awaitable[str]]


async def _create_schema(url: str) -> None:
    engine = create_async_engine(url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


@pytest.fixture(autouse=True)
def setup_test_database(tmp_path: Path) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'flickpick.db'}"
    asyncio.run(_create_schema(url))
    engine = create_async_engine(url, future=True, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    original_engine = db_module._engine
    original_factory = db_module._session_factory
    db_module._engine = engine
    db_module._session_factory = session_factory
    cache_module.reset_cache()
    identity_module.set_identity_provider(None)

    try:
        yield
    finally:
        db_module._engine = original_engine
        db_module._session_factory = original_factory
        cache_module.reset_cache()
        identity_module.set_identity_provider(None)
        asyncio.run(engine.dispose())


async def _seed_challenge(
    *,
    day: date = date(2024, 11, 1),
    title: str = "Pulp Fiction",
    directors: Sequence[Person] = PULP_FICTION_DIRECTORS,
    writers: Sequence[Person] = PULP_FICTION_WRITERS,
    cast: Sequence[Person] = PULP_FICTION_CAST,
    tags: Optional[Dict[int, Sequence[int]]] = None,
) -> str:
    """Store a movie with credits and create its challenge.

    ``tags`` maps an image position (1..3) to the tmdb person ids of the
    actors curated on that image.
    """

    session_factory = db_module.get_session_factory()
    async with session_factory() as session:
        movie = models.Movie(id=str(uuid.uuid4()), title=title, release_year=1994, overview="Overview")
        credits: List[models.MovieCredit] = []
        for role, people in (("DIRECTOR", directors), ("WRITER", writers), ("ACTOR", cast)):
            for person_id, name, character in people:
                credits.append(
                    models.MovieCredit(
                        tmdb_person_id=person_id,
                        person_name=name,
                        role=role,
                        character=character,
                    )
                )
        movie.credits = credits
        session.add(movie)
        await session.flush()

        actor_ids = {credit.tmdb_person_id: credit.id for credit in credits if credit.role == "ACTOR"}
        specs = [
            ImageSpec(
                file_path=f"/still-{position}.jpg",
                width=1280,
                height=720,
                actor_credit_ids=[actor_ids[person] for person in (tags or {}).get(position, [])],
            )
            for position in (1, 2, 3)
        ]
        challenge = await create_challenge(session, day, movie.id, specs)
        challenge_id = challenge.id
        await session.commit()
    return challenge_id


@pytest.fixture
def seed_challenge() -> SeedChallenge:
    return _seed_challenge
