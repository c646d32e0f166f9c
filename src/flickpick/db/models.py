from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..game.models import MAX_GUESS_LENGTH


class Base(DeclarativeBase):
    """Declarative base class for application models."""


class Movie(Base):
    __tablename__ = "movies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tmdb_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True, unique=True)
    title: Mapped[str] = mapped_column(String(512))
    release_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    overview: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    credits: Mapped[List["MovieCredit"]] = relationship(
        back_populates="movie",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="MovieCredit.id",
    )
    challenges: Mapped[List["DailyChallenge"]] = relationship(back_populates="movie")


class MovieCredit(Base):
    __tablename__ = "movie_credits"
    __table_args__ = (
        UniqueConstraint("movie_id", "tmdb_person_id", "role", name="uq_movie_credit_person_role"),
        Index("ix_movie_credits_movie_role", "movie_id", "role"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    movie_id: Mapped[str] = mapped_column(
        ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tmdb_person_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    person_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    character: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    movie: Mapped[Movie] = relationship(back_populates="credits")


class DailyChallenge(Base):
    __tablename__ = "daily_challenges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    movie_id: Mapped[str] = mapped_column(ForeignKey("movies.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    movie: Mapped[Movie] = relationship(back_populates="challenges")
    images: Mapped[List["ChallengeImage"]] = relationship(
        back_populates="challenge",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChallengeImage.position",
    )
    sessions: Mapped[List["GuessSession"]] = relationship(
        back_populates="challenge", cascade="all, delete-orphan", passive_deletes=True
    )


class ChallengeImage(Base):
    __tablename__ = "challenge_images"
    __table_args__ = (
        UniqueConstraint("challenge_id", "position", name="uq_challenge_image_position"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    challenge_id: Mapped[str] = mapped_column(
        ForeignKey("daily_challenges.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    challenge: Mapped[DailyChallenge] = relationship(back_populates="images")
    actor_tags: Mapped[List["ChallengeImageActor"]] = relationship(
        back_populates="image",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChallengeImageActor.sort_order",
    )


class ChallengeImageActor(Base):
    __tablename__ = "challenge_image_actors"

    image_id: Mapped[int] = mapped_column(
        ForeignKey("challenge_images.id", ondelete="CASCADE"), primary_key=True, autoincrement=False
    )
    credit_id: Mapped[int] = mapped_column(
        ForeignKey("movie_credits.id", ondelete="CASCADE"), primary_key=True, autoincrement=False
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    image: Mapped[ChallengeImage] = relationship(back_populates="actor_tags")
    credit: Mapped[MovieCredit] = relationship()


class GuessSession(Base):
    __tablename__ = "guess_sessions"
    __table_args__ = (
        UniqueConstraint("player_id", "challenge_id", name="uq_guess_session_player_challenge"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    challenge_id: Mapped[str] = mapped_column(
        ForeignKey("daily_challenges.id", ondelete="CASCADE"), nullable=False, index=True
    )
    current_image_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    challenge: Mapped[DailyChallenge] = relationship(back_populates="sessions")
    guesses: Mapped[List["Guess"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Guess.id",
    )


class Guess(Base):
    __tablename__ = "guesses"
    __table_args__ = (
        # A (category, value) pair can be credited at most once per session.
        Index(
            "uq_guesses_session_credited",
            "session_id",
            "matched_category",
            "matched_value",
            unique=True,
            postgresql_where=text("is_correct"),
            sqlite_where=text("is_correct = 1"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("guess_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    guess_text: Mapped[str] = mapped_column(String(MAX_GUESS_LENGTH), nullable=False)
    matched_category: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    matched_value: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    session: Mapped[GuessSession] = relationship(back_populates="guesses")
