"""create movie, challenge and guess session tables"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "202510190001_create_game_tables"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "movies",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tmdb_id", sa.BigInteger(), nullable=True),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("release_year", sa.Integer(), nullable=True),
        sa.Column("overview", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tmdb_id"),
    )
    op.create_table(
        "movie_credits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("movie_id", sa.String(length=36), nullable=False),
        sa.Column("tmdb_person_id", sa.BigInteger(), nullable=False),
        sa.Column("person_name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("character", sa.String(length=512), nullable=True),
        sa.ForeignKeyConstraint(["movie_id"], ["movies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("movie_id", "tmdb_person_id", "role", name="uq_movie_credit_person_role"),
    )
    op.create_index("ix_movie_credits_movie_id", "movie_credits", ["movie_id"])
    op.create_index("ix_movie_credits_movie_role", "movie_credits", ["movie_id", "role"])

    op.create_table(
        "daily_challenges",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("movie_id", sa.String(length=36), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["movie_id"], ["movies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("date"),
    )
    op.create_table(
        "challenge_images",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("challenge_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("file_path", sa.String(length=1024), nullable=False),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["challenge_id"], ["daily_challenges.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("challenge_id", "position", name="uq_challenge_image_position"),
    )
    op.create_index("ix_challenge_images_challenge_id", "challenge_images", ["challenge_id"])
    op.create_table(
        "challenge_image_actors",
        sa.Column("image_id", sa.Integer(), nullable=False),
        sa.Column("credit_id", sa.Integer(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["image_id"], ["challenge_images.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["credit_id"], ["movie_credits.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("image_id", "credit_id"),
    )

    op.create_table(
        "guess_sessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("player_id", sa.String(length=255), nullable=False),
        sa.Column("challenge_id", sa.String(length=36), nullable=False),
        sa.Column("current_image_index", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("score", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["challenge_id"], ["daily_challenges.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("player_id", "challenge_id", name="uq_guess_session_player_challenge"),
    )
    op.create_index("ix_guess_sessions_player_id", "guess_sessions", ["player_id"])
    op.create_index("ix_guess_sessions_challenge_id", "guess_sessions", ["challenge_id"])

    op.create_table(
        "guesses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("guess_text", sa.String(length=512), nullable=False),
        sa.Column("matched_category", sa.String(length=16), nullable=True),
        sa.Column("matched_value", sa.String(length=512), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["session_id"], ["guess_sessions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_guesses_session_id", "guesses", ["session_id"])
    op.create_index(
        "uq_guesses_session_credited",
        "guesses",
        ["session_id", "matched_category", "matched_value"],
        unique=True,
        postgresql_where=sa.text("is_correct"),
        sqlite_where=sa.text("is_correct = 1"),
    )


def downgrade() -> None:
    op.drop_index("uq_guesses_session_credited", table_name="guesses")
    op.drop_index("ix_guesses_session_id", table_name="guesses")
    op.drop_table("guesses")
    op.drop_index("ix_guess_sessions_challenge_id", table_name="guess_sessions")
    op.drop_index("ix_guess_sessions_player_id", table_name="guess_sessions")
    op.drop_table("guess_sessions")
    op.drop_table("challenge_image_actors")
    op.drop_index("ix_challenge_images_challenge_id", table_name="challenge_images")
    op.drop_table("challenge_images")
    op.drop_table("daily_challenges")
    op.drop_index("ix_movie_credits_movie_role", table_name="movie_credits")
    op.drop_index("ix_movie_credits_movie_id", table_name="movie_credits")
    op.drop_table("movie_credits")
    op.drop_table("movies")
