from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CreditRole = Literal["DIRECTOR", "WRITER", "ACTOR"]
Category = Literal["TITLE", "DIRECTOR", "WRITER", "ACTOR"]

TOTAL_IMAGES = 3
MAX_IMAGE_INDEX = TOTAL_IMAGES - 1
REVEAL_PENALTY = 1
MAX_GUESS_LENGTH = 512


@dataclass(frozen=True)
class Candidate:
    value: str
    category: Category


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    category: Optional[Category]
    value: Optional[str]
    score: float


class CreditInfo(BaseModel):
    id: int
    person_id: int
    name: str
    role: CreditRole
    character: Optional[str] = None


class ImageInfo(BaseModel):
    id: int
    position: int
    file_path: str
    width: Optional[int] = None
    height: Optional[int] = None
    actor_credit_ids: List[int] = Field(default_factory=list)


class ChallengeContent(BaseModel):
    """Read-only snapshot of one day's challenge, safe to cache as JSON."""

    challenge_id: str
    date: date
    movie_id: str
    title: str
    release_year: Optional[int] = None
    overview: Optional[str] = None
    credits: List[CreditInfo] = Field(default_factory=list)
    images: List[ImageInfo] = Field(default_factory=list)

    def credits_for(self, role: CreditRole) -> List[CreditInfo]:
        return [credit for credit in self.credits if credit.role == role]

    def credit_by_id(self, credit_id: int) -> Optional[CreditInfo]:
        for credit in self.credits:
            if credit.id == credit_id:
                return credit
        return None


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GuessRequest(ApiModel):
    challenge_id: Optional[str] = None
    guess_text: Optional[str] = None


class RevealRequest(ApiModel):
    challenge_id: Optional[str] = None


class ImagePayload(ApiModel):
    id: int
    position: int
    image_url: str
    width: Optional[int] = None
    height: Optional[int] = None


class GuessRecord(ApiModel):
    id: int
    guess_text: str
    matched_category: Optional[Category] = None
    matched_value: Optional[str] = None
    is_correct: bool
    created_at: datetime


class SessionSummary(ApiModel):
    id: int
    score: int
    current_image_index: int
    completed_at: Optional[datetime] = None
    guesses: List[GuessRecord] = Field(default_factory=list)


class TodayState(ApiModel):
    challenge_id: str
    date: date
    images: List[ImagePayload]
    current_image_index: int
    total_images: int = TOTAL_IMAGES
    session: Optional[SessionSummary] = None


class GuessOutcome(ApiModel):
    guess: GuessRecord
    is_duplicate: bool
    session_score: int


class RevealOutcome(ApiModel):
    current_image_index: int
    score: int
    penalty_applied: int = REVEAL_PENALTY
    new_image: ImagePayload


class ActorAnswer(ApiModel):
    name: str
    character: Optional[str] = None


class AnswerSet(ApiModel):
    title: str
    directors: List[str] = Field(default_factory=list)
    writers: List[str] = Field(default_factory=list)
    actors: List[ActorAnswer] = Field(default_factory=list)


class MovieSummary(ApiModel):
    title: str
    release_year: Optional[int] = None
    overview: Optional[str] = None


class ResultsPayload(ApiModel):
    movie: MovieSummary
    answers: AnswerSet
    session: SessionSummary
