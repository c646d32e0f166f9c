from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..game.errors import InvalidRequest
from ..game.models import (
    GuessOutcome,
    GuessRequest,
    ResultsPayload,
    RevealOutcome,
    RevealRequest,
    TodayState,
)
from ..services.game_session import GameSessionService, get_game_service
from ..services.identity import PlayerIdentity, require_player

router = APIRouter()


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return datetime.now(timezone.utc).date()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidRequest("Invalid date format. Use YYYY-MM-DD.") from exc


@router.get("/today", response_model=TodayState)
async def get_today(
    day: Optional[str] = Query(default=None, alias="date"),
    player: PlayerIdentity = Depends(require_player),
    service: GameSessionService = Depends(get_game_service),
) -> TodayState:
    return await service.load_today_state(player.player_id, _parse_date(day))


@router.post("/guess", response_model=GuessOutcome)
async def submit_guess(
    payload: GuessRequest,
    player: PlayerIdentity = Depends(require_player),
    service: GameSessionService = Depends(get_game_service),
) -> GuessOutcome:
    return await service.submit_guess(player.player_id, payload.challenge_id, payload.guess_text)


@router.post("/reveal", response_model=RevealOutcome)
async def reveal_next_image(
    payload: RevealRequest,
    player: PlayerIdentity = Depends(require_player),
    service: GameSessionService = Depends(get_game_service),
) -> RevealOutcome:
    return await service.reveal_next_image(player.player_id, payload.challenge_id)


@router.get("/results", response_model=ResultsPayload)
async def get_results(
    challenge_id: Optional[str] = Query(default=None, alias="challengeId"),
    player: PlayerIdentity = Depends(require_player),
    service: GameSessionService = Depends(get_game_service),
) -> ResultsPayload:
    return await service.finalize(player.player_id, challenge_id)
