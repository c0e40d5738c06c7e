"""
Game API routes.

REST endpoints for creating and joining the game, dispatching round actions
and loading snippets. Accepted mutations are broadcast over the WebSocket.
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from cseg.core.exceptions import CsegError
from cseg.core.security import create_player_token, get_token_player_id
from cseg.game_engine.rounds import Action, ActionResult, Command, round_engine

router = APIRouter()


# Request models

class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateGameRequest(CamelModel):
    """Request to create a new game as host."""

    host_name: str = Field(default="", alias="hostName")


class JoinGameRequest(CamelModel):
    """Request to join the game lobby."""

    player_name: str = Field(default="", alias="playerName")
    game_code: str | None = Field(default=None, alias="gameCode")


class ActionRequest(CamelModel):
    """A round action from a player or the host."""

    action: str
    player_id: str | None = Field(default=None, alias="playerId")
    data: dict[str, Any] = Field(default_factory=dict)


class SnippetsRequest(CamelModel):
    """Replacement snippet set."""

    snippets_data: Any = Field(default=None, alias="snippetsData")


STATUS_BY_CODE = {
    "forbidden": status.HTTP_403_FORBIDDEN,
    "player_not_found": status.HTTP_404_NOT_FOUND,
}


def rejection(message: str, code: str | None, status_code: int | None = None) -> JSONResponse:
    status_code = status_code or STATUS_BY_CODE.get(code, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(
        status_code=status_code,
        content=ActionResult(success=False, message=message, code=code).to_dict(),
    )


# Routes

@router.get("/game")
async def get_game() -> dict[str, Any]:
    """Get the current client-safe game state."""
    return {"success": True, "state": round_engine.get_client_state()}


@router.post("/game")
async def create_game(request: CreateGameRequest) -> Any:
    """Start a fresh game; the caller becomes the host."""
    try:
        joined = await round_engine.create_game(request.host_name)
    except CsegError as e:
        return rejection(e.message, e.code)

    token = create_player_token(joined["playerId"], joined["gameCode"])
    return {"success": True, **joined, "token": token}


@router.post("/game/join")
async def join_game(request: JoinGameRequest) -> Any:
    """Join the lobby of the running game."""
    try:
        joined = await round_engine.join_game(request.player_name, request.game_code)
    except CsegError as e:
        return rejection(e.message, e.code)

    token = create_player_token(joined["playerId"], joined["gameCode"])
    return {"success": True, **joined, "token": token}


@router.post("/game/action")
async def game_action(
    request: ActionRequest,
    token_player_id: str | None = Depends(get_token_player_id),
) -> Any:
    """
    Dispatch a round action.

    The acting player comes from the Bearer token when present, otherwise
    from ``playerId`` in the body.
    """
    try:
        action = Action(request.action.upper())
    except ValueError:
        return rejection("Unknown action", "unknown_action")

    player_id = request.player_id
    if token_player_id is not None:
        if player_id is not None and player_id != token_player_id:
            return rejection("Token does not match playerId", "token_mismatch", status.HTTP_401_UNAUTHORIZED)
        player_id = token_player_id

    result = await round_engine.dispatch(Command(action=action, player_id=player_id, data=request.data))
    if not result.success:
        return rejection(result.message or "Action rejected", result.code)
    return result.to_dict()


@router.post("/snippets")
async def load_snippets(request: SnippetsRequest) -> Any:
    """Replace the snippet set used for new RED rounds."""
    try:
        count = await round_engine.load_snippets(request.snippets_data)
    except ValueError as e:
        return rejection(f"Invalid snippets data: {e}", "invalid_snippets")
    return {"success": True, "count": count}


@router.get("/leaderboard")
async def get_leaderboard() -> dict[str, Any]:
    """Current standings plus the snapshot recorded after each round."""
    return {"success": True, **round_engine.get_leaderboard()}


@router.get("/health")
async def health() -> dict[str, Any]:
    return {"status": "ok", "players": len(round_engine.session.players)}
