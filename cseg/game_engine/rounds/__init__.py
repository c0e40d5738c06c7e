from cseg.game_engine.rounds.engine import RoundEngine, round_engine
from cseg.game_engine.rounds.models import (
    Action,
    ActionResult,
    Command,
    GamePhase,
    GameRules,
    GameSession,
    Player,
)

__all__ = [
    "RoundEngine",
    "round_engine",
    "Action",
    "ActionResult",
    "Command",
    "GamePhase",
    "GameRules",
    "GameSession",
    "Player",
]
