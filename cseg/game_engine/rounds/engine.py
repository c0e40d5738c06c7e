"""Round engine for the RED/BLUE bug game.

Owns the single live ``GameSession`` and applies actions to it one at a time.
Each action runs against a deep copy of the session; the copy replaces the
live session only if the transition succeeds, and listeners then receive the
new client state.
"""

import asyncio
import copy
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from cseg.config import settings
from cseg.core.exceptions import CsegError, InvalidActionError, PhaseError
from cseg.core.metrics import record_action, record_phase_transition
from cseg.core.security import generate_game_code, generate_player_id
from cseg.game_engine.judge import CodeJudge
from cseg.game_engine.judge import judge as default_judge
from cseg.game_engine.rounds.leaderboard import generate_leaderboard, get_position_changes
from cseg.game_engine.rounds.models import (
    Action,
    ActionResult,
    Command,
    GamePhase,
    GameRules,
    GameSession,
    Player,
)
from cseg.game_engine.rounds.transitions import TRANSITIONS, RoundContext
from cseg.game_engine.rounds.validation import validate_player_name
from cseg.game_engine.snippets import Snippet, get_builtin_snippets, parse_snippets

logger = logging.getLogger(__name__)

StateListener = Callable[[dict[str, Any]], Awaitable[None]]


class RoundEngine:
    """Authoritative engine for one game session."""

    def __init__(
        self,
        rules: Optional[GameRules] = None,
        judge: Optional[CodeJudge] = None,
        snippets: Optional[list[Snippet]] = None,
        session: Optional[GameSession] = None,
        rng: Optional[random.Random] = None,
    ):
        self.rules = rules or GameRules.from_settings(settings)
        self.judge = judge or default_judge
        self.snippets: list[Snippet] = list(snippets) if snippets is not None else []
        self.session = session or GameSession()
        self.rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self._listeners: list[StateListener] = []

    # Observers

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _notify(self) -> None:
        state = self.get_client_state()
        for listener in list(self._listeners):
            try:
                await listener(state)
            except Exception:
                logger.exception("State listener failed")

    def _context(self) -> RoundContext:
        return RoundContext(
            rules=self.rules,
            snippets=self.snippets,
            judge=self.judge,
            rng=self.rng,
        )

    # Snippets

    async def load_snippets(self, data: Any) -> int:
        """Replace the snippet set wholesale. Raises ValueError on bad data."""
        snippets = parse_snippets(data)
        async with self._lock:
            self.snippets = snippets
        logger.info(f"Loaded {len(snippets)} snippets")
        await self._notify()
        return len(snippets)

    def use_builtin_snippets(self) -> None:
        self.snippets = get_builtin_snippets()

    # Lobby

    async def create_game(self, host_name: Optional[str]) -> dict[str, Any]:
        """Replace the session with a fresh lobby hosted by ``host_name``."""
        name = (host_name or "").strip()
        if not name:
            raise InvalidActionError("Name is required", code="name_required")

        async with self._lock:
            host_id = generate_player_id()
            self.session = GameSession(
                game_code=generate_game_code(),
                host_id=host_id,
                players={host_id: Player(id=host_id, name=name)},
                phase=GamePhase.LOBBY,
            )
            self.session.touch()
            logger.info(f"Game {self.session.game_code} created by {name}")
            record_phase_transition(GamePhase.LOBBY.value)

        await self._notify()
        return {"playerId": host_id, "gameCode": self.session.game_code, "isHost": True}

    async def join_game(self, player_name: Optional[str], game_code: Optional[str] = None) -> dict[str, Any]:
        async with self._lock:
            session = self.session
            if not session.game_code:
                raise InvalidActionError("No active game", code="no_game")
            if game_code and game_code.strip().upper() != session.game_code:
                raise InvalidActionError("Invalid game code", code="invalid_game_code")
            if session.phase != GamePhase.LOBBY:
                raise PhaseError("Game has already started")

            name = validate_player_name(player_name, session.players.values(), self.rules)
            player_id = generate_player_id()
            session.players[player_id] = Player(id=player_id, name=name)
            session.touch()
            logger.info(f"{name} joined game {session.game_code}")

        await self._notify()
        return {"playerId": player_id, "gameCode": session.game_code, "isHost": False}

    # Actions

    async def dispatch(self, command: Command) -> ActionResult:
        """Apply one action. Rejections come back as unsuccessful results."""
        transition = TRANSITIONS.get(command.action)
        if transition is None:
            return ActionResult(success=False, message="Unknown action", code="unknown_action")
        if command.player_id is None and command.action != Action.RESET:
            return ActionResult(success=False, message="Player ID required", code="player_required")

        async with self._lock:
            previous_phase = self.session.phase
            working = copy.deepcopy(self.session)
            try:
                committed, result = await transition(working, command, self._context())
            except CsegError as e:
                logger.warning(f"{command.action.value} by {command.player_id} rejected: {e.message}")
                record_action(command.action.value, accepted=False)
                return ActionResult(success=False, message=e.message, code=e.code)

            committed.touch()
            self.session = committed
            record_action(command.action.value, accepted=True)
            if committed.phase != previous_phase:
                record_phase_transition(committed.phase.value)

        await self._notify()
        return result

    # Views

    def get_leaderboard(self) -> dict[str, Any]:
        session = self.session
        entries = generate_leaderboard(session.players[pid] for pid in session.active_player_ids)
        history = session.leaderboard_history
        changes = []
        if len(history) >= 2:
            changes = get_position_changes(history[-2].entries, history[-1].entries)
        return {
            "entries": [e.to_dict() for e in entries],
            "history": [s.to_dict() for s in history],
            "positionChanges": changes,
        }

    def get_client_state(self) -> dict[str, Any]:
        """State safe to broadcast; baselines and bugged submissions stay private."""
        session = self.session
        state: dict[str, Any] = {
            "gameCode": session.game_code,
            "hostId": session.host_id,
            "players": {pid: p.to_dict() for pid, p in session.players.items()},
            "phase": session.phase.value,
            "paused": session.paused,
            "currentRound": session.current_round,
            "readyForRed": session.ready_for_red,
            "snippetAssignments": dict(session.snippet_assignments),
            "blueAssignments": dict(session.blue_assignments),
            "blueCurrentCode": dict(session.blue_current_code),
            "submissions": dict(session.submissions),
            "config": self.rules.to_dict(),
            "snippets": [s.summary() for s in self.snippets],
            "leaderboard": [
                e.to_dict()
                for e in generate_leaderboard(session.players[pid] for pid in session.active_player_ids)
            ],
            "lastUpdate": session.last_update,
        }
        # RED drafts start as the baseline, so they are only shown while RED is open
        if session.phase == GamePhase.RED:
            state["currentCode"] = dict(session.current_code)
        if session.phase == GamePhase.VERIFY_SCORES:
            state["bugResults"] = [r.to_dict() for r in session.bug_results]
        return state


# Global round engine
round_engine = RoundEngine()
