"""Session state for the RED/BLUE round game.

``GameSession`` is the aggregate root. It is a plain dataclass owned by a
``RoundEngine``; tests build isolated sessions directly.
"""

import time
from dataclasses import MISSING, dataclass, field, fields
from enum import Enum
from typing import Any, Optional

from cseg.config import Settings
from cseg.game_engine.snippets import Snippet


class GamePhase(str, Enum):
    """Phases of a game session."""
    IDLE = "IDLE"
    LOBBY = "LOBBY"
    RED = "RED"
    BLUE = "BLUE"
    VERIFY_SCORES = "VERIFY_SCORES"
    LEADERBOARD = "LEADERBOARD"
    ENDED = "ENDED"


class Action(str, Enum):
    """Actions accepted by the round engine."""
    START_RED = "START_RED"
    UPDATE_CODE = "UPDATE_CODE"
    SUBMIT_RED = "SUBMIT_RED"
    START_BLUE = "START_BLUE"
    SUBMIT_BLUE = "SUBMIT_BLUE"
    END_ROUND = "END_ROUND"
    UPDATE_SCORE = "UPDATE_SCORE"
    CONFIRM_SCORES = "CONFIRM_SCORES"
    NEXT_ROUND = "NEXT_ROUND"
    PAUSE = "PAUSE"
    END_GAME = "END_GAME"
    RESET = "RESET"
    LEAVE = "LEAVE"


@dataclass(frozen=True)
class GameRules:
    """Tunable rules for one engine."""
    min_bugs: int = 3
    max_bugs: int = 5
    bug_fixed_points: int = 3
    bug_survived_points: int = 2
    execution_bonus_points: int = 1
    max_drastic_ratio: float = 0.6
    min_drastic_line_length: int = 10
    red_accept_compile_errors: bool = True
    min_players: int = 2
    derangement_max_attempts: int = 100
    player_name_min_length: int = 2
    player_name_max_length: int = 20
    max_code_length: int = 50000

    @classmethod
    def from_settings(cls, settings: Settings) -> "GameRules":
        return cls(
            min_bugs=settings.min_bugs,
            max_bugs=settings.max_bugs,
            bug_fixed_points=settings.bug_fixed_points,
            bug_survived_points=settings.bug_survived_points,
            execution_bonus_points=settings.execution_bonus_points,
            max_drastic_ratio=settings.max_drastic_ratio,
            min_drastic_line_length=settings.min_drastic_line_length,
            red_accept_compile_errors=settings.red_accept_compile_errors,
            min_players=settings.min_players,
            derangement_max_attempts=settings.derangement_max_attempts,
            player_name_min_length=settings.player_name_min_length,
            player_name_max_length=settings.player_name_max_length,
            max_code_length=settings.max_code_length,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "minBugs": self.min_bugs,
            "maxBugs": self.max_bugs,
            "points": {
                "bugFixed": self.bug_fixed_points,
                "bugSurvived": self.bug_survived_points,
                "executionBonus": self.execution_bonus_points,
            },
        }


@dataclass
class Player:
    """A player in the session. The host is a player who does not play."""
    id: str
    name: str
    score: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "score": self.score}


@dataclass
class BuggedSubmission:
    """An accepted RED submission, read-only until the round resets."""
    code: str
    original_code: str
    snippet_id: str
    bug_count: int
    bug_lines: list[int]
    introduced_by: str
    snippet: Optional[Snippet] = None  # pinned so BLUE judging survives a snippet reload

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "originalCode": self.original_code,
            "snippetId": self.snippet_id,
            "bugCount": self.bug_count,
            "bugLines": list(self.bug_lines),
            "introducedBy": self.introduced_by,
        }


@dataclass
class BugResult:
    """Outcome of one BLUE submission, consumed once by scoring."""
    fixer_id: str
    introducer_id: str
    total_tests: int
    passed_tests: int
    failed_tests: int
    fixed_bugs: int
    unfixed_bugs: int
    execution_bonus: int
    baseline_passed_tests: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fixerId": self.fixer_id,
            "introducerId": self.introducer_id,
            "totalTests": self.total_tests,
            "passedTests": self.passed_tests,
            "failedTests": self.failed_tests,
            "fixedBugs": self.fixed_bugs,
            "unfixedBugs": self.unfixed_bugs,
            "executionBonus": self.execution_bonus,
            "baselinePassedTests": self.baseline_passed_tests,
        }


@dataclass
class LeaderboardEntry:
    rank: int
    id: str
    name: str
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {"rank": self.rank, "id": self.id, "name": self.name, "score": self.score}


@dataclass
class LeaderboardSnapshot:
    """Standings recorded when a round's scores are confirmed."""
    round: int
    entries: list[LeaderboardEntry]
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "timestamp": self.timestamp,
            "entries": [e.to_dict() for e in self.entries],
        }


@dataclass
class Command:
    """One action request from a client."""
    action: Action
    player_id: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionResult:
    """Outcome of a dispatched action, returned to the caller as-is."""
    success: bool
    message: Optional[str] = None
    code: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.message is not None:
            result["message"] = self.message
        if self.code is not None:
            result["code"] = self.code
        result.update(self.data)
        return result


@dataclass
class GameSession:
    """Authoritative in-memory state of the single live game."""
    game_code: Optional[str] = None
    host_id: Optional[str] = None
    players: dict[str, Player] = field(default_factory=dict)
    phase: GamePhase = GamePhase.IDLE
    paused: bool = False
    current_round: int = 1
    ready_for_red: bool = False

    # RED: player -> snippet id, and every snippet id each player ever got
    snippet_assignments: dict[str, str] = field(default_factory=dict)
    used_snippets: dict[str, list[str]] = field(default_factory=dict)

    # Working code (RED) and the baseline it started from
    current_code: dict[str, str] = field(default_factory=dict)
    original_code: dict[str, str] = field(default_factory=dict)

    bugged_codes: dict[str, BuggedSubmission] = field(default_factory=dict)

    # BLUE: fixer -> introducer, and the fixer's working code
    blue_assignments: dict[str, str] = field(default_factory=dict)
    blue_current_code: dict[str, str] = field(default_factory=dict)

    submissions: dict[str, bool] = field(default_factory=dict)
    bug_results: list[BugResult] = field(default_factory=list)

    leaderboard_history: list[LeaderboardSnapshot] = field(default_factory=list)
    last_update: float = field(default_factory=time.time)

    def is_host(self, player_id: Optional[str]) -> bool:
        return player_id is not None and player_id == self.host_id

    @property
    def active_player_ids(self) -> list[str]:
        """Players taking part in rounds (everyone but the host), in join order."""
        return [pid for pid in self.players if pid != self.host_id]

    def has_submitted(self, player_id: str) -> bool:
        return bool(self.submissions.get(player_id))

    def reset_fields(self, *names: str) -> None:
        """Restore the named fields to their declared defaults."""
        declared = {f.name: f for f in fields(self)}
        for name in names:
            f = declared[name]
            if f.default_factory is not MISSING:
                setattr(self, name, f.default_factory())
            else:
                setattr(self, name, f.default)

    def touch(self) -> None:
        self.last_update = time.time()
