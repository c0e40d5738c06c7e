"""Phase transitions of the round game.

Every action maps to one transition ``(session, command, ctx) -> (session,
result)``. A transition either raises a ``CsegError`` before it has changed
anything it keeps, or returns the session to commit. The engine hands each
transition a working copy, so a rejected action never leaks partial state.

The per-round fields each transition clears are declared in
``ROUND_RESETS``.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from cseg.core.exceptions import (
    AuthorizationError,
    InvalidActionError,
    PhaseError,
    PlayerNotFoundError,
    SubmissionRejected,
)
from cseg.game_engine.judge import CodeJudge
from cseg.game_engine.rounds.allocation import assign_snippets, derangement
from cseg.game_engine.rounds.leaderboard import create_snapshot
from cseg.game_engine.rounds.models import (
    Action,
    ActionResult,
    BuggedSubmission,
    BugResult,
    Command,
    GamePhase,
    GameRules,
    GameSession,
)
from cseg.game_engine.rounds.scoring import ScoringEngine
from cseg.game_engine.rounds.validation import BugIntroductionValidator
from cseg.game_engine.snippets import Snippet

logger = logging.getLogger(__name__)


PER_ROUND_FIELDS = (
    "snippet_assignments",
    "current_code",
    "original_code",
    "bugged_codes",
    "blue_assignments",
    "blue_current_code",
    "submissions",
    "bug_results",
)

ROUND_RESETS: dict[Action, tuple[str, ...]] = {
    Action.START_RED: ("current_code", "original_code", "submissions", "bugged_codes"),
    Action.START_BLUE: ("blue_assignments", "blue_current_code", "submissions"),
    Action.END_ROUND: ("submissions",),
    Action.CONFIRM_SCORES: ("bug_results",),
    Action.NEXT_ROUND: PER_ROUND_FIELDS,
}


@dataclass
class RoundContext:
    """Collaborators a transition may use."""
    rules: GameRules
    snippets: list[Snippet]
    judge: CodeJudge
    rng: random.Random

    @property
    def scoring(self) -> ScoringEngine:
        return ScoringEngine(self.rules)

    @property
    def validator(self) -> BugIntroductionValidator:
        return BugIntroductionValidator(self.rules, self.judge)

    def get_snippet(self, snippet_id: Optional[str]) -> Optional[Snippet]:
        for snippet in self.snippets:
            if snippet.id == snippet_id:
                return snippet
        return None


Transition = Callable[[GameSession, Command, RoundContext], Awaitable[tuple[GameSession, ActionResult]]]


# Guards

def require_host(session: GameSession, command: Command) -> None:
    if not session.is_host(command.player_id):
        raise AuthorizationError()


def require_player(session: GameSession, command: Command) -> str:
    if command.player_id not in session.players:
        raise PlayerNotFoundError()
    return command.player_id


def require_phase(session: GameSession, *phases: GamePhase) -> None:
    if session.phase not in phases:
        names = " or ".join(p.value for p in phases)
        raise PhaseError(f"Not in {names} round")


def require_unpaused(session: GameSession) -> None:
    if session.paused:
        raise PhaseError("Game paused", code="paused")


def reset_for(session: GameSession, action: Action) -> None:
    session.reset_fields(*ROUND_RESETS.get(action, ()))


# Host transitions

async def start_red(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    require_host(session, command)
    if session.phase == GamePhase.LEADERBOARD and not session.ready_for_red:
        raise PhaseError("Advance to the next round first")
    require_phase(session, GamePhase.LOBBY, GamePhase.LEADERBOARD)
    if not ctx.snippets:
        raise InvalidActionError("No snippets loaded", code="no_snippets")

    playing = session.active_player_ids
    if len(playing) < ctx.rules.min_players:
        raise InvalidActionError(
            f"Need at least {ctx.rules.min_players} players (excluding host)",
            code="not_enough_players",
        )

    assignments = assign_snippets(playing, ctx.snippets, session.used_snippets, ctx.rng)
    if not assignments:
        raise InvalidActionError("All snippets have been used", code="snippets_exhausted")

    reset_for(session, Action.START_RED)
    session.snippet_assignments = assignments
    for player_id, snippet_id in assignments.items():
        snippet = ctx.get_snippet(snippet_id)
        session.current_code[player_id] = snippet.code
        session.original_code[player_id] = snippet.code

    session.phase = GamePhase.RED
    session.ready_for_red = False
    logger.info(f"Round {session.current_round} RED started with {len(assignments)} players")
    return session, ActionResult(success=True)


async def start_blue(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    require_host(session, command)
    require_phase(session, GamePhase.RED)

    submitters = [
        pid for pid, submitted in session.submissions.items()
        if submitted and pid != session.host_id and pid in session.bugged_codes
    ]
    if len(submitters) < 2:
        raise InvalidActionError(
            "Need at least 2 players who submitted (excluding host)",
            code="not_enough_submissions",
        )

    introducers = derangement(submitters, ctx.rng, ctx.rules.derangement_max_attempts)

    reset_for(session, Action.START_BLUE)
    for fixer_id, introducer_id in zip(submitters, introducers):
        session.blue_assignments[fixer_id] = introducer_id
        session.blue_current_code[fixer_id] = session.bugged_codes[introducer_id].code

    session.phase = GamePhase.BLUE
    logger.info(f"Round {session.current_round} BLUE started: {session.blue_assignments}")
    return session, ActionResult(success=True)


async def end_round(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    require_host(session, command)
    require_phase(session, GamePhase.BLUE)

    applied = ctx.scoring.apply(session.bug_results, session.players)
    summaries = ctx.scoring.summarize(session.bug_results)

    reset_for(session, Action.END_ROUND)
    session.phase = GamePhase.VERIFY_SCORES
    logger.info(f"Round {session.current_round} scored: {applied}")
    return session, ActionResult(
        success=True,
        data={
            "scoreDeltas": applied,
            "summaries": [s.to_dict() for s in summaries.values()],
        },
    )


async def update_score(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    require_host(session, command)

    target_id = command.data.get("targetPlayerId")
    target = session.players.get(target_id)
    if target is None:
        raise PlayerNotFoundError()

    new_score = command.data.get("newScore")
    # bool is an int subclass; floats would truncate silently
    if isinstance(new_score, bool) or not isinstance(new_score, int):
        raise InvalidActionError("newScore must be an integer")

    logger.info(f"Host set score of {target_id} from {target.score} to {new_score}")
    target.score = new_score
    return session, ActionResult(success=True)


async def confirm_scores(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    require_host(session, command)
    require_phase(session, GamePhase.VERIFY_SCORES)

    reset_for(session, Action.CONFIRM_SCORES)
    session.leaderboard_history.append(
        create_snapshot(
            [session.players[pid] for pid in session.active_player_ids],
            session.current_round,
        )
    )
    session.phase = GamePhase.LEADERBOARD
    return session, ActionResult(success=True)


async def next_round(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    require_host(session, command)
    require_phase(session, GamePhase.LEADERBOARD)
    if session.ready_for_red:
        raise PhaseError("Next round already prepared; start RED")

    total = len(ctx.snippets)
    exhausted = any(
        len(session.used_snippets.get(pid, [])) >= total
        for pid in session.active_player_ids
    )

    if exhausted:
        session.phase = GamePhase.ENDED
        logger.info(f"Game ended after round {session.current_round}: snippets exhausted")
        return session, ActionResult(
            success=True,
            message="All snippets have been used",
            data={"ended": True},
        )

    session.current_round += 1
    reset_for(session, Action.NEXT_ROUND)
    session.ready_for_red = True
    return session, ActionResult(success=True, data={"readyForRed": True})


async def toggle_pause(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    require_host(session, command)
    session.paused = not session.paused
    return session, ActionResult(success=True, data={"paused": session.paused})


async def end_game(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    require_host(session, command)
    session.phase = GamePhase.ENDED
    session.paused = False
    logger.info("Game ended by host")
    return session, ActionResult(success=True)


async def reset(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    logger.info("Session reset")
    return GameSession(), ActionResult(success=True)


# Player transitions

async def update_code(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    player_id = require_player(session, command)
    require_unpaused(session)

    code = command.data.get("code")
    if not isinstance(code, str):
        raise InvalidActionError("code is required")
    if len(code) > ctx.rules.max_code_length:
        raise InvalidActionError(f"Code exceeds maximum length ({ctx.rules.max_code_length} characters)")
    if session.has_submitted(player_id):
        raise SubmissionRejected("Already submitted", code="already_submitted")

    if session.phase == GamePhase.RED:
        if player_id not in session.snippet_assignments:
            raise InvalidActionError("No snippet assigned", code="no_assignment")
        session.current_code[player_id] = code
    elif session.phase == GamePhase.BLUE:
        if player_id not in session.blue_assignments:
            raise InvalidActionError("No assignment found", code="no_assignment")
        session.blue_current_code[player_id] = code
    else:
        raise PhaseError("Code can only be edited during RED or BLUE rounds")

    return session, ActionResult(success=True)


async def submit_red(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    player_id = require_player(session, command)
    require_phase(session, GamePhase.RED)
    require_unpaused(session)
    if session.has_submitted(player_id):
        raise SubmissionRejected("Already submitted", code="already_submitted")

    snippet_id = session.snippet_assignments.get(player_id)
    snippet = ctx.get_snippet(snippet_id)
    if snippet is None:
        raise InvalidActionError("No snippet assigned", code="no_assignment")

    current = session.current_code.get(player_id, "")
    original = session.original_code.get(player_id, "")
    analysis = await ctx.validator.validate(current, original, snippet)

    session.bugged_codes[player_id] = BuggedSubmission(
        code=current,
        original_code=original,
        snippet_id=snippet_id,
        bug_count=analysis.bug_count,
        bug_lines=analysis.bug_lines,
        introduced_by=player_id,
        snippet=snippet,
    )
    session.submissions[player_id] = True
    logger.info(f"{player_id} submitted {analysis.bug_count} bugs on {snippet_id}")
    return session, ActionResult(
        success=True,
        data={"bugCount": analysis.bug_count, "bugLines": analysis.bug_lines},
    )


async def submit_blue(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    player_id = require_player(session, command)
    require_phase(session, GamePhase.BLUE)
    require_unpaused(session)
    if session.has_submitted(player_id):
        raise SubmissionRejected("Already submitted", code="already_submitted")

    introducer_id = session.blue_assignments.get(player_id)
    bugged = session.bugged_codes.get(introducer_id)
    if bugged is None:
        raise InvalidActionError("No assignment found", code="no_assignment")

    snippet = bugged.snippet or ctx.get_snippet(bugged.snippet_id)
    fixed_code = session.blue_current_code.get(player_id, "")

    fixed = await ctx.judge.judge(fixed_code, snippet)
    baseline = await ctx.judge.judge(bugged.original_code, snippet)

    failed = fixed.total_tests - fixed.passed_tests
    execution_bonus = ctx.rules.execution_bonus_points if fixed.success else 0
    session.bug_results.append(BugResult(
        fixer_id=player_id,
        introducer_id=introducer_id,
        total_tests=fixed.total_tests,
        passed_tests=fixed.passed_tests,
        failed_tests=failed,
        fixed_bugs=fixed.passed_tests,
        unfixed_bugs=failed,
        execution_bonus=execution_bonus,
        baseline_passed_tests=baseline.passed_tests if baseline.success else None,
    ))
    session.submissions[player_id] = True
    logger.info(f"{player_id} fixed {introducer_id}: {fixed.passed_tests}/{fixed.total_tests}")

    data: dict[str, Any] = {
        "passedTests": fixed.passed_tests,
        "totalTests": fixed.total_tests,
        "testResults": [r.to_dict() for r in fixed.results],
        "executionBonus": execution_bonus,
    }
    if fixed.error:
        data["error"] = fixed.error
    return session, ActionResult(success=True, data=data)


async def leave(session: GameSession, command: Command, ctx: RoundContext) -> tuple[GameSession, ActionResult]:
    player_id = require_player(session, command)

    del session.players[player_id]
    for per_player in (
        session.current_code,
        session.original_code,
        session.blue_current_code,
        session.submissions,
        session.snippet_assignments,
        session.used_snippets,
    ):
        per_player.pop(player_id, None)

    logger.info(f"Player {player_id} left")
    return session, ActionResult(success=True)


TRANSITIONS: dict[Action, Transition] = {
    Action.START_RED: start_red,
    Action.UPDATE_CODE: update_code,
    Action.SUBMIT_RED: submit_red,
    Action.START_BLUE: start_blue,
    Action.SUBMIT_BLUE: submit_blue,
    Action.END_ROUND: end_round,
    Action.UPDATE_SCORE: update_score,
    Action.CONFIRM_SCORES: confirm_scores,
    Action.NEXT_ROUND: next_round,
    Action.PAUSE: toggle_pause,
    Action.END_GAME: end_game,
    Action.RESET: reset,
    Action.LEAVE: leave,
}
