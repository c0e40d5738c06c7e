"""Scoring for BLUE round results.

Each passed test earns the fixer ``bug_fixed_points`` plus the execution
bonus; each failed test earns the introducer ``bug_survived_points``.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable

from cseg.game_engine.rounds.models import BugResult, GameRules, Player


@dataclass
class ScoreSummary:
    """Per-player breakdown of one round's scoring."""
    player_id: str
    fixed: int = 0
    unfixed: int = 0
    points_from_fixes: int = 0
    points_from_unfixed: int = 0

    @property
    def total(self) -> int:
        return self.points_from_fixes + self.points_from_unfixed

    def to_dict(self) -> dict:
        return {
            "playerId": self.player_id,
            "fixed": self.fixed,
            "unfixed": self.unfixed,
            "pointsFromFixes": self.points_from_fixes,
            "pointsFromUnfixed": self.points_from_unfixed,
            "total": self.total,
        }


class ScoringEngine:
    """Turns judged BLUE results into score deltas."""

    def __init__(self, rules: GameRules):
        self.rules = rules

    def fixer_points(self, result: BugResult) -> int:
        return result.fixed_bugs * self.rules.bug_fixed_points + result.execution_bonus

    def introducer_points(self, result: BugResult) -> int:
        return result.unfixed_bugs * self.rules.bug_survived_points

    def score_deltas(self, results: Iterable[BugResult]) -> dict[str, int]:
        """Sum the points owed to each player without touching scores."""
        deltas: dict[str, int] = defaultdict(int)
        for result in results:
            deltas[result.fixer_id] += self.fixer_points(result)
            deltas[result.introducer_id] += self.introducer_points(result)
        return dict(deltas)

    def apply(self, results: Iterable[BugResult], players: dict[str, Player]) -> dict[str, int]:
        """Add the deltas to player scores. Players who left are skipped.

        Returns the deltas actually applied.
        """
        applied = {}
        for player_id, delta in self.score_deltas(results).items():
            player = players.get(player_id)
            if player is None:
                continue
            player.score += delta
            applied[player_id] = delta
        return applied

    def summarize(self, results: Iterable[BugResult]) -> dict[str, ScoreSummary]:
        summaries: dict[str, ScoreSummary] = {}
        for result in results:
            fixer = summaries.setdefault(result.fixer_id, ScoreSummary(result.fixer_id))
            fixer.fixed += result.fixed_bugs
            fixer.points_from_fixes += self.fixer_points(result)

            introducer = summaries.setdefault(result.introducer_id, ScoreSummary(result.introducer_id))
            introducer.unfixed += result.unfixed_bugs
            introducer.points_from_unfixed += self.introducer_points(result)
        return summaries
