"""Unit tests for BLUE round scoring and the leaderboard."""

import pytest

from cseg.game_engine.rounds.leaderboard import (
    create_snapshot,
    generate_leaderboard,
    get_player_rank,
    get_position_changes,
)
from cseg.game_engine.rounds.models import BugResult, GameRules, Player
from cseg.game_engine.rounds.scoring import ScoringEngine


def bug_result(fixer: str, introducer: str, passed: int, total: int = 3, ran: bool = True) -> BugResult:
    return BugResult(
        fixer_id=fixer,
        introducer_id=introducer,
        total_tests=total,
        passed_tests=passed,
        failed_tests=total - passed,
        fixed_bugs=passed,
        unfixed_bugs=total - passed,
        execution_bonus=1 if ran else 0,
    )


class TestScoringEngine:
    """Tests for point calculation."""

    @pytest.fixture
    def scoring(self):
        return ScoringEngine(GameRules())

    def test_full_fix(self, scoring):
        result = bug_result("p_a", "p_b", passed=3)
        assert scoring.fixer_points(result) == 10
        assert scoring.introducer_points(result) == 0

    def test_partial_fix(self, scoring):
        result = bug_result("p_a", "p_b", passed=1)
        assert scoring.fixer_points(result) == 4
        assert scoring.introducer_points(result) == 4

    def test_no_bonus_when_code_did_not_run(self, scoring):
        result = bug_result("p_a", "p_b", passed=0, ran=False)
        assert scoring.fixer_points(result) == 0
        assert scoring.introducer_points(result) == 6

    def test_custom_point_values(self):
        scoring = ScoringEngine(GameRules(bug_fixed_points=5, bug_survived_points=1, execution_bonus_points=0))
        result = bug_result("p_a", "p_b", passed=2)
        assert scoring.fixer_points(result) == 11
        assert scoring.introducer_points(result) == 1

    def test_score_deltas_accumulate(self, scoring):
        results = [
            bug_result("p_a", "p_b", passed=3),
            bug_result("p_b", "p_c", passed=1),
            bug_result("p_c", "p_a", passed=0),
        ]

        assert scoring.score_deltas(results) == {"p_a": 10 + 6, "p_b": 0 + 4, "p_c": 4 + 1}

    def test_apply_skips_departed_players(self, scoring):
        players = {"p_a": Player(id="p_a", name="Alice", score=5)}

        applied = scoring.apply([bug_result("p_a", "p_gone", passed=2)], players)

        assert players["p_a"].score == 5 + 7
        assert applied == {"p_a": 7}

    def test_summarize(self, scoring):
        summaries = scoring.summarize([bug_result("p_a", "p_b", passed=2)])

        assert summaries["p_a"].fixed == 2
        assert summaries["p_a"].total == 7
        assert summaries["p_b"].unfixed == 1
        assert summaries["p_b"].to_dict()["pointsFromUnfixed"] == 2


class TestLeaderboard:
    """Tests for ranking."""

    def test_sorted_by_score(self):
        players = [
            Player(id="p_a", name="A", score=3),
            Player(id="p_b", name="B", score=9),
            Player(id="p_c", name="C", score=6),
        ]

        entries = generate_leaderboard(players)

        assert [e.id for e in entries] == ["p_b", "p_c", "p_a"]
        assert [e.rank for e in entries] == [1, 2, 3]

    def test_ties_share_rank(self):
        players = [
            Player(id="p_a", name="A", score=10),
            Player(id="p_b", name="B", score=10),
            Player(id="p_c", name="C", score=4),
        ]

        assert [e.rank for e in generate_leaderboard(players)] == [1, 1, 3]

    def test_get_player_rank(self):
        entries = generate_leaderboard([Player(id="p_a", name="A", score=1)])
        assert get_player_rank(entries, "p_a") == 1
        assert get_player_rank(entries, "p_x") is None

    def test_position_changes(self):
        a = Player(id="p_a", name="A", score=5)
        b = Player(id="p_b", name="B", score=2)
        before = create_snapshot([a, b], 1)

        b.score = 20
        after = create_snapshot([a, b], 2)

        changes = {c["id"]: c for c in get_position_changes(before.entries, after.entries)}
        assert changes["p_b"]["change"] == 1
        assert changes["p_a"]["change"] == -1
        assert after.round == 2

    def test_new_player_counts_from_last_place(self):
        before = create_snapshot([Player(id="p_a", name="A", score=1)], 1)
        after = create_snapshot(
            [Player(id="p_a", name="A", score=1), Player(id="p_b", name="B", score=9)],
            2,
        )

        changes = {c["id"]: c for c in get_position_changes(before.entries, after.entries)}
        assert changes["p_b"]["previousRank"] == 2
        assert changes["p_b"]["change"] == 1
