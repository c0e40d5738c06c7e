"""Leaderboard ranking with shared ranks for tied scores."""

from typing import Iterable, Optional

from cseg.game_engine.rounds.models import LeaderboardEntry, LeaderboardSnapshot, Player


def generate_leaderboard(players: Iterable[Player]) -> list[LeaderboardEntry]:
    """Rank players by score, highest first. Ties share a rank (1, 1, 3)."""
    ordered = sorted(players, key=lambda p: p.score, reverse=True)

    entries: list[LeaderboardEntry] = []
    rank = 1
    for index, player in enumerate(ordered):
        if index > 0 and ordered[index - 1].score != player.score:
            rank = index + 1
        entries.append(LeaderboardEntry(rank=rank, id=player.id, name=player.name, score=player.score))
    return entries


def create_snapshot(players: Iterable[Player], round_number: int) -> LeaderboardSnapshot:
    return LeaderboardSnapshot(round=round_number, entries=generate_leaderboard(players))


def get_player_rank(leaderboard: list[LeaderboardEntry], player_id: str) -> Optional[int]:
    for entry in leaderboard:
        if entry.id == player_id:
            return entry.rank
    return None


def get_position_changes(
    previous: list[LeaderboardEntry],
    current: list[LeaderboardEntry],
) -> list[dict]:
    """Rank movement per player; positive ``change`` means moved up.

    Players missing from ``previous`` are treated as coming from last place.
    """
    previous_ranks = {e.id: e.rank for e in previous}
    changes = []
    for entry in current:
        previous_rank = previous_ranks.get(entry.id, len(current))
        changes.append({
            "id": entry.id,
            "name": entry.name,
            "previousRank": previous_rank,
            "currentRank": entry.rank,
            "change": previous_rank - entry.rank,
        })
    return changes
