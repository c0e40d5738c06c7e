"""Snippet allocation for RED rounds and fixer assignment for BLUE rounds."""

import logging
import random
from typing import Sequence, TypeVar

from cseg.game_engine.snippets import Snippet

logger = logging.getLogger(__name__)

T = TypeVar("T")


def assign_snippets(
    player_ids: Sequence[str],
    snippets: Sequence[Snippet],
    used_snippets: dict[str, list[str]],
    rng: random.Random,
) -> dict[str, str]:
    """Pick a snippet for each player that they have never had before.

    Records every pick in ``used_snippets``. Players who have seen every
    snippet are skipped; the round goes on without them. Several players may
    get the same snippet in one round.
    """
    assignments: dict[str, str] = {}

    for player_id in player_ids:
        used = used_snippets.setdefault(player_id, [])
        available = [s for s in snippets if s.id not in used]

        if not available:
            logger.info(f"Player {player_id} has used all snippets")
            continue

        selected = rng.choice(available)
        assignments[player_id] = selected.id
        used.append(selected.id)

    return assignments


def is_derangement(original: Sequence[T], shuffled: Sequence[T]) -> bool:
    return all(a != b for a, b in zip(original, shuffled))


def derangement(
    items: Sequence[T],
    rng: random.Random,
    max_attempts: int = 100,
) -> list[T]:
    """Permute ``items`` so that no element stays in its position.

    Retries uniform shuffles up to ``max_attempts`` times, then falls back to
    rotating by one. Fewer than two items are returned unchanged.
    """
    result = list(items)
    if len(result) < 2:
        return result

    for _ in range(max_attempts):
        rng.shuffle(result)
        if is_derangement(items, result):
            return result

    logger.warning(f"No derangement after {max_attempts} shuffles, rotating instead")
    return list(items[1:]) + [items[0]]
