from __future__ import annotations

from typing import Sequence, Tuple


def rank_entrants(distances: Sequence[int]) -> Tuple[int, ...]:
    """
    Returns the rank of every entrant (1 = furthest advanced).

    ``distances`` is indexed by entrant order. Equal distances keep entrant
    order, so the result is always a permutation of 1..N.
    """
    order = sorted(range(len(distances)), key=lambda idx: (-distances[idx], idx))
    ranks = [0] * len(distances)
    for rank, idx in enumerate(order, start=1):
        ranks[idx] = rank
    return tuple(ranks)


def leader_index(distances: Sequence[int]) -> int:
    if not distances:
        raise ValueError("Cannot pick a leader from an empty field.")
    return min(range(len(distances)), key=lambda idx: (-distances[idx], idx))
