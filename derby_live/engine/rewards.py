from __future__ import annotations

from dataclasses import dataclass

from .data_models import ENTRY_FEES, RaceDefinition, RaceGrade

# Fixed payout policy. Downstream bookkeeping expects these exact numbers.
CONSOLATION_FANS = 25


@dataclass(frozen=True)
class RewardPayout:
    prize_money: int
    fan_gain: int


def prize_for_rank(prize: int, rank: int) -> int:
    if rank == 1:
        return prize
    if rank == 2:
        return prize // 2
    if rank == 3:
        return prize // 4
    if rank in (4, 5):
        return prize // 8
    return 0


def fans_for_rank(grade: int, rank: int) -> int:
    grade = int(grade)
    if rank == 1:
        return 1000 + grade * 500
    if rank == 2:
        return 500 + grade * 250
    if rank == 3:
        return 250 + grade * 100
    if rank in (4, 5):
        return 100 + grade * 50
    return CONSOLATION_FANS


def entry_fee(grade: RaceGrade) -> int:
    return ENTRY_FEES[RaceGrade(grade)]


class RewardResolver:
    """Turns a finishing rank into prize money and fan gain."""

    def resolve(self, race: RaceDefinition, rank: int) -> RewardPayout:
        if rank < 1:
            raise ValueError(f"Rank must be 1 or greater, got {rank}")
        return RewardPayout(
            prize_money=prize_for_rank(race.prize, rank),
            fan_gain=fans_for_rank(race.grade, rank),
        )


def resolve_rewards(race: RaceDefinition, rank: int) -> RewardPayout:
    return RewardResolver().resolve(race, rank)
