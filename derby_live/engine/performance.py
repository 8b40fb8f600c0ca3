from __future__ import annotations

from typing import Dict, Optional

from .data_models import Formation, HorseSnapshot, Pace, StrategySelection

# Race form by age: develops to a peak at five, then declines.
AGE_PERFORMANCE_FACTORS: Dict[int, float] = {
    2: 0.85,
    3: 0.95,
    4: 1.00,
    5: 1.02,
    6: 1.00,
    7: 0.98,
    8: 0.94,
    9: 0.88,
    10: 0.80,
}
VETERAN_FACTOR = 0.70
LATE_RACE_PROGRESS = 0.5
MIN_SPEED = 1


def age_performance_factor(age: int) -> float:
    if age in AGE_PERFORMANCE_FACTORS:
        return AGE_PERFORMANCE_FACTORS[age]
    if age > 10:
        return VETERAN_FACTOR
    return 1.0


def race_progress(turn: int, total_turns: int) -> float:
    if total_turns <= 0:
        raise ValueError("total_turns must be positive")
    return turn / total_turns


def calculate_speed(horse: HorseSnapshot, turn: int, total_turns: int) -> int:
    """
    Instantaneous speed of ``horse`` for one turn, before strategy.

    Speed, technique and mental add up, fatigue subtracts; the sum is scaled
    by the age factor and, past the halfway mark, by stamina / 100.
    """
    speed = horse.speed // 5 + horse.technique // 20 + horse.mental // 25 - horse.fatigue // 10

    stamina_factor = 1.0
    if race_progress(turn, total_turns) > LATE_RACE_PROGRESS:
        stamina_factor = horse.stamina / 100.0

    speed = int(speed * stamina_factor * age_performance_factor(horse.age))
    return max(MIN_SPEED, speed)


def formation_multiplier(formation: Formation, progress: float) -> float:
    if formation is Formation.LEAD:
        return 1.2 if progress < 0.3 else 1.0
    if formation is Formation.DRAFT:
        return 1.3 if progress > 0.7 else 0.9
    if formation is Formation.MOUNT:
        return 1.4 if progress > 0.8 else 0.8
    raise ValueError(f"Unknown formation: {formation!r}")


def pace_multiplier(pace: Pace, progress: float) -> float:
    if pace is Pace.FAST:
        return 1.2 if progress < 0.5 else 0.8
    if pace is Pace.EVEN:
        return 1.0
    if pace is Pace.CONSERVE:
        return 1.1 if progress > 0.6 else 0.9
    raise ValueError(f"Unknown pace: {pace!r}")


def apply_strategy(speed: int, strategy: StrategySelection, turn: int, total_turns: int) -> int:
    """Second stage for the player's horse: formation and pace both apply."""
    progress = race_progress(turn, total_turns)
    multiplier = formation_multiplier(strategy.formation, progress) * pace_multiplier(strategy.pace, progress)
    return max(MIN_SPEED, int(speed * multiplier))


def entrant_speed(
    horse: HorseSnapshot,
    turn: int,
    total_turns: int,
    strategy: Optional[StrategySelection] = None,
) -> int:
    speed = calculate_speed(horse, turn, total_turns)
    if strategy is not None:
        speed = apply_strategy(speed, strategy, turn, total_turns)
    return speed


def overall_rating(horse: HorseSnapshot) -> int:
    """Mean of the trainable stats, age adjusted; never below a tenth of the base."""
    base = (horse.stamina + horse.speed + horse.technique + horse.mental) // 4
    adjusted = int(base * age_performance_factor(horse.age))
    return max(adjusted, base // 10)
