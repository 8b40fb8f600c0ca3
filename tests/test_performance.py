import pytest

from derby_live.engine import Formation, HorseSnapshot, Pace, StrategySelection
from derby_live.engine.performance import (
    age_performance_factor,
    apply_strategy,
    calculate_speed,
    entrant_speed,
    formation_multiplier,
    overall_rating,
    pace_multiplier,
)


def _horse(**overrides) -> HorseSnapshot:
    stats = dict(
        horse_id="h1",
        name="Copper Zephyr",
        speed=100,
        technique=60,
        mental=50,
        stamina=80,
        fatigue=20,
        age=4,
    )
    stats.update(overrides)
    return HorseSnapshot(**stats)


@pytest.mark.parametrize(
    "age, factor",
    [(2, 0.85), (3, 0.95), (4, 1.00), (5, 1.02), (6, 1.00), (7, 0.98), (8, 0.94), (9, 0.88), (10, 0.80), (11, 0.70), (25, 0.70), (1, 1.00)],
)
def test_age_factor_table(age, factor):
    assert age_performance_factor(age) == factor


def test_speed_combines_stats_before_halfway():
    # 100//5 + 60//20 + 50//25 - 20//10 = 20 + 3 + 2 - 2
    assert calculate_speed(_horse(), turn=1, total_turns=16) == 23


def test_speed_fades_with_stamina_after_halfway():
    horse = _horse()
    assert calculate_speed(horse, turn=8, total_turns=16) == 23  # exactly half: no fade yet
    assert calculate_speed(horse, turn=12, total_turns=16) == 18  # 23 * 0.8


def test_speed_scales_with_age():
    assert calculate_speed(_horse(age=2), turn=1, total_turns=16) == 19
    assert calculate_speed(_horse(age=5), turn=1, total_turns=16) == 23
    assert calculate_speed(_horse(age=12), turn=1, total_turns=16) == 16


def test_speed_never_drops_below_one():
    exhausted = _horse(speed=0, technique=0, mental=0, fatigue=100, stamina=0)
    assert calculate_speed(exhausted, turn=1, total_turns=10) == 1
    assert calculate_speed(exhausted, turn=10, total_turns=10) == 1


@pytest.mark.parametrize(
    "formation, progress, expected",
    [
        (Formation.LEAD, 0.29, 1.2),
        (Formation.LEAD, 0.3, 1.0),
        (Formation.DRAFT, 0.7, 0.9),
        (Formation.DRAFT, 0.71, 1.3),
        (Formation.MOUNT, 0.8, 0.8),
        (Formation.MOUNT, 0.81, 1.4),
    ],
)
def test_formation_buckets(formation, progress, expected):
    assert formation_multiplier(formation, progress) == expected


@pytest.mark.parametrize(
    "pace, progress, expected",
    [
        (Pace.FAST, 0.49, 1.2),
        (Pace.FAST, 0.5, 0.8),
        (Pace.EVEN, 0.1, 1.0),
        (Pace.EVEN, 0.95, 1.0),
        (Pace.CONSERVE, 0.6, 0.9),
        (Pace.CONSERVE, 0.61, 1.1),
    ],
)
def test_pace_buckets(pace, progress, expected):
    assert pace_multiplier(pace, progress) == expected


def test_every_strategy_pair_has_a_multiplier():
    for formation in Formation:
        for pace in Pace:
            for turn in range(1, 11):
                assert apply_strategy(47, StrategySelection(formation, pace), turn, 10) >= 1


def test_formation_and_pace_compose():
    early, late = 2, 9  # progress 0.2 and 0.9 of a 10-turn race
    assert apply_strategy(47, StrategySelection(Formation.LEAD, Pace.EVEN), early, 10) == 56
    assert apply_strategy(47, StrategySelection(Formation.DRAFT, Pace.FAST), early, 10) == 50
    assert apply_strategy(47, StrategySelection(Formation.MOUNT, Pace.CONSERVE), early, 10) == 33
    assert apply_strategy(47, StrategySelection(Formation.MOUNT, Pace.CONSERVE), late, 10) == 72


def test_strategy_stage_keeps_speed_positive():
    assert apply_strategy(1, StrategySelection(Formation.MOUNT, Pace.CONSERVE), 1, 10) == 1


def test_entrant_speed_only_applies_strategy_when_given():
    horse = _horse()
    assert entrant_speed(horse, 1, 16) == calculate_speed(horse, 1, 16)
    lead = StrategySelection(Formation.LEAD, Pace.EVEN)
    assert entrant_speed(horse, 1, 16, lead) == int(23 * 1.2)


def test_snapshot_clamps_condition_values():
    horse = _horse(fatigue=140, morale=-5, stamina=-3)
    assert horse.fatigue == 100
    assert horse.morale == 0
    assert horse.stamina == 0


def test_overall_rating_is_age_adjusted():
    horse = _horse(speed=100, stamina=100, technique=100, mental=100, age=10)
    assert overall_rating(horse) == 80
    assert overall_rating(_horse(speed=100, stamina=100, technique=100, mental=100, age=4)) == 100
