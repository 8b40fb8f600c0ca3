import numpy as np
import pytest

from derby_live.engine import (
    Formation,
    HorseSnapshot,
    Pace,
    RaceDefinition,
    RaceGrade,
    RaceSetupError,
    StrategySelection,
    TrajectorySimulator,
    rank_entrants,
    simulate_race,
)
from derby_live.engine.trajectory import FLAVOR_EVENTS, finish_time


def _field(count=8):
    horses = [
        HorseSnapshot(
            horse_id=f"h{i}",
            name=f"Runner {i}",
            speed=60 + 10 * i,
            technique=50 + 5 * i,
            mental=40 + 5 * i,
            stamina=70 + 5 * i,
            fatigue=i * 3,
            age=3 + i % 4,
        )
        for i in range(count)
    ]
    return {horse.horse_id: horse for horse in horses}


def _race(distance=1600, entrants=None, **kwargs):
    if entrants is None:
        entrants = tuple(f"h{i}" for i in range(8))
    return RaceDefinition(
        race_id="r1",
        name="Spring Mile",
        distance=distance,
        grade=RaceGrade.G3,
        prize=8000,
        entrants=entrants,
        **kwargs,
    )


def _simulate(seed=7, race=None, horses=None, strategy=None):
    return simulate_race(
        race or _race(),
        horses or _field(),
        "h0",
        strategy or StrategySelection(),
        rng=np.random.default_rng(seed),
    )


@pytest.mark.parametrize("distance, turns", [(1600, 16), (900, 10), (2500, 25), (1050, 10)])
def test_turn_count_follows_distance(distance, turns):
    trajectory, _ = _simulate(race=_race(distance=distance))
    assert len(trajectory) == turns
    assert [snap.turn for snap in trajectory] == list(range(1, turns + 1))


@pytest.mark.parametrize("seed", [1, 2024])
def test_ranks_are_a_permutation_every_turn(seed):
    trajectory, _ = _simulate(seed=seed)
    for snapshot in trajectory:
        assert sorted(snapshot.ranks) == list(range(1, 9))


@pytest.mark.parametrize("seed", [3, 99])
def test_distances_never_decrease(seed):
    trajectory, _ = _simulate(seed=seed)
    for idx in range(8):
        covered = [snap.distances[idx] for snap in trajectory]
        assert covered == sorted(covered)
        assert covered[0] > 0


def test_ranks_order_by_distance_then_entrant_order():
    trajectory, _ = _simulate(seed=11)
    for snapshot in trajectory:
        for i in range(8):
            for j in range(i + 1, 8):
                if snapshot.distances[i] >= snapshot.distances[j]:
                    assert snapshot.ranks[i] < snapshot.ranks[j]
                else:
                    assert snapshot.ranks[i] > snapshot.ranks[j]


def test_rank_ties_keep_entrant_order():
    assert rank_entrants([10, 20, 10, 20]) == (3, 1, 4, 2)
    assert rank_entrants([0, 0, 0]) == (1, 2, 3)


def test_same_seed_gives_same_race():
    first, first_outcome = _simulate(seed=5)
    second, second_outcome = _simulate(seed=5)
    assert first == second
    assert first_outcome == second_outcome


def test_commentary_at_checkpoints():
    trajectory, outcome = _simulate(seed=8)
    commented = [snap.turn for snap in trajectory if snap.commentary]
    assert commented == [1, 4, 8, 12, 16]
    assert trajectory[0].commentary == "And they're off!"

    final = trajectory[-1]
    leader_name = f"Runner {final.leader_id[1:]}"
    assert final.commentary == f"{leader_name} crosses the finish line first!"
    assert outcome.commentary[:2] == (
        "The race is about to begin!",
        "8 horses are lined up at the starting gate.",
    )
    assert outcome.commentary[2:] == tuple(snap.commentary for snap in trajectory if snap.commentary)


def test_events_come_from_flavor_pool():
    for seed in range(5):
        trajectory, _ = _simulate(seed=seed)
        for snapshot in trajectory:
            assert len(snapshot.events) <= 1
            assert all(event in FLAVOR_EVENTS for event in snapshot.events)


def test_projected_outcome_matches_final_turn():
    trajectory, outcome = _simulate(seed=21)
    final = trajectory[-1]
    assert outcome.player_rank == final.rank_of("h0")
    assert [result.rank for result in outcome.results] == list(range(1, 9))
    assert outcome.winner.horse_id == final.leader_id
    assert outcome.prize_money in (8000, 4000, 2000, 1000, 0)


def test_player_strategy_changes_only_the_player():
    lead, _ = _simulate(seed=13, strategy=StrategySelection(Formation.LEAD, Pace.FAST))
    mount, _ = _simulate(seed=13, strategy=StrategySelection(Formation.MOUNT, Pace.CONSERVE))
    assert lead[0].distance_of("h0") > mount[0].distance_of("h0")
    for horse_id in ("h1", "h5", "h7"):
        assert lead[-1].distance_of(horse_id) == mount[-1].distance_of(horse_id)


def test_stamina_gate_halves_movement():
    sim = TrajectorySimulator(_race(), _field(), "h0", StrategySelection())
    assert sim._move(10, 20) == (10, 15)
    assert sim._move(10, 5) == (10, 0)
    assert sim._move(10, 4) == (5, 0)
    assert sim._move(9, 0) == (4, 0)


@pytest.mark.parametrize(
    "race, player_id",
    [
        (_race(distance=0), "h0"),
        (_race(entrants=()), "h0"),
        (_race(entrants=("h0", "h1", "h2"), capacity=2), "h0"),
        (_race(entrants=("h0", "h1", "h1")), "h0"),
        (_race(), "ghost"),
    ],
)
def test_invalid_setup_is_rejected(race, player_id):
    with pytest.raises(RaceSetupError):
        TrajectorySimulator(race, _field(), player_id, StrategySelection()).simulate()


def test_missing_snapshot_is_rejected():
    horses = _field()
    del horses["h4"]
    with pytest.raises(RaceSetupError):
        _simulate(horses=horses)


def test_finish_time():
    assert finish_time(1600, 1600) == "2:00"
    assert finish_time(2000, 1600) == "2:00"
    assert finish_time(800, 1600) == "4:00"
    assert finish_time(1200, 1600) == "2:40"
    assert finish_time(0, 1600) == "--:--"
