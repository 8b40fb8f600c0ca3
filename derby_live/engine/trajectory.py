from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from derby_live.config import get_config

from .data_models import (
    EntrantResult,
    HorseSnapshot,
    RaceDefinition,
    RaceOutcome,
    RaceSetupError,
    StrategySelection,
    TurnSnapshot,
)
from .performance import entrant_speed
from .rewards import RewardResolver
from .standings import rank_entrants

FLAVOR_EVENTS = (
    "A gust of wind sweeps across the field!",
    "The crowd roars from the grandstand!",
    "The pack is bunching up on the rail!",
    "The pace is picking up!",
    "A horse stumbles but recovers!",
)

HorseRoster = Union[Mapping[str, HorseSnapshot], Sequence[HorseSnapshot]]


def finish_time(distance_covered: int, race_distance: int) -> str:
    """Nominal finish time: the base time stretched by the share of the course covered."""
    if distance_covered <= 0 or race_distance <= 0:
        return "--:--"
    base_time = float(get_config("race_simulation.base_finish_seconds", 120.0))
    efficiency = min(1.0, distance_covered / race_distance)
    total_seconds = int(base_time / efficiency)
    return f"{total_seconds // 60}:{total_seconds % 60:02d}"


def build_outcome(
    race: RaceDefinition,
    horses: Mapping[str, HorseSnapshot],
    final_turn: TurnSnapshot,
    player_id: str,
    commentary: Sequence[str] = (),
    resolver: Optional[RewardResolver] = None,
) -> RaceOutcome:
    results = []
    for rank, horse_id, distance in final_turn.standings():
        results.append(
            EntrantResult(
                horse_id=horse_id,
                name=horses[horse_id].name,
                rank=rank,
                distance=distance,
                time=finish_time(distance, race.distance),
            )
        )
    player_rank = final_turn.rank_of(player_id)
    payout = (resolver or RewardResolver()).resolve(race, player_rank)
    return RaceOutcome(
        race_id=race.race_id,
        results=tuple(results),
        player_id=player_id,
        player_rank=player_rank,
        prize_money=payout.prize_money,
        fan_gain=payout.fan_gain,
        commentary=tuple(commentary),
    )


def roster_by_id(horses: HorseRoster) -> Dict[str, HorseSnapshot]:
    if isinstance(horses, Mapping):
        return dict(horses)
    return {horse.horse_id: horse for horse in horses}


class TrajectorySimulator:
    """
    Precomputes a whole race, turn by turn, before any playback starts.

    The returned turns are final as far as the simulator is concerned;
    live adjustments happen in a separate overlay during playback.
    """

    def __init__(
        self,
        race: RaceDefinition,
        horses: HorseRoster,
        player_id: str,
        strategy: StrategySelection,
        rng: Optional[np.random.Generator] = None,
        verbose: bool = False,
    ) -> None:
        self.race = race
        self.horses = roster_by_id(horses)
        self.player_id = player_id
        self.strategy = strategy
        self.rng = rng if rng is not None else np.random.default_rng()
        self.verbose = verbose

        cfg = get_config("race_simulation", {}) or {}
        self.jitter_min = float(cfg.get("jitter_min", 0.8))
        self.jitter_max = float(cfg.get("jitter_max", 1.2))
        self.event_chance = float(cfg.get("event_chance", 0.1))

    def _check_preconditions(self) -> None:
        self.race.validate(self.player_id)
        missing = [horse_id for horse_id in self.race.entrants if horse_id not in self.horses]
        if missing:
            raise RaceSetupError(f"No horse snapshot for entrant(s): {', '.join(missing)}")

    def _milestone_commentary(self, turn: int, total_turns: int, leader_name: str) -> str:
        # first matching checkpoint wins
        if turn == 1:
            return "And they're off!"
        if turn == total_turns // 4:
            return f"At the first quarter: {leader_name} takes the lead!"
        if turn == total_turns // 2:
            return f"Halfway point: {leader_name} is still in front!"
        if turn == (total_turns * 3) // 4:
            return f"Final quarter: {leader_name} leading into the home stretch!"
        if turn == total_turns:
            return f"{leader_name} crosses the finish line first!"
        return ""

    def _roll_event(self) -> Tuple[str, ...]:
        if self.rng.random() < self.event_chance:
            return (FLAVOR_EVENTS[int(self.rng.integers(len(FLAVOR_EVENTS)))],)
        return ()

    def _move(self, movement: int, stamina: int) -> Tuple[int, int]:
        """Returns (distance gained, stamina left) for one turn."""
        cost = movement // 2
        if stamina >= cost:
            return movement, stamina - cost
        return movement // 2, 0

    def simulate(self) -> Tuple[Tuple[TurnSnapshot, ...], RaceOutcome]:
        self._check_preconditions()

        entrant_ids = self.race.entrants
        runners = [self.horses[horse_id] for horse_id in entrant_ids]
        total_turns = self.race.total_turns

        distances: List[int] = [0] * len(runners)
        stamina: List[int] = [int(np.clip(horse.stamina, 0, 100)) for horse in runners]

        commentary: List[str] = [
            "The race is about to begin!",
            f"{len(runners)} horses are lined up at the starting gate.",
        ]
        turns: List[TurnSnapshot] = []

        if self.verbose:
            print(f"[Simulator] {self.race.name}: {self.race.distance}m, {len(runners)} runners, {total_turns} turns")

        for turn in range(1, total_turns + 1):
            for idx, horse in enumerate(runners):
                strategy = self.strategy if horse.horse_id == self.player_id else None
                speed = entrant_speed(horse, turn, total_turns, strategy)
                movement = int(speed * self.rng.uniform(self.jitter_min, self.jitter_max))
                gained, stamina[idx] = self._move(movement, stamina[idx])
                distances[idx] += gained

            ranks = rank_entrants(distances)
            leader = entrant_ids[ranks.index(1)]
            line = self._milestone_commentary(turn, total_turns, self.horses[leader].name)
            if line:
                commentary.append(line)

            turns.append(
                TurnSnapshot(
                    turn=turn,
                    entrant_ids=entrant_ids,
                    distances=tuple(distances),
                    ranks=ranks,
                    commentary=line,
                    events=self._roll_event(),
                )
            )

        trajectory = tuple(turns)
        outcome = build_outcome(self.race, self.horses, trajectory[-1], self.player_id, commentary)

        if self.verbose:
            print(f"[Simulator] Projected finish for {self.player_id}: rank {outcome.player_rank}")

        return trajectory, outcome


def simulate_race(
    race: RaceDefinition,
    horses: HorseRoster,
    player_id: str,
    strategy: StrategySelection,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[Tuple[TurnSnapshot, ...], RaceOutcome]:
    return TrajectorySimulator(race, horses, player_id, strategy, rng=rng).simulate()
