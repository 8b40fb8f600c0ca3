from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from derby_live.config import get_config

from .standings import leader_index, rank_entrants

MAX_CONDITION = 100


class RaceSetupError(ValueError):
    """Raised when a race cannot start from the definition it was given."""


class Formation(Enum):
    """Where the player's horse positions itself in the field."""

    LEAD = "lead"
    DRAFT = "draft"
    MOUNT = "mount"


class Pace(Enum):
    """How the player's horse spends its energy over the race."""

    FAST = "fast"
    EVEN = "even"
    CONSERVE = "conserve"


class RaceGrade(IntEnum):
    """Race tier; the integer value scales the payout tables."""

    MAIDEN = 0
    G3 = 1
    G2 = 2
    G1 = 3
    GI = 4


ENTRY_FEES = {
    RaceGrade.MAIDEN: 100,
    RaceGrade.G3: 300,
    RaceGrade.G2: 500,
    RaceGrade.G1: 1000,
    RaceGrade.GI: 2000,
}


def _clamp_condition(value: Any) -> int:
    return int(np.clip(int(value), 0, MAX_CONDITION))


@dataclass(frozen=True)
class HorseSnapshot:
    """Read-only copy of a horse taken when the race starts."""

    horse_id: str
    name: str
    speed: int
    technique: int
    mental: int
    stamina: int
    fatigue: int = 0
    age: int = 3
    morale: int = MAX_CONDITION
    breed: str = ""

    def __post_init__(self) -> None:
        for stat in ("speed", "technique", "mental", "stamina"):
            object.__setattr__(self, stat, max(0, int(getattr(self, stat))))
        object.__setattr__(self, "fatigue", _clamp_condition(self.fatigue))
        object.__setattr__(self, "morale", _clamp_condition(self.morale))
        object.__setattr__(self, "age", int(self.age))

    @classmethod
    def from_mapping(cls, record: Mapping[str, Any]) -> "HorseSnapshot":
        """Captures an external horse record (e.g. a loaded save entry)."""
        try:
            return cls(
                horse_id=str(record["id"] if "id" in record else record["horse_id"]),
                name=str(record.get("name", "")),
                speed=record["speed"],
                technique=record["technique"],
                mental=record["mental"],
                stamina=record["stamina"],
                fatigue=record.get("fatigue", 0),
                age=record.get("age", 3),
                morale=record.get("morale", MAX_CONDITION),
                breed=str(record.get("breed", "")),
            )
        except KeyError as exc:
            raise ValueError(f"Horse record is missing field {exc}") from exc


@dataclass(frozen=True)
class StrategySelection:
    formation: Formation = Formation.DRAFT
    pace: Pace = Pace.EVEN


@dataclass(frozen=True)
class RaceDefinition:
    race_id: str
    name: str
    distance: int
    grade: RaceGrade = RaceGrade.MAIDEN
    prize: int = 0
    capacity: int = 16
    min_rating: int = 0
    entrants: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "grade", RaceGrade(self.grade))
        object.__setattr__(self, "entrants", tuple(self.entrants))

    @property
    def total_turns(self) -> int:
        per_turn = int(get_config("race_simulation.meters_per_turn", 100))
        min_turns = int(get_config("race_simulation.min_turns", 10))
        return max(min_turns, self.distance // per_turn)

    @property
    def entry_fee(self) -> int:
        return ENTRY_FEES[self.grade]

    @property
    def is_full(self) -> bool:
        return len(self.entrants) >= self.capacity

    def with_entrant(self, horse_id: str) -> "RaceDefinition":
        """Returns a copy with ``horse_id`` appended; full races and repeats are left alone."""
        if self.is_full or horse_id in self.entrants:
            return self
        return replace(self, entrants=self.entrants + (horse_id,))

    def validate(self, player_id: Optional[str] = None) -> None:
        if self.distance <= 0:
            raise RaceSetupError(f"Race {self.race_id} has non-positive distance {self.distance}.")
        if not self.entrants:
            raise RaceSetupError(f"Race {self.race_id} has no entrants.")
        if len(self.entrants) > self.capacity:
            raise RaceSetupError(
                f"Race {self.race_id} has {len(self.entrants)} entrants but capacity {self.capacity}."
            )
        if len(set(self.entrants)) != len(self.entrants):
            raise RaceSetupError(f"Race {self.race_id} lists an entrant more than once.")
        if player_id is not None and player_id not in self.entrants:
            raise RaceSetupError(f"Player horse {player_id} is not entered in race {self.race_id}.")


@dataclass(frozen=True)
class TurnSnapshot:
    """
    Standings after one turn.

    ``distances`` and ``ranks`` are parallel to ``entrant_ids`` (entrant
    order), which is also the tie-break order.
    """

    turn: int
    entrant_ids: Tuple[str, ...]
    distances: Tuple[int, ...]
    ranks: Tuple[int, ...]
    commentary: str = ""
    events: Tuple[str, ...] = ()

    def index_of(self, horse_id: str) -> int:
        try:
            return self.entrant_ids.index(horse_id)
        except ValueError as exc:
            raise KeyError(f"Horse {horse_id} is not in this race.") from exc

    def distance_of(self, horse_id: str) -> int:
        return self.distances[self.index_of(horse_id)]

    def rank_of(self, horse_id: str) -> int:
        return self.ranks[self.index_of(horse_id)]

    @property
    def leader_id(self) -> str:
        return self.entrant_ids[leader_index(self.distances)]

    def standings(self) -> List[Tuple[int, str, int]]:
        """(rank, horse_id, distance) rows, leader first."""
        rows = zip(self.ranks, self.entrant_ids, self.distances)
        return sorted(rows)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "distances": dict(zip(self.entrant_ids, self.distances)),
            "positions": dict(zip(self.entrant_ids, self.ranks)),
            "commentary": self.commentary,
            "events": list(self.events),
        }

    def with_player_distance(
        self, horse_id: str, distance: int, extra_events: Sequence[str] = ()
    ) -> "TurnSnapshot":
        """New snapshot with one entrant's distance replaced and every rank re-derived."""
        idx = self.index_of(horse_id)
        distances = list(self.distances)
        distances[idx] = max(0, int(distance))
        return replace(
            self,
            distances=tuple(distances),
            ranks=rank_entrants(distances),
            events=self.events + tuple(extra_events),
        )


@dataclass(frozen=True)
class EntrantResult:
    horse_id: str
    name: str
    rank: int
    distance: int
    time: str


@dataclass(frozen=True)
class RaceOutcome:
    race_id: str
    results: Tuple[EntrantResult, ...]
    player_id: str
    player_rank: int
    prize_money: int
    fan_gain: int
    commentary: Tuple[str, ...] = ()

    @property
    def winner(self) -> EntrantResult:
        return self.results[0]

    @property
    def player_result(self) -> EntrantResult:
        for result in self.results:
            if result.horse_id == self.player_id:
                return result
        raise KeyError(self.player_id)

    @property
    def finish_time(self) -> str:
        return self.player_result.time


@dataclass
class LiveSessionState:
    """Player-only mutable state, created when playback starts."""

    lane: int = 2
    lane_chosen: bool = False
    live_stamina: int = MAX_CONDITION
    whip_uses: int = 0
    last_whip_turn: int = 0
    disobedient: bool = False
    disobedience_remaining: int = 0
