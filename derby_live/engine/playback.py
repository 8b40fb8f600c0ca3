from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from derby_live.config import get_config, tick_seconds

from .data_models import (
    HorseSnapshot,
    LiveSessionState,
    RaceDefinition,
    RaceOutcome,
    RaceSetupError,
    StrategySelection,
    TurnSnapshot,
)
from .telemetry import LiveTelemetryFrame, TelemetryCollector
from .trajectory import HorseRoster, TrajectorySimulator, roster_by_id, build_outcome

DEFAULT_TURN_LANE_BONUS = (5, 3, 0, -2, -4)
DEFAULT_STRAIGHT_LANE_BONUS = (-2, 0, 3, 0, -2)


class RaceMode(Enum):
    SELECTING = "selecting"
    STRATEGY = "strategy"
    CONFIRMING = "confirming"
    RACING = "racing"
    RESULT = "result"


@dataclass(frozen=True)
class PlayerAdjustment:
    """Overlay entry: the player's distance for one turn after live modifiers."""

    turn: int
    base_distance: int
    distance: int
    events: Tuple[str, ...] = ()


def _live_config() -> Dict[str, Any]:
    config = get_config("live_race", {})
    return config if isinstance(config, dict) else {}


class LivePlaybackController:
    """
    Plays a precomputed trajectory back one turn per tick.

    The base trajectory is never touched. Whip, lane and disobedience
    effects land in a per-turn overlay on the player's row, and every
    rendered turn is re-ranked from scratch.
    """

    def __init__(
        self,
        race: RaceDefinition,
        horses: HorseRoster,
        player_id: str,
        trajectory: Sequence[TurnSnapshot],
        rng: Optional[np.random.Generator] = None,
        telemetry: Optional[TelemetryCollector] = None,
        commentary: Sequence[str] = (),
        verbose: bool = False,
    ) -> None:
        if not trajectory:
            raise RaceSetupError("Cannot play back an empty trajectory.")
        if player_id not in trajectory[0].entrant_ids:
            raise RaceSetupError(f"Player horse {player_id} is not part of the trajectory.")

        self.race = race
        self.horses: Dict[str, HorseSnapshot] = roster_by_id(horses)
        self.player_id = player_id
        self.player = self.horses[player_id]
        self._trajectory: Tuple[TurnSnapshot, ...] = tuple(trajectory)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.telemetry = telemetry
        self.commentary = tuple(commentary)
        self.verbose = verbose

        cfg = _live_config()
        whip_cfg = cfg.get("whip", {})
        self._disobedience_cfg = cfg.get("disobedience", {})
        lane_cfg = cfg.get("lane_bonus", {})

        self.lane_count = int(cfg.get("lane_count", 5))
        self.stamina_regen = int(cfg.get("stamina_regen", 2))
        self.max_stamina = int(cfg.get("start_stamina", 100))
        self.whip_cost = int(whip_cfg.get("stamina_cost", 25))
        self.whip_cooldown = int(whip_cfg.get("cooldown_turns", 3))
        self.whip_window = int(whip_cfg.get("boost_window", 2))
        self.whip_boost_ratio = float(whip_cfg.get("boost_ratio", 0.1))
        self.penalty_ratio = float(self._disobedience_cfg.get("penalty_ratio", 0.15))
        self.turn_lane_bonus = tuple(lane_cfg.get("turn", DEFAULT_TURN_LANE_BONUS))
        self.straight_lane_bonus = tuple(lane_cfg.get("straight", DEFAULT_STRAIGHT_LANE_BONUS))

        start_lane = int(np.clip(int(cfg.get("start_lane", 2)), 0, self.lane_count - 1))
        self.state = LiveSessionState(lane=start_lane, live_stamina=self.max_stamina)
        self.mode = RaceMode.RACING
        self.current_turn = 0

        self._overlay: Dict[int, PlayerAdjustment] = {}
        self._announce_disobedience = False
        self._outcome: Optional[RaceOutcome] = None

    @classmethod
    def start(
        cls,
        race: RaceDefinition,
        horses: HorseRoster,
        player_id: str,
        strategy: StrategySelection,
        rng: Optional[np.random.Generator] = None,
        telemetry: Optional[TelemetryCollector] = None,
        verbose: bool = False,
    ) -> "LivePlaybackController":
        """Runs the simulator to completion, then returns a controller ready for its first tick."""
        rng = rng if rng is not None else np.random.default_rng()
        trajectory, projected = TrajectorySimulator(
            race, horses, player_id, strategy, rng=rng, verbose=verbose
        ).simulate()
        return cls(
            race,
            horses,
            player_id,
            trajectory,
            rng=rng,
            telemetry=telemetry,
            commentary=projected.commentary,
            verbose=verbose,
        )

    # --- Views -------------------------------------------------------------

    @property
    def total_turns(self) -> int:
        return len(self._trajectory)

    @property
    def base_trajectory(self) -> Tuple[TurnSnapshot, ...]:
        return self._trajectory

    @property
    def is_finished(self) -> bool:
        return self.mode is RaceMode.RESULT

    @property
    def schedule_next(self) -> bool:
        return self.mode is RaceMode.RACING

    def adjustment_for(self, turn: int) -> Optional[PlayerAdjustment]:
        return self._overlay.get(turn)

    def snapshot_for(self, turn: int) -> TurnSnapshot:
        if not 1 <= turn <= self.total_turns:
            raise IndexError(f"Turn {turn} is outside 1..{self.total_turns}")
        base = self._trajectory[turn - 1]
        adjustment = self._overlay.get(turn)
        if adjustment is None:
            return base
        return base.with_player_distance(self.player_id, adjustment.distance, adjustment.events)

    @property
    def current_snapshot(self) -> Optional[TurnSnapshot]:
        if self.current_turn == 0:
            return None
        return self.snapshot_for(self.current_turn)

    def live_trajectory(self) -> Tuple[TurnSnapshot, ...]:
        """Every turn played so far, overlay applied."""
        return tuple(self.snapshot_for(turn) for turn in range(1, self.current_turn + 1))

    # --- Modifiers ---------------------------------------------------------

    def is_turn_section(self, turn: int) -> bool:
        """Bends are the first and last quarter of the race, inclusive."""
        progress = turn / self.total_turns
        return 0.0 <= progress <= 0.25 or 0.75 <= progress <= 1.0

    def lane_bonus(self, turn: int, lane: int) -> int:
        table = self.turn_lane_bonus if self.is_turn_section(turn) else self.straight_lane_bonus
        return int(table[lane])

    def _whip_active(self, turn: int) -> bool:
        last = self.state.last_whip_turn
        return last > 0 and turn - last <= self.whip_window

    def _apply_modifiers(self, turn: int) -> PlayerAdjustment:
        base_distance = self._trajectory[turn - 1].distance_of(self.player_id)
        distance = base_distance
        events: List[str] = []

        if self._whip_active(turn):
            distance += int(distance * self.whip_boost_ratio)
            if turn - self.state.last_whip_turn == 1:
                events.append("Your horse surges forward from the whip!")

        if self.state.lane_chosen:
            bonus = self.lane_bonus(turn, self.state.lane)
            distance += bonus
            if self.is_turn_section(turn) and bonus > 0:
                events.append(f"Inner lane advantage! +{bonus} in the turn!")
            elif self.is_turn_section(turn) and bonus < 0:
                events.append(f"Outside lane disadvantage! {bonus} in the turn.")

        if self.state.disobedient:
            distance -= int(distance * self.penalty_ratio)
            if self._announce_disobedience:
                events.append("Your horse is fighting your commands!")
                self._announce_disobedience = False

        return PlayerAdjustment(
            turn=turn,
            base_distance=base_distance,
            distance=max(0, distance),
            events=tuple(events),
        )

    def _update_obedience(self) -> None:
        if not self.state.disobedient:
            return
        self.state.disobedience_remaining -= 1
        if self.state.disobedience_remaining <= 0:
            self.state.disobedience_remaining = 0
            self.state.disobedient = False
            if self.verbose:
                print(f"[Playback] {self.player.name} is listening again (turn {self.current_turn}).")

    def _regenerate_stamina(self) -> None:
        self.state.live_stamina = int(
            np.clip(self.state.live_stamina + self.stamina_regen, 0, self.max_stamina)
        )

    # --- Tick --------------------------------------------------------------

    def tick(self) -> Optional[TurnSnapshot]:
        """
        Advances playback by one turn and returns the rendered turn.

        Ticks that arrive after the race is over are ignored and return None.
        """
        if self.mode is not RaceMode.RACING:
            return None

        self.current_turn = min(self.current_turn + 1, self.total_turns)
        turn = self.current_turn

        adjustment = self._apply_modifiers(turn)
        if adjustment.distance != adjustment.base_distance or adjustment.events:
            self._overlay[turn] = adjustment
        snapshot = self.snapshot_for(turn)

        self._update_obedience()
        self._regenerate_stamina()
        self._record_frame(snapshot, adjustment)

        if self.verbose:
            print(
                f"[Playback] Turn {turn}/{self.total_turns}: {self.player.name} "
                f"rank {snapshot.rank_of(self.player_id)} at {snapshot.distance_of(self.player_id)}m"
            )

        if turn >= self.total_turns:
            self.mode = RaceMode.RESULT
            self._outcome = build_outcome(
                self.race, self.horses, snapshot, self.player_id, self.commentary
            )
            if self.verbose:
                print(f"[Playback] Finished {self._outcome.player_rank} of {len(snapshot.entrant_ids)}.")
        return snapshot

    def _record_frame(self, snapshot: TurnSnapshot, adjustment: PlayerAdjustment) -> None:
        if self.telemetry is None:
            return
        self.telemetry.record_frame(
            LiveTelemetryFrame(
                turn=snapshot.turn,
                mode=self.mode.value,
                lane=self.state.lane,
                live_stamina=self.state.live_stamina,
                whip_uses=self.state.whip_uses,
                disobedient=self.state.disobedient,
                disobedience_remaining=self.state.disobedience_remaining,
                base_distance=adjustment.base_distance,
                distance=snapshot.distance_of(self.player_id),
                rank=snapshot.rank_of(self.player_id),
                standings=snapshot.standings(),
                events=list(snapshot.events),
            )
        )

    # --- Player input ------------------------------------------------------

    def disobedience_chance(self) -> float:
        cfg = self._disobedience_cfg
        horse = self.player
        chance = float(cfg.get("base_chance", 0.10))
        chance += float(cfg.get("fatigue_weight", 0.003)) * horse.fatigue
        chance += float(cfg.get("morale_weight", 0.004)) * max(0, 50 - horse.morale)
        chance += float(cfg.get("mental_weight", 0.004)) * max(0, 50 - horse.mental)
        chance += float(cfg.get("whip_escalation", 0.05)) * max(0, self.state.whip_uses - 1)
        return float(
            np.clip(chance, float(cfg.get("min_chance", 0.05)), float(cfg.get("max_chance", 0.80)))
        )

    def disobedience_duration(self) -> int:
        cfg = self._disobedience_cfg
        pivot = int(cfg.get("mental_pivot", 50))
        step = int(cfg.get("mental_step", 20))
        # truncates toward zero, so a weak mental stat lengthens the spell
        mental_bonus = int((self.player.mental - pivot) / step)
        return max(int(cfg.get("base_duration", 5)) - mental_bonus, int(cfg.get("min_duration", 2)))

    def can_whip(self) -> bool:
        if self.mode is not RaceMode.RACING or self.state.disobedient:
            return False
        if self.current_turn - self.state.last_whip_turn < self.whip_cooldown:
            return False
        return self.state.live_stamina >= self.whip_cost

    def use_whip(self) -> bool:
        """Returns False (and changes nothing) when the whip is not allowed right now."""
        if not self.can_whip():
            return False

        self.state.live_stamina -= self.whip_cost
        self.state.whip_uses += 1
        self.state.last_whip_turn = self.current_turn

        if self.rng.random() < self.disobedience_chance():
            self.state.disobedient = True
            self.state.disobedience_remaining = self.disobedience_duration()
            self._announce_disobedience = True
            if self.verbose:
                print(
                    f"[Playback] {self.player.name} turned disobedient for "
                    f"{self.state.disobedience_remaining} turns."
                )
        return True

    def move_lane(self, direction: int) -> bool:
        """Moves one lane inward (negative) or outward (positive)."""
        if self.mode is not RaceMode.RACING or self.state.disobedient or direction == 0:
            return False
        target = self.state.lane + (1 if direction > 0 else -1)
        if not 0 <= target < self.lane_count:
            return False
        self.state.lane = target
        self.state.lane_chosen = True
        return True

    # --- Result ------------------------------------------------------------

    @property
    def outcome(self) -> Optional[RaceOutcome]:
        return self._outcome

    def finalize(self) -> RaceOutcome:
        if self._outcome is None:
            raise RuntimeError("Race is still running; no outcome yet.")
        return self._outcome


TickCallback = Callable[[TurnSnapshot], Any]


async def run_playback(
    controller: LivePlaybackController,
    interval: Optional[float] = None,
    on_tick: Optional[TickCallback] = None,
) -> RaceOutcome:
    """
    Drives ``controller`` with a fixed-interval timer until the race ends.

    Sleeping between ticks is the only suspension point; input handlers run
    against the controller while this coroutine waits.
    """
    delay = tick_seconds() if interval is None else max(0.0, interval)
    while controller.schedule_next:
        await asyncio.sleep(delay)
        snapshot = controller.tick()
        if on_tick is not None and snapshot is not None:
            result = on_tick(snapshot)
            if inspect.isawaitable(result):
                await result
    return controller.finalize()
