from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import numpy as np

from derby_live.config import tick_seconds
from derby_live.engine import (
    Formation,
    HorseSnapshot,
    LivePlaybackController,
    Pace,
    RaceDefinition,
    RaceMode,
    RaceOutcome,
    RaceSetupError,
    StrategySelection,
    TelemetryCollector,
    TurnSnapshot,
    run_playback,
)
from derby_live.engine.performance import overall_rating
from derby_live.field import build_field
from derby_live.horse_name_generator import NameGenerator

FORMATION_CYCLE = (Formation.LEAD, Formation.DRAFT, Formation.MOUNT)
PACE_CYCLE = (Pace.FAST, Pace.EVEN, Pace.CONSERVE)


def eligible_races(races: Sequence[RaceDefinition], player: HorseSnapshot) -> List[RaceDefinition]:
    rating = overall_rating(player)
    return [race for race in races if rating >= race.min_rating and not race.is_full]


def _cycle(options, current, step):
    return options[(options.index(current) + step) % len(options)]


class RaceSession:
    """
    Race-day flow around the engine: pick a race, pick a strategy, pay the
    entry fee, race live, collect the result.

    Career bookkeeping is left to ``on_complete``, which receives the final
    outcome once the player leaves the result screen.
    """

    def __init__(
        self,
        player: HorseSnapshot,
        races: Sequence[RaceDefinition],
        money: int,
        rng: Optional[np.random.Generator] = None,
        names: Optional[NameGenerator] = None,
        on_complete: Optional[Callable[[RaceOutcome], None]] = None,
        verbose: bool = False,
    ) -> None:
        self.player = player
        self.races = eligible_races(races, player)
        self.money = int(money)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.names = names
        self.on_complete = on_complete
        self.verbose = verbose

        self.mode = RaceMode.SELECTING
        self.selected_index = 0
        self.strategy = StrategySelection()
        self.controller: Optional[LivePlaybackController] = None
        self.telemetry: Optional[TelemetryCollector] = None
        self.last_error: Optional[str] = None

    @property
    def selected_race(self) -> Optional[RaceDefinition]:
        if not self.races:
            return None
        return self.races[self.selected_index]

    # --- Selecting / Strategy / Confirming ---------------------------------

    def select_race(self, index: int) -> bool:
        if self.mode is not RaceMode.SELECTING or not 0 <= index < len(self.races):
            return False
        self.selected_index = index
        return True

    def open_strategy(self) -> bool:
        if self.mode is not RaceMode.SELECTING or not self.races:
            return False
        self.mode = RaceMode.STRATEGY
        return True

    def cycle_formation(self, step: int = 1) -> bool:
        if self.mode is not RaceMode.STRATEGY:
            return False
        self.strategy = StrategySelection(
            formation=_cycle(FORMATION_CYCLE, self.strategy.formation, step),
            pace=self.strategy.pace,
        )
        return True

    def cycle_pace(self, step: int = 1) -> bool:
        if self.mode is not RaceMode.STRATEGY:
            return False
        self.strategy = StrategySelection(
            formation=self.strategy.formation,
            pace=_cycle(PACE_CYCLE, self.strategy.pace, step),
        )
        return True

    def confirm_strategy(self) -> bool:
        if self.mode is not RaceMode.STRATEGY:
            return False
        self.mode = RaceMode.CONFIRMING
        return True

    def can_afford(self) -> bool:
        race = self.selected_race
        return race is not None and self.money >= race.entry_fee

    def enter_race(self, collect_telemetry: bool = False) -> bool:
        """Pays the entry fee and starts live playback. Stays on the confirm step on failure."""
        if self.mode is not RaceMode.CONFIRMING or not self.can_afford():
            return False

        race = self.selected_race
        self.last_error = None
        try:
            field_race, horses = build_field(race, self.player, names=self.names)
            telemetry = TelemetryCollector() if collect_telemetry else None
            controller = LivePlaybackController.start(
                field_race,
                horses,
                self.player.horse_id,
                self.strategy,
                rng=self.rng,
                telemetry=telemetry,
                verbose=self.verbose,
            )
        except RaceSetupError as exc:
            self.last_error = str(exc)
            print(f"[Session] Could not start {race.name}: {exc}")
            return False

        self.money -= race.entry_fee
        self.controller = controller
        self.telemetry = telemetry
        self.mode = RaceMode.RACING
        if self.verbose:
            print(f"[Session] Entered {race.name} for {race.entry_fee}; {self.money} left.")
        return True

    def back(self) -> bool:
        if self.mode in (RaceMode.STRATEGY, RaceMode.CONFIRMING):
            self.mode = RaceMode.SELECTING
            return True
        if self.mode is RaceMode.RESULT:
            return self.complete() is not None
        return False

    # --- Racing ------------------------------------------------------------

    def request_quit(self) -> bool:
        """Leaving is refused once the horses are running."""
        return self.mode is not RaceMode.RACING

    def handle_input(self, action: str) -> bool:
        if self.mode is not RaceMode.RACING or self.controller is None:
            return False
        if action == "left":
            return self.controller.move_lane(-1)
        if action == "right":
            return self.controller.move_lane(1)
        if action == "whip":
            return self.controller.use_whip()
        return False

    def _sync_mode(self) -> None:
        if self.controller is not None and self.controller.is_finished and self.mode is RaceMode.RACING:
            self.mode = RaceMode.RESULT

    def tick(self) -> Optional[TurnSnapshot]:
        if self.controller is None:
            return None
        snapshot = self.controller.tick()
        self._sync_mode()
        return snapshot

    async def play(
        self,
        interval: Optional[float] = None,
        on_tick: Optional[Callable[[TurnSnapshot], object]] = None,
    ) -> RaceOutcome:
        if self.controller is None:
            raise RuntimeError("No race in progress.")
        delay = tick_seconds() if interval is None else interval
        outcome = await run_playback(self.controller, interval=delay, on_tick=on_tick)
        self._sync_mode()
        return outcome

    # --- Result ------------------------------------------------------------

    @property
    def outcome(self) -> Optional[RaceOutcome]:
        return self.controller.outcome if self.controller else None

    def complete(self) -> Optional[RaceOutcome]:
        """Pays out, hands the outcome to the caller's bookkeeping and returns to race selection."""
        if self.mode is not RaceMode.RESULT or self.controller is None:
            return None
        outcome = self.controller.finalize()
        self.money += outcome.prize_money
        if self.on_complete is not None:
            self.on_complete(outcome)
        self.controller = None
        self.mode = RaceMode.SELECTING
        return outcome
