"""
Race engine package: stat model, trajectory precomputation, live playback.

The simulator builds the whole race up front; the playback controller
replays it one turn per tick and layers the player's live inputs on top.
Rewards are resolved from the final live standings.
"""

from .data_models import (  # noqa: F401
    EntrantResult,
    Formation,
    HorseSnapshot,
    LiveSessionState,
    Pace,
    RaceDefinition,
    RaceGrade,
    RaceOutcome,
    RaceSetupError,
    StrategySelection,
    TurnSnapshot,
)
from .performance import age_performance_factor, apply_strategy, calculate_speed, entrant_speed  # noqa: F401
from .playback import LivePlaybackController, RaceMode, run_playback  # noqa: F401
from .rewards import RewardPayout, RewardResolver, entry_fee, fans_for_rank, prize_for_rank  # noqa: F401
from .standings import rank_entrants  # noqa: F401
from .telemetry import LiveTelemetryFrame, TelemetryCollector  # noqa: F401
from .trajectory import TrajectorySimulator, simulate_race  # noqa: F401

__all__ = [
    "EntrantResult",
    "Formation",
    "HorseSnapshot",
    "LiveSessionState",
    "Pace",
    "RaceDefinition",
    "RaceGrade",
    "RaceOutcome",
    "RaceSetupError",
    "StrategySelection",
    "TurnSnapshot",
    "age_performance_factor",
    "apply_strategy",
    "calculate_speed",
    "entrant_speed",
    "LivePlaybackController",
    "RaceMode",
    "run_playback",
    "RewardPayout",
    "RewardResolver",
    "entry_fee",
    "fans_for_rank",
    "prize_for_rank",
    "rank_entrants",
    "LiveTelemetryFrame",
    "TelemetryCollector",
    "TrajectorySimulator",
    "simulate_race",
]
