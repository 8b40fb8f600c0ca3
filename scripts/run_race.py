"""
Utility script to run a single live race from the command line.

Usage:
    python scripts/run_race.py --distance 1600 --grade G3 --prize 8000 \
        --formation draft --pace even --whip-at 5 --whip-at 11 --lane 0 --seed 7

Inputs are scripted: lane moves happen before the first tick, whips fire on
the listed turns. Use --dump to save the per-turn telemetry as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

import numpy as np

# Ensure repo root is on sys.path when script is executed from anywhere
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.append(REPO_ROOT)

from derby_live.engine import (  # noqa: E402
    HorseSnapshot,
    LivePlaybackController,
    RaceDefinition,
    StrategySelection,
    TelemetryCollector,
    run_playback,
)
from derby_live.field import build_field  # noqa: E402
from derby_live.horse_name_generator import NameGenerator  # noqa: E402
from derby_live.labels import (  # noqa: E402
    GRADE_LABELS,
    ordinal,
    parse_formation,
    parse_grade,
    parse_pace,
    strategy_label,
)


def _player_horse(args) -> HorseSnapshot:
    return HorseSnapshot(
        horse_id="player",
        name=args.name,
        speed=args.speed,
        technique=args.technique,
        mental=args.mental,
        stamina=args.stamina,
        fatigue=args.fatigue,
        age=args.age,
        morale=args.morale,
    )


def _print_turn(controller: LivePlaybackController, snapshot, silent: bool) -> None:
    if silent:
        return
    names = controller.horses
    print(f"\n-- Turn {snapshot.turn}/{controller.total_turns} --")
    for rank, horse_id, distance in snapshot.standings():
        marker = " *" if horse_id == controller.player_id else ""
        print(f"  {rank}. {names[horse_id].name:<24} {distance:>5}m{marker}")
    if snapshot.commentary:
        print(f"  >> {snapshot.commentary}")
    for event in snapshot.events:
        print(f"  !! {event}")


async def _race(args) -> int:
    rng = np.random.default_rng(args.seed)
    player = _player_horse(args)
    race = RaceDefinition(
        race_id="cli",
        name=args.race_name,
        distance=args.distance,
        grade=parse_grade(args.grade),
        prize=args.prize,
        capacity=args.capacity,
        min_rating=args.min_rating,
    )
    strategy = StrategySelection(formation=parse_formation(args.formation), pace=parse_pace(args.pace))
    race, horses = build_field(race, player, names=NameGenerator(seed=args.seed))

    telemetry = TelemetryCollector() if args.dump else None
    controller = LivePlaybackController.start(
        race, horses, player.horse_id, strategy, rng=rng, telemetry=telemetry, verbose=not args.silent
    )

    if not args.silent:
        print(f"{race.name} ({GRADE_LABELS[race.grade]}) {race.distance}m, strategy {strategy_label(strategy)}")

    start_lane = controller.state.lane
    if args.lane is not None:
        step = -1 if args.lane < start_lane else 1
        for _ in range(abs(args.lane - start_lane)):
            controller.move_lane(step)

    whip_turns = set(args.whip_at or [])

    def on_tick(snapshot):
        _print_turn(controller, snapshot, args.silent)
        if snapshot.turn in whip_turns:
            accepted = controller.use_whip()
            if not args.silent:
                print(f"  [whip] {'cracked' if accepted else 'refused'} (stamina {controller.state.live_stamina})")

    outcome = await run_playback(controller, interval=args.tick_seconds, on_tick=on_tick)

    print("\nFinish Order:")
    for result in outcome.results:
        marker = " <- you" if result.horse_id == outcome.player_id else ""
        print(f"{result.rank}. {result.name} ({result.time}){marker}")
    print(
        f"\nFinished {ordinal(outcome.player_rank)}: prize {outcome.prize_money}, fans +{outcome.fan_gain}"
    )

    if args.dump:
        path = Path(args.dump)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"race": race.name, "frames": telemetry.to_payload()}, f, indent=2)
        print(f"Saved {len(telemetry.frames)} telemetry frames to {path}")
    return outcome.player_rank


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a live Derby race with scripted rider input.")
    parser.add_argument("--race-name", default="Exhibition Stakes")
    parser.add_argument("--distance", type=int, default=1600)
    parser.add_argument("--grade", default="Maiden", help="Maiden, G3, G2, G1, GI or 0-4.")
    parser.add_argument("--prize", type=int, default=5000)
    parser.add_argument("--capacity", type=int, default=16)
    parser.add_argument("--min-rating", type=int, default=60)
    parser.add_argument("--formation", default="draft")
    parser.add_argument("--pace", default="even")
    parser.add_argument("--name", default="Your Horse")
    parser.add_argument("--speed", type=int, default=120)
    parser.add_argument("--technique", type=int, default=100)
    parser.add_argument("--mental", type=int, default=90)
    parser.add_argument("--stamina", type=int, default=110)
    parser.add_argument("--fatigue", type=int, default=10)
    parser.add_argument("--morale", type=int, default=90)
    parser.add_argument("--age", type=int, default=4)
    parser.add_argument("--lane", type=int, default=None, help="Steer to this lane (0 inner .. 4 outer) at the start.")
    parser.add_argument("--whip-at", type=int, action="append", help="Turn after which to use the whip.")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--tick-seconds", type=float, default=0.0)
    parser.add_argument("--dump", default=None, help="Write per-turn telemetry JSON here.")
    parser.add_argument("--silent", action="store_true", help="Only print the final result.")
    args = parser.parse_args()

    asyncio.run(_race(args))


if __name__ == "__main__":
    main()
