import asyncio
from unittest.mock import MagicMock

import numpy as np
import pytest

from derby_live.engine import Formation, HorseSnapshot, Pace, RaceDefinition, RaceGrade, RaceMode
from derby_live.horse_name_generator import NameGenerator
from derby_live.session import RaceSession, eligible_races


def _player():
    return HorseSnapshot("player", "Velvet Comet", speed=100, technique=100, mental=100, stamina=100, age=4)


def _races():
    return [
        RaceDefinition(race_id="ok", name="Harbor Stakes", distance=1600, grade=RaceGrade.G3, prize=8000, min_rating=60),
        RaceDefinition(race_id="pricey", name="Crown Cup", distance=2000, grade=RaceGrade.G1, prize=40000, min_rating=50),
        RaceDefinition(race_id="hard", name="Elite Derby", distance=2400, grade=RaceGrade.GI, prize=90000, min_rating=150),
    ]


def _session(money=500, on_complete=None):
    return RaceSession(
        _player(),
        _races(),
        money=money,
        rng=np.random.default_rng(3),
        names=NameGenerator(seed=3),
        on_complete=on_complete,
    )


def test_only_eligible_races_are_offered():
    assert [race.race_id for race in eligible_races(_races(), _player())] == ["ok", "pricey"]
    weak = HorseSnapshot("w", "Dust Dancer", speed=40, technique=40, mental=40, stamina=40)
    assert eligible_races(_races(), weak) == []


def test_strategy_cycles_wrap_around():
    session = _session()
    assert session.cycle_formation() is False  # not on the strategy step yet
    session.open_strategy()
    assert session.strategy.formation is Formation.DRAFT
    session.cycle_formation()
    assert session.strategy.formation is Formation.MOUNT
    session.cycle_formation()
    assert session.strategy.formation is Formation.LEAD
    session.cycle_pace(-1)
    assert session.strategy.pace is Pace.FAST
    session.cycle_pace(-1)
    assert session.strategy.pace is Pace.CONSERVE


def test_entry_needs_the_fee():
    session = _session(money=500)
    session.select_race(1)
    session.open_strategy()
    session.confirm_strategy()
    assert session.can_afford() is False
    assert session.enter_race() is False
    assert session.mode is RaceMode.CONFIRMING
    assert session.money == 500
    assert session.back() is True
    assert session.mode is RaceMode.SELECTING


def test_full_race_day():
    on_complete = MagicMock()
    session = _session(money=500, on_complete=on_complete)

    assert session.select_race(0)
    assert session.open_strategy()
    assert session.confirm_strategy()
    assert session.enter_race(collect_telemetry=True)
    assert session.mode is RaceMode.RACING
    assert session.money == 200

    assert session.request_quit() is False
    assert session.select_race(1) is False
    assert session.handle_input("left") is True
    assert session.controller.state.lane == 1
    assert session.handle_input("jump") is False

    outcome = asyncio.run(session.play(interval=0))
    assert session.mode is RaceMode.RESULT
    assert session.request_quit() is True
    assert len(outcome.results) == 8
    assert len(session.telemetry.frames) == 16

    assert session.complete() is outcome
    on_complete.assert_called_once_with(outcome)
    assert session.money == 200 + outcome.prize_money
    assert session.mode is RaceMode.SELECTING
    assert session.controller is None


def test_manual_ticks_reach_the_result():
    session = _session()
    session.open_strategy()
    session.confirm_strategy()
    session.enter_race()
    for _ in range(16):
        assert session.tick() is not None
    assert session.mode is RaceMode.RESULT
    assert session.tick() is None
    assert session.back() is True
    assert session.mode is RaceMode.SELECTING


def test_broken_race_keeps_the_player_on_confirm():
    broken = RaceDefinition(race_id="bad", name="Nowhere Dash", distance=0, grade=RaceGrade.MAIDEN, prize=100)
    session = RaceSession(_player(), [broken], money=500, names=NameGenerator(seed=1))
    session.open_strategy()
    session.confirm_strategy()
    assert session.enter_race() is False
    assert session.mode is RaceMode.CONFIRMING
    assert session.money == 500
    assert "distance" in session.last_error


def test_play_without_a_race_raises():
    with pytest.raises(RuntimeError):
        asyncio.run(_session().play(interval=0))
