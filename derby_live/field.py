from __future__ import annotations

from typing import Dict, Optional, Tuple

from derby_live.config import get_config
from derby_live.engine import HorseSnapshot, RaceDefinition
from derby_live.horse_name_generator import NameGenerator

BREEDS = (
    "Thoroughbred",
    "Arabian",
    "Quarter Horse",
    "Mustang",
    "Friesian",
    "Clydesdale",
    "Appaloosa",
    "Paint Horse",
)


def generate_ai_horse(race: RaceDefinition, names: NameGenerator) -> HorseSnapshot:
    """
    Builds the next AI opponent for ``race``.

    Opponents are pitched around the race's rating floor and get slightly
    stronger with each gate filled.
    """
    cfg = get_config("field", {}) or {}
    slot = len(race.entrants)
    base_rating = race.min_rating + race.min_rating // 4
    stat = base_rating + int(cfg.get("ai_stat_offset", -10)) + slot * int(cfg.get("ai_stat_step", 5))
    return HorseSnapshot(
        horse_id=f"ai_{slot}",
        name=names.generate(),
        speed=stat,
        technique=stat,
        mental=stat,
        stamina=stat,
        fatigue=0,
        age=int(cfg.get("ai_age", 3)),
        morale=100,
        breed=names.rng.choice(BREEDS),
    )


def build_field(
    race: RaceDefinition,
    player: HorseSnapshot,
    names: Optional[NameGenerator] = None,
    field_size: Optional[int] = None,
) -> Tuple[RaceDefinition, Dict[str, HorseSnapshot]]:
    """Enters the player, then fills the gates with AI opponents."""
    if names is None:
        names = NameGenerator()
    names.reserve([player.name])
    if field_size is None:
        field_size = int(get_config("field.field_size", 8))

    race = race.with_entrant(player.horse_id)
    horses: Dict[str, HorseSnapshot] = {player.horse_id: player}
    while len(race.entrants) < min(race.capacity, field_size):
        opponent = generate_ai_horse(race, names)
        if opponent.horse_id in race.entrants:
            break
        horses[opponent.horse_id] = opponent
        race = race.with_entrant(opponent.horse_id)
    return race, horses
