# horse_name_generator.py
# Names for the AI opponents that fill out a race field, from a JSON lexicon.

from __future__ import annotations
import json
import random
import re
from pathlib import Path
from typing import Dict, Any, Optional, List, Iterable

TOKEN_RE = re.compile(r"\[([A-Za-z]+)\]")
DEFAULT_NAMES_PATH = Path(__file__).resolve().parents[1] / 'configs' / 'horse_names.json'

def _weighted_choice(d: Dict[str, Any], key="weight", rng: random.Random = random) -> str:
    labels = list(d.keys())
    weights = [max(0.0, (v.get(key, 0.0) if isinstance(v, dict) else 0.0)) for v in d.values()]
    if sum(weights) <= 0:
        return rng.choice(labels)
    return rng.choices(labels, weights=weights, k=1)[0]

def _fill_pattern(pattern: str, lex: Dict[str, List[str]], rng: random.Random = random) -> str:
    def repl(m: re.Match) -> str:
        token = m.group(1)
        pool = lex.get(token) or lex.get(token.capitalize()) or []
        return rng.choice(pool) if pool else token
    return TOKEN_RE.sub(repl, pattern)

def _normalize(s: str) -> str:
    return re.sub(r"\s+", " ", s.strip()).lower()

def _fits_rules(name: str, rules: Dict[str, Any], taken: Iterable[str]) -> bool:
    if len(name) > rules.get("max_length", 32):
        return False
    reserved = {_normalize(x) for x in rules.get("reserved_names", [])}
    if _normalize(name) in reserved:
        return False
    return _normalize(name) not in {_normalize(x) for x in taken}

class NameGenerator:
    def __init__(self, config_path: Optional[str] = None, *, config: Optional[Dict[str, Any]] = None, seed: Optional[int] = None):
        self.rng = random.Random(seed)
        if config is None:
            path = config_path or DEFAULT_NAMES_PATH
            with open(path, "r", encoding="utf-8") as f:
                self.cfg = json.load(f)
        else:
            self.cfg = config

        self.lex = self.cfg.get("lexicons", {})
        self.tiers = self.cfg.get("tiers", {})
        self.rules = self.cfg.get("rules", {})
        self.used: List[str] = []

    def _generate_tiered(self) -> Optional[str]:
        if not self.tiers:
            return None
        for _ in range(12):
            tier = _weighted_choice(self.tiers, rng=self.rng)
            patterns = self.tiers.get(tier, {}).get("patterns", [])
            if not patterns:
                continue
            candidate = _fill_pattern(self.rng.choice(patterns), self.lex, rng=self.rng)
            if _fits_rules(candidate, self.rules, self.used):
                return candidate
        return None

    def _fallback(self) -> str:
        prefixes = self.lex.get("Prefix") or []
        suffixes = self.lex.get("Suffix") or []
        if prefixes and suffixes:
            return f"{self.rng.choice(prefixes)} {self.rng.choice(suffixes)}"
        return "Generic Horse"

    def generate(self) -> str:
        """A fresh name, unique among names this generator has handed out when possible."""
        name = self._generate_tiered() or self._fallback()
        self.used.append(name)
        return name

    def reserve(self, names: Iterable[str]) -> None:
        """Marks names (e.g. the player's horse) as taken."""
        self.used.extend(names)

if __name__ == "__main__":
    gen = NameGenerator(seed=0)
    for _ in range(20):
        print(gen.generate())
