"""
Display names for the engine enums, plus the reverse lookup the CLI uses.

Nothing in the engine compares against these strings.
"""

from derby_live.engine import Formation, Pace, RaceGrade

FORMATION_LABELS = {
    Formation.LEAD: "Lead",
    Formation.DRAFT: "Draft",
    Formation.MOUNT: "Mount",
}
FORMATION_BLURBS = {
    Formation.LEAD: "Fast start, maintain position",
    Formation.DRAFT: "Stay mid-pack, surge at the end",
    Formation.MOUNT: "Conservative start, strong finish",
}
PACE_LABELS = {
    Pace.FAST: "Fast",
    Pace.EVEN: "Even",
    Pace.CONSERVE: "Conserve",
}
PACE_BLURBS = {
    Pace.FAST: "Quick early pace, may tire",
    Pace.EVEN: "Consistent throughout",
    Pace.CONSERVE: "Save energy for the final push",
}
GRADE_LABELS = {
    RaceGrade.MAIDEN: "Maiden",
    RaceGrade.G3: "G3",
    RaceGrade.G2: "G2",
    RaceGrade.G1: "G1",
    RaceGrade.GI: "GI",
}

FORMATION_STRING_MAP = {
    "lead": Formation.LEAD,
    "front": Formation.LEAD,
    "draft": Formation.DRAFT,
    "mid": Formation.DRAFT,
    "mount": Formation.MOUNT,
    "closer": Formation.MOUNT,
}
PACE_STRING_MAP = {
    "fast": Pace.FAST,
    "even": Pace.EVEN,
    "steady": Pace.EVEN,
    "conserve": Pace.CONSERVE,
    "save": Pace.CONSERVE,
}


def _normalise(raw):
    return str(raw).strip().lower().replace('-', ' ').replace('_', ' ')


def parse_formation(raw):
    if isinstance(raw, Formation):
        return raw
    key = _normalise(raw)
    if key not in FORMATION_STRING_MAP:
        raise ValueError(f"Unknown formation: {raw}")
    return FORMATION_STRING_MAP[key]


def parse_pace(raw):
    if isinstance(raw, Pace):
        return raw
    key = _normalise(raw)
    if key not in PACE_STRING_MAP:
        raise ValueError(f"Unknown pace: {raw}")
    return PACE_STRING_MAP[key]


def parse_grade(raw):
    if isinstance(raw, RaceGrade):
        return raw
    if isinstance(raw, int) or str(raw).strip().isdigit():
        return RaceGrade(int(raw))
    key = str(raw).strip().upper()
    for grade, label in GRADE_LABELS.items():
        if label.upper() == key:
            return grade
    raise ValueError(f"Unknown race grade: {raw}")


def ordinal(n):
    if 11 <= n % 100 <= 13:
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def strategy_label(strategy):
    return f"{FORMATION_LABELS[strategy.formation]} / {PACE_LABELS[strategy.pace]}"
