from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence, Tuple


@dataclass
class LiveTelemetryFrame:
    turn: int
    mode: str
    lane: int
    live_stamina: int
    whip_uses: int
    disobedient: bool
    disobedience_remaining: int
    base_distance: int
    distance: int
    rank: int
    standings: List[Tuple[int, str, int]] = field(default_factory=list)
    events: List[str] = field(default_factory=list)

    @property
    def distance_delta(self) -> int:
        return self.distance - self.base_distance


class TelemetryCollector:
    def __init__(self) -> None:
        self.frames: List[LiveTelemetryFrame] = []

    def record_frame(self, frame: LiveTelemetryFrame) -> None:
        self.frames.append(frame)

    def export(self) -> Sequence[LiveTelemetryFrame]:
        return tuple(self.frames)

    def to_payload(self) -> List[Dict[str, Any]]:
        payload = []
        for frame in self.frames:
            row = asdict(frame)
            row["distance_delta"] = frame.distance_delta
            payload.append(row)
        return payload

    def clear(self) -> None:
        self.frames.clear()
