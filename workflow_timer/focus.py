from __future__ import annotations

from dataclasses import dataclass
import math

IDEAL_WORK_MINUTES = 52
IDEAL_BREAK_MINUTES = 17
IDEAL_RATIO = IDEAL_WORK_MINUTES / (IDEAL_WORK_MINUTES + IDEAL_BREAK_MINUTES)
RATIO_WEIGHT = 80
MINUTES_PER_FREE_BREAK = 55
EXCESS_BREAK_PENALTY = 5


def allowed_breaks(work_ms: float) -> int:
    return 1 + math.floor(work_ms / 60_000 / MINUTES_PER_FREE_BREAK)


def calculate_focus_index(work_ms: float, break_ms: float, break_count: int) -> int:
    """Score 0..100 from the work/break ratio against 52:17, minus excess breaks.

    An exactly ideal ratio is worth 80; only a better-than-ideal ratio climbs
    toward the 100 cap.
    """
    total = work_ms + break_ms
    if total <= 0:
        return 0

    ratio_score = min(100.0, (work_ms / total) / IDEAL_RATIO * RATIO_WEIGHT)
    excess = max(0, break_count - allowed_breaks(work_ms))
    penalty = excess * EXCESS_BREAK_PENALTY
    # half-up rounding
    return max(0, math.floor(ratio_score - penalty + 0.5))


@dataclass(frozen=True)
class FocusLevel:
    level: str
    label: str
    color: str


_LEVELS: tuple[tuple[int, FocusLevel], ...] = (
    (90, FocusLevel("S", "최고의 몰입", "emerald")),
    (80, FocusLevel("A", "훌륭한 집중", "cyan")),
    (60, FocusLevel("B", "양호한 흐름", "blue")),
    (40, FocusLevel("C", "주의 분산", "violet")),
)
_LOWEST = FocusLevel("D", "휴식 필요", "rose")


def focus_level(score: int) -> FocusLevel:
    for floor_score, level in _LEVELS:
        if score >= floor_score:
            return level
    return _LOWEST
