"""Token reward wheel.

The wheel is configured by SPIN_WHEEL_WEIGHTS, e.g.
"50_tokens:40,100_tokens:25,250_tokens:8,500_tokens:2,try_again:25".
Weights are relative; they do not need to add up to 100.
"""

import random
import secrets
from dataclasses import dataclass
from typing import List, Optional, Sequence

from config import SPIN_WHEEL_WEIGHTS

TRY_AGAIN = "try_again"

_system_random = secrets.SystemRandom()


@dataclass(frozen=True)
class WheelSegment:
    reward_id: str
    tokens: int
    weight: int


def parse_segment(reward_id: str, weight: int) -> WheelSegment:
    reward_id = reward_id.strip()
    if weight < 0:
        raise ValueError(f"Negative weight for wheel segment {reward_id!r}")
    if reward_id == TRY_AGAIN:
        return WheelSegment(reward_id, 0, weight)
    amount, _, unit = reward_id.partition("_")
    if unit != "tokens" or not amount.isdigit() or int(amount) <= 0:
        raise ValueError(f"Unknown wheel segment {reward_id!r}")
    return WheelSegment(reward_id, int(amount), weight)


def parse_weights(spec: str) -> List[WheelSegment]:
    segments = []
    for part in spec.split(","):
        if not part.strip():
            continue
        reward_id, sep, weight = part.partition(":")
        if not sep:
            raise ValueError(f"Wheel segment {part!r} is missing a weight")
        segments.append(parse_segment(reward_id, int(weight)))
    if not segments or sum(s.weight for s in segments) <= 0:
        raise ValueError("Spin wheel needs at least one segment with a positive weight")
    return segments


class SpinWheel:
    def __init__(self, segments: Sequence[WheelSegment], rng: Optional[random.Random] = None):
        self.segments = list(segments)
        self.total_weight = sum(s.weight for s in self.segments)
        self._rng = rng or _system_random

    @classmethod
    def from_config(cls, spec: str = SPIN_WHEEL_WEIGHTS, rng: Optional[random.Random] = None) -> "SpinWheel":
        return cls(parse_weights(spec), rng=rng)

    def spin(self) -> WheelSegment:
        ticket = self._rng.randrange(self.total_weight)
        for segment in self.segments:
            if ticket < segment.weight:
                return segment
            ticket -= segment.weight
        # unreachable while total_weight matches the segments
        raise RuntimeError("Spin wheel weights are inconsistent")


default_wheel = SpinWheel.from_config()
