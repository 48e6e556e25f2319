"""
FORTUNEWHEEL — Outcome Selector

Weighted draw over segment probabilities, independent of angular layout.
"""

from __future__ import annotations

import random
from typing import Callable

from sim_engine.wheel.errors import EmptySegmentSet
from sim_engine.wheel.segments import Segment

RandomSource = Callable[[], float]


def select(segments: list[Segment], random_source: RandomSource = random.random) -> Segment:
    """Pick a segment with chance proportional to its probability.

    ``random_source`` returns floats uniform in [0, 1).
    """
    if not segments:
        raise EmptySegmentSet("Cannot select an outcome from zero segments")

    total = sum(s.probability for s in segments)
    r = random_source() * total
    cumulative = 0.0
    for seg in segments:
        cumulative += seg.probability
        if cumulative >= r:
            return seg
    # Float drift only
    return segments[-1]
