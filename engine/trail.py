"""
Cursor trail model for the render loop.

The host redraws the trail every frame; this module only decides what to
draw: the most recent samples with opacity rising from oldest to newest, red
for out-of-bounds samples and blue otherwise, plus a solid marker for the
current pointer position.
"""

from typing import List, Sequence

from shared.models import Sample, TrailPoint

IN_BOUNDS_COLOR = "#2196f3"
OUT_OF_BOUNDS_COLOR = "#f44336"
MAX_TRAIL_OPACITY = 0.3


def build_trail(samples: Sequence[Sample], limit: int = 200) -> List[TrailPoint]:
    recent = list(samples)[-limit:] if limit > 0 else []
    if not recent:
        return []

    count = len(recent)
    points = [
        TrailPoint(
            x=s.x,
            y=s.y,
            opacity=(index / count) * MAX_TRAIL_OPACITY,
            color=OUT_OF_BOUNDS_COLOR if s.out_of_bounds else IN_BOUNDS_COLOR,
        )
        for index, s in enumerate(recent)
    ]

    last = recent[-1]
    points.append(TrailPoint(
        x=last.x,
        y=last.y,
        opacity=1.0,
        color=OUT_OF_BOUNDS_COLOR if last.out_of_bounds else IN_BOUNDS_COLOR,
        current=True,
    ))
    return points
