"""
Ready-made sequences.

Each preset is a function returning a fresh sequence for a grid filled
with black ('b') cells. `PRESETS` maps the CLI names to these functions.
"""

from __future__ import annotations
from typing import Callable, Dict, Optional

from .core.cells import Vocabulary
from .core.rules import CellRule
from .inference.paths import AllInference, InferPath
from .sequences.sequences import DoAll, DoN, DoNRelative, Ordered, SequenceType


def random_walk_maze(vocabulary: Optional[Vocabulary] = None) -> SequenceType:
    """
    Backtracking random-walk maze.

    A red head carves white corridors two cells at a time, leaving a green
    trail; when stuck it walks back along the trail.
    """
    def rule(i, o):
        return CellRule.parse(i, o, vocabulary)

    return Ordered((
        DoN((rule("b", "R"),), 1),
        DoAll((
            rule("Rbb", "GGR"),
            rule("GGR", "Rww"),
            rule("R", "w"),
        ), sequential=True),
    ))


def short_path_maze(vocabulary: Optional[Vocabulary] = None) -> SequenceType:
    """Maze grown from one white seed, corridors marked beige then whitened."""
    def rule(i, o):
        return CellRule.parse(i, o, vocabulary)

    return Ordered((
        DoN((rule("b", "w"),), 1),
        DoAll((rule("bbw", "wEw"),)),
        DoAll((rule("E", "w"),)),
    ))


def seeker(vocabulary: Optional[Vocabulary] = None, temperature: float = 0.0) -> SequenceType:
    """
    A red walker heads for a blue target through black cells.

    The walk is steered by path inference: stepping to a cell closer to the
    blue cell scores higher. It ends when the walker reaches the target
    (both turn green) or gets boxed in by its own white trail.
    """
    def rule(i, o):
        return CellRule.parse(i, o, vocabulary)

    toward_target = AllInference(
        paths=(InferPath.parse("R", "B", "b", vocabulary),),
        temperature=temperature,
    )
    return Ordered((
        DoN((rule("b", "B"),), 1),
        DoN((rule("b", "R"),), 1),
        DoAll((
            rule("RB", "GG"),
            rule("Rb", "wR"),
        ), sequential=True, inference=toward_target),
    ))


def blob_growth(vocabulary: Optional[Vocabulary] = None, density: float = 0.3) -> SequenceType:
    """Grow a red blob from one seed to cover about `density` of the grid."""
    def rule(i, o):
        return CellRule.parse(i, o, vocabulary)

    return Ordered((
        DoN((rule("b", "R"),), 1),
        DoNRelative((rule("Rb", "RR"),), count_per_cell=density, count_min=1),
    ))


PRESETS: Dict[str, Callable[..., SequenceType]] = {
    "random_walk_maze": random_walk_maze,
    "short_path_maze": short_path_maze,
    "seeker": seeker,
    "blob_growth": blob_growth,
}


def get_preset(name: str, vocabulary: Optional[Vocabulary] = None) -> SequenceType:
    try:
        factory = PRESETS[name]
    except KeyError:
        raise ValueError(f"Unknown preset {name!r}, expected one of {sorted(PRESETS)}") from None
    return factory(vocabulary)
