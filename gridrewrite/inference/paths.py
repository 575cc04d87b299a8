"""
Path inference: soft steering of rule selection.

An `InferPath` biases applications that create or destroy *source* cells
according to how far those cells are from *destination* cells, measured
through *path* cells (see `compute_potential`). For one candidate
application the path contributes

    w = Σ_cells (was_source - is_source) * d(cell)      (negated if invert)

where d is the cell's potential (unreachable cells count as farther than
any reachable one). Creating a source closer to a destination therefore
scores higher than creating it farther away, and moving a source one step
down the field scores +1. With `invert` the bias pushes away instead.

Several paths combine by summation in `AllInference`, whose single
temperature adds one uniform random jitter per candidate.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import numpy as np

from ..core.cells import Vocabulary, resolve_vocabulary
from ..core.grid import CellLine, Grid
from ..core.rules import CellRule
from .potential import POTENTIAL_UNREACHABLE, compute_potential


CellTypeSet = FrozenSet[int]


def _type_set(types: Iterable[int]) -> CellTypeSet:
    return frozenset(int(t) for t in types)


@dataclass(frozen=True)
class InferPath:
    """
    Constraint pulling `source_types` cells toward `dest_types` cells
    along `path_types` cells.

    Attributes:
        source_types: Codes whose creation/destruction is weighted
        dest_types: Codes the field is measured from (distance 0)
        path_types: Codes the field may travel through
        invert: Push sources away from destinations instead
        temperature: Scale of this path's own random jitter
        recompute_each_time: Rebuild the field after every step; otherwise
            it is only built at start (or on a forced recompute)
    """
    source_types: CellTypeSet
    dest_types: CellTypeSet
    path_types: CellTypeSet
    invert: bool = False
    temperature: float = 0.0
    recompute_each_time: bool = True

    def __post_init__(self):
        object.__setattr__(self, "source_types", _type_set(self.source_types))
        object.__setattr__(self, "dest_types", _type_set(self.dest_types))
        object.__setattr__(self, "path_types", _type_set(self.path_types))
        if self.temperature < 0:
            raise ValueError(f"Path temperature must be non-negative, got {self.temperature}")

    @classmethod
    def parse(
        cls,
        source: str,
        dest: str,
        path: str,
        vocabulary: Optional[Vocabulary] = None,
        **kwargs,
    ) -> "InferPath":
        """Build from strings of display characters, e.g. InferPath.parse("R", "B", "b")."""
        vocabulary = resolve_vocabulary(vocabulary)
        return cls(
            source_types=vocabulary.codes(source),
            dest_types=vocabulary.codes(dest),
            path_types=vocabulary.codes(path),
            **kwargs,
        )


class InferPathState:
    """An `InferPath` bound to a grid, with its potential field."""

    def __init__(self, constraint: InferPath, grid: Grid):
        self.constraint = constraint
        self.grid = grid
        self.potential = np.full(grid.shape, POTENTIAL_UNREACHABLE, dtype=np.uint32)
        # Unreachable cells score as one step beyond the longest possible route.
        self.unreachable_distance = float(grid.size)
        self.recompute()

    def recompute(self) -> None:
        """Rebuild the potential field from the current grid."""
        c = self.constraint
        self.potential = compute_potential(self.grid.cells, c.dest_types, c.path_types)

    def distance(self, position) -> float:
        raw = self.potential[position]
        if raw == POTENTIAL_UNREACHABLE:
            return self.unreachable_distance
        return float(raw)

    def weight(self, rule: CellRule, line: CellLine, rng: np.random.Generator) -> float:
        c = self.constraint
        weight = float(rng.random()) * c.temperature
        cells = self.grid.cells
        sign = -1.0 if c.invert else 1.0
        for i, position in enumerate(line.cells()):
            current = int(cells[position])
            after = rule.output[i]
            if after is None:
                after = current
            was_source = current in c.source_types
            is_source = after in c.source_types
            if was_source != is_source:
                weight += sign * (int(was_source) - int(is_source)) * self.distance(position)
        return weight


@dataclass(frozen=True)
class AllInference:
    """
    Every inference constraint active for a sequence.

    Merging keeps all paths in order; the temperature of the last merged
    item that carries any configuration wins.
    """
    paths: Tuple[InferPath, ...] = ()
    temperature: float = 0.0
    paths_by_type: Dict[int, Tuple[int, ...]] = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "paths", tuple(self.paths))
        if self.temperature < 0:
            raise ValueError(f"Inference temperature must be non-negative, got {self.temperature}")
        by_type: Dict[int, List[int]] = {}
        for i, path in enumerate(self.paths):
            for code in path.source_types:
                by_type.setdefault(code, []).append(i)
        object.__setattr__(self, "paths_by_type", {k: tuple(v) for k, v in by_type.items()})

    @classmethod
    def merge(cls, *items: Optional["AllInference"]) -> "AllInference":
        paths: List[InferPath] = []
        temperature = 0.0
        for item in items:
            # Empty defaults don't reset an inherited temperature.
            if item is None or (not item.paths and item.temperature == 0):
                continue
            paths.extend(item.paths)
            temperature = item.temperature
        return cls(paths=tuple(paths), temperature=temperature)

    def exists(self) -> bool:
        """Whether any inference should happen at all."""
        return len(self.paths) > 0

    def __bool__(self) -> bool:
        return self.exists()


class AllInferenceState:
    """Combined inference state for one grid."""

    def __init__(self, inference: AllInference, grid: Grid):
        self.source = inference
        self.grid = grid
        self.paths = [InferPathState(p, grid) for p in inference.paths]

    def weight(self, rule: CellRule, line: CellLine, rng: np.random.Generator) -> float:
        """
        Preference for applying `rule` on `line`; higher is better.

        Only paths whose source types appear on the line, before or after
        the rewrite, are evaluated.
        """
        weight = float(rng.random()) * self.source.temperature

        cells = self.grid.cells
        types = {int(cells[p]) for p in line.cells()}
        types.update(c for c in rule.output if c is not None)
        relevant = sorted({
            i for code in types for i in self.source.paths_by_type.get(code, ())
        })
        for i in relevant:
            weight += self.paths[i].weight(rule, line, rng)
        return weight

    def recompute(self, force: bool = False) -> None:
        """Rebuild fields flagged `recompute_each_time` (all of them if forced)."""
        for path in self.paths:
            if force or path.constraint.recompute_each_time:
                path.recompute()
