"""
Incremental index of legal rule applications.

For a fixed grid and rule list the cache keeps, per rule, the ordered set of
every (start position, direction) where the rule currently applies, plus a
per-cell count of how many of those applications cover each cell:

    legal_applications[r] == {(p, d) : rule r applies on the line at p along d}
    touch_count[c]         == #{(r, p, d) cached : line (p, d) of rule r covers c}

Both hold after construction and after every `update` call. An update only
re-tests lines that can share a cell with the executed line, so its cost
depends on rule count, rule length and dimensionality, not on grid size.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Dict, Generic, Hashable, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, TypeVar
import numpy as np

from .grid import CellLine, Grid, GridDirection, Position
from .rules import CellRule, EngineInvariantError, _applies_at, find_all_rule_matches


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)
ApplicationKey = Tuple[Position, GridDirection]


class CacheInvariantError(EngineInvariantError):
    """The cache no longer agrees with the grid it indexes."""


_HOLE = object()
_MIN_CAPACITY = 16


class OrderedIndexSet(Generic[T]):
    """
    Insertion-ordered set with positional access.

    Removal leaves a hole in the slot list. A Fenwick tree over slot
    liveness maps a position among the live items to its slot in O(log n),
    so `s[i]` indexes the live items in insertion order without scanning
    them. Holes are compacted away once they make up half of the slots.
    """

    __slots__ = ("_slots", "_index", "_holes", "_tree")

    def __init__(self, items: Iterable[T] = ()):
        self._slots: List[object] = []
        self._index: Dict[T, int] = {}
        self._holes = 0
        self._tree = np.zeros(_MIN_CAPACITY + 1, dtype=np.int64)
        for item in items:
            self.add(item)

    # ===== Fenwick tree =====

    def _tree_add(self, slot: int, delta: int) -> None:
        tree = self._tree
        size = tree.shape[0]
        i = slot + 1
        while i < size:
            tree[i] += delta
            i += i & -i

    def _rebuild(self, capacity: int) -> None:
        """Rebuild the tree from the slot list, with room for `capacity` slots."""
        alive = np.zeros(capacity + 1, dtype=np.int64)
        alive[1:len(self._slots) + 1] = [x is not _HOLE for x in self._slots]
        prefix = np.cumsum(alive)
        idx = np.arange(1, capacity + 1)
        tree = np.zeros(capacity + 1, dtype=np.int64)
        tree[1:] = prefix[idx] - prefix[idx - (idx & -idx)]
        self._tree = tree

    def _compact(self) -> None:
        self._slots = [x for x in self._slots if x is not _HOLE]
        self._index = {x: i for i, x in enumerate(self._slots)}
        self._holes = 0
        self._rebuild(max(_MIN_CAPACITY, 2 * len(self._slots)))

    # ===== Set operations =====

    def add(self, item: T) -> None:
        if item in self._index:
            return
        slot = len(self._slots)
        self._index[item] = slot
        self._slots.append(item)
        capacity = self._tree.shape[0] - 1
        if slot >= capacity:
            self._rebuild(2 * capacity)
        else:
            self._tree_add(slot, 1)

    def discard(self, item: T) -> None:
        slot = self._index.pop(item, None)
        if slot is None:
            return
        self._slots[slot] = _HOLE
        self._holes += 1
        self._tree_add(slot, -1)
        if 2 * self._holes > len(self._slots):
            self._compact()

    def __getitem__(self, i: int) -> T:
        if not 0 <= i < len(self._index):
            raise IndexError(f"Index {i} out of range [0, {len(self._index)})")
        tree = self._tree
        capacity = tree.shape[0] - 1
        # Descend to the last slot whose prefix of live items is still <= i.
        pos = 0
        remaining = int(i) + 1
        step = 1 << (capacity.bit_length() - 1)
        while step:
            nxt = pos + step
            if nxt <= capacity and tree[nxt] < remaining:
                pos = nxt
                remaining -= int(tree[nxt])
            step >>= 1
        return self._slots[pos]

    def __contains__(self, item: object) -> bool:
        return item in self._index

    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[T]:
        for x in self._slots:
            if x is not _HOLE:
                yield x

    def __repr__(self) -> str:
        return f"OrderedIndexSet({list(self)!r})"


@dataclass(frozen=True)
class RuleApplication:
    """A specific rule (by index into the cache's rule list) on a specific line."""
    rule_idx: int
    line: CellLine


class RuleCache:
    """
    Legal-application index for one grid and one rule list.

    `update` must be called immediately after every rule execution on the
    grid, with the rule index and line that were executed.

    Example:
        cache = RuleCache(grid, rules)
        app = cache.get_nth(rng.integers(cache.count()))
        rule_execute(grid, rules[app.rule_idx], app.line)
        cache.update(app.rule_idx, app.line)
    """

    def __init__(self, grid: Grid, rules: Sequence[CellRule], use_numba: bool = False):
        self.grid = grid
        self.rules: Tuple[CellRule, ...] = tuple(rules)
        self.use_numba = use_numba

        self.legal_applications: List[OrderedIndexSet[ApplicationKey]] = [
            OrderedIndexSet() for _ in self.rules
        ]
        self.touch_count = np.zeros(grid.shape, dtype=np.int32)

        for rule_idx, line in find_all_rule_matches(grid, self.rules, use_numba=use_numba):
            self.legal_applications[rule_idx].add((line.start, line.direction))
            self._touch(line.start, line.direction, line.length, 1)

        logger.debug(f"Seeded rule cache: {self.count()} legal applications "
                     f"for {len(self.rules)} rules on grid {grid.shape}")

    # ===== Maintenance =====

    def _touch(self, start: Position, direction: GridDirection, length: int, delta: int) -> None:
        axis = direction.axis
        lo = start[axis] if direction.sign > 0 else start[axis] - length + 1
        index = list(start)
        index[axis] = slice(lo, lo + length)
        self.touch_count[tuple(index)] += delta

    def _reevaluate(self, rule_idx: int, start: Position, direction: GridDirection) -> None:
        rule = self.rules[rule_idx]
        legal = self.legal_applications[rule_idx]
        key = (start, direction)

        used_to_be_legal = key in legal
        is_legal = _applies_at(self.grid.cells, rule.input, start, direction)

        if is_legal and not used_to_be_legal:
            legal.add(key)
            self._touch(start, direction, rule.length, 1)
        elif used_to_be_legal and not is_legal:
            legal.discard(key)
            self._touch(start, direction, rule.length, -1)

    def update(self, executed_rule_idx: int, executed_at: CellLine) -> None:
        """
        Re-validate every line that shares a cell with `executed_at`.

        Collinear lines are re-tested along the executed axis in both
        directions; perpendicular lines through each executed cell are
        re-tested in both directions along every other axis. All candidate
        ranges are clamped to the grid.
        """
        executed_rule = self.rules[executed_rule_idx]
        if executed_at.length != executed_rule.length:
            raise CacheInvariantError(
                f"Executed line has length {executed_at.length} but rule "
                f"{executed_rule_idx} has length {executed_rule.length}"
            )
        shape = self.grid.shape
        if not executed_at.fits(shape):
            raise CacheInvariantError(
                f"Rule application {executed_at} passed to update() doesn't fit in grid {shape}"
            )

        axis = executed_at.direction.axis
        sign = executed_at.direction.sign
        first = executed_at.start[axis]
        last = first + sign * (executed_rule.length - 1)
        exec_min, exec_max = min(first, last), max(first, last)
        axis_size = shape[axis]

        for rule_idx, rule in enumerate(self.rules):
            length = rule.length

            # Lines along the executed axis overlapping it through either end.
            for line_sign in (-1, 1):
                if line_sign < 0:
                    pos_min = max(exec_min, length - 1)
                    pos_max = min(exec_max + length - 1, axis_size - 1)
                else:
                    pos_min = max(exec_min - length + 1, 0)
                    pos_max = min(exec_max, axis_size - length)
                direction = GridDirection(axis, line_sign)
                start = list(executed_at.start)
                for pos in range(pos_min, pos_max + 1):
                    start[axis] = pos
                    self._reevaluate(rule_idx, tuple(start), direction)

            # Lines along other axes crossing it at exactly one cell.
            for perp_axis in range(self.grid.ndim):
                if perp_axis == axis:
                    continue
                perp_size = shape[perp_axis]
                focus = executed_at.start[perp_axis]
                for perp_sign in (-1, 1):
                    if perp_sign > 0:
                        perp_min = max(0, focus - length + 1)
                        perp_max = min(perp_size - length, focus)
                    else:
                        perp_min = max(length - 1, focus)
                        perp_max = min(perp_size - 1, focus + length - 1)
                    direction = GridDirection(perp_axis, perp_sign)
                    for offset in range(executed_rule.length):
                        start = list(executed_at.start)
                        start[axis] += offset * sign
                        for perp_pos in range(perp_min, perp_max + 1):
                            start[perp_axis] = perp_pos
                            self._reevaluate(rule_idx, tuple(start), direction)

    # ===== Queries =====

    def count(self) -> int:
        """Total number of legal applications over all rules."""
        return sum(len(s) for s in self.legal_applications)

    def count_per_rule(self) -> List[int]:
        return [len(s) for s in self.legal_applications]

    def is_empty(self) -> bool:
        return all(len(s) == 0 for s in self.legal_applications)

    def __len__(self) -> int:
        return self.count()

    def legal_set(self, rule_idx: int) -> OrderedIndexSet[ApplicationKey]:
        """The live set for one rule. Treat as read-only."""
        return self.legal_applications[rule_idx]

    def make_application(self, rule_idx: int, key: ApplicationKey) -> RuleApplication:
        start, direction = key
        return RuleApplication(rule_idx, CellLine(start, direction, self.rules[rule_idx].length))

    def get_nth(self, i: int) -> RuleApplication:
        """
        The i-th legal application (0-based) across all rules, rules in order.

        Raises IndexError if `i` is not in [0, count()).
        """
        if i < 0:
            raise IndexError(f"Index must be non-negative; got {i}")
        relative = i
        for rule_idx, legal in enumerate(self.legal_applications):
            if relative < len(legal):
                return self.make_application(rule_idx, legal[relative])
            relative -= len(legal)
        raise IndexError(f"Index {i} out of range [0, {self.count()})")

    def first_nonempty_rule(self) -> Optional[Tuple[int, OrderedIndexSet[ApplicationKey]]]:
        """(rule index, legal set) of the first rule with any application, if any."""
        for rule_idx, legal in enumerate(self.legal_applications):
            if len(legal):
                return rule_idx, legal
        return None

    def __iter__(self) -> Iterator[RuleApplication]:
        for rule_idx, legal in enumerate(self.legal_applications):
            for key in legal:
                yield self.make_application(rule_idx, key)

    def as_set(self) -> Set[Tuple[int, Position, GridDirection]]:
        """All cached applications as (rule index, start, direction) triples."""
        return {
            (rule_idx, start, direction)
            for rule_idx, legal in enumerate(self.legal_applications)
            for start, direction in legal
        }

    def verify(self) -> None:
        """
        Rebuild from the exhaustive matcher and compare.

        Raises CacheInvariantError describing the first disagreement.
        """
        expected = RuleCache(self.grid, self.rules, use_numba=self.use_numba)

        actual_set = self.as_set()
        expected_set = expected.as_set()
        if actual_set != expected_set:
            missing = sorted(expected_set - actual_set, key=repr)[:5]
            stale = sorted(actual_set - expected_set, key=repr)[:5]
            raise CacheInvariantError(
                f"Rule cache out of sync with grid: missing {missing}, stale {stale}"
            )
        if not np.array_equal(self.touch_count, expected.touch_count):
            bad = np.argwhere(self.touch_count != expected.touch_count)[:5]
            raise CacheInvariantError(
                f"Touch counts out of sync at cells {[tuple(int(x) for x in b) for b in bad]}"
            )

    def __repr__(self) -> str:
        return f"RuleCache({len(self.rules)} rules, {self.count()} legal applications)"
