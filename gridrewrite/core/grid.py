"""
N-dimensional cell grid.

The grid is a dense numpy array of byte codes from a `Vocabulary`:

    grid.cells[x0, x1, ..., x_{N-1}] ∈ {0, ..., len(vocabulary) - 1}

Positions are 0-based tuples. The grid owns no rules or caches; it is
mutated only by rule execution and sampled read-only by visualizers through
`Grid.snapshot()`.

Key concepts:
- GridDirection: an (axis, sign) pair, densely indexed 0..2N-1
- CellLine: a fixed-length run of cells starting at a position and walking
  along one direction; the unit that rules are matched and executed on
"""

from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Optional, Sequence, Tuple, Union
import numpy as np

from .cells import CELL_CODE_INVALID, Vocabulary, VocabularyError, resolve_vocabulary


Position = Tuple[int, ...]


@dataclass(frozen=True)
class GridDirection:
    """
    Axis-aligned direction of travel.

    Ordered by `index = 2 * axis + (sign > 0)`, so the 2N directions of an
    N-dimensional grid enumerate as -x0, +x0, -x1, +x1, ...
    """
    axis: int
    sign: int

    def __post_init__(self):
        if self.axis < 0:
            raise ValueError(f"axis must be non-negative, got {self.axis}")
        if self.sign not in (-1, 1):
            raise ValueError(f"sign must be -1 or +1, got {self.sign}")

    @property
    def index(self) -> int:
        return 2 * self.axis + (1 if self.sign > 0 else 0)

    @classmethod
    def from_index(cls, index: int) -> "GridDirection":
        return cls(axis=index // 2, sign=1 if index % 2 else -1)

    @staticmethod
    def all(ndim: int) -> Tuple["GridDirection", ...]:
        """All 2N directions of an N-dimensional grid, in index order."""
        return _all_directions(ndim)

    def flipped(self) -> "GridDirection":
        return GridDirection(self.axis, -self.sign)

    def __lt__(self, other: "GridDirection") -> bool:
        return self.index < other.index

    def __repr__(self) -> str:
        return f"{'+' if self.sign > 0 else '-'}x{self.axis}"


@lru_cache(maxsize=None)
def _all_directions(ndim: int) -> Tuple[GridDirection, ...]:
    return tuple(GridDirection.from_index(i) for i in range(2 * ndim))


@dataclass(frozen=True)
class CellLine:
    """A contiguous run of `length` cells from `start` along `direction`."""
    start: Position
    direction: GridDirection
    length: int

    def cell(self, i: int) -> Position:
        """Position of the i-th cell of the line (0-based)."""
        axis = self.direction.axis
        pos = list(self.start)
        pos[axis] += i * self.direction.sign
        return tuple(pos)

    def cells(self) -> Iterator[Position]:
        axis = self.direction.axis
        sign = self.direction.sign
        pos = list(self.start)
        origin = pos[axis]
        for i in range(self.length):
            pos[axis] = origin + i * sign
            yield tuple(pos)

    @property
    def end(self) -> Position:
        """Position of the last cell."""
        return self.cell(self.length - 1)

    def bounds(self) -> Tuple[Position, Position]:
        """Inclusive (min corner, max corner) of the line's bounding box."""
        end = self.end
        lo = tuple(min(a, b) for a, b in zip(self.start, end))
        hi = tuple(max(a, b) for a, b in zip(self.start, end))
        return lo, hi

    def fits(self, shape: Sequence[int]) -> bool:
        """Whether every cell of the line is inside a grid of `shape`."""
        if len(self.start) != len(shape):
            return False
        lo, hi = self.bounds()
        return all(0 <= l and h < n for l, h, n in zip(lo, hi, shape))


@dataclass(frozen=True)
class GridSnapshot:
    """
    Immutable view of a grid for visualizers.

    `codes` is a read-only array; it is a copy unless taken with
    `Grid.snapshot(copy=False)`, in which case it aliases the live grid and
    reflects later steps.
    """
    codes: np.ndarray
    vocabulary: Vocabulary
    step: int = 0

    def __post_init__(self):
        self.codes.flags.writeable = False

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.codes.shape

    def to_string(self) -> str:
        return _codes_to_string(self.codes, self.vocabulary)


class Grid:
    """
    Mutable N-dimensional grid of cell codes.

    Example:
        grid = Grid((5, 5), fill="b")
        grid[2, 2] = grid.vocabulary.code_for_char("R")
        print(grid.to_string())

        grid = Grid.from_strings(["bbw", "wwb"])
        grid.shape  # (2, 3)
    """

    def __init__(
        self,
        shape: Union[int, Sequence[int]],
        fill: Union[int, str] = 0,
        vocabulary: Optional[Vocabulary] = None,
    ):
        self.vocabulary = resolve_vocabulary(vocabulary)
        if isinstance(shape, (int, np.integer)):
            shape = (int(shape),)
        shape = tuple(int(n) for n in shape)
        if not shape or any(n < 1 for n in shape):
            raise ValueError(f"Grid shape must have at least one axis, all positive; got {shape}")

        code = self._to_code(fill)
        self._cells = np.full(shape, code, dtype=np.uint8)

    @classmethod
    def from_array(cls, array: np.ndarray, vocabulary: Optional[Vocabulary] = None) -> "Grid":
        """Create a grid holding a copy of `array` (any integer array of codes)."""
        array = np.asarray(array)
        grid = cls(array.shape, vocabulary=vocabulary)
        if array.size and (array.min() < 0 or array.max() >= len(grid.vocabulary)):
            raise VocabularyError(
                f"Array codes must be in [0, {len(grid.vocabulary)}), "
                f"got range [{array.min()}, {array.max()}]"
            )
        grid._cells[...] = array.astype(np.uint8)
        return grid

    @classmethod
    def from_strings(
        cls,
        rows: Union[str, Sequence[str]],
        vocabulary: Optional[Vocabulary] = None,
    ) -> "Grid":
        """
        Parse a grid from display characters.

        A single string gives a 1-D grid; a list of equal-length strings gives
        a 2-D grid indexed [row, column].
        """
        vocabulary = resolve_vocabulary(vocabulary)
        if isinstance(rows, str):
            codes = [vocabulary.code_for_char(c) for c in rows]
            return cls.from_array(np.array(codes, dtype=np.uint8), vocabulary)

        rows = list(rows)
        if not rows or any(len(r) != len(rows[0]) for r in rows):
            raise ValueError("Grid rows must be non-empty and of equal length")
        codes = [[vocabulary.code_for_char(c) for c in row] for row in rows]
        return cls.from_array(np.array(codes, dtype=np.uint8), vocabulary)

    def _to_code(self, value: Union[int, str]) -> int:
        if isinstance(value, str):
            return self.vocabulary.code_for_char(value)
        value = int(value)
        if value == CELL_CODE_INVALID or not 0 <= value < len(self.vocabulary):
            raise VocabularyError(f"Code {value} is not a live cell code of {self.vocabulary!r}")
        return value

    @property
    def cells(self) -> np.ndarray:
        """The live code array. Only rule execution should write through it."""
        return self._cells

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._cells.shape

    @property
    def ndim(self) -> int:
        return self._cells.ndim

    @property
    def size(self) -> int:
        """Total number of cells."""
        return int(self._cells.size)

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, position: Position) -> int:
        return int(self._cells[position])

    def __setitem__(self, position: Position, value: Union[int, str]) -> None:
        self._cells[position] = self._to_code(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return False
        return np.array_equal(self._cells, other._cells)

    # Mutable: compare by value, never hash.
    __hash__ = None

    def contains(self, position: Position) -> bool:
        return len(position) == self.ndim and all(
            0 <= p < n for p, n in zip(position, self.shape)
        )

    def line_fits(self, line: CellLine) -> bool:
        return line.fits(self.shape)

    def line_codes(self, line: CellLine) -> List[int]:
        return [int(self._cells[pos]) for pos in line.cells()]

    def fill(self, value: Union[int, str]) -> "Grid":
        self._cells.fill(self._to_code(value))
        return self

    def copy(self) -> "Grid":
        grid = Grid(self.shape, vocabulary=self.vocabulary)
        grid._cells[...] = self._cells
        return grid

    def snapshot(self, step: int = 0, copy: bool = True) -> GridSnapshot:
        """Read-only view of the current cell codes."""
        codes = self._cells.copy() if copy else self._cells.view()
        return GridSnapshot(codes=codes, vocabulary=self.vocabulary, step=step)

    def count(self, value: Union[int, str]) -> int:
        """Number of cells holding `value`."""
        return int(np.count_nonzero(self._cells == self._to_code(value)))

    def to_string(self) -> str:
        """
        Display characters of the grid.

        1-D grids are one line, 2-D grids one line per row, higher dimensions
        print their 2-D slices separated by blank lines.
        """
        return _codes_to_string(self._cells, self.vocabulary)

    def __repr__(self) -> str:
        return f"Grid(shape={self.shape}, vocabulary={self.vocabulary!r})"


def _codes_to_string(codes: np.ndarray, vocabulary: Vocabulary) -> str:
    if codes.ndim == 1:
        return "".join(vocabulary.char_for_code(int(c)) for c in codes)
    if codes.ndim == 2:
        return "\n".join(_codes_to_string(row, vocabulary) for row in codes)
    return "\n\n".join(_codes_to_string(layer, vocabulary) for layer in codes)
