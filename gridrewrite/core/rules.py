"""
Rewrite rules and the exhaustive matcher.

A rule is a pair of equal-length 1-D patterns:
    input:  what the cells must hold (None = any value)
    output: what the cells become   (None = leave unchanged)

Rules are not tied to an orientation; a rule of length L can be placed on
any line of L cells along any axis, walking in either direction. A rule
of length 1 is therefore matched once per direction on every cell.

Matching a whole grid is the cold-start path: it is used to seed a
`RuleCache` and for debugging. Once a cache exists, per-step updates go
through `RuleCache.update` instead.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple, Union
import numpy as np
from numba import njit

from .cells import CELL_CODE_INVALID, Vocabulary, VocabularyError, resolve_vocabulary
from .grid import CellLine, Grid, GridDirection, Position


WILDCARD_CHAR = "*"

Pattern = Tuple[Optional[int], ...]
RuleSymbol = Union[str, int, None]


class RuleSyntaxError(ValueError):
    """Raised when a rule cannot be built from its input/output description."""


class EngineInvariantError(AssertionError):
    """An internal contract of the engine was broken; the run cannot continue."""


@dataclass(frozen=True)
class CellRule:
    """
    Fixed-length rewrite rule.

    Compared and hashed by its patterns only; `name` is a label for logs.

    Example:
        # Move a white cell one step into black
        rule = CellRule.parse("bw", "wb")

        # Wildcards: grow red into anything next to it, keep the red cell
        rule = CellRule.parse("R*", "*R")
    """
    input: Pattern
    output: Pattern
    name: str = field(default="", compare=False)

    def __post_init__(self):
        inp = tuple(self.input)
        out = tuple(self.output)
        if len(inp) != len(out):
            raise RuleSyntaxError(
                f"Rule input length {len(inp)} != output length {len(out)}"
                + (f" in rule '{self.name}'" if self.name else "")
            )
        if len(inp) < 1:
            raise RuleSyntaxError("Rules must have at least one cell")
        for side, pattern in (("input", inp), ("output", out)):
            for code in pattern:
                if code is not None and (not isinstance(code, (int, np.integer))
                                         or not 0 <= code < CELL_CODE_INVALID):
                    raise RuleSyntaxError(f"Invalid {side} cell code {code!r}")
        object.__setattr__(self, "input", tuple(None if c is None else int(c) for c in inp))
        object.__setattr__(self, "output", tuple(None if c is None else int(c) for c in out))

    @classmethod
    def parse(
        cls,
        input: Union[str, Sequence[RuleSymbol]],
        output: Union[str, Sequence[RuleSymbol]],
        vocabulary: Optional[Vocabulary] = None,
        name: str = "",
    ) -> "CellRule":
        """
        Build a rule from display characters, codes, or wildcards.

        Each side is a string or a sequence whose items are a vocabulary
        character, an integer code, or None. The character '*' is a wildcard.
        """
        vocabulary = resolve_vocabulary(vocabulary)
        if len(input) != len(output):
            raise RuleSyntaxError(
                f"Rule input {input!r} and output {output!r} must be the same length"
            )
        return cls(
            input=_parse_pattern(input, vocabulary),
            output=_parse_pattern(output, vocabulary),
            name=name or f"{_pattern_text(input)}->{_pattern_text(output)}",
        )

    @property
    def length(self) -> int:
        return len(self.input)

    def describe(self, vocabulary: Optional[Vocabulary] = None) -> str:
        vocabulary = resolve_vocabulary(vocabulary)

        def text(pattern: Pattern) -> str:
            return "".join(WILDCARD_CHAR if c is None else vocabulary.char_for_code(c, "?")
                           for c in pattern)

        return f"{text(self.input)} -> {text(self.output)}"

    def __repr__(self) -> str:
        return f"CellRule({self.describe()})"


def _parse_pattern(symbols: Union[str, Sequence[RuleSymbol]], vocabulary: Vocabulary) -> Pattern:
    pattern: List[Optional[int]] = []
    for symbol in symbols:
        if symbol is None:
            pattern.append(None)
        elif isinstance(symbol, str):
            if symbol == WILDCARD_CHAR and symbol not in vocabulary:
                pattern.append(None)
                continue
            try:
                pattern.append(vocabulary.code_for_char(symbol))
            except VocabularyError as e:
                raise RuleSyntaxError(f"Unsupported rule char {symbol!r}: {e}") from None
        elif isinstance(symbol, (int, np.integer)):
            if not 0 <= symbol < len(vocabulary):
                raise RuleSyntaxError(
                    f"Rule code {symbol} is outside the vocabulary [0, {len(vocabulary)})"
                )
            pattern.append(int(symbol))
        else:
            raise RuleSyntaxError(f"Unhandled type of rule cell: {type(symbol).__name__}")
    return tuple(pattern)


def _pattern_text(symbols: Union[str, Sequence[RuleSymbol]]) -> str:
    if isinstance(symbols, str):
        return symbols
    return "".join(WILDCARD_CHAR if s is None else str(s) for s in symbols)


# ===== Single-line matching =====

def _applies_at(cells: np.ndarray, pattern: Pattern, start: Position, direction: GridDirection) -> bool:
    axis = direction.axis
    sign = direction.sign
    pos = list(start)
    origin = pos[axis]
    for i, expected in enumerate(pattern):
        if expected is None:
            continue
        pos[axis] = origin + i * sign
        if cells[tuple(pos)] != expected:
            return False
    return True


def rule_applies(grid: Grid, rule: CellRule, line: CellLine) -> bool:
    """Whether every non-wildcard input slot equals the cell under it."""
    if line.length != rule.length:
        raise EngineInvariantError(
            f"Line of length {line.length} tested against rule of length {rule.length}"
        )
    return _applies_at(grid.cells, rule.input, line.start, line.direction)


def rule_execute(grid: Grid, rule: CellRule, line: CellLine) -> None:
    """
    Write the rule's output onto the line.

    Does not re-check the input; callers validate through a cache or
    `rule_applies` first.
    """
    if line.length != rule.length:
        raise EngineInvariantError(
            f"Line of length {line.length} executed with rule of length {rule.length}"
        )
    cells = grid.cells
    axis = line.direction.axis
    sign = line.direction.sign
    pos = list(line.start)
    origin = pos[axis]
    for i, value in enumerate(rule.output):
        if value is None:
            continue
        pos[axis] = origin + i * sign
        cells[tuple(pos)] = value


# ===== Whole-grid matching =====

@njit(cache=True)
def _window_match_rows(rows: np.ndarray, pattern: np.ndarray) -> np.ndarray:
    """Numba kernel: match a pattern (-1 = wildcard) on every window of every row."""
    n_rows, n = rows.shape
    length = pattern.shape[0]
    out = np.zeros((n_rows, n - length + 1), dtype=np.bool_)
    for r in range(n_rows):
        for w in range(n - length + 1):
            ok = True
            for j in range(length):
                p = pattern[j]
                if p >= 0 and rows[r, w + j] != p:
                    ok = False
                    break
            out[r, w] = ok
    return out


def _window_mask(cells: np.ndarray, axis: int, pattern: Pattern, use_numba: bool) -> np.ndarray:
    """
    Mask over forward windows along `axis`.

    Result has the grid's shape with `axis` shortened to n - L + 1; entry w
    is True when cells w..w+L-1 along the axis match `pattern`.
    """
    length = len(pattern)
    n = cells.shape[axis]

    if use_numba:
        moved = np.ascontiguousarray(np.moveaxis(cells, axis, -1))
        rows = moved.reshape(-1, n)
        kernel_pattern = np.array([-1 if c is None else c for c in pattern], dtype=np.int16)
        out = _window_match_rows(rows, kernel_pattern)
        out = out.reshape(moved.shape[:-1] + (n - length + 1,))
        return np.moveaxis(out, -1, axis)

    windows = np.lib.stride_tricks.sliding_window_view(cells, length, axis=axis)
    mask = np.ones(windows.shape[:-1], dtype=bool)
    for j, code in enumerate(pattern):
        if code is not None:
            mask &= windows[..., j] == code
    return mask


def find_rule_matches(grid: Grid, rule: CellRule, use_numba: bool = False) -> Iterator[CellLine]:
    """
    Yield every line on which `rule` currently applies.

    Directions are visited in index order; within a direction, start
    positions come in row-major order. Lines that would leave the grid are
    never produced.
    """
    cells = grid.cells
    length = rule.length
    for direction in GridDirection.all(grid.ndim):
        axis = direction.axis
        if length > cells.shape[axis]:
            continue

        # A backward line starting at s covers the forward window s-L+1..s
        # with the pattern reversed.
        pattern = rule.input if direction.sign > 0 else rule.input[::-1]
        mask = _window_mask(cells, axis, pattern, use_numba)
        starts = np.argwhere(mask)
        if direction.sign < 0:
            starts[:, axis] += length - 1

        for start in starts:
            yield CellLine(tuple(int(x) for x in start), direction, length)


def find_all_rule_matches(
    grid: Grid,
    rules: Sequence[CellRule],
    use_numba: bool = False,
) -> Iterator[Tuple[int, CellLine]]:
    """Yield (rule index, line) for every match, grouped by rule in list order."""
    for rule_idx, rule in enumerate(rules):
        for line in find_rule_matches(grid, rule, use_numba=use_numba):
            yield rule_idx, line
