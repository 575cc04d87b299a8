"""
Cell vocabulary for grid rewriting.

Every cell of a grid holds one byte-sized code. A vocabulary maps those
codes to a readable name, a single display character (used when writing
rules and printing grids) and a linear RGB color for visualizers.

Code 255 is reserved as the "no cell" sentinel and can never be part of a
vocabulary or of a live grid.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
import numpy as np


CELL_CODE_INVALID = 255
MAX_CELL_TYPES = 255


class VocabularyError(ValueError):
    """Raised when a vocabulary is malformed or a symbol is unknown."""


@dataclass(frozen=True)
class CellType:
    """
    One named cell state.

    Attributes:
        code: Dense numeric code stored in the grid
        name: Human-readable name
        char: Single character used in rule strings and ASCII output
        color: Linear RGB color, components in [0, 1]
    """
    code: int
    name: str
    char: str
    color: Tuple[float, float, float]

    def __post_init__(self):
        if not 0 <= self.code < CELL_CODE_INVALID:
            raise VocabularyError(
                f"Cell code {self.code} for '{self.name}' must be in [0, {CELL_CODE_INVALID})"
            )
        if len(self.char) != 1:
            raise VocabularyError(f"Cell char for '{self.name}' must be one character, got {self.char!r}")


class Vocabulary:
    """
    Fixed set of cell types with stable, dense codes.

    Example:
        vocab = Vocabulary.from_triples([
            ("Black", "b", (0, 0, 0)),
            ("White", "w", (1, 1, 1)),
        ])
        vocab.code_for_char("w")  # 1
    """

    def __init__(self, cell_types: Iterable[CellType]):
        self._types: Tuple[CellType, ...] = tuple(cell_types)

        if len(self._types) > MAX_CELL_TYPES:
            raise VocabularyError(
                f"A vocabulary holds at most {MAX_CELL_TYPES} cell types, got {len(self._types)}"
            )
        for expected, cell_type in enumerate(self._types):
            if cell_type.code != expected:
                raise VocabularyError(
                    f"Cell codes must be dense and ordered; '{cell_type.name}' has code "
                    f"{cell_type.code}, expected {expected}"
                )

        self._by_char: Dict[str, CellType] = {}
        self._by_name: Dict[str, CellType] = {}
        for cell_type in self._types:
            if cell_type.char in self._by_char:
                raise VocabularyError(f"Duplicate cell char {cell_type.char!r}")
            if cell_type.name in self._by_name:
                raise VocabularyError(f"Duplicate cell name {cell_type.name!r}")
            self._by_char[cell_type.char] = cell_type
            self._by_name[cell_type.name] = cell_type

    @classmethod
    def from_triples(
        cls,
        triples: Iterable[Tuple[str, str, Tuple[float, float, float]]],
    ) -> "Vocabulary":
        """Build a vocabulary from (name, char, color), assigning codes in order."""
        return cls(
            CellType(code=i, name=name, char=char, color=tuple(float(c) for c in color))
            for i, (name, char, color) in enumerate(triples)
        )

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self) -> Iterator[CellType]:
        return iter(self._types)

    def __getitem__(self, code: int) -> CellType:
        return self._types[code]

    def __contains__(self, char: str) -> bool:
        return char in self._by_char

    @property
    def chars(self) -> List[str]:
        return [t.char for t in self._types]

    def code_for_char(self, char: str) -> int:
        """Code of the cell type displayed as `char`."""
        try:
            return self._by_char[char].code
        except KeyError:
            raise VocabularyError(
                f"Unknown cell char {char!r}, expected one of {''.join(self.chars)!r}"
            ) from None

    def char_for_code(self, code: int, invalid_char: str = " ") -> str:
        """Display character for a code; the sentinel maps to `invalid_char`."""
        if code == CELL_CODE_INVALID:
            return invalid_char
        return self._types[code].char

    def by_name(self, name: str) -> CellType:
        try:
            return self._by_name[name]
        except KeyError:
            raise VocabularyError(f"Unknown cell type name {name!r}") from None

    def codes(self, chars: Iterable[str]) -> frozenset:
        """Set of codes for a string (or iterable) of display characters."""
        return frozenset(self.code_for_char(c) for c in chars)

    def color_table(self) -> np.ndarray:
        """Code -> color lookup table with shape (len(self), 3)."""
        return np.array([t.color for t in self._types], dtype=np.float32).reshape(-1, 3)

    def __repr__(self) -> str:
        return f"Vocabulary({''.join(self.chars)!r})"


DEFAULT_VOCABULARY = Vocabulary.from_triples([
    ("Black",   "b", (0.0, 0.0, 0.0)),
    ("Gray",    "g", (0.5, 0.5, 0.5)),
    ("White",   "w", (1.0, 1.0, 1.0)),
    ("Red",     "R", (1.0, 0.0, 0.0)),
    ("Green",   "G", (0.0, 1.0, 0.0)),
    ("Blue",    "B", (0.0, 0.0, 1.0)),
    ("Yellow",  "Y", (1.0, 1.0, 0.0)),
    ("Magenta", "M", (1.0, 0.0, 1.0)),
    ("Teal",    "T", (0.0, 1.0, 1.0)),
    ("Orange",  "O", (1.0, 0.5, 0.0)),
    ("Pink",    "P", (1.0, 0.0, 0.5)),
    ("Olive",   "L", (0.0, 0.5, 0.2)),
    ("Indigo",  "I", (0.0, 0.2, 0.5)),
    ("Brown",   "N", (0.5, 0.2, 0.0)),
    ("Beige",   "E", (1.0, 0.9, 0.8)),
    ("SkyBlue", "S", (0.7, 0.85, 1.0)),
])


def resolve_vocabulary(vocabulary: Optional[Vocabulary]) -> Vocabulary:
    return DEFAULT_VOCABULARY if vocabulary is None else vocabulary
