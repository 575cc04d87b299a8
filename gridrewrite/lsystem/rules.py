"""
Rewriting rules for string L-systems.

Unlike grid rules, an L-system rule replaces one character with a string of
any length:

    'a' -> "[*Ccrb]"

Every character of the current string is rewritten simultaneously each
generation. When several rules match the same character, one is drawn at
random in proportion to its weight.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Sequence


@dataclass(frozen=True)
class LRule:
    """
    Replace `input` (one ASCII character) with `output`.

    Attributes:
        input: Character to rewrite
        output: Replacement string (may be empty)
        weight: Relative probability when several rules share an input
    """
    input: str
    output: str
    weight: float = 1.0

    def __post_init__(self):
        if len(self.input) != 1:
            raise ValueError(f"L-system rule input must be one character, got {self.input!r}")
        if not (self.input + self.output).isascii():
            raise ValueError(f"L-system rules are limited to ASCII: {self.input!r} -> {self.output!r}")
        if self.weight < 0:
            raise ValueError(f"Rule weight must be non-negative, got {self.weight}")
        object.__setattr__(self, "weight", float(self.weight))

    def is_applicable(self, char: str) -> bool:
        return self.input == char


Ruleset = List[LRule]


def group_by_input(rules: Sequence[LRule]) -> Dict[str, List[LRule]]:
    """Rules with positive weight, grouped by input character in rule order."""
    grouped: Dict[str, List[LRule]] = {}
    for rule in rules:
        if rule.weight > 0:
            grouped.setdefault(rule.input, []).append(rule)
    return grouped
