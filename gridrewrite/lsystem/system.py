"""
String L-system.

The state is a plain ASCII string. `iterate` rewrites every character at
once: characters with applicable rules are replaced by one of those rules'
outputs (weighted random choice), all other characters are copied as-is.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional

import numpy as np

from .rules import LRule, Ruleset, group_by_input


logger = logging.getLogger(__name__)


class LSystem:
    """
    Mutable L-system state plus its rules.

    Example:
        system = LSystem("a", PRESETS["regular"])
        system.iterate()
        system.state  # "[*Ccrb]"
    """

    def __init__(self, state: str, rules: Iterable[LRule]):
        if not state.isascii():
            raise ValueError("L-system state is limited to ASCII")
        self.state = state
        self.rules: Ruleset = list(rules)
        self._by_input = group_by_input(self.rules)
        self._weights: Dict[str, np.ndarray] = {
            char: np.array([r.weight for r in group]) / sum(r.weight for r in group)
            for char, group in self._by_input.items()
        }
        self.generation = 0

    def iterate(self, rng: Optional[np.random.Generator] = None) -> str:
        """Step the L-system one generation forward and return the new state."""
        if rng is None:
            rng = np.random.default_rng()

        output: List[str] = []
        for char in self.state:
            group = self._by_input.get(char)
            if group is None:
                output.append(char)
            elif len(group) == 1:
                output.append(group[0].output)
            else:
                idx = int(rng.choice(len(group), p=self._weights[char]))
                output.append(group[idx].output)

        self.state = "".join(output)
        self.generation += 1
        logger.debug(f"L-system generation {self.generation}: {len(self.state)} chars")
        return self.state

    def run(self, generations: int, rng: Optional[np.random.Generator] = None) -> List[str]:
        """Iterate `generations` times, returning every intermediate state."""
        if generations < 0:
            raise ValueError(f"generations must be non-negative, got {generations}")
        if rng is None:
            rng = np.random.default_rng()
        return [self.iterate(rng) for _ in range(generations)]

    def __len__(self) -> int:
        return len(self.state)

    def __repr__(self) -> str:
        return f"LSystem(generation={self.generation}, {len(self.rules)} rules, {len(self.state)} chars)"


# 'a' is a new branch, 'b' three new branches, 'r' a rotation and 'c' a
# change of color; the remaining characters are turtle commands.
PRESETS: Dict[str, Ruleset] = {
    "regular": [
        LRule("a", "[*Ccrb]"),
        LRule("b", "aYaYa"),
        LRule("r", "PYR"),
        LRule("c", "HSL"),
    ],
}
