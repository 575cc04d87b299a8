"""
L-system module.

Contains:
- LRule: one-character-to-string rewrite rule with a sampling weight
- LSystem: string state rewritten in parallel each generation
- PRESETS: ready-made rule sets
"""

from .rules import LRule, Ruleset, group_by_input
from .system import LSystem, PRESETS

__all__ = [
    "LRule",
    "Ruleset",
    "group_by_input",
    "LSystem",
    "PRESETS",
]
