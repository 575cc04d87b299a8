"""
Core module for the grid rewriting engine.

Contains:
- Vocabulary: named cell states with codes, display chars and colors
- Grid: N-dimensional array of cell codes, directions and cell lines
- CellRule: fixed-length input/output rewrite patterns with wildcards
- Matcher: single-line checks and exhaustive whole-grid matching
- RuleCache: incrementally maintained index of legal rule applications
"""

from .cells import (
    CELL_CODE_INVALID, DEFAULT_VOCABULARY,
    CellType, Vocabulary, VocabularyError,
)
from .grid import CellLine, Grid, GridDirection, GridSnapshot, Position
from .rules import (
    WILDCARD_CHAR, CellRule, EngineInvariantError, RuleSyntaxError,
    find_all_rule_matches, find_rule_matches, rule_applies, rule_execute,
)
from .cache import CacheInvariantError, OrderedIndexSet, RuleApplication, RuleCache

__all__ = [
    # Vocabulary
    "CELL_CODE_INVALID",
    "DEFAULT_VOCABULARY",
    "CellType",
    "Vocabulary",
    "VocabularyError",
    # Grid
    "CellLine",
    "Grid",
    "GridDirection",
    "GridSnapshot",
    "Position",
    # Rules & matching
    "WILDCARD_CHAR",
    "CellRule",
    "EngineInvariantError",
    "RuleSyntaxError",
    "find_all_rule_matches",
    "find_rule_matches",
    "rule_applies",
    "rule_execute",
    # Cache
    "CacheInvariantError",
    "OrderedIndexSet",
    "RuleApplication",
    "RuleCache",
]
