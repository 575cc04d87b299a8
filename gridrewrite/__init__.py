"""
Grid Rewriter

An N-dimensional grid rewriting engine for procedural generation.
Rules replace short lines of cells along any axis; sequences decide which
rule fires, how often and in what order; path inference biases the choice
toward (or away from) target cells.

Main components:
- core: Vocabulary, grids, rules, matcher, rule cache
- inference: Potential fields and path constraints
- sequences: DoN, DoNRelative, DoAll, Ordered and their start/step protocol
- engine: Driver API (start / advance) and GenerationEngine
- lsystem: String L-systems
- visualization: Color images and space-time diagrams
"""

__version__ = "0.1.0"
__author__ = "Grid Rewriter Team"

from .core import CellLine, CellRule, Grid, GridDirection, RuleCache, Vocabulary
from .inference import AllInference, InferPath
from .sequences import DoAll, DoN, DoNRelative, Ordered
from .engine import GenerationEngine, RunState, advance, start
from .config import EngineConfig, GeneratorConfig

__all__ = [
    "CellLine",
    "CellRule",
    "Grid",
    "GridDirection",
    "RuleCache",
    "Vocabulary",
    "AllInference",
    "InferPath",
    "DoAll",
    "DoN",
    "DoNRelative",
    "Ordered",
    "GenerationEngine",
    "RunState",
    "advance",
    "start",
    "EngineConfig",
    "GeneratorConfig",
]
