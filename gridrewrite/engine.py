"""
Generation engine: the driver-facing entry points.

A host loop (game tick, CLI, test) owns a grid and a sequence. It starts a
run once and then advances it one rule application at a time:

    run = start(sequence, grid, seed=42)
    while run is not None:
        run, mutated = advance(run)
        draw(grid.snapshot())

Each `advance` performs a bounded amount of local work and returns, so a
single-threaded host can interleave generation with rendering and input.
Cancelling a run is simply not calling `advance` again.

Key features:
- Deterministic given grid, sequence, config and seed
- Per-run statistics and optional history of snapshots / applications
- Step callbacks for hosts that want to observe every application
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .config import EngineConfig
from .core.cache import RuleApplication
from .core.grid import Grid, GridSnapshot
from .core.rules import CellRule
from .sequences.sequences import (
    SequenceState,
    SequenceType,
    active_rules_state,
    start_sequence,
    step_sequence,
)


logger = logging.getLogger(__name__)


@dataclass
class RunState:
    """Everything one generation run owns: grid, sequence state and RNG."""
    sequence: SequenceType
    grid: Grid
    rng: np.random.Generator
    config: EngineConfig
    sequence_state: Optional[SequenceState]
    seed: Optional[int] = None
    steps: int = 0

    @property
    def finished(self) -> bool:
        return self.sequence_state is None

    @property
    def last_application(self) -> Optional[RuleApplication]:
        if self.sequence_state is None:
            return None
        return self.sequence_state.last_application

    @property
    def last_rule(self) -> Optional[CellRule]:
        """The rule behind `last_application`."""
        rules_state = active_rules_state(self.sequence_state)
        if rules_state is None or rules_state.last_application is None:
            return None
        return rules_state.rules[rules_state.last_application.rule_idx]


def start(
    sequence: SequenceType,
    grid: Grid,
    seed: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> RunState:
    """
    Begin a generation run.

    Args:
        sequence: Sequence to run
        grid: Grid to rewrite in place
        seed: RNG seed; falls back to `config.seed`, then to fresh entropy
        config: Engine switches
    """
    config = EngineConfig() if config is None else config
    if seed is None:
        seed = config.seed
    rng = np.random.default_rng(seed)

    logger.info(f"Starting generation: grid {grid.shape}, seed {seed}, "
                f"sequence {type(sequence).__name__}")
    state = start_sequence(sequence, grid, rng, config=config)
    return RunState(sequence=sequence, grid=grid, rng=rng, config=config,
                    sequence_state=state, seed=seed)


def advance(run: RunState) -> Tuple[Optional[RunState], bool]:
    """
    Advance a run by at most one rule application.

    Returns:
        (run, grid_mutated); run is None once generation is complete
    """
    if run.sequence_state is None:
        return None, False

    next_state = step_sequence(run.sequence, run.grid, run.rng, run.sequence_state)
    run.sequence_state = next_state
    if next_state is None:
        logger.info(f"Generation finished after {run.steps} steps")
        return None, False

    run.steps += 1
    return run, True


@dataclass
class GenerationStats:
    """Statistics from a generation run."""
    total_steps: int = 0
    rules_by_name: Dict[str, int] = field(default_factory=dict)

    # Timing
    start_time: float = 0.0
    end_time: float = 0.0

    @property
    def elapsed_time(self) -> float:
        return self.end_time - self.start_time

    @property
    def steps_per_second(self) -> float:
        if self.elapsed_time > 0:
            return self.total_steps / self.elapsed_time
        return 0.0


@dataclass
class GenerationResult:
    """
    Complete result of a generation run.

    Contains:
    - Final snapshot
    - History of snapshots and applications (if enabled)
    - Statistics
    - Stop reason ("exhausted" or "max_steps")
    """
    final: GridSnapshot
    history: List[GridSnapshot] = field(default_factory=list)
    applications: List[RuleApplication] = field(default_factory=list)
    stats: GenerationStats = field(default_factory=GenerationStats)
    stop_reason: str = "exhausted"

    @property
    def finished(self) -> bool:
        return self.stop_reason == "exhausted"


class GenerationEngine:
    """
    Runs a sequence to completion (or a step limit) on a grid.

    Example:
        engine = GenerationEngine(presets.random_walk_maze())
        grid = Grid((40, 40), fill="b")
        result = engine.run(grid, seed=7)
        print(grid.to_string())
    """

    def __init__(self, sequence: SequenceType, config: Optional[EngineConfig] = None):
        self.sequence = sequence
        self.config = EngineConfig() if config is None else config

        # Callbacks
        self._step_callbacks: List[Callable[[RunState], None]] = []

    def add_step_callback(self, callback: Callable[[RunState], None]) -> None:
        """Add callback to be called after each applied rule."""
        self._step_callbacks.append(callback)

    def remove_step_callback(self, callback: Callable[[RunState], None]) -> None:
        self._step_callbacks.remove(callback)

    def start(self, grid: Grid, seed: Optional[int] = None) -> RunState:
        return start(self.sequence, grid, seed=seed, config=self.config)

    def run(
        self,
        grid: Grid,
        seed: Optional[int] = None,
        max_steps: Optional[int] = None,
        store_history: bool = False,
        history_stride: int = 1,
        record_applications: bool = False,
    ) -> GenerationResult:
        """
        Run generation until the sequence is exhausted or `max_steps` is hit.

        Args:
            grid: Grid to rewrite in place
            seed: RNG seed (defaults to the config's)
            max_steps: Maximum number of rule applications (None = unbounded)
            store_history: Keep snapshots of the grid
            history_stride: Keep every N-th snapshot
            record_applications: Keep every chosen RuleApplication

        Returns:
            GenerationResult with final snapshot, history, and statistics
        """
        if history_stride < 1:
            raise ValueError(f"history_stride must be positive, got {history_stride}")

        stats = GenerationStats(start_time=time.time())
        history: List[GridSnapshot] = []
        applications: List[RuleApplication] = []

        if store_history:
            history.append(grid.snapshot(step=0))

        run: Optional[RunState] = self.start(grid, seed=seed)
        stop_reason = "exhausted"
        interval = self.config.progress_interval

        while run is not None:
            if max_steps is not None and run.steps >= max_steps:
                stop_reason = "max_steps"
                break

            run, _ = advance(run)
            if run is None:
                break

            stats.total_steps = run.steps
            app = run.last_application
            if app is not None:
                rule = run.last_rule
                name = rule.name or rule.describe(grid.vocabulary)
                stats.rules_by_name[name] = stats.rules_by_name.get(name, 0) + 1
                if record_applications:
                    applications.append(app)

            if store_history and run.steps % history_stride == 0:
                history.append(grid.snapshot(step=run.steps))

            if interval and run.steps % interval == 0:
                logger.info(f"Step {run.steps} - {len(stats.rules_by_name)} distinct rules used")

            for callback in self._step_callbacks:
                callback(run)

        stats.end_time = time.time()
        logger.info(f"Stopped ({stop_reason}) after {stats.total_steps} steps, "
                    f"{stats.steps_per_second:.1f} steps/s")

        return GenerationResult(
            final=grid.snapshot(step=stats.total_steps),
            history=history,
            applications=applications,
            stats=stats,
            stop_reason=stop_reason,
        )
