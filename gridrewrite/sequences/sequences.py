"""
Sequences: composable strategies deciding which rule to apply, how often,
and in what order.

A sequence is one of a closed set of immutable variants:

    DoN          apply rules exactly `count` times (or until no match is left)
    DoNRelative  DoN with count = max(count_min, round(count_per_cell * cells))
    DoAll        apply rules until no match is left
    Ordered      run child sequences to exhaustion, one after another

Running a sequence never stores progress on the sequence itself. Instead
`start_sequence` returns an explicit state value and `step_sequence` takes
that state, performs at most one rule application, and returns the state to
continue with, or None once the sequence is exhausted:

    NotStarted --start--> Running --step--> Running
                                   \\--step--> Exhausted (None)

An exhausted sequence is never resumed; call `start_sequence` again for a
fresh run.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from ..config import EngineConfig
from ..core.cache import RuleApplication, RuleCache
from ..core.grid import Grid
from ..core.rules import CellRule, find_all_rule_matches, rule_execute
from ..inference.paths import AllInference, AllInferenceState


logger = logging.getLogger(__name__)


class SequenceConfigError(ValueError):
    """Raised when a sequence is constructed with invalid parameters."""


def _check_rules(rules: Sequence[CellRule], kind: str) -> Tuple[CellRule, ...]:
    rules = tuple(rules)
    if not rules:
        raise SequenceConfigError(f"'{kind}' sequence needs at least one rule")
    for rule in rules:
        if not isinstance(rule, CellRule):
            raise SequenceConfigError(
                f"'{kind}' sequence received {type(rule).__name__} instead of a CellRule"
            )
    return rules


def _check_count(value, name: str, kind: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise SequenceConfigError(f"Received {type(value).__name__} for '{kind}' {name}")
    if value < 0:
        raise SequenceConfigError(f"Received a negative {name} ({value}) for '{kind}' sequence")
    return int(value)


@dataclass(frozen=True)
class DoN:
    """
    Apply rules `count` times.

    Attributes:
        rules: Candidate rules
        count: Number of applications
        sequential: Only the first rule (in list order) with any match is
            eligible each step; otherwise all matches compete
        inference: Extra inference for this sequence
    """
    rules: Tuple[CellRule, ...]
    count: int
    sequential: bool = False
    inference: AllInference = field(default_factory=AllInference)

    def __post_init__(self):
        object.__setattr__(self, "rules", _check_rules(self.rules, "Do N"))
        object.__setattr__(self, "count", _check_count(self.count, "count", "Do N"))


@dataclass(frozen=True)
class DoNRelative:
    """Apply rules `max(count_min, round(count_per_cell * cells))` times."""
    rules: Tuple[CellRule, ...]
    count_per_cell: float
    count_min: int = 1
    sequential: bool = False
    inference: AllInference = field(default_factory=AllInference)

    def __post_init__(self):
        object.__setattr__(self, "rules", _check_rules(self.rules, "Do N Relative"))
        if isinstance(self.count_per_cell, bool) or not isinstance(
                self.count_per_cell, (int, float, np.integer, np.floating)):
            raise SequenceConfigError(
                f"Received {type(self.count_per_cell).__name__} for count_per_cell"
            )
        if not np.isfinite(self.count_per_cell) or self.count_per_cell < 0:
            raise SequenceConfigError(f"Received an invalid count_per_cell ({self.count_per_cell})")
        object.__setattr__(self, "count_per_cell", float(self.count_per_cell))
        object.__setattr__(self, "count_min",
                           _check_count(self.count_min, "count_min", "Do N Relative"))

    def count_for(self, n_cells: int) -> int:
        return max(self.count_min, int(round(n_cells * self.count_per_cell)))


@dataclass(frozen=True)
class DoAll:
    """Apply rules until none of them matches anywhere."""
    rules: Tuple[CellRule, ...]
    sequential: bool = False
    inference: AllInference = field(default_factory=AllInference)

    def __post_init__(self):
        object.__setattr__(self, "rules", _check_rules(self.rules, "Do All"))


@dataclass(frozen=True)
class Ordered:
    """Run each child to exhaustion, in order."""
    children: Tuple["SequenceType", ...]
    inference: AllInference = field(default_factory=AllInference)

    def __post_init__(self):
        children = tuple(self.children)
        for child in children:
            if not isinstance(child, SEQUENCE_TYPES):
                raise SequenceConfigError(
                    f"Ordered sequence received {type(child).__name__} instead of a sequence"
                )
        object.__setattr__(self, "children", children)


SequenceType = Union[DoN, DoNRelative, DoAll, Ordered]
SEQUENCE_TYPES = (DoN, DoNRelative, DoAll, Ordered)


# ===== Resumption states =====

@dataclass
class RulesState:
    """
    Progress of a rule-applying sequence (DoN, DoNRelative, DoAll).

    `cache` is None when the engine runs with `skip_cache`; matches are then
    re-scanned every step.
    """
    rules: Tuple[CellRule, ...]
    sequential: bool
    remaining: Optional[int]            # None = unbounded
    cache: Optional[RuleCache]
    inference: Optional[AllInferenceState]
    config: EngineConfig
    applied: int = 0
    last_application: Optional[RuleApplication] = None


@dataclass
class OrderedState:
    """Progress of an Ordered sequence: which child runs, and its state."""
    child_idx: int
    child_state: Optional["SequenceState"]
    inference: AllInference
    config: EngineConfig

    @property
    def last_application(self) -> Optional[RuleApplication]:
        if self.child_state is None:
            return None
        return self.child_state.last_application


SequenceState = Union[RulesState, OrderedState]


def active_rules_state(state: Optional[SequenceState]) -> Optional[RulesState]:
    """The innermost rule-applying state currently running, if any."""
    while isinstance(state, OrderedState):
        state = state.child_state
    return state


# ===== start =====

def start_sequence(
    sequence: SequenceType,
    grid: Grid,
    rng: np.random.Generator,
    inference: Optional[AllInference] = None,
    config: Optional[EngineConfig] = None,
) -> SequenceState:
    """
    Begin a fresh run of `sequence` on `grid`.

    Args:
        sequence: What to run
        grid: Grid to rewrite; must not change outside of `step_sequence`
        rng: Random source for the run
        inference: Inference inherited from enclosing sequences
        config: Engine switches (cache bypass, verification, numba)
    """
    config = EngineConfig() if config is None else config
    inference = AllInference.merge(inference, sequence.inference)

    if isinstance(sequence, DoN):
        return _start_rules(sequence.rules, sequence.count, sequence.sequential,
                            grid, inference, config)
    elif isinstance(sequence, DoNRelative):
        count = sequence.count_for(grid.size)
        logger.debug(f"Relative count {sequence.count_per_cell} x {grid.size} cells -> {count}")
        return _start_rules(sequence.rules, count, sequence.sequential,
                            grid, inference, config)
    elif isinstance(sequence, DoAll):
        return _start_rules(sequence.rules, None, sequence.sequential,
                            grid, inference, config)
    elif isinstance(sequence, Ordered):
        child_state = None
        if sequence.children:
            child_state = start_sequence(sequence.children[0], grid, rng, inference, config)
        return OrderedState(child_idx=0, child_state=child_state,
                            inference=inference, config=config)
    raise TypeError(f"Unhandled sequence type: {type(sequence).__name__}")


def _start_rules(
    rules: Tuple[CellRule, ...],
    count: Optional[int],
    sequential: bool,
    grid: Grid,
    inference: AllInference,
    config: EngineConfig,
) -> RulesState:
    cache = None
    if not config.skip_cache:
        cache = RuleCache(grid, rules, use_numba=config.use_numba)
    inference_state = AllInferenceState(inference, grid) if inference.exists() else None
    return RulesState(
        rules=rules,
        sequential=sequential,
        remaining=count,
        cache=cache,
        inference=inference_state,
        config=config,
    )


# ===== step =====

def step_sequence(
    sequence: SequenceType,
    grid: Grid,
    rng: np.random.Generator,
    state: SequenceState,
) -> Optional[SequenceState]:
    """
    Perform at most one rule application.

    Returns the state to continue with, or None when `sequence` is
    exhausted. A None result means nothing was applied during this call.
    """
    if isinstance(sequence, (DoN, DoNRelative, DoAll)):
        return _step_rules(grid, rng, state)
    elif isinstance(sequence, Ordered):
        return _step_ordered(sequence, grid, rng, state)
    raise TypeError(f"Unhandled sequence type: {type(sequence).__name__}")


def _step_ordered(
    sequence: Ordered,
    grid: Grid,
    rng: np.random.Generator,
    state: OrderedState,
) -> Optional[OrderedState]:
    while state.child_idx < len(sequence.children):
        child = sequence.children[state.child_idx]
        next_child_state = step_sequence(child, grid, rng, state.child_state)
        if next_child_state is not None:
            state.child_state = next_child_state
            return state

        logger.debug(f"Ordered sequence: child {state.child_idx} "
                     f"({type(child).__name__}) exhausted")
        state.child_idx += 1
        state.child_state = None
        if state.child_idx < len(sequence.children):
            state.child_state = start_sequence(
                sequence.children[state.child_idx], grid, rng, state.inference, state.config
            )
    return None


def _candidates(state: RulesState, grid: Grid) -> List[RuleApplication]:
    """Eligible applications without a cache (full re-scan)."""
    found = [
        RuleApplication(rule_idx, line)
        for rule_idx, line in find_all_rule_matches(grid, state.rules,
                                                    use_numba=state.config.use_numba)
    ]
    if state.sequential and found:
        first_rule = found[0].rule_idx
        found = [app for app in found if app.rule_idx == first_rule]
    return found


def _pick_weighted(
    state: RulesState,
    candidates: Sequence[RuleApplication],
    rng: np.random.Generator,
) -> RuleApplication:
    """Among candidates, keep the maximum inference weight and break ties uniformly."""
    best_weight = -np.inf
    best: List[RuleApplication] = []
    for app in candidates:
        weight = state.inference.weight(state.rules[app.rule_idx], app.line, rng)
        if weight > best_weight:
            best_weight = weight
            best = [app]
        elif weight == best_weight:
            best.append(app)
    return best[int(rng.integers(len(best)))]


def _choose(state: RulesState, grid: Grid, rng: np.random.Generator) -> Optional[RuleApplication]:
    cache = state.cache

    if cache is None:
        candidates = _candidates(state, grid)
        if not candidates:
            return None
        if state.inference is not None:
            return _pick_weighted(state, candidates, rng)
        return candidates[int(rng.integers(len(candidates)))]

    if state.sequential:
        first = cache.first_nonempty_rule()
        if first is None:
            return None
        rule_idx, legal = first
        if state.inference is not None:
            return _pick_weighted(
                state, [cache.make_application(rule_idx, key) for key in legal], rng
            )
        return cache.make_application(rule_idx, legal[int(rng.integers(len(legal)))])

    total = cache.count()
    if total == 0:
        return None
    if state.inference is not None:
        return _pick_weighted(state, list(cache), rng)
    return cache.get_nth(int(rng.integers(total)))


def _step_rules(grid: Grid, rng: np.random.Generator, state: RulesState) -> Optional[RulesState]:
    if state.remaining is not None and state.remaining <= 0:
        return None

    application = _choose(state, grid, rng)
    if application is None:
        if state.remaining is not None:
            logger.warning(f"Ran out of matches after {state.applied} of "
                           f"{state.applied + state.remaining} iterations")
        else:
            logger.debug(f"No matches left after {state.applied} applications")
        return None

    rule = state.rules[application.rule_idx]
    rule_execute(grid, rule, application.line)

    if state.cache is not None:
        state.cache.update(application.rule_idx, application.line)
        if state.config.verify_cache:
            state.cache.verify()
    if state.inference is not None:
        state.inference.recompute()

    state.applied += 1
    state.last_application = application
    if state.remaining is not None:
        state.remaining -= 1
    return state
