"""
Sequence module for the grid rewriting engine.

Contains:
- DoN / DoNRelative / DoAll: rule-applying sequences
- Ordered: runs child sequences one after another
- start_sequence / step_sequence: explicit-state start/step protocol
"""

from .sequences import (
    SEQUENCE_TYPES,
    DoAll,
    DoN,
    DoNRelative,
    Ordered,
    OrderedState,
    RulesState,
    SequenceConfigError,
    SequenceState,
    SequenceType,
    active_rules_state,
    start_sequence,
    step_sequence,
)

__all__ = [
    "SEQUENCE_TYPES",
    "DoAll",
    "DoN",
    "DoNRelative",
    "Ordered",
    "OrderedState",
    "RulesState",
    "SequenceConfigError",
    "SequenceState",
    "SequenceType",
    "active_rules_state",
    "start_sequence",
    "step_sequence",
]
