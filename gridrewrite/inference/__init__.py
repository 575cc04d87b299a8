"""
Inference module for the grid rewriting engine.

Contains:
- compute_potential: BFS distance field from destination cells through path cells
- InferPath: constraint steering source cells along paths toward destinations
- AllInference: combination of path constraints plus a global temperature
"""

from .potential import POTENTIAL_UNREACHABLE, compute_potential, neighbor_pairs
from .paths import AllInference, AllInferenceState, InferPath, InferPathState

__all__ = [
    "POTENTIAL_UNREACHABLE",
    "compute_potential",
    "neighbor_pairs",
    "AllInference",
    "AllInferenceState",
    "InferPath",
    "InferPathState",
]
