"""
Visualization module for the grid rewriting engine.

Provides visualization tools:
- Code -> color conversion for any grid snapshot
- 2-D images, 1-D space-time diagrams and N-D projections
- Animations of generation history
"""

from .grid_viz import (
    grid_to_rgb,
    plot_grid,
    plot_history,
    animate_history,
    save_grid_image,
)

__all__ = [
    "grid_to_rgb",
    "plot_grid",
    "plot_history",
    "animate_history",
    "save_grid_image",
]
