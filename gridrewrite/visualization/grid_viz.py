"""
Grid visualization functions.

Turns engine snapshots into colors and matplotlib figures. Only read-only
data crosses this boundary: a `GridSnapshot` (or raw code array) and the
vocabulary's color table.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union
import numpy as np

from ..core.cells import CELL_CODE_INVALID, Vocabulary, resolve_vocabulary
from ..core.grid import Grid, GridSnapshot

# Lazy import for matplotlib
_plt = None
_animation = None

def _get_plt():
    global _plt
    if _plt is None:
        import matplotlib.pyplot as plt
        _plt = plt
    return _plt

def _get_animation():
    global _animation
    if _animation is None:
        from matplotlib import animation
        _animation = animation
    return _animation


Color = Tuple[float, float, float]
GridLike = Union[Grid, GridSnapshot, np.ndarray]


def _codes_and_vocabulary(grid: GridLike, vocabulary: Optional[Vocabulary]):
    if isinstance(grid, (Grid, GridSnapshot)):
        codes = grid.cells if isinstance(grid, Grid) else grid.codes
        return np.asarray(codes), vocabulary or grid.vocabulary
    return np.asarray(grid), resolve_vocabulary(vocabulary)


def grid_to_rgb(
    grid: GridLike,
    vocabulary: Optional[Vocabulary] = None,
    null_color: Color = (0.4, 0.0, 0.4),
) -> np.ndarray:
    """
    Look up the color of every cell.

    Returns a float32 array of shape grid.shape + (3,). Cells holding the
    invalid sentinel (or any code outside the vocabulary) get `null_color`.
    """
    codes, vocabulary = _codes_and_vocabulary(grid, vocabulary)
    table = np.vstack([vocabulary.color_table(), np.asarray(null_color, dtype=np.float32)])
    null_index = len(vocabulary)
    lookup = np.where(
        (codes == CELL_CODE_INVALID) | (codes >= null_index),
        null_index,
        codes,
    )
    return table[lookup]


def _as_image(rgb: np.ndarray, projection_axis: int) -> np.ndarray:
    """Reduce a color array to something imshow can draw."""
    spatial = rgb.ndim - 1
    if spatial == 1:
        return rgb[np.newaxis, :, :]
    if spatial == 2:
        return rgb
    # Higher dimensions: brightest color along the projected axes.
    image = rgb
    while image.ndim - 1 > 2:
        axis = projection_axis if projection_axis < image.ndim - 1 else 0
        image = image.max(axis=axis)
    return image


def plot_grid(
    grid: GridLike,
    vocabulary: Optional[Vocabulary] = None,
    ax: Optional[Any] = None,
    title: str = "",
    null_color: Color = (0.4, 0.0, 0.4),
    projection_axis: int = 0,
    gamma: float = 2.2,
) -> Any:
    """
    Draw a grid with each cell in its vocabulary color.

    1-D grids are drawn as a strip, 2-D grids as an image, higher
    dimensions as a max-projection along `projection_axis`.

    Args:
        grid: Grid, snapshot or raw code array
        vocabulary: Palette (defaults to the grid's own)
        ax: Matplotlib axis (created if None)
        title: Plot title
        null_color: Color of invalid cells
        projection_axis: Axis collapsed for grids above 2-D
        gamma: Display gamma applied to the linear colors

    Returns:
        Matplotlib axis
    """
    plt = _get_plt()

    rgb = grid_to_rgb(grid, vocabulary, null_color)
    image = _as_image(rgb, projection_axis) ** (1.0 / gamma)

    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 6) if rgb.ndim > 2 else (12, 1))

    ax.imshow(np.clip(image, 0.0, 1.0), interpolation='nearest',
              aspect='equal' if rgb.ndim > 2 else 'auto')
    ax.set_xticks([])
    ax.set_yticks([])

    if title:
        ax.set_title(title)

    return ax


def plot_history(
    history: Sequence[GridLike],
    vocabulary: Optional[Vocabulary] = None,
    max_states: int = 200,
    ax: Optional[Any] = None,
    title: str = "Generation History",
) -> Any:
    """
    Space-time diagram of a 1-D grid's snapshots (time runs downward).

    Returns:
        Matplotlib axis, or None for an empty history
    """
    plt = _get_plt()

    rows: List[np.ndarray] = []
    for state in list(history)[:max_states]:
        rgb = grid_to_rgb(state, vocabulary)
        if rgb.ndim != 2:
            raise ValueError("plot_history only supports 1-D grids")
        rows.append(rgb)

    if not rows:
        return None

    data = np.stack(rows)
    T, N = data.shape[:2]

    if ax is None:
        fig, ax = plt.subplots(figsize=(12, 8))

    ax.imshow(data, aspect='auto', interpolation='nearest',
              extent=[0, N, T, 0], origin='upper')
    ax.set_xlabel('Cell')
    ax.set_ylabel('Step')
    ax.set_title(title)

    return ax


def animate_history(
    history: Sequence[GridLike],
    vocabulary: Optional[Vocabulary] = None,
    interval: int = 50,
    save_path: Optional[str] = None,
) -> Any:
    """
    Animate snapshots of a 2-D grid.

    Args:
        history: Snapshots in order
        vocabulary: Palette
        interval: Milliseconds between frames
        save_path: Optional path to save animation

    Returns:
        Matplotlib animation object
    """
    plt = _get_plt()
    animation = _get_animation()

    frames = [_as_image(grid_to_rgb(s, vocabulary), 0) for s in history]
    if not frames:
        return None

    fig, ax = plt.subplots(figsize=(6, 6))
    im = ax.imshow(frames[0], interpolation='nearest')
    ax.set_xticks([])
    ax.set_yticks([])
    title = ax.set_title('step 0')

    def update(frame):
        im.set_array(frames[frame])
        title.set_text(f'step {frame}')
        return [im, title]

    anim = animation.FuncAnimation(
        fig, update, frames=len(frames),
        interval=interval, blit=True
    )

    if save_path:
        anim.save(save_path, writer='pillow')

    return anim


def save_grid_image(
    grid: GridLike,
    path: Union[str, Path],
    vocabulary: Optional[Vocabulary] = None,
    null_color: Color = (0.4, 0.0, 0.4),
    dpi: int = 100,
) -> Path:
    """Render `grid` with `plot_grid` and write it to `path`."""
    plt = _get_plt()

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(6, 6))
    plot_grid(grid, vocabulary, ax=ax, null_color=null_color)
    fig.savefig(path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
    return path
