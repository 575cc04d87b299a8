"""
Potential field for path inference.

The potential of a cell is its breadth-first distance from the nearest
destination cell, travelling only through path cells:

    potential[c] = 0                         if c is a destination
    potential[c] = 1 + min potential[n]      over grid neighbors n, if c is a path cell
    potential[c] = POTENTIAL_UNREACHABLE     otherwise / if no such route exists

Neighbors are the 2N axis-aligned cells (no wrapping). The search is one
unweighted shortest-path query on a sparse directed graph with a virtual
source node wired to every destination cell.
"""

from __future__ import annotations
from typing import Iterable
import numpy as np
from scipy import sparse
from scipy.sparse import csgraph


POTENTIAL_UNREACHABLE = np.iinfo(np.uint32).max


def neighbor_pairs(shape) -> np.ndarray:
    """
    Flat-index pairs (u, v) of every axis-aligned neighbor relation.

    Each unordered pair appears twice, once per direction. Shape (2, E).
    """
    index = np.arange(int(np.prod(shape))).reshape(shape)
    heads = []
    tails = []
    for axis in range(len(shape)):
        if shape[axis] < 2:
            continue
        lower = np.take(index, np.arange(shape[axis] - 1), axis=axis).ravel()
        upper = np.take(index, np.arange(1, shape[axis]), axis=axis).ravel()
        heads.extend((lower, upper))
        tails.extend((upper, lower))
    if not heads:
        return np.zeros((2, 0), dtype=np.int64)
    return np.stack([np.concatenate(heads), np.concatenate(tails)])


def compute_potential(
    cells: np.ndarray,
    dest_types: Iterable[int],
    path_types: Iterable[int],
) -> np.ndarray:
    """
    Multi-source BFS distance field.

    Args:
        cells: Grid codes, any number of dimensions
        dest_types: Codes whose cells are distance 0
        path_types: Codes the search may step through

    Returns:
        uint32 array of cells' shape; unreachable cells hold POTENTIAL_UNREACHABLE
    """
    shape = cells.shape
    n_cells = cells.size
    flat = cells.ravel()

    is_dest = np.isin(flat, np.fromiter(dest_types, dtype=np.int64))
    is_path = np.isin(flat, np.fromiter(path_types, dtype=np.int64))

    potential = np.full(n_cells, POTENTIAL_UNREACHABLE, dtype=np.uint32)
    dest_idx = np.flatnonzero(is_dest)
    if dest_idx.size == 0:
        return potential.reshape(shape)

    # The frontier only grows out of destinations and reached path cells,
    # and only into path cells.
    heads, tails = neighbor_pairs(shape)
    keep = (is_dest | is_path)[heads] & is_path[tails]
    source_node = n_cells
    rows = np.concatenate([heads[keep], np.full(dest_idx.size, source_node)])
    cols = np.concatenate([tails[keep], dest_idx])

    graph = sparse.csr_matrix(
        (np.ones(rows.size, dtype=np.float64), (rows, cols)),
        shape=(n_cells + 1, n_cells + 1),
    )
    distance = csgraph.shortest_path(
        graph, method="D", directed=True, unweighted=True, indices=source_node,
    )[:n_cells]

    reachable = np.isfinite(distance)
    potential[reachable] = (distance[reachable] - 1).astype(np.uint32)
    return potential.reshape(shape)
