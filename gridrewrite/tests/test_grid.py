"""
Tests for grids, directions and cell lines.
"""

import pytest
import numpy as np
from gridrewrite.core import (
    CELL_CODE_INVALID, DEFAULT_VOCABULARY,
    CellLine, Grid, GridDirection, VocabularyError,
)


class TestGridDirection:
    """Tests for GridDirection."""

    def test_index_order(self):
        """Directions enumerate as -x0, +x0, -x1, +x1, ..."""
        dirs = GridDirection.all(2)
        assert [(d.axis, d.sign) for d in dirs] == [(0, -1), (0, 1), (1, -1), (1, 1)]
        assert [d.index for d in dirs] == [0, 1, 2, 3]

    def test_from_index_roundtrip(self):
        for i in range(6):
            assert GridDirection.from_index(i).index == i

    def test_flipped(self):
        d = GridDirection(1, 1)
        assert d.flipped() == GridDirection(1, -1)
        assert d.flipped().flipped() == d

    def test_invalid(self):
        with pytest.raises(ValueError):
            GridDirection(0, 0)
        with pytest.raises(ValueError):
            GridDirection(-1, 1)

    def test_hashable(self):
        assert len({GridDirection(0, 1), GridDirection(0, 1), GridDirection(0, -1)}) == 2


class TestCellLine:
    """Tests for CellLine geometry."""

    def test_cells_forward(self):
        line = CellLine((2, 1), GridDirection(1, 1), 3)
        assert list(line.cells()) == [(2, 1), (2, 2), (2, 3)]
        assert line.end == (2, 3)

    def test_cells_backward(self):
        line = CellLine((4,), GridDirection(0, -1), 3)
        assert list(line.cells()) == [(4,), (3,), (2,)]
        assert line.cell(1) == (3,)
        assert line.bounds() == ((2,), (4,))

    def test_fits(self):
        assert CellLine((0, 0), GridDirection(0, 1), 3).fits((3, 3))
        assert not CellLine((1, 0), GridDirection(0, 1), 3).fits((3, 3))
        assert not CellLine((1, 0), GridDirection(0, -1), 3).fits((3, 3))
        assert CellLine((2, 0), GridDirection(0, -1), 3).fits((3, 3))
        # Dimension mismatch
        assert not CellLine((0,), GridDirection(0, 1), 1).fits((3, 3))


class TestGrid:
    """Tests for Grid."""

    def test_create_default(self):
        """Default grid is filled with code 0."""
        grid = Grid((4, 5))
        assert grid.shape == (4, 5)
        assert grid.ndim == 2
        assert grid.size == 20
        assert grid.cells.dtype == np.uint8
        assert np.all(grid.cells == 0)

    def test_create_1d_from_int(self):
        grid = Grid(7, fill="w")
        assert grid.shape == (7,)
        assert grid.count("w") == 7

    def test_invalid_shape(self):
        with pytest.raises(ValueError):
            Grid((0, 3))
        with pytest.raises(ValueError):
            Grid(())

    def test_from_strings(self):
        grid = Grid.from_strings(["bw", "Rb"])
        assert grid.shape == (2, 2)
        assert grid[0, 1] == DEFAULT_VOCABULARY.code_for_char("w")
        assert grid[1, 0] == DEFAULT_VOCABULARY.code_for_char("R")
        assert grid.to_string() == "bw\nRb"

    def test_from_strings_1d(self):
        grid = Grid.from_strings("bwb")
        assert grid.shape == (3,)
        assert grid.to_string() == "bwb"

    def test_from_strings_ragged(self):
        with pytest.raises(ValueError):
            Grid.from_strings(["bw", "b"])

    def test_from_array_out_of_range(self):
        with pytest.raises(VocabularyError):
            Grid.from_array(np.array([0, 99]))

    def test_setitem_rejects_invalid(self):
        grid = Grid((3,))
        grid[1] = "R"
        assert grid[1] == DEFAULT_VOCABULARY.code_for_char("R")
        with pytest.raises(VocabularyError):
            grid[0] = CELL_CODE_INVALID

    def test_copy(self):
        """Copies are independent."""
        original = Grid.from_strings("bbb")
        copy = original.copy()
        assert copy == original
        copy[0] = "w"
        assert copy != original
        assert original.to_string() == "bbb"

    def test_not_hashable(self):
        """Grids are mutable, so they compare by value but can't be hashed."""
        grid = Grid.from_strings("bw")
        assert grid == Grid.from_strings("bw")
        with pytest.raises(TypeError):
            hash(grid)
        with pytest.raises(TypeError):
            {grid}

    def test_snapshot_is_read_only(self):
        grid = Grid.from_strings("bw")
        snap = grid.snapshot(step=3)
        assert snap.step == 3
        assert snap.shape == (2,)
        with pytest.raises(ValueError):
            snap.codes[0] = 2
        # A copied snapshot doesn't follow the grid
        grid[0] = "w"
        assert snap.to_string() == "bw"

    def test_snapshot_view_follows_grid(self):
        grid = Grid.from_strings("bw")
        view = grid.snapshot(copy=False)
        grid[0] = "w"
        assert view.to_string() == "ww"
        # The grid stays writable
        grid[1] = "b"

    def test_to_string_3d(self):
        grid = Grid((2, 1, 2), fill="b")
        grid[1, 0, 1] = "w"
        assert grid.to_string() == "bb\n\nbw"

    def test_contains_and_line_codes(self):
        grid = Grid.from_strings(["bwR"])
        assert grid.contains((0, 2))
        assert not grid.contains((1, 0))
        line = CellLine((0, 2), GridDirection(1, -1), 3)
        assert grid.line_fits(line)
        assert grid.line_codes(line) == [3, 2, 0]

    def test_fill(self):
        grid = Grid((2, 2)).fill("G")
        assert grid.count("G") == 4
