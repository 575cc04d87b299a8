"""
Tests for the cell vocabulary.
"""

import pytest
import numpy as np
from gridrewrite.core import (
    CELL_CODE_INVALID, DEFAULT_VOCABULARY,
    CellType, Vocabulary, VocabularyError,
)


class TestCellType:
    """Tests for CellType validation."""

    def test_valid(self):
        t = CellType(code=3, name="Red", char="R", color=(1.0, 0.0, 0.0))
        assert t.code == 3
        assert t.char == "R"

    def test_reserved_code_rejected(self):
        """The invalid sentinel can't be a real cell."""
        with pytest.raises(VocabularyError):
            CellType(code=CELL_CODE_INVALID, name="X", char="x", color=(0, 0, 0))

    def test_multichar_rejected(self):
        with pytest.raises(VocabularyError):
            CellType(code=0, name="X", char="xx", color=(0, 0, 0))


class TestVocabulary:
    """Tests for Vocabulary lookups."""

    def test_from_triples_assigns_codes(self):
        vocab = Vocabulary.from_triples([
            ("Black", "b", (0, 0, 0)),
            ("White", "w", (1, 1, 1)),
        ])
        assert len(vocab) == 2
        assert vocab.code_for_char("b") == 0
        assert vocab.code_for_char("w") == 1
        assert vocab[1].name == "White"
        assert vocab.by_name("Black").char == "b"

    def test_duplicate_char_rejected(self):
        with pytest.raises(VocabularyError):
            Vocabulary.from_triples([
                ("A", "a", (0, 0, 0)),
                ("B", "a", (1, 1, 1)),
            ])

    def test_duplicate_name_rejected(self):
        with pytest.raises(VocabularyError):
            Vocabulary.from_triples([
                ("A", "a", (0, 0, 0)),
                ("A", "b", (1, 1, 1)),
            ])

    def test_sparse_codes_rejected(self):
        """Codes must be 0..n-1 in order."""
        with pytest.raises(VocabularyError):
            Vocabulary([CellType(code=1, name="A", char="a", color=(0, 0, 0))])

    def test_unknown_char(self):
        with pytest.raises(VocabularyError):
            DEFAULT_VOCABULARY.code_for_char("?")
        with pytest.raises(VocabularyError):
            DEFAULT_VOCABULARY.by_name("Nope")

    def test_char_for_code(self):
        assert DEFAULT_VOCABULARY.char_for_code(0) == "b"
        assert DEFAULT_VOCABULARY.char_for_code(CELL_CODE_INVALID) == " "
        assert DEFAULT_VOCABULARY.char_for_code(CELL_CODE_INVALID, "#") == "#"

    def test_codes(self):
        codes = DEFAULT_VOCABULARY.codes("bw")
        assert codes == frozenset({0, 2})

    def test_contains(self):
        assert "R" in DEFAULT_VOCABULARY
        assert "?" not in DEFAULT_VOCABULARY

    def test_color_table(self):
        table = DEFAULT_VOCABULARY.color_table()
        assert table.shape == (len(DEFAULT_VOCABULARY), 3)
        assert table.dtype == np.float32
        np.testing.assert_allclose(table[DEFAULT_VOCABULARY.code_for_char("R")], [1, 0, 0])

    def test_default_palette(self):
        """Default palette has the usual 16 colors."""
        assert len(DEFAULT_VOCABULARY) == 16
        assert "".join(DEFAULT_VOCABULARY.chars) == "bgwRGBYMTOPLINES"
