"""
Tests for the string L-system.
"""

import pytest
import numpy as np
from gridrewrite.lsystem import LRule, LSystem, PRESETS, group_by_input


class TestLRule:
    """Tests for LRule."""

    def test_valid(self):
        r = LRule("a", "ab", weight=2)
        assert r.weight == 2.0
        assert r.is_applicable("a")
        assert not r.is_applicable("b")

    def test_input_must_be_one_char(self):
        with pytest.raises(ValueError):
            LRule("ab", "a")

    def test_ascii_only(self):
        with pytest.raises(ValueError):
            LRule("a", "é")

    def test_negative_weight(self):
        with pytest.raises(ValueError):
            LRule("a", "b", weight=-1)

    def test_group_by_input_drops_zero_weight(self):
        rules = [LRule("a", "x"), LRule("b", "y"), LRule("a", "z", weight=0)]
        grouped = group_by_input(rules)
        assert [r.output for r in grouped["a"]] == ["x"]
        assert [r.output for r in grouped["b"]] == ["y"]


class TestLSystem:
    """Tests for LSystem iteration."""

    def test_regular_trace(self):
        """Three generations of the branching preset from a single 'a'."""
        system = LSystem("a", PRESETS["regular"])
        states = system.run(3, np.random.default_rng(0))
        assert states == [
            "[*Ccrb]",
            "[*CHSLPYRaYaYa]",
            "[*CHSLPYR[*Ccrb]Y[*Ccrb]Y[*Ccrb]]",
        ]
        assert system.generation == 3
        assert system.state == states[-1]

    def test_unmatched_chars_are_copied(self):
        system = LSystem("xax", [LRule("a", "")])
        assert system.iterate() == "xx"

    def test_weighted_choice(self):
        """Only rules with weight can be chosen."""
        rules = [LRule("a", "x", weight=1.0), LRule("a", "y", weight=0.0), LRule("a", "z", weight=3.0)]
        system = LSystem("a" * 200, rules)
        out = system.iterate(np.random.default_rng(1))
        assert set(out) <= {"x", "z"}
        assert out.count("z") > out.count("x")

    def test_deterministic_with_seed(self):
        rules = [LRule("a", "ab"), LRule("a", "ba")]
        a = LSystem("a", rules).run(4, np.random.default_rng(7))
        b = LSystem("a", rules).run(4, np.random.default_rng(7))
        assert a == b

    def test_non_ascii_state(self):
        with pytest.raises(ValueError):
            LSystem("é", [])

    def test_negative_generations(self):
        with pytest.raises(ValueError):
            LSystem("a", []).run(-1)
