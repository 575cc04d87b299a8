"""
Tests for configuration and the command-line entry point.
"""

from pathlib import Path

import pytest
from gridrewrite.config import (
    EngineConfig, GeneratorConfig, GridParams, InitialFill, RenderParams,
    minimal_config, standard_config,
)
from gridrewrite.main import build_grid, config_from_args, main, parse_args, run_generation


class TestGeneratorConfig:
    """Tests for GeneratorConfig."""

    def test_defaults_are_valid(self):
        assert GeneratorConfig().validate() == []
        assert minimal_config().validate() == []
        assert standard_config().validate() == []

    def test_save_load_roundtrip(self, tmp_path):
        config = GeneratorConfig(
            preset="seeker",
            max_steps=50,
            grid=GridParams(shape=(7, 9), fill_char="w"),
            engine=EngineConfig(seed=3, use_numba=True),
            render=RenderParams(output_path=Path("out/maze.png"), dpi=72),
        )
        path = tmp_path / "sub" / "config.json"
        config.save(path)
        loaded = GeneratorConfig.load(path)

        assert loaded == config
        assert loaded.grid.shape == (7, 9)
        assert loaded.grid.initial is InitialFill.UNIFORM
        assert loaded.render.output_path == Path("out/maze.png")

    def test_roundtrip_string_grid(self, tmp_path):
        config = GeneratorConfig(grid=GridParams(initial=InitialFill.STRINGS, rows=["bw", "wb"]))
        path = tmp_path / "config.json"
        config.save(path)
        assert GeneratorConfig.load(path) == config

    def test_validate_reports_issues(self):
        config = GeneratorConfig(
            max_steps=-1,
            grid=GridParams(shape=(0, 4), fill_char="bb", initial=InitialFill.STRINGS),
            engine=EngineConfig(skip_cache=True, verify_cache=True, progress_interval=-5),
            render=RenderParams(null_color=(2.0, 0.0, 0.0)),
        )
        issues = config.validate()
        assert len(issues) == 7


class TestMain:
    """Tests for the CLI."""

    def test_build_grid_uniform(self):
        grid = build_grid(GridParams(shape=(3, 4), fill_char="w"))
        assert grid.shape == (3, 4)
        assert grid.count("w") == 12

    def test_build_grid_strings(self):
        grid = build_grid(GridParams(initial=InitialFill.STRINGS, rows=["bw", "Rb"]))
        assert grid.to_string() == "bw\nRb"
        grid = build_grid(GridParams(initial=InitialFill.STRINGS, rows=["bwb"]))
        assert grid.shape == (3,)

    def test_args_override_config(self, tmp_path):
        path = tmp_path / "config.json"
        GeneratorConfig(preset="seeker", grid=GridParams(shape=(20, 20))).save(path)
        args = parse_args(["--config", str(path), "--size", "11", "--dims", "3",
                           "--seed", "4", "--verify-cache"])
        config = config_from_args(args)
        assert config.preset == "seeker"
        assert config.grid.shape == (11, 11, 11)
        assert config.engine.seed == 4
        assert config.engine.verify_cache

    def test_size_keeps_dims(self):
        config = config_from_args(parse_args(["--size", "8"]))
        assert config.grid.shape == (8, 8)

    def test_run_generation(self):
        config = minimal_config()
        config.preset = "blob_growth"
        result = run_generation(config)
        assert result.finished
        assert result.final.shape == (12, 12)

    def test_main_ascii(self, capsys):
        assert main(["--preset", "blob_growth", "--size", "6", "--seed", "1",
                     "--ascii", "--log-level", "WARNING"]) == 0
        out = capsys.readouterr().out.strip().splitlines()
        assert len(out) == 6
        assert all(len(line) == 6 for line in out)
        assert sum(line.count("R") for line in out) == 12
