"""
Grid Rewriter - procedural generation by N-dimensional cell rewriting.

Main entry point for generation runs.
"""

from __future__ import annotations
import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from gridrewrite.config import GeneratorConfig, GridParams, InitialFill
from gridrewrite.core import Grid, Vocabulary
from gridrewrite.engine import GenerationEngine, GenerationResult
from gridrewrite.presets import PRESETS, get_preset
from gridrewrite.visualization import save_grid_image


logger = logging.getLogger(__name__)


def build_grid(params: GridParams, vocabulary: Optional[Vocabulary] = None) -> Grid:
    """
    Create the starting grid described by `params`.

    Returns:
        Fresh Grid
    """
    if params.initial == InitialFill.STRINGS:
        rows = params.rows[0] if len(params.rows) == 1 else params.rows
        return Grid.from_strings(rows, vocabulary)
    return Grid(params.shape, fill=params.fill_char, vocabulary=vocabulary)


def run_generation(
    config: GeneratorConfig,
    vocabulary: Optional[Vocabulary] = None,
    store_history: bool = False,
) -> GenerationResult:
    """
    Run one complete generation.

    Args:
        config: Generation configuration
        vocabulary: Palette (default vocabulary if None)
        store_history: Keep snapshots of every step

    Returns:
        GenerationResult with the final snapshot and statistics
    """
    for issue in config.validate():
        logger.warning(f"Config: {issue}")

    logger.info(f"Preset: {config.preset}")
    logger.info(f"Grid shape: {config.grid.shape}, max steps: {config.max_steps}")

    grid = build_grid(config.grid, vocabulary)
    sequence = get_preset(config.preset, grid.vocabulary)

    engine = GenerationEngine(sequence, config.engine)
    result = engine.run(grid, max_steps=config.max_steps, store_history=store_history)

    for name, count in sorted(result.stats.rules_by_name.items()):
        logger.info(f"  {name}: {count}")

    if config.render.output_path is not None:
        path = save_grid_image(result.final, config.render.output_path,
                               null_color=config.render.null_color,
                               dpi=config.render.dpi)
        logger.info(f"Image saved to: {path}")

    return result


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Grid Rewriter")

    parser.add_argument('--preset', type=str, default=None, choices=sorted(PRESETS),
                       help='Sequence to run (default: random_walk_maze)')
    parser.add_argument('--size', type=int, default=None,
                       help='Cells per axis (default: 50)')
    parser.add_argument('--dims', type=int, default=None,
                       help='Number of grid axes (default: 2)')
    parser.add_argument('--seed', type=int, default=None,
                       help='Random seed (default: None)')
    parser.add_argument('--max-steps', type=int, default=None,
                       help='Stop after this many rule applications (default: unbounded)')
    parser.add_argument('--config', type=str, default=None,
                       help='JSON config file; command-line flags override it')
    parser.add_argument('--output', type=str, default=None,
                       help='Save the final grid as an image to this path')
    parser.add_argument('--ascii', action='store_true',
                       help='Print the final grid as characters')
    parser.add_argument('--log-level', type=str, default=None,
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       help='Logging level (default: INFO)')
    parser.add_argument('--verify-cache', action='store_true',
                       help='Check the rule cache against a full re-scan after every step')

    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> GeneratorConfig:
    """Start from --config (or defaults) and apply command-line overrides."""
    config = GeneratorConfig.load(args.config) if args.config else GeneratorConfig()

    if args.preset is not None:
        config.preset = args.preset
    if args.size is not None or args.dims is not None:
        dims = args.dims if args.dims is not None else len(config.grid.shape)
        size = args.size if args.size is not None else config.grid.shape[0]
        config.grid.shape = (size,) * dims
        config.grid.initial = InitialFill.UNIFORM
    if args.seed is not None:
        config.engine.seed = args.seed
    if args.max_steps is not None:
        config.max_steps = args.max_steps
    if args.output is not None:
        config.render.output_path = Path(args.output)
    if args.ascii:
        config.render.ascii = True
    if args.log_level is not None:
        config.engine.log_level = args.log_level
    if args.verify_cache:
        config.engine.verify_cache = True

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line interface for running generations."""
    args = parse_args(argv)
    config = config_from_args(args)

    logging.basicConfig(level=getattr(logging, config.engine.log_level.upper(), logging.INFO))

    result = run_generation(config)

    if config.render.ascii:
        print(result.final.to_string())

    logger.info(f"Done! {result.stats.total_steps} steps ({result.stop_reason})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
