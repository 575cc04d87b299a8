"""
Configuration module for the grid rewriting engine.

Contains all configurable parameters for a generation run.
"""

from dataclasses import dataclass, field
from typing import List, Tuple, Optional
from enum import Enum
import json
from pathlib import Path


class InitialFill(Enum):
    """How the starting grid is built."""
    UNIFORM = "uniform"  # Every cell holds `fill_char`
    STRINGS = "strings"  # Parsed from `rows`


@dataclass
class GridParams:
    """Starting grid parameters."""
    shape: Tuple[int, ...] = (50, 50)
    fill_char: str = "b"
    initial: InitialFill = InitialFill.UNIFORM
    rows: List[str] = field(default_factory=list)


@dataclass
class EngineConfig:
    """
    Runtime switches for one engine instance.

    Passed into the engine rather than kept as module state, so engines with
    different settings can coexist (e.g. in tests).
    """
    # Determinism
    seed: Optional[int] = None          # None = fresh entropy

    # Debugging
    skip_cache: bool = False            # Re-scan the whole grid every step
    verify_cache: bool = False          # Check the cache against a full re-scan after every update

    # Performance
    use_numba: bool = False             # numba kernel for whole-grid matching

    # Logging
    log_level: str = "INFO"
    progress_interval: int = 0          # Log progress every N steps (0 = off)


@dataclass
class RenderParams:
    """Output parameters for rendered grids."""
    null_color: Tuple[float, float, float] = (0.4, 0.0, 0.4)
    output_path: Optional[Path] = None
    dpi: int = 100
    ascii: bool = False


@dataclass
class GeneratorConfig:
    """
    Main configuration container for a generation run.

    Example:
        config = GeneratorConfig(
            preset="random_walk_maze",
            grid=GridParams(shape=(40, 40)),
        )
        config.save("my_config.json")
    """
    preset: str = "random_walk_maze"
    max_steps: Optional[int] = None     # None = run until the sequence is exhausted

    # Sub-configurations
    grid: GridParams = field(default_factory=GridParams)
    engine: EngineConfig = field(default_factory=EngineConfig)
    render: RenderParams = field(default_factory=RenderParams)

    def save(self, path: str | Path) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self._to_dict()
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path: str | Path) -> "GeneratorConfig":
        """Load configuration from JSON file."""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls._from_dict(data)

    def _to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        def convert(obj):
            if isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, Path):
                return str(obj)
            elif hasattr(obj, '__dataclass_fields__'):
                return {k: convert(v) for k, v in obj.__dict__.items()}
            elif isinstance(obj, (list, tuple)):
                return [convert(x) for x in obj]
            return obj

        return convert(self)

    @classmethod
    def _from_dict(cls, data: dict) -> "GeneratorConfig":
        """Reconstruct from dictionary."""
        if 'grid' in data:
            grid = dict(data['grid'])
            if 'shape' in grid:
                grid['shape'] = tuple(grid['shape'])
            if 'initial' in grid:
                grid['initial'] = InitialFill(grid['initial'])
            data['grid'] = GridParams(**grid)
        if 'engine' in data:
            data['engine'] = EngineConfig(**data['engine'])
        if 'render' in data:
            render = dict(data['render'])
            if 'null_color' in render:
                render['null_color'] = tuple(render['null_color'])
            if render.get('output_path') is not None:
                render['output_path'] = Path(render['output_path'])
            data['render'] = RenderParams(**render)

        return cls(**data)

    def validate(self) -> List[str]:
        """Validate configuration, return list of warnings/errors."""
        issues = []

        if not self.grid.shape or any(n < 1 for n in self.grid.shape):
            issues.append("grid.shape must have at least one axis, all positive")
        if self.grid.initial == InitialFill.STRINGS and not self.grid.rows:
            issues.append("grid.rows must be given when grid.initial is 'strings'")
        if len(self.grid.fill_char) != 1:
            issues.append("grid.fill_char must be a single character")

        if self.max_steps is not None and self.max_steps < 0:
            issues.append("max_steps must be non-negative")
        if self.engine.progress_interval < 0:
            issues.append("engine.progress_interval must be non-negative")
        if self.engine.skip_cache and self.engine.verify_cache:
            issues.append("engine.verify_cache has no effect when engine.skip_cache is set")

        if not all(0.0 <= c <= 1.0 for c in self.render.null_color):
            issues.append("render.null_color components must be in [0, 1]")

        return issues


# Preset configurations
def minimal_config() -> GeneratorConfig:
    """Minimal configuration for quick testing."""
    return GeneratorConfig(
        grid=GridParams(shape=(12, 12)),
        engine=EngineConfig(seed=0, verify_cache=True),
    )


def standard_config() -> GeneratorConfig:
    """Standard configuration for typical runs."""
    return GeneratorConfig(
        grid=GridParams(shape=(100, 100)),
        engine=EngineConfig(seed=42, progress_interval=1000),
    )
