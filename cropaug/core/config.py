"""
YAML configuration for batch generation and filter processing.

Example file:

    generation:
      anchor: [10, 10, 100, 50]      # or "10,10,100,50" or {x: .., y: .., width: .., height: ..}
      count: 20
      expansion: [0, 50]
      aspect_jitter: [0.5, 2.0]      # omit or null to disable
      allow_out_of_bounds: true
      seed: 42
      workers: 4
    processing:
      brightness: 10
      blur: 1.5
      flip_horizontal: true

Command line flags override values read from the file.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from cropaug.engine.orchestrator import GenerationRequest
from cropaug.image.pipeline import ProcessingOptions

from .buffer import Rectangle
from .errors import ConfigError
from .logger import get_logger

logger = get_logger(__name__)

GENERATION_KEYS = {
    "anchor",
    "count",
    "expansion",
    "aspect_jitter",
    "allow_out_of_bounds",
    "seed",
    "workers",
}


def parse_pair(value, name: str) -> tuple[float, float] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = [v for v in value.split(",") if v.strip()]
    if isinstance(value, (int, float)):
        value = [value, value]
    try:
        low, high = (float(v) for v in value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be a pair of numbers, got {value!r}") from e
    return low, high


def _parse_int(value, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise ConfigError(f"'{name}' must be an integer, got {value!r}") from e


def parse_anchor(value) -> Rectangle | None:
    """
    Parse an anchor from a list, a comma-separated string or a mapping.

    Raises:
        ConfigError: If the value cannot be interpreted
    """
    if value is None:
        return None
    try:
        if isinstance(value, str):
            return Rectangle.parse(value)
        if isinstance(value, dict):
            return Rectangle(
                float(value["x"]), float(value["y"]), float(value["width"]), float(value["height"])
            )
        x, y, w, h = (float(v) for v in value)
        return Rectangle(x, y, w, h)
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid anchor {value!r}: expected x,y,width,height") from e


@dataclass
class AugmentConfig:
    """Parsed configuration; generation values may still be None"""

    anchor: Rectangle | None = None
    count: int = 10
    expansion: tuple[float, float] = (0.0, 0.0)
    aspect_jitter: tuple[float, float] | None = None
    allow_out_of_bounds: bool = True
    seed: int | None = None
    workers: int | None = None
    processing: ProcessingOptions = field(default_factory=ProcessingOptions)

    def build_request(self) -> GenerationRequest:
        """
        Raises:
            ConfigError: If no anchor was configured
            ValueError: If the generation values are out of range
        """
        if self.anchor is None:
            raise ConfigError("An anchor rectangle is required (config 'generation.anchor' or --anchor)")
        return GenerationRequest(
            anchor=self.anchor,
            expansion_range=self.expansion,
            aspect_ratio_jitter=self.aspect_jitter,
            allow_out_of_bounds=self.allow_out_of_bounds,
            count=self.count,
        )


def parse_config(data: dict | None) -> AugmentConfig:
    """
    Build an AugmentConfig from already-loaded YAML content.

    Raises:
        ConfigError: On unknown keys or malformed values
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

    unknown = set(data) - {"generation", "processing"}
    if unknown:
        raise ConfigError(f"Unknown configuration section(s): {', '.join(sorted(unknown))}")

    generation = data.get("generation") or {}
    if not isinstance(generation, dict):
        raise ConfigError("'generation' must be a mapping")
    unknown = set(generation) - GENERATION_KEYS
    if unknown:
        raise ConfigError(f"Unknown generation key(s): {', '.join(sorted(unknown))}")

    config = AugmentConfig()
    config.anchor = parse_anchor(generation.get("anchor"))
    if "count" in generation:
        config.count = _parse_int(generation["count"], "count")
    if generation.get("expansion") is not None:
        config.expansion = parse_pair(generation["expansion"], "expansion")
    config.aspect_jitter = parse_pair(generation.get("aspect_jitter"), "aspect_jitter")
    if "allow_out_of_bounds" in generation:
        config.allow_out_of_bounds = bool(generation["allow_out_of_bounds"])
    if generation.get("seed") is not None:
        config.seed = _parse_int(generation["seed"], "seed")
    if generation.get("workers") is not None:
        config.workers = _parse_int(generation["workers"], "workers")

    processing = data.get("processing") or {}
    if not isinstance(processing, dict):
        raise ConfigError("'processing' must be a mapping")
    try:
        config.processing = ProcessingOptions.from_dict(processing)
    except ValueError as e:
        raise ConfigError(f"Invalid processing options: {e}") from e

    return config


def load_config(path: str | Path) -> AugmentConfig:
    """
    Load a YAML configuration file.

    Args:
        path: YAML file path

    Returns:
        Parsed configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the YAML is invalid or has unexpected content
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    config = parse_config(data)
    logger.info(f"Loaded configuration from {path}")
    return config
