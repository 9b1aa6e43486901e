"""
Filter pipeline.

ProcessingOptions describes which filters to run; FilterPipeline applies them
in a fixed order:

    brightness -> contrast -> saturation -> hue -> blur -> sharpen -> noise
    -> horizontal flip -> vertical flip -> rotation

Color stages see unblurred detail, noise is added after smoothing so it is
not itself smoothed, and geometric stages run last so every other filter
works in the original orientation. A stage runs only when its option is
non-default.

Examples:
    >>> options = ProcessingOptions(brightness=10, blur=1.5, flip_horizontal=True)
    >>> processed = apply_processing(buffer, options)

    >>> # Random preset, reproducible with a seeded generator
    >>> options = random_augmentation(np.random.default_rng(0))
"""

from dataclasses import asdict, dataclass, fields

import numpy as np

from cropaug.core import PixelBuffer, get_logger

from . import filters

logger = get_logger(__name__)

# Allowed (min, max) per numeric option
OPTION_RANGES: dict[str, tuple[float, float]] = {
    "blur": (0.0, 10.0),
    "sharpen": (0.0, 2.0),
    "brightness": (-100.0, 100.0),
    "contrast": (-100.0, 100.0),
    "saturation": (-100.0, 100.0),
    "hue": (-180.0, 180.0),
    "noise": (0.0, 100.0),
    "rotation": (-180.0, 180.0),
}


@dataclass(frozen=True)
class ProcessingOptions:
    """
    Immutable set of filter parameters.

    Zero / False means the stage is skipped. Values outside OPTION_RANGES
    raise ValueError.
    """

    blur: float = 0.0
    sharpen: float = 0.0
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    hue: float = 0.0
    noise: float = 0.0
    rotation: float = 0.0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    def __post_init__(self):
        for name, (low, high) in OPTION_RANGES.items():
            value = getattr(self, name)
            if value is None:
                object.__setattr__(self, name, 0.0)
                continue
            value = float(value)
            if not low <= value <= high:
                raise ValueError(f"{name} must be between {low:g} and {high:g}, got {value:g}")
            object.__setattr__(self, name, value)
        object.__setattr__(self, "flip_horizontal", bool(self.flip_horizontal))
        object.__setattr__(self, "flip_vertical", bool(self.flip_vertical))

    def is_identity(self) -> bool:
        return self == ProcessingOptions()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "ProcessingOptions":
        """
        Build options from a mapping, accepting camelCase keys.

        Raises:
            ValueError: On unknown keys or out-of-range values
        """
        if not data:
            return cls()

        known = {f.name for f in fields(cls)}
        aliases = {"flipHorizontal": "flip_horizontal", "flipVertical": "flip_vertical"}
        kwargs = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown processing option: '{key}'")
            kwargs[name] = value
        return cls(**kwargs)


class FilterPipeline:
    """
    Applies ProcessingOptions to buffers in the fixed stage order.

    Args:
        options: Filter parameters
        rng: Random source for the noise stage (default: unseeded)
    """

    def __init__(self, options: ProcessingOptions, rng: np.random.Generator | None = None):
        self.options = options
        self.rng = rng if rng is not None else np.random.default_rng()

    def stages(self) -> list[tuple]:
        """Enabled stages in application order, as (name, buffer -> buffer) pairs"""
        opts = self.options
        stages = []
        if opts.brightness != 0:
            stages.append(("brightness", lambda b: filters.adjust_brightness(b, opts.brightness)))
        if opts.contrast != 0:
            stages.append(("contrast", lambda b: filters.adjust_contrast(b, opts.contrast)))
        if opts.saturation != 0:
            stages.append(("saturation", lambda b: filters.adjust_saturation(b, opts.saturation)))
        if opts.hue != 0:
            stages.append(("hue", lambda b: filters.adjust_hue(b, opts.hue)))
        if opts.blur > 0:
            stages.append(("blur", lambda b: filters.gaussian_blur(b, opts.blur)))
        if opts.sharpen > 0:
            stages.append(("sharpen", lambda b: filters.sharpen(b, opts.sharpen)))
        if opts.noise > 0:
            stages.append(("noise", lambda b: filters.add_noise(b, opts.noise, self.rng)))
        if opts.flip_horizontal:
            stages.append(("flip_horizontal", filters.flip_horizontal))
        if opts.flip_vertical:
            stages.append(("flip_vertical", filters.flip_vertical))
        if opts.rotation != 0:
            stages.append(("rotation", lambda b: filters.rotate(b, opts.rotation)))
        return stages

    def apply(self, buffer: PixelBuffer) -> PixelBuffer:
        """
        Run every enabled stage and return a new buffer.

        The input is never modified. With all-default options the result is
        a bit-identical copy.

        Raises:
            InvalidBuffer: If the buffer's dimensions and samples disagree
        """
        buffer.validate()
        result = buffer.copy()
        for name, stage in self.stages():
            result = stage(result)
            logger.debug(f"Applied {name}: {result.width}x{result.height}")
        return result


def apply_processing(
    buffer: PixelBuffer,
    options: ProcessingOptions,
    rng: np.random.Generator | None = None,
) -> PixelBuffer:
    """Apply options to buffer; see FilterPipeline.apply"""
    return FilterPipeline(options, rng).apply(buffer)


def random_augmentation(rng: np.random.Generator | None = None) -> ProcessingOptions:
    """
    Draw a mild random augmentation preset.

    Ranges: blur [0, 2), sharpen [0, 0.5), brightness +-20, contrast +-15,
    saturation +-20, noise [0, 10), rotation +-15 degrees, horizontal flip
    with probability 0.5 and vertical flip with probability 0.3.

    Args:
        rng: Random source (default: unseeded)

    Returns:
        Randomized ProcessingOptions
    """
    rng = rng if rng is not None else np.random.default_rng()
    return ProcessingOptions(
        blur=rng.random() * 2,
        sharpen=rng.random() * 0.5,
        brightness=(rng.random() - 0.5) * 40,
        contrast=(rng.random() - 0.5) * 30,
        saturation=(rng.random() - 0.5) * 40,
        noise=rng.random() * 10,
        rotation=(rng.random() - 0.5) * 30,
        flip_horizontal=rng.random() > 0.5,
        flip_vertical=rng.random() > 0.7,
    )
