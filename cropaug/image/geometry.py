"""
Crop rectangle geometry.

Derives one randomized crop rectangle per variant from a user-selected
anchor: a random expansion percent, optional area-preserving aspect-ratio
jitter, and (when out-of-bounds crops are disallowed) clamping of the
expanded rectangle into the image.

Examples:
    >>> rng = np.random.default_rng(0)
    >>> rect, expansion = derive_variant(
    ...     Rectangle(10, 10, 100, 50),
    ...     expansion_range=(0, 50),
    ...     aspect_jitter=(0.5, 2.0),
    ...     allow_out_of_bounds=False,
    ...     image_size=(200, 200),
    ...     rng=rng,
    ... )
"""

import math

import numpy as np

from cropaug.core import InvalidAnchor, Rectangle, get_logger

logger = get_logger(__name__)


def validate_anchor(anchor: Rectangle, image_size: tuple[int, int] | None = None) -> None:
    """
    Reject anchors with zero or negative size, or lying entirely outside the image.

    Args:
        anchor: User-selected rectangle
        image_size: Optional (width, height) of the source image

    Raises:
        InvalidAnchor: If the anchor cannot be used
    """
    values = anchor.as_tuple()
    if not all(math.isfinite(v) for v in values):
        raise InvalidAnchor(f"Anchor values must be finite, got {values}")
    if anchor.width <= 0 or anchor.height <= 0:
        raise InvalidAnchor(f"Anchor must have positive size, got {anchor.width}x{anchor.height}")
    if image_size is not None:
        image_w, image_h = image_size
        if not anchor.intersects(image_w, image_h):
            raise InvalidAnchor(f"Anchor {values} lies outside the {image_w}x{image_h} image")


def draw_expansion(expansion_range: tuple[float, float], rng: np.random.Generator) -> float:
    """Uniform draw from [min, max]; negative values shrink the rectangle"""
    low, high = expansion_range
    return float(low + rng.random() * (high - low))


def jitter_aspect_ratio(anchor: Rectangle, ratio: float) -> Rectangle:
    """
    Reshape anchor to width/height == ratio, keeping its center and area.

    Args:
        anchor: Source rectangle
        ratio: Target width / height, must be positive

    Returns:
        Rectangle with new_width = sqrt(area * ratio), new_height = area / new_width
    """
    if ratio <= 0:
        raise ValueError(f"Aspect ratio must be positive, got {ratio}")
    area = anchor.area
    new_width = math.sqrt(area * ratio)
    new_height = area / new_width if new_width > 0 else 0.0
    cx, cy = anchor.center
    return Rectangle.from_center(cx, cy, new_width, new_height)


def constrain_to_image(
    rect: Rectangle, expansion_percent: float, image_size: tuple[float, float]
) -> Rectangle:
    """
    Expand rect and move it so it lies fully inside the image.

    Steps: scale the size by 1 + expansion_percent / 100 (never below zero),
    clamp each dimension to the image size, recenter, clamp the top-left
    corner to >= 0, then shift left/up by any right/bottom overflow. The
    horizontal and vertical corrections are independent.

    Args:
        rect: Rectangle to constrain
        expansion_percent: Expansion to apply before constraining
        image_size: (width, height) of the source image

    Returns:
        Rectangle within [0, width] x [0, height]
    """
    image_w, image_h = image_size
    factor = 1 + expansion_percent / 100
    width = min(max(0.0, rect.width * factor), image_w)
    height = min(max(0.0, rect.height * factor), image_h)

    cx, cy = rect.center
    x = max(0.0, cx - width / 2)
    y = max(0.0, cy - height / 2)
    if x + width > image_w:
        x = image_w - width
    if y + height > image_h:
        y = image_h - height

    return Rectangle(x, y, width, height)


def derive_variant(
    anchor: Rectangle,
    expansion_range: tuple[float, float],
    aspect_jitter: tuple[float, float] | None,
    allow_out_of_bounds: bool,
    image_size: tuple[int, int],
    rng: np.random.Generator | None = None,
) -> tuple[Rectangle, float]:
    """
    Compute the crop rectangle for one variant.

    When out-of-bounds crops are allowed the returned rectangle is not yet
    expanded; the dispatch stage applies the expansion and fills uncovered
    pixels with black. Otherwise the rectangle is already expanded and lies
    inside the image, and dispatch should be called with zero expansion.

    Args:
        anchor: User-selected rectangle (must have positive size)
        expansion_range: (min, max) expansion percent
        aspect_jitter: Optional (low, high) width/height ratio range
        allow_out_of_bounds: Whether the crop may extend past the image
        image_size: (width, height) of the source image
        rng: Random source (default: unseeded)

    Returns:
        Tuple of (rectangle, drawn expansion percent)

    Raises:
        InvalidAnchor: If the anchor has zero size
    """
    validate_anchor(anchor)
    rng = rng if rng is not None else np.random.default_rng()

    expansion_percent = draw_expansion(expansion_range, rng)

    rect = anchor
    if aspect_jitter is not None:
        low, high = aspect_jitter
        ratio = float(low + rng.random() * (high - low))
        rect = jitter_aspect_ratio(anchor, ratio)

    if not allow_out_of_bounds:
        rect = constrain_to_image(rect, expansion_percent, image_size)

    logger.debug(
        f"Variant rect=({rect.x:.1f}, {rect.y:.1f}, {rect.width:.1f}, {rect.height:.1f}) "
        f"expansion={expansion_percent:.1f}%"
    )
    return rect, expansion_percent
