"""
Crop-and-pad execution.

Cuts an expanded rectangle out of a source buffer onto an opaque black
canvas. This is the body of every dispatch job:
1. Expand the rectangle around its center by 1 + expansion_percent / 100
2. Allocate an output of the rounded expanded size, filled with opaque black
3. Copy the overlap between the expanded rectangle and the source bounds

Any part of the expanded rectangle outside the source stays black; source
reads are never clamped or mirrored.

Examples:
    >>> # Double a 100x50 anchor; the result is 200x100 with black margins
    >>> out = crop_and_pad(buffer, Rectangle(50, 75, 100, 50), 100)
"""

import math

import numpy as np

from cropaug.core import CHANNELS, PixelBuffer, Rectangle, get_logger

logger = get_logger(__name__)

OPAQUE_BLACK = (0, 0, 0, 255)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def output_size(rect: Rectangle, expansion_percent: float) -> tuple[int, int]:
    """
    Pixel size of the crop_and_pad output for rect and expansion_percent.

    Returns:
        Tuple of (width, height)
    """
    expanded = rect.expanded(expansion_percent)
    return round_half_up(expanded.width), round_half_up(expanded.height)


def overlap_region(
    origin_x: int, origin_y: int, out_w: int, out_h: int, src_w: int, src_h: int
) -> tuple[slice, slice, slice, slice] | None:
    """
    Source and destination slices for the part of the output covered by the source.

    Args:
        origin_x: Source x of output column 0
        origin_y: Source y of output row 0
        out_w: Output width
        out_h: Output height
        src_w: Source width
        src_h: Source height

    Returns:
        Tuple of (src_rows, src_cols, dst_rows, dst_cols), or None if the
        output does not overlap the source
    """
    x1 = max(0, origin_x)
    y1 = max(0, origin_y)
    x2 = min(src_w, origin_x + out_w)
    y2 = min(src_h, origin_y + out_h)

    if x2 <= x1 or y2 <= y1:
        return None

    return (
        slice(y1, y2),
        slice(x1, x2),
        slice(y1 - origin_y, y2 - origin_y),
        slice(x1 - origin_x, x2 - origin_x),
    )


def crop_and_pad(buffer: PixelBuffer, rect: Rectangle, expansion_percent: float = 0.0) -> PixelBuffer:
    """
    Crop the expanded rectangle, padding uncovered pixels with opaque black.

    Output pixel (i, j) is source pixel (round(x) + i, round(y) + j) of the
    expanded rectangle when that pixel exists, and (0, 0, 0, 255) otherwise.
    A rectangle lying inside the source never produces black fill: its
    origin is pulled back so the rounded output stays within the source.

    Args:
        buffer: Source buffer (not modified)
        rect: Crop rectangle in source coordinates
        expansion_percent: Center-preserving growth (negative shrinks)

    Returns:
        New buffer of the rounded expanded size

    Raises:
        InvalidBuffer: If the source buffer is malformed
    """
    src = buffer.as_array()
    expanded = rect.expanded(expansion_percent)
    out_w, out_h = round_half_up(expanded.width), round_half_up(expanded.height)

    output = np.empty((out_h, out_w, CHANNELS), dtype=np.uint8)
    output[:, :] = OPAQUE_BLACK

    origin_x = round_half_up(expanded.x)
    origin_y = round_half_up(expanded.y)
    if expanded.is_within(buffer.width, buffer.height):
        # Independent rounding of origin and size may overshoot a flush edge by one pixel
        origin_x = max(0, min(origin_x, buffer.width - out_w))
        origin_y = max(0, min(origin_y, buffer.height - out_h))
    region = overlap_region(origin_x, origin_y, out_w, out_h, buffer.width, buffer.height)
    if region is not None:
        src_rows, src_cols, dst_rows, dst_cols = region
        output[dst_rows, dst_cols] = src[src_rows, src_cols]
    else:
        logger.debug(f"Crop ({expanded.x:.1f}, {expanded.y:.1f}) {out_w}x{out_h} misses the source")

    return buffer.with_array(output)
