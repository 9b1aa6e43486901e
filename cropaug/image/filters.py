"""
Pixel filter kernels.

Stateless routines that take a PixelBuffer and return a new one:
- Brightness, contrast, saturation and hue adjustment
- Gaussian blur and sharpen (edge-clamped convolution)
- Uniform noise injection
- Horizontal/vertical flip and rotation onto an enlarged canvas

Intermediate results are computed in floating point and written back to
8 bits by rounding half to even and clamping to [0, 255].

Examples:
    >>> brighter = adjust_brightness(buffer, 20)
    >>> blurred = gaussian_blur(buffer, radius=2.0)
    >>> rotated = rotate(buffer, 30)
"""

import math

import cv2
import numpy as np

from cropaug.core import PixelBuffer, get_logger

logger = get_logger(__name__)

# Right-angle rotations produce |cos| or |sin| values like 6e-17; without this
# the bounding box would gain a spurious pixel.
_CEIL_EPSILON = 1e-9


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def _map_rgb(buffer: PixelBuffer, func) -> PixelBuffer:
    """Apply func to the float RGB channels, keeping alpha"""
    src = buffer.as_array()
    out = src.copy()
    out[:, :, :3] = _to_uint8(func(src[:, :, :3].astype(np.float64)))
    return buffer.with_array(out)


def adjust_brightness(buffer: PixelBuffer, brightness: float) -> PixelBuffer:
    """
    Shift R, G and B by brightness * 2.55.

    Args:
        buffer: Input buffer
        brightness: Adjustment in [-100, 100]

    Returns:
        Adjusted buffer
    """
    adjustment = brightness * 2.55
    return _map_rgb(buffer, lambda rgb: rgb + adjustment)


def contrast_factor(contrast: float) -> float:
    return (259 * (contrast + 255)) / (255 * (259 - contrast))


def adjust_contrast(buffer: PixelBuffer, contrast: float) -> PixelBuffer:
    """
    Scale R, G and B around mid-gray 128.

    Args:
        buffer: Input buffer
        contrast: Adjustment in [-100, 100]

    Returns:
        Adjusted buffer
    """
    factor = contrast_factor(contrast)
    return _map_rgb(buffer, lambda rgb: factor * (rgb - 128) + 128)


def rgb_to_hsl(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert RGB in [0, 255] to HSL components in [0, 1].

    Args:
        rgb: Array of shape (..., 3)

    Returns:
        Tuple of (hue, saturation, lightness) arrays
    """
    rgb = np.asarray(rgb, dtype=np.float64) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    max_c = rgb.max(axis=-1)
    min_c = rgb.min(axis=-1)
    delta = max_c - min_c
    lightness = (max_c + min_c) / 2
    chromatic = delta > 0

    with np.errstate(divide="ignore", invalid="ignore"):
        saturation = np.where(
            lightness > 0.5, delta / (2 - max_c - min_c), delta / (max_c + min_c)
        )
        hue = np.select(
            [max_c == r, max_c == g],
            [(g - b) / delta + np.where(g < b, 6.0, 0.0), (b - r) / delta + 2],
            default=(r - g) / delta + 4,
        )

    saturation = np.where(chromatic, saturation, 0.0)
    hue = np.where(chromatic, hue / 6, 0.0)
    return hue, saturation, lightness


def _hue_to_channel(p: np.ndarray, q: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = np.where(t < 0, t + 1, t)
    t = np.where(t > 1, t - 1, t)
    return np.select(
        [t < 1 / 6, t < 1 / 2, t < 2 / 3],
        [p + (q - p) * 6 * t, q, p + (q - p) * (2 / 3 - t) * 6],
        default=p,
    )


def hsl_to_rgb(hue: np.ndarray, saturation: np.ndarray, lightness: np.ndarray) -> np.ndarray:
    """
    Convert HSL components in [0, 1] back to RGB in [0, 255].

    Channels are rounded half up, matching Math.round-style rounding.

    Returns:
        Float array of shape (..., 3) holding integral values
    """
    q = np.where(
        lightness < 0.5,
        lightness * (1 + saturation),
        lightness + saturation - lightness * saturation,
    )
    p = 2 * lightness - q

    r = _hue_to_channel(p, q, hue + 1 / 3)
    g = _hue_to_channel(p, q, hue)
    b = _hue_to_channel(p, q, hue - 1 / 3)

    gray = saturation == 0
    rgb = np.stack(
        [np.where(gray, lightness, r), np.where(gray, lightness, g), np.where(gray, lightness, b)],
        axis=-1,
    )
    return np.floor(rgb * 255 + 0.5)


def adjust_saturation(buffer: PixelBuffer, saturation: float) -> PixelBuffer:
    """
    Scale HSL saturation by 1 + saturation / 100, clamped to [0, 1].

    Hue and lightness are unchanged.
    """
    factor = saturation / 100 + 1

    def _scale(rgb):
        h, s, light = rgb_to_hsl(rgb)
        return hsl_to_rgb(h, np.clip(s * factor, 0.0, 1.0), light)

    return _map_rgb(buffer, _scale)


def adjust_hue(buffer: PixelBuffer, hue: float) -> PixelBuffer:
    """Rotate HSL hue by the given number of degrees"""
    shift = hue / 360.0

    def _rotate_hue(rgb):
        h, s, light = rgb_to_hsl(rgb)
        return hsl_to_rgb(np.mod(h + shift, 1.0), s, light)

    return _map_rgb(buffer, _rotate_hue)


def gaussian_kernel(radius: float) -> np.ndarray:
    """
    Build a normalized 2D Gaussian kernel.

    Size is 2 * ceil(radius * 2) + 1 and sigma is radius / 3.

    Args:
        radius: Blur radius, must be positive

    Returns:
        Square float64 kernel summing to 1
    """
    if radius <= 0:
        raise ValueError(f"Blur radius must be positive, got {radius}")

    size = math.ceil(radius * 2) * 2 + 1
    half = size // 2
    sigma = radius / 3
    offsets = np.arange(size, dtype=np.float64) - half
    dx, dy = np.meshgrid(offsets, offsets)
    kernel = np.exp(-(dx * dx + dy * dy) / (2 * sigma * sigma))
    return kernel / kernel.sum()


def _convolve(channels: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    # BORDER_REPLICATE clamps out-of-range coordinates to the nearest pixel.
    # Both kernels used here are symmetric so correlation equals convolution.
    return cv2.filter2D(
        channels.astype(np.float64),
        cv2.CV_64F,
        kernel.astype(np.float64),
        borderType=cv2.BORDER_REPLICATE,
    )


def gaussian_blur(buffer: PixelBuffer, radius: float) -> PixelBuffer:
    """
    Blur all four channels with an edge-clamped Gaussian kernel.

    Args:
        buffer: Input buffer
        radius: Blur radius; values <= 0 return an unchanged copy

    Returns:
        Blurred buffer
    """
    src = buffer.as_array()
    if radius <= 0 or buffer.pixel_count == 0:
        return buffer.copy()

    kernel = gaussian_kernel(radius)
    logger.debug(f"Gaussian blur radius={radius} kernel={kernel.shape[0]}x{kernel.shape[1]}")
    return buffer.with_array(_to_uint8(_convolve(src, kernel)))


def sharpen_kernel(intensity: float) -> np.ndarray:
    k = float(intensity)
    return np.array(
        [[0, -k, 0], [-k, 1 + 4 * k, -k], [0, -k, 0]],
        dtype=np.float64,
    )


def sharpen(buffer: PixelBuffer, intensity: float) -> PixelBuffer:
    """
    Sharpen R, G and B with a 3x3 Laplacian-style kernel; alpha is untouched.

    Args:
        buffer: Input buffer
        intensity: Kernel strength; values <= 0 return an unchanged copy
    """
    src = buffer.as_array()
    if intensity <= 0 or buffer.pixel_count == 0:
        return buffer.copy()

    out = src.copy()
    out[:, :, :3] = _to_uint8(_convolve(np.ascontiguousarray(src[:, :, :3]), sharpen_kernel(intensity)))
    return buffer.with_array(out)


def add_noise(buffer: PixelBuffer, intensity: float, rng: np.random.Generator | None = None) -> PixelBuffer:
    """
    Add uniform noise in [-intensity*2.55/2, +intensity*2.55/2].

    One value is drawn per pixel and added to R, G and B.

    Args:
        buffer: Input buffer
        intensity: Noise strength in [0, 100]
        rng: Random source (default: fresh unseeded generator)
    """
    src = buffer.as_array()
    if intensity <= 0 or buffer.pixel_count == 0:
        return buffer.copy()

    rng = rng if rng is not None else np.random.default_rng()
    amount = intensity * 2.55
    noise = (rng.random((buffer.height, buffer.width)) - 0.5) * amount
    return _map_rgb(buffer, lambda rgb: rgb + noise[:, :, None])


def flip_horizontal(buffer: PixelBuffer) -> PixelBuffer:
    """Mirror columns (all four channels)"""
    src = buffer.as_array()
    if buffer.pixel_count == 0:
        return buffer.copy()
    return buffer.with_array(cv2.flip(np.array(src), 1))


def flip_vertical(buffer: PixelBuffer) -> PixelBuffer:
    """Mirror rows (all four channels)"""
    src = buffer.as_array()
    if buffer.pixel_count == 0:
        return buffer.copy()
    return buffer.with_array(cv2.flip(np.array(src), 0))


def rotated_canvas_size(width: int, height: int, angle: float) -> tuple[int, int]:
    """
    Size of the bounding box of a width x height image rotated by angle degrees.

    Returns:
        Tuple of (width, height), rounded up
    """
    rad = math.radians(angle)
    cos = abs(math.cos(rad))
    sin = abs(math.sin(rad))
    bound_w = math.ceil(width * cos + height * sin - _CEIL_EPSILON)
    bound_h = math.ceil(width * sin + height * cos - _CEIL_EPSILON)
    return max(0, bound_w), max(0, bound_h)


def rotate(buffer: PixelBuffer, angle: float) -> PixelBuffer:
    """
    Rotate clockwise by angle degrees onto a canvas sized to the rotated bounds.

    Content is rotated about its own center and centered on the new canvas;
    pixels with no source coverage are transparent black.

    Args:
        buffer: Input buffer
        angle: Rotation in degrees, positive is clockwise

    Returns:
        Rotated buffer, possibly larger than the input
    """
    src = buffer.as_array()
    if angle == 0 or buffer.pixel_count == 0:
        return buffer.copy()

    h, w = src.shape[:2]
    bound_w, bound_h = rotated_canvas_size(w, h, angle)

    # Pixel centers sit on integer coordinates, so the true center is (n-1)/2.
    # OpenCV treats positive angles as counter-clockwise.
    center = ((w - 1) / 2.0, (h - 1) / 2.0)
    M = cv2.getRotationMatrix2D(center, -angle, 1.0)
    M[0, 2] += (bound_w - 1) / 2.0 - center[0]
    M[1, 2] += (bound_h - 1) / 2.0 - center[1]

    rotated = cv2.warpAffine(
        np.array(src),
        M,
        (bound_w, bound_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )
    logger.debug(f"Rotated {w}x{h} by {angle} deg onto {bound_w}x{bound_h}")
    return buffer.with_array(rotated)
