"""
Image file I/O at the CLI edge.

Encoding and decoding is delegated to OpenCV; the engine itself only sees
PixelBuffer instances.
"""

from pathlib import Path

import cv2
import numpy as np

from .buffer import PixelBuffer
from .logger import get_logger

logger = get_logger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff", ".webp"}


def load_image(path: str | Path) -> PixelBuffer:
    """
    Decode an image file into an RGBA PixelBuffer.

    Args:
        path: Image file path

    Returns:
        Decoded buffer

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If OpenCV cannot decode the file
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError(f"Failed to read image: {path}")

    if image.dtype != np.uint8:
        # 16-bit PNG/TIFF input
        image = cv2.convertScaleAbs(image, alpha=255.0 / 65535.0)

    if image.ndim == 2:
        rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    elif image.shape[2] == 4:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    else:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)

    logger.debug(f"Loaded {path.name}: {rgba.shape[1]}x{rgba.shape[0]}")
    return PixelBuffer.from_array(rgba)


def save_image(buffer: PixelBuffer, path: str | Path) -> Path:
    """
    Encode a buffer to disk; the format follows the file extension.

    JPEG and BMP outputs drop the alpha channel.

    Returns:
        Path of the written file

    Raises:
        ValueError: If the buffer is empty or the extension is not supported
    """
    path = Path(path)
    if buffer.pixel_count == 0:
        raise ValueError(f"Cannot encode an empty {buffer.width}x{buffer.height} image: {path}")
    if path.suffix.lower() not in IMAGE_EXTENSIONS:
        raise ValueError(f"Unsupported image format: {path.suffix}")
    path.parent.mkdir(parents=True, exist_ok=True)

    rgba = np.array(buffer.as_array())
    if path.suffix.lower() in {".jpg", ".jpeg", ".bmp"}:
        encoded = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)
    else:
        encoded = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA)

    if not cv2.imwrite(str(path), encoded):
        raise OSError(f"Failed to write image: {path}")
    logger.debug(f"Saved {path}")
    return path
