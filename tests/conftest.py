"""
pytest fixtures and configuration for cropaug tests
"""

import shutil
import tempfile
from pathlib import Path

import numpy as np
import pytest

from cropaug.core import PixelBuffer


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def rng():
    """Seeded random generator for reproducible draws"""
    return np.random.default_rng(1234)


@pytest.fixture
def sample_buffer():
    """Create a 64x48 RGBA buffer with random opaque content"""
    generator = np.random.default_rng(7)
    data = generator.integers(0, 256, (48, 64, 4), dtype=np.uint8)
    data[:, :, 3] = 255
    return PixelBuffer.from_array(data)


@pytest.fixture
def gradient_buffer():
    """Create a 200x200 buffer whose pixel (x, y) is (x, y, 0, 255)"""
    xs, ys = np.meshgrid(np.arange(200), np.arange(200))
    data = np.zeros((200, 200, 4), dtype=np.uint8)
    data[:, :, 0] = xs
    data[:, :, 1] = ys
    data[:, :, 3] = 255
    return PixelBuffer.from_array(data)


@pytest.fixture
def sample_image(temp_dir):
    """Create a sample test image"""
    import cv2

    image_path = temp_dir / "test_image.png"
    # Create a 320x240 RGB test image
    image = np.random.randint(0, 255, (240, 320, 3), dtype=np.uint8)
    cv2.imwrite(str(image_path), image)
    return image_path
