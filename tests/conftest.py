"""
Shared fixtures and synthetic images.
"""

import os
import sys
import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

# The API creates its log directory on import; keep it out of $HOME
os.environ.setdefault("XMPCUBE_LOG_DIR", tempfile.mkdtemp(prefix="xmpcube-test-logs-"))


def create_test_image(width=100, height=100, scene='flat', value=128):
    """Create synthetic RGB test image"""
    img = np.zeros((height, width, 3), dtype=np.uint8)

    if scene == 'flat':
        img[:, :] = value

    elif scene == 'half_red':
        img[:, :] = 128
        img[:, : width // 2] = [255, 0, 0]

    elif scene == 'ramp':
        # Horizontal ramp, 6 levels per column
        for x in range(width):
            img[:, x] = min(255, x * 6)

    elif scene == 'warm':
        img[:, :] = [200, 150, 100]

    elif scene == 'interior':
        # Dark room with bright window
        img[:, :] = [60, 55, 50]
        wx, wy = int(width * 0.6), int(height * 0.1)
        ww, wh = int(width * 0.3), int(height * 0.4)
        img[wy:wy + wh, wx:wx + ww] = [255, 255, 255]
        img[int(height * 0.7):, :] = [80, 70, 60]

    return img


def encode_image(image_rgb, ext='.jpg'):
    """RGB array -> encoded bytes"""
    ok, encoded = cv2.imencode(ext, cv2.cvtColor(image_rgb, cv2.COLOR_RGB2BGR))
    assert ok
    return encoded.tobytes()


@pytest.fixture
def flat_image():
    return create_test_image()


@pytest.fixture
def interior_image():
    return create_test_image(200, 150, scene='interior')


@pytest.fixture
def png_bytes(flat_image):
    return encode_image(flat_image, '.png')
