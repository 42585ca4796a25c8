from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def make_gradient_rgb(width: int = 64, height: int = 48) -> Image.Image:
    xs = np.linspace(0, 255, width, dtype=np.float32)
    ys = np.linspace(0, 255, height, dtype=np.float32)
    r = np.tile(xs, (height, 1))
    g = np.tile(ys[:, None], (1, width))
    b = np.full((height, width), 128, dtype=np.float32)
    arr = np.stack([r, g, b], axis=2).astype(np.uint8)
    return Image.fromarray(arr)


def make_gradient_16(mode: str = "I;16", width: int = 256, height: int = 8) -> Image.Image:
    """Horizontal 0..65535 ramp; column i holds i * 257, i.e. gray level i in 8 bits."""
    ramp = np.arange(width, dtype=np.int64) * 65535 // (width - 1)
    dtype = np.uint16 if mode == "I;16" else np.int32
    image = Image.fromarray(np.tile(ramp, (height, 1)).astype(dtype))
    assert image.mode == mode
    return image


def make_half_transparent_rgba(width: int = 32, height: int = 16) -> Image.Image:
    """Left half fully transparent black, right half opaque red."""
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[:, width // 2:] = (255, 0, 0, 255)
    return Image.fromarray(arr)


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    path = tmp_path / "input"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "output"


@pytest.fixture
def photo_jpg(input_dir: Path) -> Path:
    path = input_dir / "photo.jpg"
    make_gradient_rgb().save(path, format="JPEG", quality=85)
    return path


@pytest.fixture
def opaque_png(input_dir: Path) -> Path:
    path = input_dir / "opaque.png"
    make_gradient_rgb().save(path, format="PNG")
    return path


@pytest.fixture
def transparent_png(input_dir: Path) -> Path:
    path = input_dir / "transparent.png"
    make_half_transparent_rgba().save(path, format="PNG")
    return path


@pytest.fixture
def corrupt_png(input_dir: Path) -> Path:
    path = input_dir / "corrupt.png"
    path.write_bytes(b"this is not an image at all")
    return path
