"""Shared pytest configuration and fixtures for the Huely test suite."""

import io
import os
import re
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest
from PIL import Image

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import Config  # noqa: E402
from huely.drivers import CameraDriver  # noqa: E402

# A JPEG-looking buffer whose sampled window is all zero bytes
BLACK_FRAME = b"\xff\xd8\xff\xe0" + b"\x00" * 2000


# =============================================================================
# Image factories
# =============================================================================

def encode_image(image: Image.Image, fmt: str, **params) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, fmt, **params)
    return buffer.getvalue()


def noise_image(width: int = 64, height: int = 64, seed: int = 7) -> Image.Image:
    """Random RGB noise; nothing near black dominates its encoding."""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return Image.fromarray(pixels, "RGB")


def pattern_image(width: int = 160, height: int = 120) -> Image.Image:
    """Bright colour bars with a gradient, no dark pixels."""
    x = np.linspace(80, 255, width, dtype=np.float32)
    y = np.linspace(120, 255, height, dtype=np.float32)
    red = np.tile(x, (height, 1))
    green = np.tile(y[:, None], (1, width))
    blue = np.where((np.arange(width) // 20) % 2 == 0, 230, 140)[None, :].repeat(height, axis=0)
    pixels = np.stack([red, green, blue], axis=-1).astype(np.uint8)
    return Image.fromarray(pixels, "RGB")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_image(noise_image(), "JPEG", quality=90)


@pytest.fixture
def bmp_bytes() -> bytes:
    return encode_image(pattern_image(), "BMP")


# =============================================================================
# Config & filesystem
# =============================================================================

@pytest.fixture
def clean_env(monkeypatch):
    """Remove HUELY_* and OPENAI_API_KEY variables from the environment."""
    for key in list(os.environ):
        if key.startswith("HUELY_") or key == "OPENAI_API_KEY":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def capture_dir(tmp_path) -> str:
    path = tmp_path / "captures"
    path.mkdir()
    return str(path)


@pytest.fixture
def config(clean_env, capture_dir, tmp_path) -> Config:
    return Config(
        capture_dir=capture_dir,
        credentials_path=str(tmp_path / "home" / ".huely" / "config.json"),
    )


# =============================================================================
# Scripted camera driver
# =============================================================================

class ScriptedDriver(CameraDriver):
    """
    Driver that "captures" by writing pre-baked frames.

    Each invoke() consumes the next entry of ``frames``: bytes are written
    to disk, an exception instance is raised.

    Args:
        written_extension: When set, the frame is written with this
                           extension instead of the requested path, the way
                           imagesnap appends its own.
    """

    executable = "scripted"

    def __init__(
        self,
        config: Config,
        frames: List = (),
        devices: List[str] = ("0",),
        names: List[str] = (),
        raw_extension: str = ".jpg",
        written_extension: Optional[str] = None,
    ):
        super().__init__(config)
        self.frames = list(frames)
        self.devices = list(devices)
        self.names = list(names)
        self.raw_extension = raw_extension
        self.written_extension = written_extension
        self.calls = []

    def probe_devices(self) -> List[str]:
        return list(self.devices)

    def probe_names(self) -> List[str]:
        return list(self.names)

    def build_command(self, device_id: str, destination: str) -> List[str]:
        return [self.executable, device_id, destination]

    def invoke(self, device_id: str, destination: str) -> str:
        self.calls.append((device_id, destination))
        frame = self.frames.pop(0)
        if isinstance(frame, Exception):
            raise frame

        target = destination
        if self.written_extension is not None:
            target = re.sub(r"\.(jpg|jpeg|bmp|ppm|png)$", "", destination) + self.written_extension
        with open(target, "wb") as f:
            f.write(frame)
        return destination


@pytest.fixture
def scripted_driver(config):
    def factory(frames, **kwargs) -> ScriptedDriver:
        return ScriptedDriver(config, frames, **kwargs)
    return factory
