"""Shared pytest fixtures for Distortr tests."""

import io
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from distortr.api.main import create_app
from distortr.core.config import DistortrConfig
from distortr.core.store import ImageStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config() -> DistortrConfig:
    """Configuration isolated from the environment and any .env file."""
    return DistortrConfig(_env_file=None)


@pytest.fixture
def make_image_bytes() -> Callable[..., bytes]:
    """Factory producing encoded test images.

    Returns:
        Callable ``(width, height, format="PNG", mode="RGB") -> bytes``
    """

    def _make(width: int = 100, height: int = 100, format: str = "PNG", mode: str = "RGB") -> bytes:
        image = Image.new(mode, (width, height))
        # A diagonal gradient so resizes and hue shifts have something to chew on.
        if mode in ("RGB", "RGBA"):
            for x in range(width):
                for y in range(height):
                    colour = (x * 255 // width, y * 255 // height, 128)
                    image.putpixel((x, y), colour if mode == "RGB" else colour + (200,))
        buffer = io.BytesIO()
        image.save(buffer, format=format)
        return buffer.getvalue()

    return _make


@pytest.fixture
def png_100(make_image_bytes) -> bytes:
    """A 100x100 RGB PNG."""
    return make_image_bytes(100, 100)


@pytest.fixture
def store() -> ImageStore:
    """A fresh, empty image store."""
    return ImageStore()


@pytest.fixture
def test_client(test_config: DistortrConfig, store: ImageStore) -> Generator[TestClient, None, None]:
    """TestClient for an isolated app; the lifespan (template compilation) runs."""
    app = create_app(test_config, store=store)
    with TestClient(app) as client:
        yield client
