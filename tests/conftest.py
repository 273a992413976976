"""Shared test fixtures and configuration for filedepot tests."""
import io
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from filedepot.config import set_config
from filedepot.main import app
from filedepot.storage.service import FileStore


@pytest.fixture
def store(tmp_path) -> Generator[FileStore, None, None]:
    """Install a FileStore rooted in a temp directory as the singleton."""
    file_store = FileStore(root_dir=tmp_path / "files")
    FileStore.set_instance(file_store)
    yield file_store
    FileStore.reset_instance()
    set_config(None)


@pytest.fixture
def api_client(store) -> TestClient:
    """Provide a TestClient for the main FastAPI app backed by ``store``."""
    return TestClient(app)


def _render_image(fmt: str, mode: str = "RGB", size=(8, 6)) -> bytes:
    color = (0, 0, 0, 0) if mode == "CMYK" else "red"
    img = Image.new(mode, size, color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image():
    """Return a helper rendering a small solid image in a Pillow format."""
    return _render_image
