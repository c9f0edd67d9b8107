"""
Test configuration and utilities.

Provides in-memory sample assets (glTF documents, GLBs, zips and images), a
controllable fake viewer and a FastAPI test client.
"""

import asyncio
import io
import json
import zipfile
from typing import Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from core.ingestion.glb import GlbContainer, write_glb
from core.resources import InMemoryFile, ObjectUrlRegistry
from core.utils.exceptions import TextureCreationError, ViewerLoadError
from core.viewer import MaterialHandle, Texture, ViewerHandle


def make_png(color=(255, 0, 0), size=(4, 4), fmt="PNG") -> bytes:
    """Encode a solid-color image"""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_gltf(
    buffer_uris: Sequence[str] = ("model.bin",),
    image_uris: Sequence[str] = ("diffuse.png",),
    materials: Optional[List[Dict]] = None,
    **extra,
) -> Dict:
    """Build a minimal glTF document tree"""
    document = {
        "asset": {"version": "2.0", "generator": "tests"},
        "buffers": [{"uri": uri, "byteLength": 4} for uri in buffer_uris],
        "images": [{"uri": uri} for uri in image_uris],
        "materials": materials if materials is not None else [{"name": "Body"}],
    }
    document.update(extra)
    return document


def gltf_file(name: str = "model.gltf", **kwargs) -> InMemoryFile:
    return InMemoryFile.from_bytes(name, json.dumps(make_gltf(**kwargs)).encode("utf-8"))


def make_glb(materials: Optional[List[Dict]] = None, binary: Optional[bytes] = b"\x00\x01\x02") -> bytes:
    tree = {"asset": {"version": "2.0"}, "materials": materials or [{"name": "Body"}]}
    return write_glb(GlbContainer(json=tree, binary=binary))


def make_zip(entries: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


def run(coro):
    """Drive a coroutine to completion from a synchronous test"""
    return asyncio.run(coro)


class FakeViewer(ViewerHandle):
    """Viewer double whose material list and load timing tests control"""

    def __init__(self, material_names: Sequence[str] = ("Body", "logo_front_L")):
        self.material_names = list(material_names)
        self._materials: List[MaterialHandle] = []
        self.loaded_urls: List[str] = []
        self.gates: Dict[str, asyncio.Event] = {}
        self.fail_urls = set()
        self.fail_textures = False
        self.url: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.url is not None

    @property
    def materials(self) -> List[MaterialHandle]:
        return list(self._materials)

    def gate(self, url_fragment: str) -> asyncio.Event:
        """Hold loads whose URL contains ``url_fragment`` until the event is set"""
        event = asyncio.Event()
        self.gates[url_fragment] = event
        return event

    async def load(self, url: str) -> None:
        for fragment, event in list(self.gates.items()):
            if fragment in url:
                await event.wait()
        if url in self.fail_urls:
            raise ViewerLoadError(url, "simulated failure")
        self.loaded_urls.append(url)
        self.url = url
        self._materials = [MaterialHandle(name) for name in self.material_names]

    def unload(self) -> None:
        self.url = None
        self._materials = []

    async def create_texture(self, uri: str) -> Texture:
        if self.fail_textures:
            raise TextureCreationError(uri, "simulated failure")
        return Texture(source=uri)


@pytest.fixture
def registry():
    return ObjectUrlRegistry()


@pytest.fixture
def fake_viewer():
    return FakeViewer()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture(scope="function")
def test_client():
    """Create a test client with the application lifespan running"""
    from api.main import app

    with TestClient(app) as client:
        yield client


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "api: marks tests as API tests")
