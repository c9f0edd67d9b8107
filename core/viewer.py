"""
Viewer capability surface.

The renderer is an external collaborator. The configurator only needs it to
load an asset by URL, report the asset's materials once ready, create
textures from URIs and let base-color textures and factors be changed.
:class:`DocumentViewer` implements that surface in-process over the object
URL registry so sessions can run without a browser attached.
"""

import asyncio
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from core.ingestion.glb import is_glb, read_glb
from core.ingestion.scene import SceneDocument, parse_scene_text
from core.resources import ObjectUrlRegistry
from core.utils.exceptions import ProcessingFailedError, TextureCreationError, ViewerLoadError
from core.utils.file_utils import decode_data_uri

logger = logging.getLogger(__name__)

OPAQUE_WHITE = (1.0, 1.0, 1.0, 1.0)


@dataclass(frozen=True)
class Texture:
    """A texture the viewer has created; independent of the URI it came from"""

    source: str
    width: Optional[int] = None
    height: Optional[int] = None


class MaterialHandle:
    """Live handle to one material of the loaded asset"""

    def __init__(
        self,
        name: str,
        base_color_texture: Optional[Texture] = None,
        base_color_factor: Sequence[float] = OPAQUE_WHITE,
    ):
        self.name = name
        self.base_color_texture = base_color_texture
        self.base_color_factor = tuple(base_color_factor)

    def set_base_color_texture(self, texture: Optional[Texture]) -> None:
        self.base_color_texture = texture

    def set_base_color_factor(self, factor: Sequence[float]) -> None:
        if len(factor) != 4:
            raise ValueError(f"Base color factor must have 4 components, got {len(factor)}")
        self.base_color_factor = tuple(float(c) for c in factor)

    def snapshot(self):
        return (self.base_color_texture, self.base_color_factor)

    def __repr__(self):
        return f"MaterialHandle({self.name!r})"


class ViewerHandle(ABC):
    """What the configurator requires from a 3D viewer"""

    @abstractmethod
    async def load(self, url: str) -> None:
        """Load the asset at ``url`` and return once it is ready.

        A later call supersedes an earlier one still in flight.

        Raises:
            ViewerLoadError: If the asset cannot be loaded
        """
        pass

    @abstractmethod
    def unload(self) -> None:
        """Stop showing the current asset; materials become empty"""
        pass

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        pass

    @property
    @abstractmethod
    def materials(self) -> List[MaterialHandle]:
        """Materials of the currently loaded asset, in document order"""
        pass

    @abstractmethod
    async def create_texture(self, uri: str) -> Texture:
        """Raises TextureCreationError if the image cannot be decoded"""
        pass


def _image_size(data: bytes):
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        return img.size


class DocumentViewer(ViewerHandle):
    """In-process viewer backed by the object URL registry"""

    def __init__(self, registry: ObjectUrlRegistry):
        self.registry = registry
        self.url: Optional[str] = None
        self._pending_url: Optional[str] = None
        self._materials: List[MaterialHandle] = []

    @property
    def is_ready(self) -> bool:
        return self.url is not None and self._pending_url is None

    @property
    def materials(self) -> List[MaterialHandle]:
        return list(self._materials) if self.is_ready else []

    async def load(self, url: str) -> None:
        self._pending_url = url
        entry = self.registry.get(url)
        if entry is None:
            self._pending_url = None
            raise ViewerLoadError(url, "object URL is not registered")

        data, mime_type = entry
        try:
            document = await asyncio.to_thread(self._parse, data, url)
        except ProcessingFailedError as e:
            if self._pending_url == url:
                self._pending_url = None
            raise ViewerLoadError(url, e.message) from e

        if self._pending_url != url:
            raise ViewerLoadError(url, "superseded by a newer load")

        self._materials = [self._handle_for(m.index, m.name, m.pbr) for m in document.materials]
        self.url = url
        self._pending_url = None
        logger.info(f"Viewer loaded {url} with {len(self._materials)} materials")

    def unload(self) -> None:
        self.url = None
        self._materials = []
        logger.info("Viewer unloaded")

    @staticmethod
    def _parse(data: bytes, url: str) -> SceneDocument:
        if is_glb(data):
            return SceneDocument.parse(read_glb(data, source=url).json)
        return parse_scene_text(data, source=url)

    @staticmethod
    def _handle_for(index, name, pbr) -> MaterialHandle:
        texture = None
        factor = OPAQUE_WHITE
        if pbr is not None:
            if pbr.base_color_texture is not None:
                texture = Texture(source=f"texture:{pbr.base_color_texture.get('index')}")
            if pbr.base_color_factor is not None and len(pbr.base_color_factor) == 4:
                factor = tuple(pbr.base_color_factor)
        return MaterialHandle(name or f"material_{index}", texture, factor)

    async def create_texture(self, uri: str) -> Texture:
        if uri.startswith("data:"):
            valid, _, data = decode_data_uri(uri)
            if not valid:
                raise TextureCreationError(uri[:32], "malformed data URI")
        else:
            entry = self.registry.get(uri)
            if entry is None:
                raise TextureCreationError(uri, "object URL is not registered")
            data = entry[0]

        try:
            width, height = await asyncio.to_thread(_image_size, data)
        except (UnidentifiedImageError, OSError) as e:
            raise TextureCreationError(uri, str(e)) from e

        return Texture(source=uri, width=width, height=height)
