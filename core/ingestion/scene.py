"""
Typed view over a glTF scene document.

glTF JSON is only loosely structured, so the parts the ingestion pipeline
touches (buffers, images and materials) are lifted into small dataclasses by
a tolerant parse step. Everything else stays in the raw tree and is written
back unchanged by :meth:`SceneDocument.to_dict`.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.utils.exceptions import ProcessingFailedError

logger = logging.getLogger(__name__)

LEGACY_EXTENSION = "KHR_materials_pbrSpecularGlossiness"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _as_factor(value: Any) -> Optional[List[float]]:
    if not isinstance(value, list) or not all(_as_float(v) is not None for v in value):
        return None
    return [float(v) for v in value]


@dataclass
class SceneBuffer:
    index: int
    uri: Optional[str]
    raw: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        if self.uri is not None:
            self.raw["uri"] = self.uri
        return self.raw


@dataclass
class SceneImage:
    index: int
    uri: Optional[str]
    mime_type: Optional[str]
    raw: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        if self.uri is not None:
            self.raw["uri"] = self.uri
        return self.raw


@dataclass
class PbrBlock:
    """The ``pbrMetallicRoughness`` block of a material"""

    base_color_texture: Optional[Dict[str, Any]] = None
    base_color_factor: Optional[List[float]] = None
    metallic_factor: Optional[float] = None
    roughness_factor: Optional[float] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "PbrBlock":
        texture = data.get("baseColorTexture")
        return cls(
            base_color_texture=texture if isinstance(texture, dict) else None,
            base_color_factor=_as_factor(data.get("baseColorFactor")),
            metallic_factor=_as_float(data.get("metallicFactor")),
            roughness_factor=_as_float(data.get("roughnessFactor")),
            raw=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        for key, value in (
            ("baseColorTexture", self.base_color_texture),
            ("baseColorFactor", self.base_color_factor),
            ("metallicFactor", self.metallic_factor),
            ("roughnessFactor", self.roughness_factor),
        ):
            if value is None:
                self.raw.pop(key, None)
            else:
                self.raw[key] = value
        return self.raw


@dataclass
class LegacyDiffuseSpecularBlock:
    """The deprecated ``KHR_materials_pbrSpecularGlossiness`` block"""

    diffuse_texture: Optional[Dict[str, Any]] = None
    diffuse_factor: Optional[List[float]] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "LegacyDiffuseSpecularBlock":
        texture = data.get("diffuseTexture")
        return cls(
            diffuse_texture=texture if isinstance(texture, dict) else None,
            diffuse_factor=_as_factor(data.get("diffuseFactor")),
            raw=data,
        )


@dataclass
class SceneMaterial:
    index: int
    name: Optional[str]
    pbr: Optional[PbrBlock]
    legacy: Optional[LegacyDiffuseSpecularBlock]
    raw: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        if self.pbr is None:
            self.raw.pop("pbrMetallicRoughness", None)
        else:
            self.raw["pbrMetallicRoughness"] = self.pbr.to_dict()

        extensions = _as_dict(self.raw.get("extensions"))
        if self.legacy is None:
            extensions.pop(LEGACY_EXTENSION, None)
        else:
            extensions[LEGACY_EXTENSION] = self.legacy.raw
        if extensions:
            self.raw["extensions"] = extensions
        else:
            self.raw.pop("extensions", None)
        return self.raw


@dataclass
class SceneDocument:
    raw: Dict[str, Any]
    buffers: List[SceneBuffer] = field(default_factory=list)
    images: List[SceneImage] = field(default_factory=list)
    materials: List[SceneMaterial] = field(default_factory=list)
    extensions_used: List[str] = field(default_factory=list)
    extensions_required: List[str] = field(default_factory=list)

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "SceneDocument":
        """Build the typed view; ``data`` itself is not modified"""
        raw = copy.deepcopy(data)

        buffers = [
            SceneBuffer(index=i, uri=_uri(entry), raw=entry)
            for i, entry in enumerate(_as_list(raw.get("buffers")))
            if isinstance(entry, dict)
        ]
        images = [
            SceneImage(
                index=i,
                uri=_uri(entry),
                mime_type=entry.get("mimeType") if isinstance(entry.get("mimeType"), str) else None,
                raw=entry,
            )
            for i, entry in enumerate(_as_list(raw.get("images")))
            if isinstance(entry, dict)
        ]

        materials = []
        for i, entry in enumerate(_as_list(raw.get("materials"))):
            if not isinstance(entry, dict):
                continue
            pbr_data = entry.get("pbrMetallicRoughness")
            legacy_data = _as_dict(entry.get("extensions")).get(LEGACY_EXTENSION)
            name = entry.get("name")
            materials.append(
                SceneMaterial(
                    index=i,
                    name=name if isinstance(name, str) else None,
                    pbr=PbrBlock.parse(pbr_data) if isinstance(pbr_data, dict) else None,
                    legacy=(
                        LegacyDiffuseSpecularBlock.parse(legacy_data)
                        if isinstance(legacy_data, dict)
                        else None
                    ),
                    raw=entry,
                )
            )

        return cls(
            raw=raw,
            buffers=buffers,
            images=images,
            materials=materials,
            extensions_used=[e for e in _as_list(raw.get("extensionsUsed")) if isinstance(e, str)],
            extensions_required=[
                e for e in _as_list(raw.get("extensionsRequired")) if isinstance(e, str)
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Write the typed fields back into the raw tree and return it"""
        for item in (*self.buffers, *self.images, *self.materials):
            item.to_dict()

        for key, values in (
            ("extensionsUsed", self.extensions_used),
            ("extensionsRequired", self.extensions_required),
        ):
            if values:
                self.raw[key] = list(values)
            else:
                self.raw.pop(key, None)
        return self.raw

    def to_json_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _uri(entry: Dict[str, Any]) -> Optional[str]:
    uri = entry.get("uri")
    return uri if isinstance(uri, str) else None


def parse_scene_text(data: bytes, source: str = "scene") -> SceneDocument:
    """
    Parse glTF JSON text into a SceneDocument.

    Raises:
        ProcessingFailedError: If the text is not a JSON object
    """
    try:
        tree = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProcessingFailedError(f"{source} is not a valid glTF document: {e}") from e

    if not isinstance(tree, dict):
        raise ProcessingFailedError(f"{source} is not a valid glTF document: top level is not an object")

    document = SceneDocument.parse(tree)
    logger.debug(
        f"Parsed {source}: {len(document.buffers)} buffers, {len(document.images)} images, "
        f"{len(document.materials)} materials"
    )
    return document
