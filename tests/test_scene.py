"""
Tests for the scene document model and the GLB container codec.
"""

import json
import struct

import pytest

from core.ingestion.glb import GlbContainer, is_glb, read_glb, write_glb
from core.ingestion.scene import LEGACY_EXTENSION, SceneDocument, parse_scene_text
from core.utils.exceptions import ProcessingFailedError
from tests.conftest import make_gltf


class TestSceneDocument:
    def test_parse_lifts_buffers_images_and_materials(self):
        tree = make_gltf(
            buffer_uris=("model.bin",),
            image_uris=("a.png", "data:image/png;base64,AAAA"),
            materials=[
                {"name": "Body", "pbrMetallicRoughness": {"baseColorFactor": [1, 0, 0, 1]}},
                {"extensions": {LEGACY_EXTENSION: {"diffuseFactor": [0, 1, 0, 1]}}},
            ],
        )

        document = SceneDocument.parse(tree)

        assert [b.uri for b in document.buffers] == ["model.bin"]
        assert [i.uri for i in document.images] == ["a.png", "data:image/png;base64,AAAA"]
        body, legacy = document.materials
        assert body.name == "Body"
        assert body.pbr.base_color_factor == [1.0, 0.0, 0.0, 1.0]
        assert legacy.name is None
        assert legacy.legacy.diffuse_factor == [0.0, 1.0, 0.0, 1.0]

    def test_parse_does_not_modify_input(self):
        tree = make_gltf()
        snapshot = json.loads(json.dumps(tree))

        document = SceneDocument.parse(tree)
        document.buffers[0].uri = "blob:changed"
        document.to_dict()

        assert tree == snapshot

    def test_to_dict_preserves_unknown_fields(self):
        tree = make_gltf(nodes=[{"mesh": 0, "name": "Shirt"}], extras={"author": "studio"})
        tree["buffers"][0]["extras"] = {"keep": True}

        out = SceneDocument.parse(tree).to_dict()

        assert out["nodes"] == [{"mesh": 0, "name": "Shirt"}]
        assert out["extras"] == {"author": "studio"}
        assert out["buffers"][0]["extras"] == {"keep": True}

    def test_embedded_buffer_without_uri_is_kept(self):
        tree = make_gltf(buffer_uris=())
        tree["buffers"] = [{"byteLength": 16}]

        document = SceneDocument.parse(tree)

        assert document.buffers[0].uri is None
        assert document.to_dict()["buffers"] == [{"byteLength": 16}]

    def test_parse_scene_text_rejects_invalid_json(self):
        with pytest.raises(ProcessingFailedError) as exc_info:
            parse_scene_text(b"{not json", source="broken.gltf")
        assert "broken.gltf" in exc_info.value.message

    def test_parse_scene_text_rejects_non_object(self):
        with pytest.raises(ProcessingFailedError):
            parse_scene_text(b"[1, 2, 3]")

    def test_parse_scene_text_accepts_bom(self):
        data = "\ufeff".encode("utf-8") + json.dumps(make_gltf()).encode("utf-8")
        document = parse_scene_text(data)
        assert len(document.materials) == 1


class TestGlbCodec:
    def test_write_then_read(self):
        tree = {"asset": {"version": "2.0"}, "materials": [{"name": "Body"}]}
        data = write_glb(GlbContainer(json=tree, binary=b"\x01\x02\x03"))

        assert is_glb(data)
        assert len(data) % 4 == 0
        assert struct.unpack_from("<I", data, 8)[0] == len(data)

        container = read_glb(data)
        assert container.json == tree
        assert container.version == 2
        # BIN chunk is zero-padded to 4-byte alignment
        assert container.binary == b"\x01\x02\x03\x00"

    def test_json_only_container(self):
        container = read_glb(write_glb(GlbContainer(json={"asset": {}})))
        assert container.binary is None

    def test_bad_magic(self):
        data = b"glTX" + write_glb(GlbContainer(json={}))[4:]
        with pytest.raises(ProcessingFailedError, match="magic"):
            read_glb(data)

    def test_truncated(self):
        data = write_glb(GlbContainer(json={"asset": {"version": "2.0"}}, binary=b"\x00" * 32))
        with pytest.raises(ProcessingFailedError, match="truncated"):
            read_glb(data[:-8])

    def test_too_short(self):
        with pytest.raises(ProcessingFailedError, match="too short"):
            read_glb(b"glTF")
