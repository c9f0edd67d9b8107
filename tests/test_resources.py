"""
Tests for in-memory files, object URLs and resource ownership.
"""

import pytest

from core.resources import InMemoryFile, ObjectUrlRegistry, ResourceSet, load_files_from_paths
from core.utils.exceptions import FileUploadError
from core.utils.file_utils import (
    decode_data_uri,
    get_file_type_from_extension,
    guess_mime_type,
    validate_texture_image,
)
from tests.conftest import make_png, run


class TestInMemoryFile:
    def test_name_is_basename(self):
        assert InMemoryFile.from_bytes("a/b/model.bin", b"").name == "model.bin"
        assert InMemoryFile.from_bytes("C:\\exports\\model.bin", b"").name == "model.bin"

    def test_mime_type_sniffed_from_extension(self):
        assert InMemoryFile.from_bytes("scene.GLTF", b"").mime_type == "model/gltf+json"
        assert InMemoryFile.from_bytes("tex.webp", b"").mime_type == "image/webp"
        assert InMemoryFile.from_bytes("blob", b"").mime_type == "application/octet-stream"

    def test_explicit_mime_type(self):
        assert InMemoryFile.from_bytes("x", b"", mime_type="image/png").mime_type == "image/png"


class TestObjectUrlRegistry:
    def test_create_get_revoke(self, registry):
        url = registry.create_object_url(b"payload", "text/plain")

        assert url.startswith("blob:")
        assert url in registry
        assert registry.get(url) == (b"payload", "text/plain")
        assert registry.get(registry.blob_id(url)) == (b"payload", "text/plain")

        assert registry.revoke(url) is True
        assert registry.revoke(url) is False
        assert registry.get(url) is None
        assert len(registry) == 0

    def test_path_prefix_urls(self):
        registry = ObjectUrlRegistry("/api/v1/blobs/")
        url = registry.create_object_url(b"payload", "text/plain")
        blob_id = registry.blob_id(url)

        assert url == f"/api/v1/blobs/{blob_id}"
        assert registry.get(blob_id) == (b"payload", "text/plain")
        assert f"http://localhost:8000/api/v1/blobs/{blob_id}" in registry
        assert registry.revoke(url) is True

    def test_urls_are_unique(self, registry):
        urls = {registry.create_object_url(b"", "text/plain") for _ in range(50)}
        assert len(urls) == 50


class TestResourceSet:
    def test_publish_sets_loadable_reference(self, registry):
        resources = ResourceSet(registry)
        file = InMemoryFile.from_bytes("diffuse.png", b"png")

        url = resources.publish(file)

        assert file.loadable_reference == url
        assert registry.get(url) == (b"png", "image/png")
        assert resources.urls == [url]

    def test_release_revokes_only_owned_urls(self, registry):
        mine = ResourceSet(registry)
        other = ResourceSet(registry)
        mine.publish_bytes(b"a", "text/plain")
        mine.publish_bytes(b"b", "text/plain")
        kept = other.publish_bytes(b"c", "text/plain")

        assert mine.release() == 2
        assert mine.release() == 0
        assert len(mine) == 0
        assert len(registry) == 1
        assert kept in registry

    def test_discard_ignores_foreign_urls(self, registry):
        resources = ResourceSet(registry)
        foreign = registry.create_object_url(b"x", "text/plain")

        resources.discard(foreign)

        assert foreign in registry


class TestLoadFilesFromPaths:
    def test_reads_files(self, tmp_path):
        path = tmp_path / "model.bin"
        path.write_bytes(b"\x01\x02")

        files = run(load_files_from_paths([path]))

        assert files[0].name == "model.bin"
        assert files[0].data == b"\x01\x02"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            run(load_files_from_paths([tmp_path / "absent.glb"]))


class TestFileUtils:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("a.glb", "binary_model"),
            ("a.gltf", "text_model"),
            ("a.zip", "archive"),
            ("a.PNG", "image"),
            ("a.bin", "resource"),
            ("a.fbx", "unknown"),
        ],
    )
    def test_file_type_from_extension(self, name, expected):
        assert get_file_type_from_extension(name) == expected

    def test_guess_mime_type_falls_back_to_mimetypes(self):
        assert guess_mime_type("notes.txt") == "text/plain"

    def test_validate_texture_image(self):
        info = validate_texture_image("logo.jpg", make_png(fmt="JPEG", size=(5, 6)))
        assert info["format"] == "JPEG"
        assert (info["width"], info["height"]) == (5, 6)

    def test_validate_texture_rejects_other_encodings(self):
        with pytest.raises(FileUploadError, match="Unsupported image encoding"):
            validate_texture_image("logo.png", make_png(fmt="BMP"))

    def test_decode_data_uri(self):
        assert decode_data_uri("data:image/png;base64,iVBORw==") == (True, "image/png", b"\x89PNG")

    @pytest.mark.parametrize("uri", ["blob:abc", "data:image/png,raw", "data:image/png;base64,"])
    def test_decode_data_uri_rejects(self, uri):
        assert decode_data_uri(uri)[0] is False
