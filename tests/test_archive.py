"""
Tests for archive expansion.
"""

import io
import zipfile

import pytest

from core.ingestion.archive import entry_basename, expand_archive, is_archive
from core.resources import InMemoryFile
from core.utils.exceptions import ArchiveCorruptError
from tests.conftest import make_png, make_zip, run


class TestExpandArchive:
    def test_flattens_nested_entries_to_basenames(self):
        png = make_png()
        data = make_zip(
            {
                "product/model.gltf": b"{}",
                "product/model.bin": b"\x00" * 8,
                "product/textures/diffuse.png": png,
            }
        )

        files = run(expand_archive(InMemoryFile.from_bytes("product.zip", data)))

        by_name = {f.name: f for f in files}
        assert set(by_name) == {"model.gltf", "model.bin", "diffuse.png"}
        assert by_name["diffuse.png"].data == png
        assert by_name["diffuse.png"].mime_type == "image/png"
        assert by_name["model.gltf"].mime_type == "model/gltf+json"

    def test_skips_directory_and_macos_metadata_entries(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("assets/", b"")
            archive.writestr("assets/model.glb", b"glTF")
            archive.writestr("__MACOSX/assets/._model.glb", b"junk")
            archive.writestr("assets/._model.glb", b"junk")

        files = run(expand_archive(InMemoryFile.from_bytes("a.zip", buffer.getvalue())))

        assert [f.name for f in files] == ["model.glb"]

    def test_duplicate_basenames_keep_last_entry(self, caplog):
        data = make_zip({"a/texture.png": b"first", "b/texture.png": b"second"})

        files = run(expand_archive(InMemoryFile.from_bytes("dup.zip", data)))

        assert len(files) == 1
        assert files[0].data == b"second"
        assert "Duplicate file name texture.png" in caplog.text

    def test_corrupt_container_raises(self):
        broken = InMemoryFile.from_bytes("broken.zip", b"PK\x03\x04 definitely not a zip")

        with pytest.raises(ArchiveCorruptError) as exc_info:
            run(expand_archive(broken))

        assert exc_info.value.error_code == "ARCHIVE_CORRUPT"
        assert "broken.zip" in exc_info.value.message

    def test_corrupt_entry_is_skipped(self):
        data = bytearray(make_zip({"good.bin": b"g" * 64, "bad.bin": b"b" * 64}))
        # Flip a byte inside the second entry's stored payload so its CRC fails
        with zipfile.ZipFile(io.BytesIO(bytes(data))) as archive:
            info = archive.getinfo("bad.bin")
        payload_offset = info.header_offset + 30 + len(info.filename.encode()) + len(info.extra)
        data[payload_offset] ^= 0xFF

        files = run(expand_archive(InMemoryFile.from_bytes("partial.zip", bytes(data))))

        assert [f.name for f in files] == ["good.bin"]

    def test_empty_archive_yields_no_files(self):
        files = run(expand_archive(InMemoryFile.from_bytes("empty.zip", make_zip({}))))
        assert files == []


class TestArchiveHelpers:
    def test_is_archive_by_extension_or_signature(self):
        assert is_archive(InMemoryFile.from_bytes("bundle.ZIP", b""))
        assert is_archive(InMemoryFile.from_bytes("upload", make_zip({"x": b"1"})))
        assert not is_archive(InMemoryFile.from_bytes("model.glb", b"glTF"))

    def test_entry_basename_handles_both_separators(self):
        assert entry_basename("a/b/c.png") == "c.png"
        assert entry_basename("a\\b\\c.png") == "c.png"
        assert entry_basename("c.png") == "c.png"
