"""
Tests for primary model classification.
"""

import pytest

from core.ingestion.classifier import ModelKind, classify_files
from core.resources import InMemoryFile
from core.utils.exceptions import NoModelFoundError


def _file(name, data=b"x"):
    return InMemoryFile.from_bytes(name, data)


def test_binary_model_wins_over_text_document():
    glb = _file("shirt.glb")
    gltf = _file("shirt.gltf")
    texture = _file("diffuse.png")

    batch = classify_files([gltf, texture, glb])

    assert batch.primary is glb
    assert batch.kind == ModelKind.BINARY
    assert set(batch.pool) == {"shirt.gltf", "diffuse.png"}


def test_text_document_collects_side_files_by_name():
    gltf = _file("scene.gltf")
    files = [gltf, _file("scene.bin"), _file("Base_Color.PNG")]

    batch = classify_files(files)

    assert batch.primary is gltf
    assert batch.kind == ModelKind.TEXT
    assert list(batch.pool) == ["scene.bin", "Base_Color.PNG"]
    assert "scene.gltf" not in batch.pool


def test_first_model_of_winning_kind_is_primary():
    first = _file("a.glb")
    second = _file("b.glb")

    batch = classify_files([first, second])

    assert batch.primary is first
    assert "b.glb" in batch.pool


def test_extension_match_is_case_insensitive():
    batch = classify_files([_file("MODEL.GLTF")])
    assert batch.kind == ModelKind.TEXT


def test_no_model_raises():
    with pytest.raises(NoModelFoundError) as exc_info:
        classify_files([_file("readme.txt"), _file("diffuse.png")])

    assert exc_info.value.error_code == "NO_MODEL_FOUND"
    assert exc_info.value.filenames == ["readme.txt", "diffuse.png"]


def test_empty_batch_raises():
    with pytest.raises(NoModelFoundError):
        classify_files([])
