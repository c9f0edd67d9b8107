"""
Tests for binary model inspection.
"""

import trimesh

from core.utils.mesh_utils import summarize_binary_model


def test_box_statistics():
    data = trimesh.creation.box().export(file_type="glb")

    info = summarize_binary_model(data)

    assert info["valid"] is True
    assert info["geometry_count"] == 1
    assert info["vertex_count"] == 8
    assert info["face_count"] == 12


def test_unreadable_model_is_reported_not_raised():
    info = summarize_binary_model(b"not a model")

    assert info["valid"] is False
    assert "error" in info
