"""
Mesh inspection utilities.
"""

import io
import logging
from typing import Any, Dict

import trimesh

logger = logging.getLogger(__name__)


def summarize_binary_model(data: bytes, file_type: str = "glb") -> Dict[str, Any]:
    """
    Collect geometry statistics for a binary model.

    The result is informational only; the viewer decides whether an asset
    loads, so a model trimesh cannot read is reported as ``valid: False``
    rather than rejected.
    """
    try:
        loaded = trimesh.load(io.BytesIO(data), file_type=file_type)

        # Handle scene objects
        if isinstance(loaded, trimesh.Scene):
            geometries = list(loaded.geometry.values())
        else:
            geometries = [loaded]

        vertex_count = 0
        face_count = 0
        for geometry in geometries:
            if isinstance(geometry, trimesh.Trimesh):
                vertex_count += len(geometry.vertices)
                face_count += len(geometry.faces)

        return {
            "valid": True,
            "geometry_count": len(geometries),
            "vertex_count": vertex_count,
            "face_count": face_count,
        }

    except Exception as e:
        logger.warning(f"Could not inspect {file_type} model: {str(e)}")
        return {"valid": False, "error": str(e)}
