"""
Legacy material migration.

Assets exported with ``KHR_materials_pbrSpecularGlossiness`` render black or
untextured in current viewers. The diffuse texture and factor carry over
directly to the metallic-roughness base color; specular and glossiness have
no direct counterpart and are dropped in favour of fixed defaults. This is
an approximation, not a physically derived conversion.
"""

import logging
from typing import List

from core.ingestion.scene import LEGACY_EXTENSION, PbrBlock, SceneDocument

logger = logging.getLogger(__name__)

DEFAULT_ROUGHNESS = 0.5
DEFAULT_METALLIC = 0.0


def normalize_legacy_materials(
    document: SceneDocument,
    default_roughness: float = DEFAULT_ROUGHNESS,
    default_metallic: float = DEFAULT_METALLIC,
) -> List[str]:
    """
    Convert diffuse/specular materials to metallic-roughness in place.

    Running it on an already normalized document changes nothing.

    Returns:
        Names (or ``material_<index>``) of the migrated materials
    """
    migrated = []

    for material in document.materials:
        legacy = material.legacy
        if legacy is None:
            continue

        pbr = material.pbr if material.pbr is not None else PbrBlock()
        if legacy.diffuse_texture is not None:
            pbr.base_color_texture = legacy.diffuse_texture
        if legacy.diffuse_factor is not None:
            pbr.base_color_factor = legacy.diffuse_factor
        if pbr.roughness_factor is None:
            pbr.roughness_factor = default_roughness
        if pbr.metallic_factor is None:
            pbr.metallic_factor = default_metallic

        material.pbr = pbr
        material.legacy = None
        migrated.append(material.name or f"material_{material.index}")

    for extensions in (document.extensions_used, document.extensions_required):
        while LEGACY_EXTENSION in extensions:
            extensions.remove(LEGACY_EXTENSION)

    if migrated:
        logger.info(f"Migrated {len(migrated)} legacy specular-glossiness materials")
    return migrated
