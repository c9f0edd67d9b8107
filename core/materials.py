"""
Material targeting.

Users pick a logical slot ("Logo 1") or a material name; assets name their
materials however the exporter felt like. Targets are resolved against the
viewer's live material list with an ordered strategy:

1. slot candidates from the static slot map, when the asset follows the
   configurator naming convention,
2. a free-text fragment (a slot id without a mapping counts as one),
3. every material, when no target was given and the whole surface was asked
   for.

Anything else that matches nothing is a non-fatal ``NoMatchingMaterial``.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from core.utils.exceptions import BaseAPIException, NoMatchingMaterialError
from core.viewer import OPAQUE_WHITE, MaterialHandle, ViewerHandle

logger = logging.getLogger(__name__)

COLOR_PRESETS = [
    {"name": "Black", "value": "#1a1a1a"},
    {"name": "White", "value": "#f5f5f5"},
    {"name": "Red", "value": "#dc2626"},
    {"name": "Blue", "value": "#2563eb"},
    {"name": "Green", "value": "#16a34a"},
    {"name": "Orange", "value": "#ea580c"},
    {"name": "Yellow", "value": "#eab308"},
    {"name": "Purple", "value": "#9333ea"},
    {"name": "Pink", "value": "#ec4899"},
    {"name": "Teal", "value": "#0d9488"},
]

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


@dataclass(frozen=True)
class TargetRequest:
    """Which part of the asset a texture or color should go to"""

    slot: Optional[str] = None
    fragment: Optional[str] = None
    whole_surface: bool = False

    def describe(self) -> str:
        return self.slot or self.fragment or "whole surface"


@dataclass
class ApplyResult:
    success: bool
    applied: List[str] = field(default_factory=list)
    error_code: Optional[str] = None
    message: Optional[str] = None


def uses_naming_convention(material_names: Sequence[str], keywords: Sequence[str]) -> bool:
    """True when any material name contains one of the convention keywords"""
    lowered = [kw.lower() for kw in keywords]
    return any(kw in name.lower() for name in material_names for kw in lowered)


def _first_match(material_names: Sequence[str], fragments: Sequence[str]) -> Optional[int]:
    for fragment in fragments:
        needle = fragment.lower()
        for i, name in enumerate(material_names):
            if needle in name.lower():
                return i
    return None


def resolve_material_targets(
    material_names: Sequence[str],
    request: TargetRequest,
    slot_map: Optional[Dict[str, List[str]]] = None,
    use_slot_map: bool = True,
) -> List[int]:
    """
    Pick the material indices a request applies to.

    Args:
        material_names: Names reported by the viewer, in reported order
        request: Slot, fragment and whole-surface intent
        slot_map: Slot id to ordered candidate name fragments
        use_slot_map: Whether the asset follows the naming convention

    Returns:
        Indices into ``material_names``

    Raises:
        NoMatchingMaterialError: If an explicit target matched nothing, or no
            target was given without asking for the whole surface
    """
    fragments: List[str] = []
    if request.slot:
        mapped = (slot_map or {}).get(request.slot)
        if mapped and use_slot_map:
            index = _first_match(material_names, mapped)
            if index is not None:
                return [index]
        elif not mapped:
            fragments.append(request.slot)
    if request.fragment:
        fragments.append(request.fragment)

    if fragments:
        index = _first_match(material_names, fragments)
        if index is not None:
            return [index]

    explicit = bool(request.slot or request.fragment)
    if not explicit and request.whole_surface and material_names:
        return list(range(len(material_names)))

    raise NoMatchingMaterialError(request.describe(), list(material_names))


def hex_to_rgba(hex_color: str) -> Tuple[float, float, float, float]:
    """Convert ``#rrggbb`` to a normalized RGBA tuple; invalid input gives opaque white"""
    match = _HEX_RE.match(hex_color.strip())
    if not match:
        return OPAQUE_WHITE
    r, g, b = (int(part, 16) / 255 for part in match.groups())
    return (r, g, b, 1.0)


def format_material_name(name: str) -> str:
    """Turn ``snake_case`` or ``camelCase`` material names into Title Case"""
    spaced = re.sub(r"[-_]", " ", name)
    spaced = re.sub(r"([A-Z])", r" \1", spaced)
    return " ".join(word[:1].upper() + word[1:].lower() for word in spaced.split())


def _select(
    viewer: ViewerHandle,
    request: TargetRequest,
    slot_map: Optional[Dict[str, List[str]]],
    convention_keywords: Optional[Sequence[str]],
) -> List[MaterialHandle]:
    # Always read fresh: the list is replaced whenever a new asset loads
    materials = viewer.materials
    names = [m.name for m in materials]
    use_slot_map = (
        uses_naming_convention(names, convention_keywords)
        if convention_keywords is not None
        else True
    )
    indices = resolve_material_targets(names, request, slot_map, use_slot_map)
    return [materials[i] for i in indices]


async def apply_texture(
    viewer: ViewerHandle,
    request: TargetRequest,
    texture_uri: str,
    slot_map: Optional[Dict[str, List[str]]] = None,
    convention_keywords: Optional[Sequence[str]] = None,
) -> ApplyResult:
    """
    Put a texture on the targeted materials.

    The base-color factor of every targeted material is reset to opaque white
    so the image is not tinted by an earlier color. Nothing is changed unless
    both the target lookup and texture creation succeed.
    """
    try:
        targets = _select(viewer, request, slot_map, convention_keywords)
        texture = await viewer.create_texture(texture_uri)
    except BaseAPIException as e:
        logger.warning(f"Texture not applied to {request.describe()}: {e.message}")
        return ApplyResult(success=False, error_code=e.error_code, message=e.message)
    except Exception as e:
        logger.error(f"Viewer could not create a texture for {request.describe()}: {e}", exc_info=True)
        return ApplyResult(success=False, error_code="TEXTURE_CREATION_FAILED", message=str(e))

    for material in targets:
        material.set_base_color_texture(texture)
        material.set_base_color_factor(OPAQUE_WHITE)

    applied = [m.name for m in targets]
    logger.info(f"Applied texture to {', '.join(applied)}")
    return ApplyResult(success=True, applied=applied)


def apply_color(
    viewer: ViewerHandle,
    request: TargetRequest,
    rgba: Sequence[float],
    slot_map: Optional[Dict[str, List[str]]] = None,
    convention_keywords: Optional[Sequence[str]] = None,
) -> ApplyResult:
    """Set the base-color factor of the targeted materials"""
    if len(rgba) != 4 or not all(0.0 <= c <= 1.0 for c in rgba):
        return ApplyResult(
            success=False,
            error_code="INVALID_COLOR",
            message=f"Color must be 4 components in [0, 1], got {list(rgba)}",
        )

    try:
        targets = _select(viewer, request, slot_map, convention_keywords)
    except NoMatchingMaterialError as e:
        logger.warning(f"Color not applied to {request.describe()}: {e.message}")
        return ApplyResult(success=False, error_code=e.error_code, message=e.message)

    for material in targets:
        material.set_base_color_factor(rgba)

    applied = [m.name for m in targets]
    logger.info(f"Applied color {tuple(rgba)} to {', '.join(applied)}")
    return ApplyResult(success=True, applied=applied)
