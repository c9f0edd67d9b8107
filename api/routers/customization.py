"""
Customization API endpoints.

Applies uploaded textures and palette colors to slots or materials of the
loaded model. A target that matches no material is reported as a warning in
the response body; the model itself is left unchanged.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field, field_validator

from api.dependencies import get_current_settings, get_session
from core.materials import COLOR_PRESETS, ApplyResult, TargetRequest
from core.resources import InMemoryFile
from core.session import ConfiguratorSession
from core.utils.exceptions import FileUploadError, NoModelLoadedError
from core.utils.file_utils import SUPPORTED_TEXTURE_FORMATS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["customization"])


class ApplyResponse(BaseModel):
    """Outcome of a texture or color application"""

    success: bool
    applied_materials: List[str] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Error code when nothing was applied")
    warning: Optional[str] = None


class ColorRequest(BaseModel):
    """Request to recolor a slot or material"""

    color: str = Field(..., description="Hex color such as #dc2626")
    slot: Optional[str] = Field(None, description="Logical slot id")
    material: Optional[str] = Field(None, description="Material name or name fragment")
    whole_surface: bool = Field(False, description="Apply to every material")

    @field_validator("color")
    def validate_color(cls, v):
        """Require #rrggbb"""
        stripped = v.strip().lstrip("#")
        if len(stripped) != 6 or any(c not in "0123456789abcdefABCDEF" for c in stripped):
            raise ValueError(f"Invalid hex color: {v}")
        return f"#{stripped.lower()}"


def to_response(result: ApplyResult) -> ApplyResponse:
    return ApplyResponse(
        success=result.success,
        applied_materials=result.applied,
        error=result.error_code,
        warning=result.message,
    )


@router.post("/textures", response_model=ApplyResponse)
async def apply_texture(
    file: UploadFile = File(..., description="Texture image (JPG, PNG, WebP)"),
    slot: Optional[str] = Form(None),
    material: Optional[str] = Form(None),
    whole_surface: bool = Form(False),
    session: ConfiguratorSession = Depends(get_session),
    settings=Depends(get_current_settings),
):
    """Upload an image and apply it as base-color texture"""
    data = await file.read()
    max_size_mb = settings.ingestion.max_upload_size_mb
    if len(data) > max_size_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"Texture exceeds limit ({max_size_mb}MB)")

    image = InMemoryFile.from_bytes(file.filename or "texture", data)
    request = TargetRequest(slot=slot or None, fragment=material or None, whole_surface=whole_surface)

    try:
        result = await session.apply_texture(image, request)
    except NoModelLoadedError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except FileUploadError as e:
        raise HTTPException(
            status_code=400,
            detail=f"{e.message}. Supported: {SUPPORTED_TEXTURE_FORMATS}",
        )

    return to_response(result)


@router.post("/colors", response_model=ApplyResponse)
async def apply_color(
    body: ColorRequest,
    session: ConfiguratorSession = Depends(get_session),
):
    """Apply a palette color as base-color factor"""
    request = TargetRequest(slot=body.slot, fragment=body.material, whole_surface=body.whole_surface)
    try:
        result = session.apply_color(body.color, request)
    except NoModelLoadedError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return to_response(result)


@router.get("/colors/presets")
async def get_color_presets():
    """Palette swatches offered by the color picker"""
    return {"presets": COLOR_PRESETS}


@router.get("/slots")
async def get_slots(settings=Depends(get_current_settings)):
    """Logical texture slots and the material names they look for"""
    ingestion = settings.ingestion
    return {
        "slots": [
            {
                "id": slot_id,
                "label": ingestion.slot_labels.get(slot_id, slot_id),
                "candidates": candidates,
            }
            for slot_id, candidates in ingestion.slot_map.items()
        ]
    }
