"""
Model ingestion API endpoints.

Accepts the files a user dropped (a GLB, a glTF with its buffers and
images, or a zip of either), prepares them for the viewer and reports which
referenced resources could not be found.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field

from api.dependencies import get_current_settings, get_session
from core.resources import InMemoryFile
from core.session import ConfiguratorSession
from core.utils.exceptions import (
    ArchiveCorruptError,
    IngestionSupersededError,
    NoModelFoundError,
    NoModelLoadedError,
    ProcessingFailedError,
)
from core.utils.file_utils import (
    SUPPORTED_ARCHIVE_FORMATS,
    SUPPORTED_MODEL_FORMATS,
    SUPPORTED_RESOURCE_FORMATS,
    validate_file_extension,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/models", tags=["models"])

ACCEPTED_MODEL_UPLOAD_FORMATS = (
    SUPPORTED_MODEL_FORMATS + SUPPORTED_ARCHIVE_FORMATS + SUPPORTED_RESOURCE_FORMATS
)


class ModelIngestResponse(BaseModel):
    """Response for model ingestion requests"""

    asset_url: str = Field(..., description="Loadable reference of the prepared asset")
    model_name: str = Field(..., description="Filename of the primary model file")
    kind: str = Field(..., description="binary (GLB) or text (glTF)")
    generation: int = Field(..., description="Sequence number of this ingestion")
    missing_resources: List[str] = Field(
        default_factory=list, description="References that could not be resolved"
    )
    migrated_materials: List[str] = Field(
        default_factory=list, description="Materials converted from specular-glossiness"
    )
    warning: str = Field("", description="Aggregated warning for missing resources")
    model_info: Dict[str, Any] = Field(default_factory=dict, description="Model statistics")


class MaterialInfo(BaseModel):
    name: str
    display_name: str
    base_color_factor: List[float]
    has_texture: bool


class MaterialListResponse(BaseModel):
    model_name: str
    texture_mode: str = Field(..., description="standard (slot ids apply) or custom")
    materials: List[MaterialInfo]


async def read_upload(file: UploadFile, max_size_mb: int) -> InMemoryFile:
    """Read an uploaded file into memory, enforcing the upload size limit"""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    if not validate_file_extension(file.filename, ACCEPTED_MODEL_UPLOAD_FORMATS):
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type {file.filename}. Allowed extensions: {ACCEPTED_MODEL_UPLOAD_FORMATS}",
        )

    data = await file.read()
    size_mb = len(data) / (1024 * 1024)
    if size_mb > max_size_mb:
        raise HTTPException(
            status_code=413,
            detail=f"File {file.filename} ({size_mb:.1f}MB) exceeds limit ({max_size_mb}MB)",
        )
    return InMemoryFile.from_bytes(file.filename, data)


@router.post("", response_model=ModelIngestResponse)
async def ingest_model(
    files: List[UploadFile] = File(..., description="Dropped model files"),
    session: ConfiguratorSession = Depends(get_session),
    settings=Depends(get_current_settings),
):
    """
    Ingest dropped model files and load them into the viewer.

    Missing side resources do not fail the request; they are listed in
    ``missing_resources`` and summarised in ``warning``.
    """
    max_size_mb = settings.ingestion.max_upload_size_mb
    dropped = [await read_upload(f, max_size_mb) for f in files]

    try:
        result = await session.load_model(dropped)
    except (ArchiveCorruptError, NoModelFoundError) as e:
        logger.error(f"Rejected model upload: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)
    except ProcessingFailedError as e:
        logger.error(f"Failed to process model upload: {e.message}")
        raise HTTPException(status_code=422, detail=e.message)
    except IngestionSupersededError as e:
        raise HTTPException(status_code=409, detail=e.message)

    warning = ""
    if result.missing_resources:
        warning = f"Missing resources: {', '.join(result.missing_resources)}"

    return ModelIngestResponse(
        asset_url=result.asset_url,
        model_name=result.model_name,
        kind=result.kind.value,
        generation=result.generation,
        missing_resources=result.missing_resources,
        migrated_materials=result.migrated_materials,
        warning=warning,
        model_info=result.model_info,
    )


@router.get("/current/materials", response_model=MaterialListResponse)
async def list_current_materials(session: ConfiguratorSession = Depends(get_session)):
    """List the materials of the loaded model"""
    try:
        materials = session.list_materials()
    except NoModelLoadedError as e:
        raise HTTPException(status_code=404, detail=e.message)

    return MaterialListResponse(
        model_name=session.current.model_name,
        texture_mode=session.texture_mode(),
        materials=[MaterialInfo(**m) for m in materials],
    )
