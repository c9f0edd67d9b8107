"""
Loadable reference endpoint.

Serves the bytes behind an object URL so the browser-side viewer
can fetch patched documents, buffers and textures.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from api.dependencies import get_registry
from core.resources import ObjectUrlRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blobs", tags=["blobs"])


@router.get("/{blob_id}")
async def get_blob(blob_id: str, registry: ObjectUrlRegistry = Depends(get_registry)):
    """Return the payload of a live object URL"""
    entry = registry.get(blob_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Object URL {blob_id} was revoked or never existed")

    data, mime_type = entry
    return Response(content=data, media_type=mime_type, headers={"Cache-Control": "no-store"})
