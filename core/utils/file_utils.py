"""File handling utilities"""

import base64
import io
import logging
import mimetypes
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .exceptions import FileUploadError

logger = logging.getLogger(__name__)

# Supported file formats
SUPPORTED_BINARY_MODEL_FORMATS = [".glb"]
SUPPORTED_TEXT_MODEL_FORMATS = [".gltf"]
SUPPORTED_MODEL_FORMATS = SUPPORTED_BINARY_MODEL_FORMATS + SUPPORTED_TEXT_MODEL_FORMATS
SUPPORTED_ARCHIVE_FORMATS = [".zip"]
SUPPORTED_RESOURCE_FORMATS = [".bin", ".png", ".jpg", ".jpeg", ".webp", ".ktx2"]
SUPPORTED_TEXTURE_FORMATS = [".jpg", ".jpeg", ".png", ".webp"]

# Pillow format names accepted for textures
TEXTURE_IMAGE_FORMATS = {"JPEG", "PNG", "WEBP"}

ZIP_SIGNATURE = b"PK\x03\x04"

# Extension to MIME type mappings not reliably known to ``mimetypes``
MIME_TYPE_MAPPING = {
    ".glb": "model/gltf-binary",
    ".gltf": "model/gltf+json",
    ".bin": "application/octet-stream",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".ktx2": "image/ktx2",
    ".zip": "application/zip",
}


def guess_mime_type(filename: str) -> str:
    """Guess a MIME type from the file extension"""
    ext = Path(filename).suffix.lower()
    if ext in MIME_TYPE_MAPPING:
        return MIME_TYPE_MAPPING[ext]

    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "application/octet-stream"


def validate_file_extension(filename: str, allowed_extensions: List[str]) -> bool:
    """Validate file extension against allowed list"""
    file_ext = Path(filename).suffix.lower()
    return file_ext in [ext.lower() for ext in allowed_extensions]


def get_file_type_from_extension(filename: str) -> str:
    """Get file type based on extension"""
    ext = Path(filename).suffix.lower()

    if ext in SUPPORTED_BINARY_MODEL_FORMATS:
        return "binary_model"
    elif ext in SUPPORTED_TEXT_MODEL_FORMATS:
        return "text_model"
    elif ext in SUPPORTED_ARCHIVE_FORMATS:
        return "archive"
    elif ext in SUPPORTED_TEXTURE_FORMATS:
        return "image"
    elif ext in SUPPORTED_RESOURCE_FORMATS:
        return "resource"
    else:
        return "unknown"


def validate_texture_image(filename: str, data: bytes) -> Dict:
    """Validate that texture bytes decode as one of the accepted raster formats"""
    if not validate_file_extension(filename, SUPPORTED_TEXTURE_FORMATS):
        raise FileUploadError(
            filename,
            f"Unsupported texture format. Supported: {SUPPORTED_TEXTURE_FORMATS}",
        )

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            format_name = img.format
            width, height = img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise FileUploadError(filename, f"Invalid image file: {e}")

    if format_name not in TEXTURE_IMAGE_FORMATS:
        raise FileUploadError(filename, f"Unsupported image encoding {format_name}")

    return {
        "valid": True,
        "width": width,
        "height": height,
        "format": format_name,
    }


def decode_data_uri(uri: str) -> Tuple[bool, Optional[str], Optional[bytes]]:
    """Decode a base64 data URI, returning ``(valid, content_type, data)``"""
    if not uri.startswith("data:") or "," not in uri:
        return False, None, None

    header, payload = uri.split(",", 1)
    content_type = header[len("data:"):].split(";")[0] or None
    if ";base64" not in header:
        return False, content_type, None

    try:
        decoded_data = base64.b64decode(payload, validate=True)
    except ValueError:
        return False, content_type, None

    if len(decoded_data) == 0:
        return False, content_type, None

    return True, content_type, decoded_data
