"""
Binary glTF (GLB) container codec.

Layout: 12-byte header (magic, version, total length) followed by a JSON
chunk and an optional BIN chunk, each prefixed by length and type and
padded to 4-byte alignment.
"""

import json
import struct
from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.utils.exceptions import ProcessingFailedError

GLB_MAGIC = b"glTF"
GLB_VERSION = 2
CHUNK_JSON = b"JSON"
CHUNK_BIN = b"BIN\x00"

_HEADER = struct.Struct("<4sII")
_CHUNK_HEADER = struct.Struct("<I4s")


@dataclass
class GlbContainer:
    json: Dict[str, Any]
    binary: Optional[bytes] = None
    version: int = GLB_VERSION


def is_glb(data: bytes) -> bool:
    return data[:4] == GLB_MAGIC


def read_glb(data: bytes, source: str = "model") -> GlbContainer:
    """
    Split a GLB into its JSON tree and binary payload.

    Raises:
        ProcessingFailedError: On a bad magic, truncated chunks or invalid JSON
    """
    if len(data) < _HEADER.size + _CHUNK_HEADER.size:
        raise ProcessingFailedError(f"{source} is not a valid GLB: header too short")

    magic, version, length = _HEADER.unpack_from(data, 0)
    if magic != GLB_MAGIC:
        raise ProcessingFailedError(f"{source} is not a valid GLB: magic mismatch")
    if length > len(data):
        raise ProcessingFailedError(
            f"{source} is truncated: header declares {length} bytes, got {len(data)}"
        )

    offset = _HEADER.size
    json_len, json_type = _CHUNK_HEADER.unpack_from(data, offset)
    offset += _CHUNK_HEADER.size
    if json_type != CHUNK_JSON or offset + json_len > length:
        raise ProcessingFailedError(f"{source} is not a valid GLB: missing JSON chunk")

    try:
        tree = json.loads(data[offset:offset + json_len].decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProcessingFailedError(f"{source} has an unreadable JSON chunk: {e}") from e
    if not isinstance(tree, dict):
        raise ProcessingFailedError(f"{source} has an unreadable JSON chunk")
    offset += json_len

    binary = None
    if offset + _CHUNK_HEADER.size <= length:
        bin_len, bin_type = _CHUNK_HEADER.unpack_from(data, offset)
        offset += _CHUNK_HEADER.size
        if bin_type == CHUNK_BIN:
            binary = data[offset:offset + bin_len]

    return GlbContainer(json=tree, binary=binary, version=version)


def write_glb(container: GlbContainer) -> bytes:
    """Serialize a GlbContainer back to GLB bytes"""
    json_bytes = json.dumps(container.json, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    json_bytes += b" " * ((4 - len(json_bytes) % 4) % 4)

    chunks = _CHUNK_HEADER.pack(len(json_bytes), CHUNK_JSON) + json_bytes
    if container.binary is not None:
        binary = container.binary + b"\x00" * ((4 - len(container.binary) % 4) % 4)
        chunks += _CHUNK_HEADER.pack(len(binary), CHUNK_BIN) + binary

    header = _HEADER.pack(GLB_MAGIC, container.version, _HEADER.size + len(chunks))
    return header + chunks
