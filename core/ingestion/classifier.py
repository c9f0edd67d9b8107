"""Identify the primary model file in a batch of dropped files"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from core.resources import InMemoryFile
from core.utils.exceptions import NoModelFoundError
from core.utils.file_utils import get_file_type_from_extension

logger = logging.getLogger(__name__)


class ModelKind(str, Enum):
    BINARY = "binary"
    TEXT = "text"


# Resource pool keyed by the exact filename the scene document would reference
ResourcePool = Dict[str, InMemoryFile]


@dataclass
class ClassifiedBatch:
    primary: InMemoryFile
    kind: ModelKind
    pool: ResourcePool = field(default_factory=dict)


def classify_files(files: List[InMemoryFile]) -> ClassifiedBatch:
    """
    Pick the primary model file and index the rest by filename.

    A binary model wins over a text scene document when both are present.
    Within one kind the first file in the batch is taken.

    Raises:
        NoModelFoundError: If the batch holds neither a .glb nor a .gltf file
    """
    binaries = [f for f in files if get_file_type_from_extension(f.name) == "binary_model"]
    texts = [f for f in files if get_file_type_from_extension(f.name) == "text_model"]

    if binaries:
        primary, kind = binaries[0], ModelKind.BINARY
        if texts:
            logger.warning(
                f"Batch contains both {primary.name} and {texts[0].name}; using the binary model"
            )
    elif texts:
        primary, kind = texts[0], ModelKind.TEXT
    else:
        raise NoModelFoundError([f.name for f in files])

    candidates = binaries if kind == ModelKind.BINARY else texts
    if len(candidates) > 1:
        logger.warning(
            f"{len(candidates)} {kind.value} models supplied; using {primary.name}"
        )

    pool: ResourcePool = {}
    for file in files:
        if file is not primary:
            pool[file.name] = file

    logger.info(f"Classified {primary.name} as {kind.value} model with {len(pool)} resources")
    return ClassifiedBatch(primary=primary, kind=kind, pool=pool)
