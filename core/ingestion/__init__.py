"""Asset ingestion pipeline: archives, classification, patching and material migration"""

from .archive import expand_archive, is_archive
from .classifier import ClassifiedBatch, ModelKind, classify_files
from .legacy import normalize_legacy_materials
from .orchestrator import IngestionOrchestrator, IngestionResult
from .patcher import PatchResult, patch_scene_document
from .scene import SceneDocument, parse_scene_text

__all__ = [
    "ClassifiedBatch",
    "IngestionOrchestrator",
    "IngestionResult",
    "ModelKind",
    "PatchResult",
    "SceneDocument",
    "classify_files",
    "expand_archive",
    "is_archive",
    "normalize_legacy_materials",
    "parse_scene_text",
    "patch_scene_document",
]
