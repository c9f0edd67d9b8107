"""
Ingestion orchestration.

Composes archive expansion, classification, patching and legacy material
migration into a single "load these dropped files" operation. Each call
gets a generation number; when a newer call has started by the time an
older one completes, the older result is thrown away so a slow first upload
can never replace a fast second one.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.ingestion.archive import expand_archive, is_archive
from core.ingestion.classifier import ClassifiedBatch, ModelKind, classify_files
from core.ingestion.glb import read_glb
from core.ingestion.legacy import DEFAULT_METALLIC, DEFAULT_ROUGHNESS, normalize_legacy_materials
from core.ingestion.patcher import patch_scene_document
from core.ingestion.scene import parse_scene_text
from core.resources import InMemoryFile, ObjectUrlRegistry, ResourceSet
from core.utils.exceptions import (
    BaseAPIException,
    IngestionSupersededError,
    ProcessingFailedError,
)
from core.utils.file_utils import MIME_TYPE_MAPPING
from core.utils.mesh_utils import summarize_binary_model

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    generation: int
    asset_url: str
    model_name: str
    kind: ModelKind
    resources: ResourceSet
    missing_resources: List[str] = field(default_factory=list)
    migrated_materials: List[str] = field(default_factory=list)
    model_info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generation": self.generation,
            "asset_url": self.asset_url,
            "model_name": self.model_name,
            "kind": self.kind.value,
            "missing_resources": list(self.missing_resources),
            "migrated_materials": list(self.migrated_materials),
            "model_info": self.model_info,
        }


class IngestionOrchestrator:
    """Turns dropped files into a loadable asset reference"""

    def __init__(
        self,
        registry: ObjectUrlRegistry,
        default_roughness: float = DEFAULT_ROUGHNESS,
        default_metallic: float = DEFAULT_METALLIC,
        inspect_models: bool = True,
    ):
        self.registry = registry
        self.default_roughness = default_roughness
        self.default_metallic = default_metallic
        self.inspect_models = inspect_models
        self._latest_generation = 0

    @property
    def latest_generation(self) -> int:
        return self._latest_generation

    def is_current(self, generation: int) -> bool:
        return generation == self._latest_generation

    async def ingest(self, files: List[InMemoryFile]) -> IngestionResult:
        """
        Ingest a batch of dropped files.

        Returns:
            IngestionResult owning every object URL it minted

        Raises:
            ArchiveCorruptError: If a dropped archive cannot be read
            NoModelFoundError: If no .glb or .gltf is present
            ProcessingFailedError: If the model cannot be prepared
            IngestionSupersededError: If a newer ingestion started meanwhile
        """
        self._latest_generation += 1
        generation = self._latest_generation
        resources = ResourceSet(self.registry, label=f"ingestion {generation}")
        logger.info(f"Starting ingestion {generation} with {len(files)} files")

        try:
            result = await self._process(files, generation, resources)
        except BaseAPIException as e:
            resources.release()
            logger.error(f"Ingestion {generation} failed: {e.message}")
            raise
        except Exception as e:
            resources.release()
            logger.error(f"Ingestion {generation} failed: {str(e)}", exc_info=True)
            raise ProcessingFailedError(f"Failed to process model: {str(e)}") from e

        if not self.is_current(generation):
            resources.release()
            logger.warning(
                f"Discarding ingestion {generation}; ingestion {self._latest_generation} is newer"
            )
            raise IngestionSupersededError(generation, self._latest_generation)

        logger.info(
            f"Ingestion {generation} ready: {result.model_name} "
            f"({len(result.missing_resources)} missing resources)"
        )
        return result

    async def _expand(self, files: List[InMemoryFile]) -> List[InMemoryFile]:
        archives = [f for f in files if is_archive(f)]
        if not archives:
            return list(files)

        expanded = await asyncio.gather(*(expand_archive(a) for a in archives))
        flat = [f for f in files if not is_archive(f)]
        for entries in expanded:
            flat.extend(entries)
        return flat

    async def _process(
        self, files: List[InMemoryFile], generation: int, resources: ResourceSet
    ) -> IngestionResult:
        batch = classify_files(await self._expand(files))

        if batch.kind == ModelKind.BINARY:
            return await self._process_binary(batch, generation, resources)
        return self._process_text(batch, generation, resources)

    async def _process_binary(
        self, batch: ClassifiedBatch, generation: int, resources: ResourceSet
    ) -> IngestionResult:
        primary = batch.primary
        read_glb(primary.data, source=primary.name)

        model_info: Dict[str, Any] = {}
        if self.inspect_models:
            model_info = await asyncio.to_thread(summarize_binary_model, primary.data, "glb")

        if batch.pool:
            logger.info(f"Ignoring {len(batch.pool)} side files next to binary model {primary.name}")

        asset_url = resources.publish(primary)
        return IngestionResult(
            generation=generation,
            asset_url=asset_url,
            model_name=primary.name,
            kind=ModelKind.BINARY,
            resources=resources,
            model_info=model_info,
        )

    def _process_text(
        self, batch: ClassifiedBatch, generation: int, resources: ResourceSet
    ) -> IngestionResult:
        primary = batch.primary
        document = parse_scene_text(primary.data, source=primary.name)

        for file in batch.pool.values():
            resources.publish(file)

        patch = patch_scene_document(document, batch.pool)
        migrated = normalize_legacy_materials(
            document,
            default_roughness=self.default_roughness,
            default_metallic=self.default_metallic,
        )

        # The document now embeds the URLs it needs; the rest can go
        for name, file in batch.pool.items():
            if name not in patch.used and file.loadable_reference:
                resources.discard(file.loadable_reference)

        asset_url = resources.publish_bytes(document.to_json_bytes(), MIME_TYPE_MAPPING[".gltf"])
        return IngestionResult(
            generation=generation,
            asset_url=asset_url,
            model_name=primary.name,
            kind=ModelKind.TEXT,
            resources=resources,
            missing_resources=patch.missing,
            migrated_materials=migrated,
            model_info={
                "buffer_count": len(document.buffers),
                "image_count": len(document.images),
                "material_count": len(document.materials),
            },
        )
