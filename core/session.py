"""
Configurator session.

One session holds one loaded asset, the viewer displaying it and the
textures applied to it. A new model only replaces the current one after the
viewer has confirmed it loaded; the previous asset's object URLs are
released after that, never before.
"""

import logging
from typing import Dict, List, Optional, Set

from core.config import IngestionConfig
from core.ingestion.orchestrator import IngestionOrchestrator, IngestionResult
from core.materials import (
    ApplyResult,
    TargetRequest,
    apply_color,
    apply_texture,
    format_material_name,
    hex_to_rgba,
    uses_naming_convention,
)
from core.resources import InMemoryFile, ObjectUrlRegistry, ResourceSet
from core.utils.exceptions import (
    IngestionSupersededError,
    NoModelLoadedError,
    ProcessingFailedError,
    ViewerLoadError,
)
from core.utils.file_utils import validate_texture_image
from core.viewer import ViewerHandle

logger = logging.getLogger(__name__)


class ConfiguratorSession:
    """The stateful object the UI layer talks to"""

    def __init__(
        self,
        viewer: ViewerHandle,
        registry: ObjectUrlRegistry,
        config: Optional[IngestionConfig] = None,
        inspect_models: bool = True,
    ):
        self.viewer = viewer
        self.registry = registry
        self.config = config or IngestionConfig()
        self.orchestrator = IngestionOrchestrator(
            registry,
            default_roughness=self.config.legacy_default_roughness,
            default_metallic=self.config.legacy_default_metallic,
            inspect_models=inspect_models,
        )
        self.current: Optional[IngestionResult] = None
        self._texture_resources = ResourceSet(registry, label="textures")
        # material name -> object URL of the texture it shows
        self._textures: Dict[str, str] = {}
        self._viewer_loads: Set[int] = set()

    async def load_model(self, files: List[InMemoryFile]) -> IngestionResult:
        """
        Ingest dropped files and show the result in the viewer.

        Raises:
            ArchiveCorruptError, NoModelFoundError, ProcessingFailedError:
                The previous model stays loaded
            IngestionSupersededError: A newer load started meanwhile
        """
        result = await self.orchestrator.ingest(files)
        if not self.orchestrator.is_current(result.generation):
            result.resources.release()
            raise IngestionSupersededError(result.generation, self.orchestrator.latest_generation)

        self._viewer_loads.add(result.generation)
        try:
            await self.viewer.load(result.asset_url)
        except ViewerLoadError as e:
            result.resources.release()
            if not self.orchestrator.is_current(result.generation):
                raise IngestionSupersededError(
                    result.generation, self.orchestrator.latest_generation
                ) from e
            logger.error(f"Viewer rejected {result.model_name}: {e.message}")
            raise ProcessingFailedError(e.message) from e
        except Exception as e:
            result.resources.release()
            if not self.orchestrator.is_current(result.generation):
                raise IngestionSupersededError(
                    result.generation, self.orchestrator.latest_generation
                ) from e
            logger.error(f"Viewer failed to load {result.model_name}: {e}", exc_info=True)
            raise ProcessingFailedError(f"Viewer failed to load {result.model_name}: {e}") from e
        finally:
            self._viewer_loads.discard(result.generation)

        if not self.orchestrator.is_current(result.generation):
            result.resources.release()
            logger.warning(f"Discarding superseded load of {result.model_name}")
            await self._restore_viewer(result.generation)
            raise IngestionSupersededError(result.generation, self.orchestrator.latest_generation)

        previous = self.current
        self.current = result
        if previous is not None:
            previous.resources.release()
        self._release_textures()

        logger.info(f"Loaded model {result.model_name} (generation {result.generation})")
        return result

    async def _restore_viewer(self, stale_generation: int) -> None:
        """Put the committed asset back after a superseded load took over the viewer"""
        if any(generation > stale_generation for generation in self._viewer_loads):
            # A newer load is already on its way into the viewer
            return

        if self.current is None:
            self.viewer.unload()
            return

        try:
            await self.viewer.load(self.current.asset_url)
        except Exception as e:
            logger.error(f"Could not restore {self.current.model_name} in the viewer: {e}", exc_info=True)
            self.viewer.unload()
            return

        # The reload starts from the asset's own materials
        self._release_textures()
        logger.info(f"Restored {self.current.model_name} in the viewer")

    def _release_textures(self) -> None:
        self._texture_resources.release()
        self._textures.clear()

    def _require_model(self) -> None:
        if self.current is None or not self.viewer.is_ready:
            raise NoModelLoadedError()

    async def apply_texture(self, image: InMemoryFile, request: TargetRequest) -> ApplyResult:
        """
        Apply an uploaded image to the requested slot or material.

        Raises:
            NoModelLoadedError: If no model is loaded yet
            FileUploadError: If the image is not a JPEG, PNG or WebP
        """
        self._require_model()
        validate_texture_image(image.name, image.data)

        url = self._texture_resources.publish(image)
        result = await apply_texture(
            self.viewer,
            request,
            url,
            slot_map=self.config.slot_map,
            convention_keywords=self.config.convention_keywords,
        )
        if not result.success:
            self._texture_resources.discard(url)
            return result

        replaced = {self._textures[name] for name in result.applied if name in self._textures}
        for name in result.applied:
            self._textures[name] = url
        still_shown = set(self._textures.values())
        for previous in replaced - still_shown:
            self._texture_resources.discard(previous)
        return result

    def apply_color(self, hex_color: str, request: TargetRequest) -> ApplyResult:
        """Recolor the requested slot or material from a palette hex value"""
        self._require_model()
        return apply_color(
            self.viewer,
            request,
            hex_to_rgba(hex_color),
            slot_map=self.config.slot_map,
            convention_keywords=self.config.convention_keywords,
        )

    def list_materials(self) -> List[Dict]:
        """Describe the materials of the loaded asset for the UI"""
        self._require_model()
        return [
            {
                "name": material.name,
                "display_name": format_material_name(material.name),
                "base_color_factor": list(material.base_color_factor),
                "has_texture": material.base_color_texture is not None,
            }
            for material in self.viewer.materials
        ]

    def texture_mode(self) -> str:
        """``standard`` when slot ids apply to the asset, ``custom`` otherwise"""
        names = [m.name for m in self.viewer.materials]
        if not names or uses_naming_convention(names, self.config.convention_keywords):
            return "standard"
        return "custom"

    @property
    def applied_textures(self) -> Dict[str, str]:
        """Object URL of the texture each material shows"""
        return dict(self._textures)

    def close(self) -> None:
        """Release every object URL the session still owns"""
        if self.current is not None:
            self.current.resources.release()
            self.current = None
        self._release_textures()
