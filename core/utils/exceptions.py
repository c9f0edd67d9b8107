"""Exception types raised by the configurator core"""

from typing import List, Optional


class BaseAPIException(Exception):
    """Base class for errors surfaced to API clients"""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class FileUploadError(BaseAPIException):
    """Raised when an uploaded file is rejected"""

    def __init__(self, filename: str, reason: str):
        super().__init__(f"{filename}: {reason}", "FILE_UPLOAD_ERROR")
        self.filename = filename
        self.reason = reason


class ArchiveCorruptError(BaseAPIException):
    """The archive could not be parsed as a valid container"""

    def __init__(self, filename: str, reason: str):
        super().__init__(
            f"Archive {filename} could not be read: {reason}", "ARCHIVE_CORRUPT"
        )
        self.filename = filename


class NoModelFoundError(BaseAPIException):
    """No .glb or .gltf file was found among the supplied files"""

    def __init__(self, filenames: List[str]):
        listed = ", ".join(filenames) if filenames else "no files"
        super().__init__(
            f"No GLB or glTF model found (received: {listed})", "NO_MODEL_FOUND"
        )
        self.filenames = filenames


class ProcessingFailedError(BaseAPIException):
    """The model could not be prepared for the viewer"""

    def __init__(self, message: str):
        super().__init__(message, "PROCESSING_FAILED")


class IngestionSupersededError(BaseAPIException):
    """A newer ingestion was started before this one completed"""

    def __init__(self, generation: int, latest: int):
        super().__init__(
            f"Ingestion {generation} was superseded by ingestion {latest}",
            "INGESTION_SUPERSEDED",
        )
        self.generation = generation
        self.latest = latest


class NoMatchingMaterialError(BaseAPIException):
    """No material on the loaded asset matches the requested slot or name"""

    def __init__(self, target: str, available: List[str]):
        super().__init__(
            f"No material found for '{target}' (available: {', '.join(available) or 'none'})",
            "NO_MATCHING_MATERIAL",
        )
        self.target = target
        self.available = available


class NoModelLoadedError(BaseAPIException):
    """A customization was requested before any model finished loading"""

    def __init__(self):
        super().__init__("No model is currently loaded", "NO_MODEL_LOADED")


class ViewerLoadError(BaseAPIException):
    """The viewer rejected the asset"""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Viewer failed to load {url}: {reason}", "VIEWER_LOAD_FAILED")
        self.url = url


class TextureCreationError(BaseAPIException):
    """The viewer could not create a texture from the given URI"""

    def __init__(self, uri: str, reason: str):
        super().__init__(
            f"Failed to create texture from {uri}: {reason}", "TEXTURE_CREATION_FAILED"
        )
        self.uri = uri
