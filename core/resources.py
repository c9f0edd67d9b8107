"""
In-memory files and object URL ownership.

Every resource handed to the viewer is addressed by an object URL minted by
an :class:`ObjectUrlRegistry`. URLs stay valid until revoked, so
each ingestion (and the session's textures) keeps the URLs it minted in a
:class:`ResourceSet` and releases them as a unit.
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import aiofiles

from core.utils.file_utils import guess_mime_type

logger = logging.getLogger(__name__)

BLOB_URL_PREFIX = "blob:"


@dataclass
class InMemoryFile:
    """A named payload held in memory for the lifetime of an ingestion"""

    name: str
    mime_type: str
    data: bytes
    loadable_reference: Optional[str] = None

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: Optional[str] = None) -> "InMemoryFile":
        """Create a file named by the basename of ``name``"""
        basename = name.replace("\\", "/").rsplit("/", 1)[-1]
        return cls(
            name=basename,
            mime_type=mime_type or guess_mime_type(basename),
            data=data,
        )

    @property
    def size(self) -> int:
        return len(self.data)


class ObjectUrlRegistry:
    """Session-wide table of object URLs and the bytes they resolve to

    URLs are minted as ``<url_prefix><blob id>``. The default ``blob:`` form
    is for in-process viewers; an HTTP deployment uses a path prefix such as
    ``/api/v1/blobs/`` so a served document's references can be fetched
    relative to the document itself.
    """

    def __init__(self, url_prefix: str = BLOB_URL_PREFIX):
        self.url_prefix = url_prefix
        self._entries: Dict[str, Tuple[bytes, str]] = {}

    def blob_id(self, url: str) -> str:
        """Recover the blob id from an object URL, a served path or a bare id"""
        for prefix in (self.url_prefix, BLOB_URL_PREFIX):
            if url.startswith(prefix):
                return url[len(prefix):]
        return url.rstrip("/").rsplit("/", 1)[-1]

    def create_object_url(self, data: bytes, mime_type: str) -> str:
        blob_id = uuid.uuid4().hex
        self._entries[blob_id] = (data, mime_type)
        logger.debug(f"Created object URL {blob_id} ({mime_type}, {len(data)} bytes)")
        return f"{self.url_prefix}{blob_id}"

    def get(self, url: str) -> Optional[Tuple[bytes, str]]:
        """Return ``(data, mime_type)`` for a live URL or blob id"""
        return self._entries.get(self.blob_id(url))

    def revoke(self, url: str) -> bool:
        removed = self._entries.pop(self.blob_id(url), None)
        if removed is not None:
            logger.debug(f"Revoked object URL {url}")
        return removed is not None

    def __contains__(self, url: str) -> bool:
        return self.blob_id(url) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class ResourceSet:
    """Object URLs exclusively owned by one ingestion or by the texture slots"""

    def __init__(self, registry: ObjectUrlRegistry, label: str = "resources"):
        self.registry = registry
        self.label = label
        self._urls: List[str] = []

    def publish(self, file: InMemoryFile) -> str:
        """Mint a loadable reference for ``file`` and take ownership of it"""
        url = self.registry.create_object_url(file.data, file.mime_type)
        file.loadable_reference = url
        self._urls.append(url)
        return url

    def publish_bytes(self, data: bytes, mime_type: str) -> str:
        url = self.registry.create_object_url(data, mime_type)
        self._urls.append(url)
        return url

    def discard(self, url: str) -> None:
        """Revoke a single URL this set owns"""
        if url in self._urls:
            self._urls.remove(url)
            self.registry.revoke(url)

    def release(self) -> int:
        """Revoke every URL still owned; safe to call more than once"""
        count = 0
        for url in self._urls:
            if self.registry.revoke(url):
                count += 1
        self._urls = []
        if count:
            logger.info(f"Released {count} object URLs from {self.label}")
        return count

    @property
    def urls(self) -> List[str]:
        return list(self._urls)

    def __len__(self) -> int:
        return len(self._urls)


async def load_files_from_paths(paths: Iterable[Union[str, Path]]) -> List[InMemoryFile]:
    """Read local files into memory, sniffing MIME types by extension"""
    files = []
    for path in paths:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Input file not found: {path}")
        async with aiofiles.open(path, "rb") as f:
            data = await f.read()
        files.append(InMemoryFile.from_bytes(path.name, data))
        logger.debug(f"Loaded {path} ({len(data)} bytes)")
    return files
