"""
Archive expansion.

Turns a dropped ``.zip`` into a flat list of in-memory files. Directory
structure is discarded because the scene document patcher resolves
references by basename anyway.
"""

import asyncio
import io
import logging
import zipfile
import zlib
from typing import Dict, List, Optional

from core.resources import InMemoryFile
from core.utils.exceptions import ArchiveCorruptError
from core.utils.file_utils import SUPPORTED_ARCHIVE_FORMATS, ZIP_SIGNATURE, validate_file_extension

logger = logging.getLogger(__name__)

# Resource-fork entries written by the macOS archiver
_IGNORED_PREFIXES = ("__MACOSX/",)
_IGNORED_BASENAME_PREFIX = "._"


def is_archive(file: InMemoryFile) -> bool:
    """Recognize an archive by extension or by the zip local header signature"""
    if validate_file_extension(file.name, SUPPORTED_ARCHIVE_FORMATS):
        return True
    return file.data[:4] == ZIP_SIGNATURE


def entry_basename(entry_name: str) -> str:
    return entry_name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


def _should_skip(info: zipfile.ZipInfo) -> bool:
    if info.is_dir():
        return True
    name = info.filename.replace("\\", "/")
    if name.startswith(_IGNORED_PREFIXES):
        return True
    return entry_basename(name).startswith(_IGNORED_BASENAME_PREFIX)


def _read_entry(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> Optional[bytes]:
    """Read one entry; a damaged entry yields ``None`` instead of failing the archive"""
    try:
        return archive.read(info)
    except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
        logger.warning(f"Skipping unreadable archive entry {info.filename}: {e}")
        return None


async def expand_archive(archive_file: InMemoryFile) -> List[InMemoryFile]:
    """
    Extract every file entry of an archive into memory.

    Entries are read concurrently and the call returns once all of them have
    settled. Entries are flattened to their basenames; when two entries share
    a basename the one later in the archive wins.

    Args:
        archive_file: The dropped archive

    Returns:
        One InMemoryFile per readable, non-directory entry

    Raises:
        ArchiveCorruptError: If the container itself cannot be parsed
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(archive_file.data))
    except (zipfile.BadZipFile, zlib.error, ValueError, EOFError) as e:
        raise ArchiveCorruptError(archive_file.name, str(e)) from e

    with archive:
        entries = [info for info in archive.infolist() if not _should_skip(info)]
        logger.info(f"Expanding {archive_file.name}: {len(entries)} file entries")

        payloads = await asyncio.gather(
            *(asyncio.to_thread(_read_entry, archive, info) for info in entries)
        )

    extracted: Dict[str, InMemoryFile] = {}
    for info, data in zip(entries, payloads):
        if data is None:
            continue
        file = InMemoryFile.from_bytes(info.filename, data)
        if file.name in extracted:
            logger.warning(
                f"Duplicate file name {file.name} in {archive_file.name}; "
                f"keeping {info.filename}"
            )
        extracted[file.name] = file

    skipped = len(entries) - sum(1 for data in payloads if data is not None)
    if skipped:
        logger.warning(f"{skipped} entries of {archive_file.name} could not be extracted")

    return list(extracted.values())
