"""
Scene document patching.

Rewrites the relative ``uri`` of every buffer and image in a glTF document
to the object URL of the matching dropped file. Drag-and-drop flattens
directories and users rename files freely, so references are resolved by a
cascade of increasingly loose matchers; the first one that matches wins.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Set, Tuple
from urllib.parse import unquote

from core.ingestion.classifier import ResourcePool
from core.ingestion.scene import SceneDocument
from core.resources import InMemoryFile

logger = logging.getLogger(__name__)

# Matches any URI scheme such as data:, blob:, http:
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")
# Windows drive letters look like a one-letter scheme
_DRIVE_RE = re.compile(r"^[a-zA-Z]:[\\/]")


def is_relative_reference(uri: str) -> bool:
    """True for bare or relative file paths, false for embedded or absolute URLs"""
    if not uri:
        return False
    if _DRIVE_RE.match(uri):
        return True
    return not _SCHEME_RE.match(uri)


def reference_basename(uri: str) -> str:
    """Strip query, fragment and path prefix, then URL-decode"""
    path = uri.split("#", 1)[0].split("?", 1)[0]
    path = unquote(path).replace("\\", "/")
    return path.rsplit("/", 1)[-1]


Matcher = Callable[[str, ResourcePool], Optional[str]]


def match_exact(uri: str, pool: ResourcePool) -> Optional[str]:
    return uri if uri in pool else None


def match_basename(uri: str, pool: ResourcePool) -> Optional[str]:
    basename = reference_basename(uri)
    return basename if basename in pool else None


def match_basename_case_insensitive(uri: str, pool: ResourcePool) -> Optional[str]:
    basename = reference_basename(uri).lower()
    for key in pool:
        if key.lower() == basename:
            return key
    return None


def match_suffix(uri: str, pool: ResourcePool) -> Optional[str]:
    basename = reference_basename(uri).lower()
    if not basename:
        return None
    for key in pool:
        if key.lower().endswith(basename):
            return key
    return None


# Evaluated in order; later tiers only run when every earlier tier missed
DEFAULT_MATCHERS: Tuple[Tuple[str, Matcher], ...] = (
    ("exact", match_exact),
    ("basename", match_basename),
    ("basename_ci", match_basename_case_insensitive),
    ("suffix", match_suffix),
)


def resolve_reference(
    uri: str,
    pool: ResourcePool,
    matchers: Sequence[Tuple[str, Matcher]] = DEFAULT_MATCHERS,
) -> Optional[Tuple[str, InMemoryFile]]:
    """Return ``(tier_name, file)`` for the first matcher that finds ``uri``"""
    for tier, matcher in matchers:
        key = matcher(uri, pool)
        if key is not None:
            return tier, pool[key]
    return None


@dataclass
class PatchResult:
    document: SceneDocument
    missing: List[str] = field(default_factory=list)
    used: Set[str] = field(default_factory=set)


def patch_scene_document(
    document: SceneDocument,
    pool: ResourcePool,
    matchers: Sequence[Tuple[str, Matcher]] = DEFAULT_MATCHERS,
) -> PatchResult:
    """
    Point every relative buffer and image reference at an in-memory resource.

    Pool files must already carry a loadable reference. Unresolvable
    references are left as they are and reported, buffers first and then
    images, in document order.

    Args:
        document: Parsed scene document, patched in place
        pool: Dropped side files keyed by filename

    Returns:
        PatchResult with the missing references and the pool keys used
    """
    result = PatchResult(document=document)

    for entry in (*document.buffers, *document.images):
        uri = entry.uri
        if uri is None or not is_relative_reference(uri):
            continue

        match = resolve_reference(uri, pool, matchers)
        if match is None:
            result.missing.append(uri)
            continue

        tier, file = match
        if file.loadable_reference is None:
            raise ValueError(f"Resource {file.name} has no loadable reference")
        logger.debug(f"Resolved {uri} -> {file.name} ({tier})")
        entry.uri = file.loadable_reference
        result.used.add(file.name)

    if result.missing:
        logger.warning(
            f"{len(result.missing)} referenced resources not found: {', '.join(result.missing)}"
        )
    return result
