"""Product picture index and image reference resolution.

Product ``images`` entries may be absolute URLs, data URIs, or short
references: ``@pp/<path>`` points into a scanned picture folder and
``@media/<path>`` points into the media directory next to the catalog.
This module scans picture folders and resolves references to URLs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from core.constants import (
    MEDIA_REF_PREFIX,
    PASSTHROUGH_REF_PREFIXES,
    PICTURE_REF_PREFIX,
    SUPPORTED_PICTURE_EXTENSIONS,
)
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PictureFile:
    """One indexed picture.

    Attributes:
        name: File name.
        rel: Path relative to the index root, ``/``-separated.
        ref: ``@pp/`` reference stored on products.
        url: ``file://`` URL of the picture.
    """

    name: str
    rel: str
    ref: str
    url: str


@dataclass
class PictureNode:
    """Directory node in the picture tree."""

    name: str
    dirs: dict[str, "PictureNode"] = field(default_factory=dict)
    files: list[PictureFile] = field(default_factory=list)


@dataclass
class PictureIndex:
    """Result of scanning a picture folder."""

    root: PictureNode = field(default_factory=lambda: PictureNode(""))
    by_ref: dict[str, PictureFile] = field(default_factory=dict)
    error: str | None = None

    @property
    def count(self) -> int:
        return len(self.by_ref)

    def add(self, picture: PictureFile) -> None:
        """Register a picture and file it under its directory node."""
        self.by_ref[picture.ref] = picture
        node = self.root
        for segment in picture.rel.split("/")[:-1]:
            node = node.dirs.setdefault(segment, PictureNode(segment))
        node.files.append(picture)


def build_disk_picture_index(root: Path) -> PictureIndex:
    """Scan a folder tree for pictures.

    Args:
        root: Folder to scan recursively.

    Returns:
        Index of every supported picture; unreadable roots produce an
        empty index with ``error`` set.
    """
    index = PictureIndex()
    if not root.is_dir():
        index.error = f"picture folder not found: {root}"
        return index
    try:
        paths = sorted(path for path in root.rglob("*") if path.is_file())
    except OSError as error:
        _LOGGER.warning("picture_scan_failed", root=str(root), error=str(error))
        index.error = str(error)
        return index
    for path in paths:
        if path.suffix.lower() not in SUPPORTED_PICTURE_EXTENSIONS:
            continue
        rel = path.relative_to(root).as_posix()
        index.add(
            PictureFile(
                name=path.name,
                rel=rel,
                ref=f"{PICTURE_REF_PREFIX}{rel}",
                url=file_url(path.resolve()),
            )
        )
    _LOGGER.info("picture_index_built", root=str(root), count=index.count)
    return index


def resolve_picture_ref(
    ref: str | None,
    index: PictureIndex | None = None,
    media_root: Path | None = None,
) -> str:
    """Resolve an image reference into a loadable URL.

    Args:
        ref: Reference stored on a product.
        index: Picture index used for ``@pp/`` references.
        media_root: Directory used for ``@media/`` references.

    Returns:
        Resolved URL, or an empty string when the reference cannot resolve.
    """
    value = str(ref or "")
    if not value:
        return ""
    if value.startswith(PASSTHROUGH_REF_PREFIXES):
        return value
    if value.startswith(PICTURE_REF_PREFIX):
        picture = index.by_ref.get(value) if index is not None else None
        return picture.url if picture is not None else ""
    if value.startswith(MEDIA_REF_PREFIX):
        if media_root is None:
            return ""
        return file_url(media_root / value[len(MEDIA_REF_PREFIX):])
    return value


def file_url(path: Path) -> str:
    """Return a ``file://`` URL, keeping Windows drive paths readable."""
    posix = path.as_posix()
    if len(posix) > 1 and posix[1] == ":":
        return f"file:///{posix}"
    return f"file://{posix}"
