"""Unit tests for picture indexing and image reference resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from store.picture_index import (
    PictureIndex,
    build_disk_picture_index,
    file_url,
    resolve_picture_ref,
)


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"img")
    return path


def test_index_collects_supported_pictures(tmp_path) -> None:
    """Only supported picture extensions should be indexed, by relative ref."""
    _touch(tmp_path / "mixers" / "cl5.PNG")
    _touch(tmp_path / "amps" / "pa.jpg")
    _touch(tmp_path / "notes.txt")

    index = build_disk_picture_index(tmp_path)

    assert (index.error, sorted(index.by_ref)) == (None, ["@pp/amps/pa.jpg", "@pp/mixers/cl5.PNG"])


def test_index_builds_directory_tree(tmp_path) -> None:
    """Pictures should be filed under nested directory nodes."""
    _touch(tmp_path / "stage" / "left" / "spot.webp")
    _touch(tmp_path / "cover.gif")

    index = build_disk_picture_index(tmp_path)

    left = index.root.dirs["stage"].dirs["left"]
    assert ([picture.name for picture in left.files], [p.name for p in index.root.files]) == (
        ["spot.webp"],
        ["cover.gif"],
    )


def test_missing_root_sets_error(tmp_path) -> None:
    """A missing folder should produce an empty index with an error."""
    index = build_disk_picture_index(tmp_path / "missing")

    assert index.count == 0 and index.error is not None


def test_resolve_picture_ref_uses_index(tmp_path) -> None:
    """@pp/ references should resolve to the indexed file URL."""
    picture = _touch(tmp_path / "mixers" / "cl5.png")
    index = build_disk_picture_index(tmp_path)

    url = resolve_picture_ref("@pp/mixers/cl5.png", index)

    assert url == file_url(picture.resolve())


def test_resolve_media_ref_uses_media_root(tmp_path) -> None:
    """@media/ references should resolve against the media directory."""
    url = resolve_picture_ref("@media/a/b.png", PictureIndex(), tmp_path)

    assert url == file_url(tmp_path / "a" / "b.png")


@pytest.mark.parametrize(
    ("ref", "expected"),
    [
        (None, ""),
        ("", ""),
        ("@pp/unknown.png", ""),
        ("@media/x.png", ""),
        ("data:image/png;base64,AAAA", "data:image/png;base64,AAAA"),
        ("https://example.com/a.png", "https://example.com/a.png"),
        ("relative/a.png", "relative/a.png"),
    ],
)
def test_resolve_picture_ref_edge_cases(ref: str | None, expected: str) -> None:
    """Unresolvable refs should be empty and URLs should pass through."""
    assert resolve_picture_ref(ref, PictureIndex()) == expected


def test_file_url_keeps_drive_letters() -> None:
    """Windows drive paths should produce three-slash file URLs."""
    assert file_url(Path("C:/pictures/a.png")) == "file:///C:/pictures/a.png"
