"""Relocation tests."""

from __future__ import annotations

import errno
import logging
import os
from pathlib import Path

import pytest

from foldersort.catalog import Catalog, ScanMode
from foldersort.relocation import NoDestinationError, Relocator, reserve_destination
from foldersort.tags import TagRegistry


def _setup(tmp_path: Path, files: dict[str, str]) -> tuple[Path, Catalog, TagRegistry, Relocator]:
    """Create source files, scan them recursively, and wire a relocator.

    Args:
        tmp_path: Temporary directory provided by pytest.
        files: Mapping of relative path to file contents.

    Returns:
        tuple: Source root, catalog, registry, and relocator.
    """
    root = tmp_path / "inbox"
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    catalog = Catalog()
    catalog.scan(root, ScanMode.RECURSIVE)
    registry = TagRegistry(catalog, tmp_path / "tags.json")
    return root, catalog, registry, Relocator(registry)


def test_reserve_destination_numbers_before_extension(tmp_path: Path) -> None:
    (tmp_path / "report.txt").write_text("0", encoding="utf-8")
    (tmp_path / "report_1.txt").write_text("1", encoding="utf-8")
    (tmp_path / "README").write_text("r", encoding="utf-8")

    assert reserve_destination(tmp_path / "report.txt") == (tmp_path / "report_2.txt", True)
    assert reserve_destination(tmp_path / "README") == (tmp_path / "README_1", True)
    assert reserve_destination(tmp_path / "fresh.txt") == (tmp_path / "fresh.txt", False)
    assert reserve_destination(tmp_path / "report.txt", "-")[0] == tmp_path / "report-1.txt"
    assert (tmp_path / "report.txt").read_text(encoding="utf-8") == "0"


def test_reserved_name_cannot_be_claimed_twice(tmp_path: Path) -> None:
    first, _ = reserve_destination(tmp_path / "report.txt")
    second, conflict = reserve_destination(tmp_path / "report.txt")
    folder, _ = reserve_destination(tmp_path / "report.txt", directory=True)

    assert first == tmp_path / "report.txt"
    assert first.is_file() and first.stat().st_size == 0
    assert (second, conflict) == (tmp_path / "report_1.txt", True)
    assert folder == tmp_path / "report_2.txt"
    assert folder.is_dir()


def test_same_basename_from_two_directories(tmp_path: Path) -> None:
    root, _, registry, relocator = _setup(
        tmp_path, {"q1/report.txt": "first", "q2/report.txt": "second"}
    )
    destination = tmp_path / "sorted"
    registry.assign_tag(root / "q1" / "report.txt", "t")
    registry.assign_tag(root / "q2" / "report.txt", "t")
    registry.set_destination("t", destination)

    report = relocator.move_by_tag("t")

    assert report.moved_count == 2
    assert sorted(item.name for item in destination.iterdir()) == ["report.txt", "report_1.txt"]
    contents = {(destination / "report.txt").read_text(), (destination / "report_1.txt").read_text()}
    assert contents == {"first", "second"}
    assert [record.conflict_applied for record in report.moved] == [False, True]


def test_existing_destination_file_is_not_overwritten(tmp_path: Path) -> None:
    root, _, registry, relocator = _setup(tmp_path, {"notes.md": "new"})
    destination = tmp_path / "sorted"
    destination.mkdir()
    (destination / "notes.md").write_text("old", encoding="utf-8")
    registry.assign_tag(root / "notes.md", "docs")
    registry.set_destination("docs", destination)

    report = relocator.move_by_tag("docs")

    assert report.moved_count == 1
    assert (destination / "notes.md").read_text(encoding="utf-8") == "old"
    assert (destination / "notes_1.md").read_text(encoding="utf-8") == "new"
    assert not (root / "notes.md").exists()


def test_unset_destination_moves_nothing(tmp_path: Path) -> None:
    root, _, registry, relocator = _setup(tmp_path, {"a.txt": "a"})
    registry.assign_tag(root / "a.txt", "t")

    with pytest.raises(NoDestinationError):
        relocator.move_by_tag("t")

    assert (root / "a.txt").exists()


def test_unknown_tag_returns_empty_report(tmp_path: Path) -> None:
    _, _, _, relocator = _setup(tmp_path, {"a.txt": "a"})

    report = relocator.move_by_tag("missing")

    assert report.moved_count == 0
    assert report.destination is None


def test_missing_source_is_skipped_with_warning(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    root, _, registry, relocator = _setup(tmp_path, {"a.txt": "a", "b.txt": "b"})
    destination = tmp_path / "sorted"
    registry.assign_tag(root / "a.txt", "t")
    registry.assign_tag(root / "b.txt", "t")
    registry.set_destination("t", destination)
    (root / "a.txt").unlink()

    with caplog.at_level(logging.WARNING, logger="foldersort.relocation"):
        report = relocator.move_by_tag("t")

    assert report.moved_count == 1
    assert report.skipped == [root / "a.txt"]
    assert (destination / "b.txt").exists()
    assert "no longer exists" in caplog.text


def test_destination_is_recreated_when_missing(tmp_path: Path) -> None:
    root, _, registry, relocator = _setup(tmp_path, {"a.txt": "a"})
    destination = tmp_path / "sorted"
    registry.assign_tag(root / "a.txt", "t")
    registry.set_destination("t", destination)
    destination.rmdir()

    report = relocator.move_by_tag("t")

    assert report.moved_count == 1
    assert (destination / "a.txt").exists()


def test_per_file_failure_does_not_abort_batch(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    root, _, registry, relocator = _setup(tmp_path, {"a.txt": "a", "b.txt": "b"})
    destination = tmp_path / "sorted"
    registry.assign_tag(root / "a.txt", "t")
    registry.assign_tag(root / "b.txt", "t")
    registry.set_destination("t", destination)
    original_rename = relocator._rename

    def _flaky(source: Path, target: Path) -> None:
        if source.name == "a.txt":
            raise PermissionError(errno.EACCES, "denied", str(source))
        original_rename(source, target)

    monkeypatch.setattr(relocator, "_rename", _flaky)

    report = relocator.move_by_tag("t")

    assert report.moved_count == 1
    assert [failure.source.name for failure in report.failed] == ["a.txt"]
    assert (root / "a.txt").exists()
    assert (destination / "b.txt").exists()
    assert sorted(item.name for item in destination.iterdir()) == ["b.txt"]


def test_cross_device_move_falls_back_to_copy(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    root, _, registry, relocator = _setup(tmp_path, {"a.txt": "payload"})
    destination = tmp_path / "sorted"
    registry.assign_tag(root / "a.txt", "t")
    registry.set_destination("t", destination)

    def _exdev(source: object, target: object) -> None:
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr("foldersort.relocation.executor.os.replace", _exdev)

    report = relocator.move_by_tag("t")

    assert report.moved_count == 1
    assert (destination / "a.txt").read_text(encoding="utf-8") == "payload"
    assert not (root / "a.txt").exists()


def test_file_already_in_destination_is_skipped(tmp_path: Path) -> None:
    root, catalog, registry, relocator = _setup(tmp_path, {"a.txt": "a"})
    registry.assign_tag(root / "a.txt", "t")
    registry.set_destination("t", root)

    report = relocator.move_by_tag("t")

    assert report.moved_count == 0
    assert report.skipped == [root / "a.txt"]
    assert sorted(item.name for item in root.iterdir()) == ["a.txt"]


def test_move_all_sums_counts_and_ignores_unset_destinations(tmp_path: Path) -> None:
    root, _, registry, relocator = _setup(
        tmp_path, {"a.txt": "a", "b.txt": "b", "c.png": "c", "d.bin": "d"}
    )
    registry.assign_tag(root / "a.txt", "text")
    registry.assign_tag(root / "b.txt", "text")
    registry.assign_tag(root / "c.png", "image")
    registry.assign_tag(root / "d.bin", "unsorted")
    registry.create_tag("empty")
    registry.set_destination("text", tmp_path / "out" / "text")
    registry.set_destination("image", tmp_path / "out" / "image")
    registry.set_destination("empty", tmp_path / "out" / "empty")

    summary = relocator.move_all()

    assert summary.moved_count == 3
    assert summary.failed_count == 0
    assert {report.tag for report in summary.reports} == {"text", "image", "unsorted", "empty"}
    assert (root / "d.bin").exists()
    assert (tmp_path / "out" / "image" / "c.png").exists()


def test_second_move_all_skips_already_moved_sources(tmp_path: Path) -> None:
    root, _, registry, relocator = _setup(tmp_path, {"a.txt": "a"})
    registry.assign_tag(root / "a.txt", "t")
    registry.set_destination("t", tmp_path / "out")
    relocator.move_all()

    summary = relocator.move_all()

    assert summary.moved_count == 0
    assert summary.skipped_count == 1
    assert os.listdir(tmp_path / "out") == ["a.txt"]


def test_tagged_directory_moves_with_its_contents(tmp_path: Path) -> None:
    root, catalog, registry, relocator = _setup(tmp_path, {"album/track.mp3": "t"})
    destination = tmp_path / "sorted"
    destination.mkdir()
    (destination / "album").mkdir()
    registry.assign_tag(root / "album", "music")
    registry.set_destination("music", destination)

    report = relocator.move_by_tag("music")

    assert report.moved_count == 1
    assert (destination / "album_1" / "track.mp3").read_text(encoding="utf-8") == "t"
    assert list((destination / "album").iterdir()) == []
    assert not (root / "album").exists()
