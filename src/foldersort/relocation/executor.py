"""Move tagged files into their tag destinations."""

from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path

from foldersort.catalog import Entry, path_key
from foldersort.tags import TagRegistry

from .errors import NoDestinationError
from .models import MoveFailure, MoveRecord, RelocationReport, RelocationSummary

LOGGER = logging.getLogger(__name__)


def reserve_destination(
    candidate: Path, separator: str = "_", *, directory: bool = False
) -> tuple[Path, bool]:
    """Claim a free path for ``candidate`` by numbering the stem.

    ``report.txt`` becomes ``report_1.txt``, ``report_2.txt`` and so on. The
    returned path is created exclusively as an empty placeholder (a directory
    when ``directory`` is set), so nothing else can take the name before the
    caller moves into it.

    Args:
        candidate: Desired destination path.
        separator: Text placed between the stem and the counter.
        directory: Reserve with an empty directory instead of an empty file.

    Returns:
        tuple[Path, bool]: Reserved path and whether a collision was avoided.

    Raises:
        OSError: If the placeholder cannot be created for another reason.
    """
    final_candidate = candidate
    counter = 1
    while True:
        try:
            if directory:
                os.mkdir(final_candidate)
            else:
                os.close(os.open(final_candidate, os.O_WRONLY | os.O_CREAT | os.O_EXCL))
        except FileExistsError:
            final_candidate = candidate.with_name(
                f"{candidate.stem}{separator}{counter}{candidate.suffix}"
            )
            counter += 1
            continue
        return final_candidate, final_candidate != candidate


class Relocator:
    """Physically move the members of tags into their destinations."""

    def __init__(self, registry: TagRegistry, *, conflict_separator: str = "_") -> None:
        """Initialize the relocator.

        Args:
            registry: Registry providing destinations and tagged entries.
            conflict_separator: Separator used when numbering colliding names.
        """
        self._registry = registry
        self._separator = conflict_separator

    def move_by_tag(self, tag_name: str) -> RelocationReport:
        """Move every member of ``tag_name`` into the tag destination.

        Missing sources are skipped and per-file errors are recorded on the
        report; neither stops the batch. Unknown tags yield an empty report.

        Args:
            tag_name: Tag whose members should be moved.

        Returns:
            RelocationReport: Moved, skipped, and failed members.

        Raises:
            NoDestinationError: If the tag has no destination.
        """
        report = RelocationReport(tag=tag_name)
        destination = self._registry.get_destination(tag_name)
        if destination is None:
            LOGGER.debug("Nothing to move for unknown tag '%s'", tag_name)
            return report
        if not destination:
            raise NoDestinationError(f"Tag '{tag_name}' has no destination directory.")

        target_dir = Path(destination)
        report.destination = target_dir
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            LOGGER.warning("Unable to prepare destination %s: %s", target_dir, exc)

        for entry in self._registry.files_for_tag(tag_name):
            self._move_entry(entry, target_dir, report)
        return report

    def move_all(self) -> RelocationSummary:
        """Move the members of every tag.

        Tags without a destination contribute an empty report.
        """
        summary = RelocationSummary()
        for name in self._registry.tag_names():
            try:
                report = self.move_by_tag(name)
            except NoDestinationError as exc:
                LOGGER.debug("%s Skipping.", exc)
                report = RelocationReport(tag=name)
            summary.reports.append(report)
        return summary

    def _move_entry(self, entry: Entry, target_dir: Path, report: RelocationReport) -> None:
        source = entry.path
        if not os.path.lexists(source):
            LOGGER.warning("Source %s no longer exists; skipping.", source)
            report.skipped.append(source)
            return

        candidate = target_dir / source.name
        if path_key(candidate) == path_key(source) or self._same_file(candidate, source):
            report.skipped.append(source)
            return

        is_directory = source.is_dir() and not source.is_symlink()
        try:
            final_path, conflict_applied = reserve_destination(
                candidate, self._separator, directory=is_directory
            )
        except OSError as exc:
            LOGGER.warning("Unable to reserve %s: %s", candidate, exc)
            report.failed.append(MoveFailure(entry_id=entry.id, source=source, reason=str(exc)))
            return

        try:
            self._rename(source, final_path)
        except OSError as exc:
            LOGGER.warning("Failed to move %s -> %s: %s", source, final_path, exc)
            if os.path.lexists(source):
                self._release(final_path)
            report.failed.append(MoveFailure(entry_id=entry.id, source=source, reason=str(exc)))
            return

        LOGGER.info("Moved %s -> %s", source, final_path)
        report.moved.append(
            MoveRecord(
                entry_id=entry.id,
                source=source,
                destination=final_path,
                conflict_applied=conflict_applied,
            )
        )

    def _same_file(self, candidate: Path, source: Path) -> bool:
        try:
            return os.path.samestat(os.lstat(candidate), os.lstat(source))
        except OSError:
            return False

    def _rename(self, source: Path, destination: Path) -> None:
        """Move ``source`` onto its reserved placeholder at ``destination``."""
        try:
            os.replace(source, destination)
        except OSError as exc:
            if exc.errno != errno.EXDEV:
                raise
            self._copy_across_devices(source, destination)

    def _copy_across_devices(self, source: Path, destination: Path) -> None:
        if source.is_symlink():
            os.unlink(destination)
            os.symlink(os.readlink(source), destination)
            os.unlink(source)
        elif source.is_dir():
            shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
            shutil.rmtree(source)
        else:
            shutil.copy2(source, destination)
            os.unlink(source)

    def _release(self, placeholder: Path) -> None:
        try:
            if placeholder.is_dir() and not placeholder.is_symlink():
                shutil.rmtree(placeholder)
            else:
                placeholder.unlink()
        except OSError as exc:
            LOGGER.warning("Unable to remove placeholder %s: %s", placeholder, exc)
