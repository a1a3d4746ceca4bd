"""Zip archiver for staged site builds."""

import contextlib
import os
import zipfile
from pathlib import Path

from nekoweb_deploy.core.exceptions import ArchiveError
from nekoweb_deploy.models.deployment import ArchiveArtifact
from nekoweb_deploy.utils.logging import get_logger

logger = get_logger(__name__)

# zlib level for every entry
COMPRESSION_LEVEL = 8


def _walk_sorted(source: Path) -> list[Path]:
    """List every file and directory under ``source`` in a stable order."""
    found: list[Path] = []

    def on_error(error: OSError) -> None:
        raise error

    for root, dirs, files in os.walk(source, onerror=on_error):
        dirs.sort()
        root_path = Path(root)
        for name in dirs:
            found.append(root_path / name)
        for name in sorted(files):
            found.append(root_path / name)

    return sorted(found, key=lambda path: path.relative_to(source).as_posix())


def create_archive(source: Path, output: Path) -> ArchiveArtifact:
    """Compress the contents of ``source`` into a zip file at ``output``.

    Entry names are relative to ``source`` so the archive root holds the
    directory's contents, not the directory itself. An existing file at
    ``output`` is overwritten.

    Args:
        source: Directory to archive
        output: Path of the zip file to write

    Returns:
        The written archive with its size and entry count

    Raises:
        ArchiveError: If ``source`` is missing or unreadable, or ``output``
            cannot be written
    """
    source = Path(source)
    output = Path(output)

    if not source.exists():
        raise ArchiveError(f"source directory not found: {source}", str(source))
    if not source.is_dir():
        raise ArchiveError(f"source is not a directory: {source}", str(source))

    # The output must not land inside the tree being archived
    if output.resolve().is_relative_to(source.resolve()):
        raise ArchiveError(
            f"output {output} is inside the source directory", str(output)
        )

    try:
        entries = _walk_sorted(source)
    except OSError as e:
        raise ArchiveError(f"cannot read {e.filename or source}: {e.strerror}", str(source)) from e

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(
            output,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=COMPRESSION_LEVEL,
        ) as archive:
            # Directories get a trailing-slash entry of their own
            for path in entries:
                archive.write(path, path.relative_to(source).as_posix())
    except OSError as e:
        # Leave nothing half-written behind
        with contextlib.suppress(OSError):
            output.unlink(missing_ok=True)
        raise ArchiveError(f"cannot write {output}: {e}", str(output)) from e

    artifact = ArchiveArtifact(
        path=output,
        size=output.stat().st_size,
        entries=len(entries),
    )
    logger.debug(
        "archiver.created",
        source=str(source),
        output=str(output),
        entries=artifact.entries,
        size=artifact.size,
    )
    return artifact
