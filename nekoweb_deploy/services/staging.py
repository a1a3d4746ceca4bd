"""Local staging workspace for a deployment run.

The build output is copied into ``<staging_dir>/<folder>`` so that the
archive of ``<staging_dir>`` has the same layout as the remote site: the
server imports archives at the site root, and the top-level folder inside
the archive becomes the serve folder.
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from nekoweb_deploy.core.exceptions import ArchiveError, ConfigurationError
from nekoweb_deploy.models.deployment import ArchiveArtifact
from nekoweb_deploy.services.archiver import create_archive
from nekoweb_deploy.utils.logging import get_logger

logger = get_logger(__name__)

NOT_FOUND_SOURCE = "404.html"
NOT_FOUND_TARGET = "not_found.html"
ARCHIVE_SUFFIX = ".zip"


def normalize_folder(folder: str) -> str:
    """Normalize a target folder to ``a/b`` form.

    Raises:
        ConfigurationError: If the folder is empty or escapes the site root
    """
    cleaned = folder.strip().replace("\\", "/").strip("/")
    if not cleaned:
        raise ConfigurationError("Target folder is empty", {"folder": folder})

    parts = cleaned.split("/")
    if any(part in ("", ".", "..") for part in parts):
        raise ConfigurationError(
            f"Invalid target folder: {folder!r}",
            {"folder": folder},
        )
    return "/".join(parts)


def remote_path(folder: str, relative: str | PurePosixPath) -> str:
    """Absolute remote pathname of a file inside the target folder."""
    return "/" + str(PurePosixPath(folder) / PurePosixPath(relative))


@dataclass
class StagingWorkspace:
    """Temporary directories and files owned by one deployment run."""

    staging_dir: Path
    folder: str
    artifact: ArchiveArtifact | None = field(default=None, init=False)

    @property
    def site_dir(self) -> Path:
        """Where the build output is copied."""
        return self.staging_dir / self.folder

    @property
    def archive_path(self) -> Path:
        """Archive next to the staging directory, named after the top folder segment."""
        top = self.folder.split("/", 1)[0]
        return self.staging_dir.parent / f"{top}{ARCHIVE_SUFFIX}"

    def prepare(self, source: Path) -> Path:
        """Copy ``source`` into a fresh staging directory.

        Any staging directory left behind by an earlier failed run is
        removed first.

        Raises:
            ArchiveError: If the copy fails
        """
        try:
            if self.staging_dir.exists():
                logger.info("staging.stale_removed", path=str(self.staging_dir))
                shutil.rmtree(self.staging_dir)
            self.staging_dir.mkdir(parents=True)
            shutil.copytree(source, self.site_dir)
        except (OSError, shutil.Error) as e:
            raise ArchiveError(f"cannot stage {source}: {e}", str(source)) from e

        return self.site_dir

    def rename_not_found_page(self) -> bool:
        """Rename ``404.html`` to the filename Nekoweb serves for missing pages."""
        original = self.site_dir / NOT_FOUND_SOURCE
        if not original.is_file():
            return False

        logger.info(
            "staging.not_found_renamed",
            source=NOT_FOUND_SOURCE,
            target=NOT_FOUND_TARGET,
        )
        original.replace(self.site_dir / NOT_FOUND_TARGET)
        return True

    def build_archive(self) -> ArchiveArtifact:
        """Zip the staging directory to ``archive_path``.

        Raises:
            ArchiveError: If the archive cannot be written
        """
        self.artifact = create_archive(self.staging_dir, self.archive_path)
        return self.artifact

    def cleanup(self) -> list[str]:
        """Remove the archive built by this workspace and the staging directory.

        A file at ``archive_path`` that this workspace did not build is left
        alone.

        Returns:
            Errors encountered; cleanup never raises
        """
        errors: list[str] = []
        if self.artifact is not None:
            try:
                self.artifact.path.unlink(missing_ok=True)
            except OSError as e:
                errors.append(f"cannot remove {self.artifact.path}: {e}")

        if self.staging_dir.exists():
            try:
                shutil.rmtree(self.staging_dir)
            except OSError as e:
                errors.append(f"cannot remove {self.staging_dir}: {e}")

        return errors


def find_feed(site_dir: Path) -> PurePosixPath | None:
    """Find the first ``.xml`` file under ``site_dir``.

    Directories and files are visited in sorted order, so the pick is stable
    across runs.
    """
    for path in sorted(site_dir.rglob("*.xml"), key=lambda p: p.relative_to(site_dir).parts):
        if path.is_file():
            return PurePosixPath(path.relative_to(site_dir).as_posix())
    return None


def resolve_feed(
    site_dir: Path,
    rss_feed_path: str | None,
    discover: bool = False,
) -> PurePosixPath | None:
    """Resolve the RSS feed to touch, relative to the staged site.

    A configured path that does not exist is reported and ignored; feed
    handling is part of the best-effort metadata update.
    """
    if rss_feed_path:
        relative = PurePosixPath(rss_feed_path.replace("\\", "/").lstrip("/"))
        if ".." in relative.parts or not (site_dir / relative).is_file():
            logger.warning("staging.feed_missing", path=rss_feed_path)
            return None
        return relative

    if discover:
        found = find_feed(site_dir)
        if found is not None:
            logger.info("staging.feed_discovered", path=str(found))
        return found

    return None
