"""Unit tests for the staging workspace."""

import zipfile
from pathlib import Path, PurePosixPath

import pytest

from nekoweb_deploy.core.exceptions import ConfigurationError
from nekoweb_deploy.services.staging import (
    StagingWorkspace,
    find_feed,
    normalize_folder,
    remote_path,
    resolve_feed,
)


class TestFolders:
    """Tests for folder helpers."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("build", "build"),
            ("/build/", "build"),
            ("  site/blog ", "site/blog"),
            ("site\\blog", "site/blog"),
        ],
    )
    def test_normalize_folder(self, raw: str, expected: str):
        assert normalize_folder(raw) == expected

    @pytest.mark.parametrize("raw", ["", "/", "a//b", "../etc", "a/./b"])
    def test_normalize_folder_rejects(self, raw: str):
        with pytest.raises(ConfigurationError):
            normalize_folder(raw)

    def test_remote_path(self):
        assert remote_path("build", "rss.xml") == "/build/rss.xml"
        assert remote_path("site/blog", PurePosixPath("feeds/atom.xml")) == "/site/blog/feeds/atom.xml"


class TestStagingWorkspace:
    """Tests for StagingWorkspace."""

    @pytest.fixture
    def workspace(self, tmp_path: Path) -> StagingWorkspace:
        return StagingWorkspace(tmp_path / "work" / ".build-temp", "build")

    def test_archive_named_after_top_segment(self, tmp_path: Path):
        """Test nested folders archive under their first segment."""
        workspace = StagingWorkspace(tmp_path / ".build-temp", "site/blog")

        assert workspace.archive_path == tmp_path / "site.zip"
        assert workspace.site_dir == tmp_path / ".build-temp" / "site" / "blog"

    def test_prepare_copies_under_folder(self, workspace: StagingWorkspace, site_dir: Path):
        """Test the build lands under the folder name."""
        staged = workspace.prepare(site_dir)

        assert staged == workspace.staging_dir / "build"
        assert (staged / "index.html").read_text() == "<h1>Home</h1>"
        assert (staged / "assets" / "img" / "cat.svg").exists()

    def test_prepare_removes_stale_state(self, workspace: StagingWorkspace, site_dir: Path):
        """Test leftovers from a failed run do not leak into the next one."""
        stale = workspace.staging_dir / "build" / "old-page.html"
        stale.parent.mkdir(parents=True)
        stale.write_text("stale")

        workspace.prepare(site_dir)

        assert not stale.exists()
        assert (workspace.site_dir / "index.html").exists()

    def test_rename_not_found_page(self, workspace: StagingWorkspace, site_dir: Path):
        """Test 404.html is renamed in the copy, not in the source."""
        workspace.prepare(site_dir)

        assert workspace.rename_not_found_page() is True
        assert not (workspace.site_dir / "404.html").exists()
        assert (workspace.site_dir / "not_found.html").read_text() == "<h1>Lost</h1>"
        assert (site_dir / "404.html").exists()

    def test_rename_without_not_found_page(self, workspace: StagingWorkspace, site_dir: Path):
        (site_dir / "404.html").unlink()
        workspace.prepare(site_dir)

        assert workspace.rename_not_found_page() is False
        assert not (workspace.site_dir / "not_found.html").exists()

    def test_build_archive(self, workspace: StagingWorkspace, site_dir: Path):
        workspace.prepare(site_dir)

        artifact = workspace.build_archive()

        assert workspace.artifact == artifact
        assert artifact.path == workspace.archive_path
        with zipfile.ZipFile(artifact.path) as archive:
            assert "build/index.html" in archive.namelist()

    def test_cleanup(self, workspace: StagingWorkspace, site_dir: Path):
        """Test cleanup removes the staging directory and archive."""
        workspace.prepare(site_dir)
        workspace.build_archive()

        errors = workspace.cleanup()

        assert errors == []
        assert not workspace.staging_dir.exists()
        assert not workspace.archive_path.exists()

    def test_cleanup_keeps_archive_it_did_not_build(
        self, workspace: StagingWorkspace, site_dir: Path
    ):
        """Test a zip already at the archive path survives a run that never archived."""
        workspace.prepare(site_dir)
        workspace.archive_path.write_bytes(b"user zip")

        assert workspace.cleanup() == []

        assert not workspace.staging_dir.exists()
        assert workspace.archive_path.read_bytes() == b"user zip"

    def test_cleanup_when_nothing_exists(self, workspace: StagingWorkspace):
        assert workspace.cleanup() == []


class TestFeeds:
    """Tests for RSS feed resolution."""

    def test_configured_feed(self, site_dir: Path):
        assert resolve_feed(site_dir, "rss.xml") == PurePosixPath("rss.xml")
        assert resolve_feed(site_dir, "/rss.xml") == PurePosixPath("rss.xml")

    def test_configured_feed_missing(self, site_dir: Path):
        assert resolve_feed(site_dir, "atom.xml") is None

    def test_configured_feed_outside_site(self, site_dir: Path):
        assert resolve_feed(site_dir, "../dist/rss.xml") is None

    def test_no_feed_without_discovery(self, site_dir: Path):
        assert resolve_feed(site_dir, None) is None

    def test_discovery_is_stable(self, site_dir: Path):
        """Test discovery picks the first .xml in sorted order."""
        (site_dir / "assets" / "sitemap.xml").write_text("<urlset/>")

        assert find_feed(site_dir) == PurePosixPath("assets/sitemap.xml")
        assert resolve_feed(site_dir, None, discover=True) == PurePosixPath("assets/sitemap.xml")

    def test_discovery_without_xml(self, tmp_path: Path):
        (tmp_path / "index.html").write_text("hi")

        assert find_feed(tmp_path) is None
