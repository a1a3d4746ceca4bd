"""Deployment Orchestrator.

Publishes a finished static build to Nekoweb in one sequential run:
stage, archive, upload through a big-file session, replace the served
folder, then touch site metadata so the site shows as recently updated.
"""

import asyncio
import time
from collections.abc import Callable
from pathlib import Path
from uuid import UUID

from nekoweb_deploy.config import Settings
from nekoweb_deploy.config import settings as default_settings
from nekoweb_deploy.core.events import EventBus, get_event_bus
from nekoweb_deploy.core.exceptions import (
    ArchiveError,
    ConfigurationError,
    CSRFError,
    DeleteError,
    MetadataEditError,
    SiteInfoError,
)
from nekoweb_deploy.models.deployment import (
    ArchiveArtifact,
    Credentials,
    DeploymentRequest,
    DeploymentResult,
    DeploymentRun,
    DeploymentState,
)
from nekoweb_deploy.services.nekoweb import NekowebClient
from nekoweb_deploy.services.site_metadata import (
    SiteMetadataClient,
    append_marker,
    deployment_comment,
)
from nekoweb_deploy.services.staging import (
    StagingWorkspace,
    normalize_folder,
    remote_path,
    resolve_feed,
)
from nekoweb_deploy.services.upload import BigFileSession, UploadSessionClient
from nekoweb_deploy.utils.logging import get_logger

ClientFactory = Callable[[Credentials], NekowebClient]


class DeploymentOrchestrator:
    """Orchestrates one deployment run.

    Stages:
    1. validating - credentials, build directory and target folder
    2. staging - isolated copy of the build, not-found page renamed
    3. archiving - zip of the staging directory
    4. session_open, uploading, deleting, importing - big-file upload
    5. metadata_update - "recently updated" signal, only with a cookie
    6. cleanup - local temp files, on every exit path after staging

    Runs for the same site must not overlap; nothing here locks the
    remote folder.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        events: EventBus | None = None,
        client_factory: ClientFactory | None = None,
    ):
        self.settings = settings or default_settings
        self.events = events or get_event_bus()
        self.client_factory = client_factory or self._default_client
        self.logger = get_logger("orchestrator")

    def _default_client(self, credentials: Credentials) -> NekowebClient:
        return NekowebClient(
            credentials,
            base_url=self.settings.base_url,
            timeout=self.settings.http_timeout,
        )

    async def run(
        self, request: DeploymentRequest, run_id: UUID | None = None
    ) -> DeploymentResult:
        """Run a complete deployment.

        Args:
            request: What to deploy and where
            run_id: Id for the run, so callers can subscribe to its events
                before it starts; generated when omitted

        Returns:
            The result; warnings list any best-effort step that degraded

        Raises:
            NekowebDeployError: If a required step fails. The error is the
                one raised by the failing step, unchanged.
        """
        run = DeploymentRun(id=run_id) if run_id else DeploymentRun()
        start = time.perf_counter()

        self.logger.info(
            "deploy.started",
            run_id=str(run.id),
            source=str(request.source_directory),
        )
        await self.events.publish_stage_started(run.id, run.state.value)

        async with self.client_factory(request.credentials) as client:
            try:
                folder = await self._validate(run, request, client)
            except Exception as e:
                await self._fail(run, e)
                raise

            workspace = StagingWorkspace(self.settings.staging_dir, folder)
            try:
                await self._enter(run, DeploymentState.STAGING)
                await self._stage(run, request, workspace)

                await self._enter(run, DeploymentState.ARCHIVING)
                artifact = await self._archive(run, workspace)

                await self._enter(run, DeploymentState.SESSION_OPEN)
                session = await UploadSessionClient(client).create()
                run.session_id = session.id
                self.logger.info("deploy.session.created", session_id=session.id)

                await self._enter(run, DeploymentState.UPLOADING)
                await self._upload(run, session, artifact)

                await self._enter(run, DeploymentState.DELETING)
                await self._delete_previous(run, client, folder)

                await self._enter(run, DeploymentState.IMPORTING)
                await session.import_()
                self.logger.info("deploy.imported", folder=folder, session_id=session.id)

                if client.has_cookie:
                    await self._enter(run, DeploymentState.METADATA_UPDATE)
                    await self._update_metadata(run, request, client, workspace)
                else:
                    self.logger.info(
                        "deploy.metadata.skipped",
                        reason="no cookie configured, recently updated is not signalled",
                    )
            except Exception as e:
                await self._fail(run, e)
                raise
            finally:
                await self._cleanup(run, workspace)

        duration_ms = int((time.perf_counter() - start) * 1000)
        result = DeploymentResult.from_run(run, duration_ms)

        self.logger.info(
            "deploy.completed",
            run_id=str(run.id),
            folder=folder,
            duration_ms=duration_ms,
            metadata_updated=run.metadata_updated,
            warnings=len(run.warnings),
        )
        await self.events.publish_deployment_complete(run.id, folder)

        return result

    # -- state handling --------------------------------------------------

    async def _enter(self, run: DeploymentRun, state: DeploymentState) -> None:
        """Move the run to ``state`` and publish the stage events."""
        previous = run.state
        run.transition(state)

        info = run.stages[previous.value]
        await self.events.publish_stage_completed(
            run.id, previous.value, info.duration_ms or 0
        )
        if not run.is_terminal:
            await self.events.publish_stage_started(run.id, state.value)

    async def _fail(self, run: DeploymentRun, error: Exception) -> None:
        stage = run.state.value
        run.fail(str(error))

        self.logger.error(
            "deploy.failed",
            run_id=str(run.id),
            stage=stage,
            error=str(error),
            error_type=type(error).__name__,
        )
        await self.events.publish_error(run.id, str(error), stage)

    async def _warn(self, run: DeploymentRun, message: str) -> None:
        run.warn(message)
        await self.events.publish_warning(run.id, message, run.state.value)

    # -- stages ----------------------------------------------------------

    async def _validate(
        self,
        run: DeploymentRun,
        request: DeploymentRequest,
        client: NekowebClient,
    ) -> str:
        """Check credentials and paths, and resolve the target folder.

        Raises:
            ConfigurationError: If anything required is missing
        """
        if not request.credentials.has_api_key:
            raise ConfigurationError(
                "Missing API key. Set NEKOWEB_API_KEY or pass --api-key to deploy your site."
            )

        source = Path(request.source_directory)
        if not source.is_dir():
            raise ConfigurationError(
                f"Build output directory not found: {source}",
                {"source": str(source)},
            )

        staging = self.settings.staging_dir.resolve()
        resolved_source = source.resolve()
        if staging.is_relative_to(resolved_source) or resolved_source.is_relative_to(staging):
            raise ConfigurationError(
                f"Staging directory {staging} overlaps the build output {resolved_source}",
                {"source": str(resolved_source), "staging_dir": str(staging)},
            )

        folder = request.target_folder
        if not folder:
            folder = await self._discover_folder(request, client)

        folder = normalize_folder(folder)
        run.folder = folder
        run.annotate(folder=folder, cookie=request.credentials.has_cookie)
        return folder

    async def _discover_folder(
        self, request: DeploymentRequest, client: NekowebClient
    ) -> str:
        """Ask the server for the serve folder when none is configured."""
        try:
            info = await client.get_site_info(site_name=request.site_name)
        except SiteInfoError as e:
            raise ConfigurationError(
                f"Missing serve folder and it could not be discovered: {e.message}",
                e.details,
            ) from e

        if not info.folder:
            raise ConfigurationError(
                "Missing serve folder. Set NEKOWEB_FOLDER to the 'Serve folder' "
                "from your Nekoweb site settings.",
                {"site": info.username},
            )

        self.logger.info("deploy.folder.discovered", folder=info.folder, site=info.username)
        return info.folder

    async def _stage(
        self,
        run: DeploymentRun,
        request: DeploymentRequest,
        workspace: StagingWorkspace,
    ) -> None:
        site_dir = await asyncio.to_thread(workspace.prepare, request.source_directory)
        renamed = await asyncio.to_thread(workspace.rename_not_found_page)
        run.annotate(site_dir=str(site_dir), not_found_renamed=renamed)
        self.logger.info("deploy.staged", site_dir=str(site_dir))

    async def _archive(
        self, run: DeploymentRun, workspace: StagingWorkspace
    ) -> ArchiveArtifact:
        artifact = await asyncio.to_thread(workspace.build_archive)
        run.archive_entries = artifact.entries
        run.annotate(archive=str(artifact.path), size=artifact.size)
        self.logger.info(
            "deploy.compressed",
            archive=str(artifact.path),
            entries=artifact.entries,
            size=artifact.size,
        )
        return artifact

    async def _upload(
        self,
        run: DeploymentRun,
        session: BigFileSession,
        artifact: ArchiveArtifact,
    ) -> None:
        try:
            data = await asyncio.to_thread(artifact.path.read_bytes)
        except OSError as e:
            raise ArchiveError(f"cannot read archive: {e}", str(artifact.path)) from e

        await session.append(data, filename=artifact.path.name)
        run.bytes_uploaded = session.bytes_appended
        self.logger.info(
            "deploy.uploaded",
            session_id=session.id,
            bytes=session.bytes_appended,
        )

    async def _delete_previous(
        self, run: DeploymentRun, client: NekowebClient, folder: str
    ) -> None:
        """Remove the previous deployment; import replaces it either way."""
        pathname = f"/{folder}"
        try:
            await client.delete(pathname)
        except DeleteError as e:
            if e.status_code == 404:
                self.logger.info("deploy.delete.nothing_to_delete", pathname=pathname)
                return
            # Transport failures land here too
            self.logger.warning(
                "deploy.delete.failed",
                pathname=pathname,
                status_code=e.status_code,
                error=e.reason,
            )
            await self._warn(run, f"Could not delete previous deployment at {pathname}: {e.reason}")
            return

        self.logger.info("deploy.delete.done", pathname=pathname)

    async def _update_metadata(
        self,
        run: DeploymentRun,
        request: DeploymentRequest,
        client: NekowebClient,
        workspace: StagingWorkspace,
    ) -> None:
        """Touch the feed and marker file. Failures are logged, never raised."""
        metadata = SiteMetadataClient(client)

        try:
            csrf = await metadata.authenticate_for_csrf()
        except CSRFError as e:
            self.logger.error("deploy.metadata.csrf_failed", status_code=e.status_code, error=e.reason)
            await self._warn(run, f"Recently updated was not signalled: {e.message}")
            return

        marker = deployment_comment()
        updated = True

        feed = resolve_feed(workspace.site_dir, request.rss_feed_path, request.discover_rss)
        if feed is None and request.rss_feed_path:
            await self._warn(run, f"Feed {request.rss_feed_path} not found in the build output")
        if feed is not None:
            pathname = remote_path(workspace.folder, feed)
            try:
                raw = await asyncio.to_thread((workspace.site_dir / feed).read_bytes)
                content = append_marker(raw.decode("utf-8"), marker)
                await metadata.edit_file(pathname, content, csrf)
                self.logger.info("deploy.metadata.feed_updated", pathname=pathname)
            except (MetadataEditError, OSError, UnicodeDecodeError) as e:
                updated = False
                self.logger.error("deploy.metadata.feed_failed", pathname=pathname, error=str(e))
                await self._warn(run, f"Could not update feed {pathname}: {e}")

        marker_path = "/" + self.settings.marker_path.lstrip("/")
        try:
            await metadata.edit_file(marker_path, marker, csrf)
            self.logger.info("deploy.metadata.marker_updated", pathname=marker_path)
        except MetadataEditError as e:
            updated = False
            self.logger.error("deploy.metadata.marker_failed", pathname=marker_path, error=e.reason)
            await self._warn(run, f"Could not update marker file {marker_path}: {e.reason}")

        run.metadata_updated = updated

    async def _cleanup(self, run: DeploymentRun, workspace: StagingWorkspace) -> None:
        """Remove local temp files. Never raises."""
        # Failed runs stay FAILED; only a finished pipeline walks to DONE
        normal_exit = run.can_transition(DeploymentState.CLEANUP)
        if normal_exit:
            await self._enter(run, DeploymentState.CLEANUP)

        errors = await asyncio.to_thread(workspace.cleanup)
        for error in errors:
            self.logger.warning("deploy.cleanup.failed", error=error)
            run.warn(error)

        self.logger.debug(
            "deploy.cleanup.done",
            staging_dir=str(workspace.staging_dir),
            archive=str(workspace.archive_path),
        )
        if normal_exit:
            await self._enter(run, DeploymentState.DONE)


# Convenience function to get orchestrator
def get_orchestrator() -> DeploymentOrchestrator:
    """Get a deployment orchestrator instance."""
    return DeploymentOrchestrator()
