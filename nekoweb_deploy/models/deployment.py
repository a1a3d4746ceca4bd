"""Deployment data models."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from nekoweb_deploy.config import Settings
from nekoweb_deploy.core.exceptions import InvalidTransitionError


class Credentials(BaseModel):
    """The two independent credential contexts of a deployment.

    The API key authenticates the upload session calls. The cookie is the
    browser session token required by the CSRF-protected endpoints; without
    it the "recently updated" signal is skipped.
    """

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr = SecretStr("")
    cookie: SecretStr | None = None

    @field_validator("cookie", mode="before")
    @classmethod
    def _blank_cookie_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.get_secret_value().strip())

    @property
    def has_cookie(self) -> bool:
        return self.cookie is not None


class DeploymentRequest(BaseModel):
    """Everything one deployment run needs. Immutable for the run."""

    model_config = ConfigDict(frozen=True)

    source_directory: Path
    target_folder: str | None = None
    credentials: Credentials = Field(default_factory=Credentials)
    rss_feed_path: str | None = None
    discover_rss: bool = False
    site_name: str | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        source_directory: Path,
        **overrides: Any,
    ) -> "DeploymentRequest":
        """Build a request from settings; non-None overrides win."""
        values: dict[str, Any] = {
            "source_directory": Path(source_directory),
            "target_folder": settings.folder,
            "rss_feed_path": settings.rss_feed_path,
            "discover_rss": settings.discover_rss,
            "site_name": settings.site_name,
        }
        api_key = overrides.pop("api_key", None) or settings.api_key
        cookie = overrides.pop("cookie", None) or settings.cookie
        values.update({k: v for k, v in overrides.items() if v is not None})
        values["credentials"] = Credentials(api_key=api_key, cookie=cookie)
        return cls(**values)


class ArchiveArtifact(BaseModel):
    """A zip archive produced for one deployment run."""

    path: Path
    size: int
    entries: int


class DeploymentState(str, Enum):
    """States of the deployment state machine."""

    VALIDATING = "validating"
    STAGING = "staging"
    ARCHIVING = "archiving"
    SESSION_OPEN = "session_open"
    UPLOADING = "uploading"
    DELETING = "deleting"
    IMPORTING = "importing"
    METADATA_UPDATE = "metadata_update"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


# Steps whose errors abort the run
FATAL_STATES = frozenset(
    {
        DeploymentState.VALIDATING,
        DeploymentState.STAGING,
        DeploymentState.ARCHIVING,
        DeploymentState.SESSION_OPEN,
        DeploymentState.UPLOADING,
        DeploymentState.IMPORTING,
    }
)

TRANSITIONS: dict[DeploymentState, frozenset[DeploymentState]] = {
    DeploymentState.VALIDATING: frozenset({DeploymentState.STAGING}),
    DeploymentState.STAGING: frozenset({DeploymentState.ARCHIVING}),
    DeploymentState.ARCHIVING: frozenset({DeploymentState.SESSION_OPEN}),
    DeploymentState.SESSION_OPEN: frozenset({DeploymentState.UPLOADING}),
    DeploymentState.UPLOADING: frozenset({DeploymentState.DELETING}),
    DeploymentState.DELETING: frozenset({DeploymentState.IMPORTING}),
    DeploymentState.IMPORTING: frozenset(
        {DeploymentState.METADATA_UPDATE, DeploymentState.CLEANUP}
    ),
    DeploymentState.METADATA_UPDATE: frozenset({DeploymentState.CLEANUP}),
    DeploymentState.CLEANUP: frozenset({DeploymentState.DONE}),
    DeploymentState.DONE: frozenset(),
    DeploymentState.FAILED: frozenset(),
}


class StageStatus(str, Enum):
    """Individual stage status."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class StageInfo(BaseModel):
    """Information about one stage of a run."""

    status: StageStatus = StageStatus.IN_PROGRESS
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None

    def finish(self, status: StageStatus, error: str | None = None) -> None:
        now = datetime.utcnow()
        self.status = status
        self.completed_at = now
        self.duration_ms = int((now - self.started_at).total_seconds() * 1000)
        if error is not None:
            self.error = error


class DeploymentRun(BaseModel):
    """Mutable state of one in-flight deployment."""

    id: UUID = Field(default_factory=uuid4)
    state: DeploymentState = DeploymentState.VALIDATING
    stages: dict[str, StageInfo] = Field(
        default_factory=lambda: {DeploymentState.VALIDATING.value: StageInfo()}
    )

    folder: str | None = None
    session_id: str | None = None
    bytes_uploaded: int = 0
    archive_entries: int = 0
    metadata_updated: bool = False
    warnings: list[str] = Field(default_factory=list)

    error: str | None = None
    error_stage: DeploymentState | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (DeploymentState.DONE, DeploymentState.FAILED)

    def can_transition(self, target: DeploymentState) -> bool:
        if target is DeploymentState.FAILED:
            return self.state in FATAL_STATES
        return target in TRANSITIONS[self.state]

    def transition(self, target: DeploymentState) -> None:
        """Complete the current stage and enter ``target``."""
        if not self.can_transition(target):
            raise InvalidTransitionError(self.state.value, target.value)

        current = self.stages.get(self.state.value)
        if current is not None and current.status is StageStatus.IN_PROGRESS:
            current.finish(StageStatus.COMPLETED)

        self.state = target
        if not self.is_terminal:
            self.stages[target.value] = StageInfo()

    def fail(self, error: str) -> None:
        """Mark the current stage failed and end the run.

        Errors outside the fatal stages are absorbed before they get here,
        so reaching this from another state means an unexpected exception;
        the run still ends in FAILED.
        """
        current = self.stages.get(self.state.value)
        if current is not None:
            current.finish(StageStatus.FAILED, error=error)
        self.error = error
        self.error_stage = self.state
        self.state = DeploymentState.FAILED

    def annotate(self, **metadata: Any) -> None:
        """Attach metadata to the current stage."""
        self.stages[self.state.value].metadata.update(metadata)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


class DeploymentResult(BaseModel):
    """Result of a successful deployment."""

    success: bool
    run_id: UUID
    folder: str
    session_id: str
    bytes_uploaded: int = 0
    archive_entries: int = 0
    metadata_updated: bool = False
    warnings: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    stages: dict[str, StageInfo] = Field(default_factory=dict)

    @classmethod
    def from_run(cls, run: DeploymentRun, duration_ms: int) -> "DeploymentResult":
        return cls(
            success=run.state is DeploymentState.DONE,
            run_id=run.id,
            folder=run.folder or "",
            session_id=run.session_id or "",
            bytes_uploaded=run.bytes_uploaded,
            archive_entries=run.archive_entries,
            metadata_updated=run.metadata_updated,
            warnings=list(run.warnings),
            duration_ms=duration_ms,
            stages=dict(run.stages),
        )
