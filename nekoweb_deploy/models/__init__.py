"""Data models for nekoweb-deploy."""

from nekoweb_deploy.models.deployment import (
    ArchiveArtifact,
    Credentials,
    DeploymentRequest,
    DeploymentResult,
    DeploymentRun,
    DeploymentState,
    StageInfo,
    StageStatus,
)
from nekoweb_deploy.models.site import CSRFContext, SiteInfo

__all__ = [
    # Deployment models
    "ArchiveArtifact",
    "Credentials",
    "DeploymentRequest",
    "DeploymentResult",
    "DeploymentRun",
    "DeploymentState",
    "StageInfo",
    "StageStatus",
    # Site models
    "CSRFContext",
    "SiteInfo",
]
