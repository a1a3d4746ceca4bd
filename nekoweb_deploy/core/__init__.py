"""Core functionality for nekoweb-deploy.

The orchestrator lives in ``nekoweb_deploy.core.orchestrator``; it is not
re-exported here because the models import the exception hierarchy.
"""

from nekoweb_deploy.core.events import Event, EventBus, get_event_bus
from nekoweb_deploy.core.exceptions import (
    ArchiveError,
    ConfigurationError,
    CSRFError,
    DeleteError,
    InvalidTransitionError,
    MetadataEditError,
    NekowebAPIError,
    NekowebDeployError,
    SessionClosedError,
    SessionCreateError,
    SessionImportError,
    SiteInfoError,
    UploadAppendError,
)

__all__ = [
    "Event",
    "EventBus",
    "get_event_bus",
    "NekowebDeployError",
    "ConfigurationError",
    "ArchiveError",
    "NekowebAPIError",
    "SiteInfoError",
    "SessionCreateError",
    "UploadAppendError",
    "SessionImportError",
    "DeleteError",
    "CSRFError",
    "MetadataEditError",
    "SessionClosedError",
    "InvalidTransitionError",
]
