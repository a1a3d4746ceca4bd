"""Custom exceptions for nekoweb-deploy."""

from typing import Any


class NekowebDeployError(Exception):
    """Base exception for nekoweb-deploy."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(NekowebDeployError):
    """Missing or invalid credentials, source directory or target folder."""

    pass


class ArchiveError(NekowebDeployError):
    """Staging or compressing the build output failed."""

    def __init__(self, message: str, path: str | None = None):
        details = {}
        if path is not None:
            details["path"] = path
        super().__init__(f"Archive failed: {message}", details)
        self.path = path


class NekowebAPIError(NekowebDeployError):
    """A Nekoweb API call returned a non-success response or never completed.

    ``status_code`` is ``None`` when the request failed at the transport
    level (DNS, connection reset, timeout).
    """

    step = "request"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        status = status_code if status_code is not None else "no response"
        text = f"Nekoweb {self.step} failed ({status}): {message}"
        details: dict[str, Any] = {"step": self.step, "status_code": status_code}
        if body:
            details["body"] = body
        super().__init__(text, details)
        self.reason = message
        self.status_code = status_code
        self.body = body


class SiteInfoError(NekowebAPIError):
    """Site info lookup failed."""

    step = "site info"


class SessionCreateError(NekowebAPIError):
    """Creating the big-file upload session failed."""

    step = "upload session create"


class UploadAppendError(NekowebAPIError):
    """Appending the archive to the upload session failed."""

    step = "upload append"


class SessionImportError(NekowebAPIError):
    """Importing the upload session into the site failed."""

    step = "upload import"


class DeleteError(NekowebAPIError):
    """Deleting a remote path failed."""

    step = "delete"


class CSRFError(NekowebAPIError):
    """Obtaining a CSRF token for the cookie session failed."""

    step = "csrf"


class MetadataEditError(NekowebAPIError):
    """Editing a site file through the cookie session failed."""

    step = "file edit"


class SessionClosedError(NekowebDeployError):
    """An upload session was used after it was imported."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Upload session already imported: {session_id}",
            {"session_id": session_id},
        )
        self.session_id = session_id


class InvalidTransitionError(NekowebDeployError):
    """The deployment state machine was asked for an illegal transition."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Illegal deployment transition: {current} -> {target}",
            {"current": current, "target": target},
        )
        self.current = current
        self.target = target
