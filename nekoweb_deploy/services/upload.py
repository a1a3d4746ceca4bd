"""Big-file upload sessions.

A session is created server-side, receives the archive, and is then
imported: the server extracts the archive at the site root, replacing
whatever lives at the paths it contains.
"""

from nekoweb_deploy.core.exceptions import (
    SessionClosedError,
    SessionCreateError,
    SessionImportError,
    UploadAppendError,
)
from nekoweb_deploy.services.nekoweb import MAX_ERROR_BODY, AuthMode, NekowebClient

ARCHIVE_CONTENT_TYPE = "application/zip"


class BigFileSession:
    """Handle to one server-side upload session.

    Holds a reference to the client that created it and is invalid once
    imported.
    """

    def __init__(self, session_id: str, client: NekowebClient):
        self.id = session_id
        self.bytes_appended = 0
        self.imported = False
        self._client = client

    def __repr__(self) -> str:
        return f"BigFileSession(id={self.id!r}, bytes_appended={self.bytes_appended})"

    def _ensure_open(self) -> None:
        if self.imported:
            raise SessionClosedError(self.id)

    async def append(self, data: bytes, filename: str = "site.zip") -> None:
        """Send ``data`` as one multipart request.

        The whole archive travels in a single request body; there is no
        chunking loop.

        Raises:
            UploadAppendError: On a non-success response
            SessionClosedError: If the session was already imported
        """
        self._ensure_open()
        await self._client.request(
            "POST",
            "/files/big/append",
            auth=AuthMode.API_KEY,
            error=UploadAppendError,
            data={"id": self.id},
            files={"file": (filename, data, ARCHIVE_CONTENT_TYPE)},
        )
        self.bytes_appended += len(data)

    async def import_(self) -> None:
        """Commit the appended bytes as new site content.

        Raises:
            SessionImportError: On a non-success response, or if nothing
                was appended
            SessionClosedError: If the session was already imported
        """
        self._ensure_open()
        if self.bytes_appended == 0:
            raise SessionImportError(f"session {self.id} has no appended data")

        await self._client.request(
            "POST",
            f"/files/import/{self.id}",
            auth=AuthMode.API_KEY,
            error=SessionImportError,
        )
        self.imported = True


class UploadSessionClient:
    """Opens big-file sessions on behalf of an API-key client."""

    def __init__(self, client: NekowebClient):
        self._client = client

    async def create(self) -> BigFileSession:
        """Request a new upload session.

        Raises:
            SessionCreateError: On a non-success or malformed response
        """
        response = await self._client.request(
            "GET",
            "/files/big/create",
            auth=AuthMode.API_KEY,
            error=SessionCreateError,
        )

        try:
            session_id = response.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise SessionCreateError(
                "response carries no session id",
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY],
            ) from e

        return BigFileSession(str(session_id), self._client)
