"""Cookie-authenticated site file edits.

Nekoweb only counts a site as "recently updated" when a file changes
through the editor endpoints, which require a browser cookie and a CSRF
token. Uploads made with an API key do not count.
"""

from datetime import datetime

from nekoweb_deploy.core.exceptions import CSRFError, MetadataEditError, SiteInfoError
from nekoweb_deploy.models.site import CSRFContext
from nekoweb_deploy.services.nekoweb import AuthMode, NekowebClient


def deployment_comment(when: datetime | None = None) -> str:
    """HTML comment recording when the site was deployed."""
    when = when or datetime.now().astimezone()
    stamp = when.strftime("%a %b %d %Y %H:%M:%S %Z").strip()
    return f"<!-- deployed to Nekoweb using nekoweb-deploy on {stamp} -->"


def append_marker(content: str, marker: str) -> str:
    """Feed content with exactly one newline and the marker appended."""
    return f"{content}\n{marker}"


class SiteMetadataClient:
    """Edits site files through the cookie session of a client."""

    def __init__(self, client: NekowebClient):
        self._client = client

    async def authenticate_for_csrf(self) -> CSRFContext:
        """Discover the site identifier and fetch a CSRF token.

        Raises:
            CSRFError: If either call fails or the token is empty
        """
        try:
            site = await self._client.get_site_info(auth=AuthMode.COOKIE)
        except SiteInfoError as e:
            raise CSRFError(
                f"site info lookup failed: {e.reason}",
                status_code=e.status_code,
                body=e.body,
            ) from e

        response = await self._client.request(
            "GET", "/csrf", auth=AuthMode.COOKIE, error=CSRFError
        )
        token = response.text.strip()
        if not token:
            raise CSRFError("server returned an empty token", response.status_code)

        return CSRFContext(token=token, site_identifier=site.username)

    async def edit_file(self, pathname: str, content: str, csrf: CSRFContext) -> None:
        """Overwrite one site file.

        Raises:
            MetadataEditError: On a non-success response
        """
        # Sent as multipart form fields, like the site's own editor
        fields = {
            "pathname": pathname,
            "content": content,
            "site": csrf.site_identifier,
            "csrf": csrf.token,
        }
        await self._client.request(
            "POST",
            "/files/edit",
            auth=AuthMode.COOKIE,
            error=MetadataEditError,
            files={name: (None, value.encode("utf-8")) for name, value in fields.items()},
        )
