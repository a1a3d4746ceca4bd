"""Nekoweb API client.

Holds the HTTP connection pool and both credential contexts of a run.
Every call states which auth mode it needs; the client never switches
modes on its own.
"""

from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx

from nekoweb_deploy import __version__
from nekoweb_deploy.config import DEFAULT_BASE_URL
from nekoweb_deploy.core.exceptions import (
    ConfigurationError,
    DeleteError,
    NekowebAPIError,
    SiteInfoError,
)
from nekoweb_deploy.models.deployment import Credentials
from nekoweb_deploy.models.site import SiteInfo
from nekoweb_deploy.utils.logging import get_logger

USER_AGENT = f"nekoweb-deploy/{__version__}"
SITE_ORIGIN = "https://nekoweb.org"

# Cap on response bodies carried in error details
MAX_ERROR_BODY = 1000


class AuthMode(str, Enum):
    """Credential context used for a request."""

    API_KEY = "api_key"
    COOKIE = "cookie"


def _error_message(response: httpx.Response) -> str:
    """Best human-readable message from an error response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        for key in ("message", "error"):
            if isinstance(payload.get(key), str):
                return payload[key]

    text = response.text.strip()
    return text[:200] if text else response.reason_phrase


class NekowebClient:
    """Credentialed access to the Nekoweb API.

    Usage::

        async with NekowebClient(credentials) as client:
            info = await client.get_site_info()
    """

    def __init__(
        self,
        credentials: Credentials,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.credentials = credentials
        self.logger = get_logger("nekoweb.client")

        options: dict[str, Any] = {
            "base_url": base_url.rstrip("/"),
            "headers": {"User-Agent": USER_AGENT},
            # Unbounded unless configured; import replies only after extraction
            "timeout": httpx.Timeout(timeout),
        }
        if transport is not None:
            options["transport"] = transport
        self._http = httpx.AsyncClient(**options)

    async def __aenter__(self) -> "NekowebClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def has_cookie(self) -> bool:
        return self.credentials.has_cookie

    def api_key_headers(self) -> dict[str, str]:
        """Headers for API-key authenticated calls."""
        return {"Authorization": self.credentials.api_key.get_secret_value()}

    def cookie_headers(self) -> dict[str, str]:
        """Headers mimicking a logged-in browser session.

        Raises:
            ConfigurationError: If no cookie was supplied
        """
        if self.credentials.cookie is None:
            raise ConfigurationError("A cookie is required for this request")

        referer_note = quote(f"nekoweb-deploy@{__version__} deployment library")
        return {
            "Origin": SITE_ORIGIN,
            "Referer": f"{SITE_ORIGIN}/?{referer_note}",
            "Cookie": f"token={self.credentials.cookie.get_secret_value()}",
        }

    def _headers_for(self, auth: AuthMode) -> dict[str, str]:
        if auth is AuthMode.COOKIE:
            return self.cookie_headers()
        return self.api_key_headers()

    async def request(
        self,
        method: str,
        path: str,
        *,
        auth: AuthMode,
        error: type[NekowebAPIError] = NekowebAPIError,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request; no retries.

        Args:
            method: HTTP method
            path: Path relative to the API base URL
            auth: Which credential context to send
            error: Exception raised on failure, naming the step
            **kwargs: Passed to ``httpx.AsyncClient.request``

        Raises:
            NekowebAPIError: ``error`` for non-2xx responses, transport failures
                and requests that cannot be built
        """
        self.logger.debug("nekoweb.request", method=method, path=path, auth=auth.value)

        try:
            response = await self._http.request(
                method, path, headers=self._headers_for(auth), **kwargs
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise error(str(e) or type(e).__name__) from e

        if not response.is_success:
            raise error(
                _error_message(response),
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY],
            )

        return response

    async def get_site_info(
        self,
        site_name: str | None = None,
        auth: AuthMode = AuthMode.API_KEY,
    ) -> SiteInfo:
        """Look up a site; without ``site_name``, the authenticated user's own."""
        path = f"/site/info/{quote(site_name)}" if site_name else "/site/info"
        response = await self.request("GET", path, auth=auth, error=SiteInfoError)

        try:
            return SiteInfo.model_validate(response.json())
        except ValueError as e:
            raise SiteInfoError(
                f"unexpected response: {e}",
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY],
            ) from e

    async def delete(self, pathname: str) -> None:
        """Delete a file or folder on the site."""
        await self.request(
            "POST",
            "/files/delete",
            auth=AuthMode.API_KEY,
            error=DeleteError,
            data={"pathname": pathname},
        )
