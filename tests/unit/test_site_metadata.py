"""Unit tests for cookie-authenticated site edits."""

from datetime import datetime, timezone

import pytest
import respx

from nekoweb_deploy.core.exceptions import CSRFError, MetadataEditError
from nekoweb_deploy.models.site import CSRFContext
from nekoweb_deploy.services.nekoweb import NekowebClient
from nekoweb_deploy.services.site_metadata import (
    SiteMetadataClient,
    append_marker,
    deployment_comment,
)


def test_deployment_comment():
    when = datetime(2026, 3, 14, 15, 9, 26, tzinfo=timezone.utc)

    assert deployment_comment(when) == (
        "<!-- deployed to Nekoweb using nekoweb-deploy on Sat Mar 14 2026 15:09:26 UTC -->"
    )


def test_append_marker():
    assert append_marker("<rss/>", "<!-- m -->") == "<rss/>\n<!-- m -->"
    assert append_marker("<rss/>\n", "<!-- m -->") == "<rss/>\n\n<!-- m -->"


class TestAuthenticateForCSRF:
    """Tests for CSRF token retrieval."""

    async def test_token(self, cookie_client: NekowebClient, nekoweb: respx.MockRouter):
        csrf = await SiteMetadataClient(cookie_client).authenticate_for_csrf()

        assert csrf == CSRFContext(token="csrf-token", site_identifier="neko")
        for name in ("site_info", "csrf"):
            request = nekoweb[name].calls.last.request
            assert request.headers["Cookie"] == "token=test-cookie"
            assert "Authorization" not in request.headers

    async def test_site_info_rejected(
        self, cookie_client: NekowebClient, nekoweb: respx.MockRouter
    ):
        nekoweb["site_info"].respond(401, json={"message": "Not logged in"})

        with pytest.raises(CSRFError) as exc_info:
            await SiteMetadataClient(cookie_client).authenticate_for_csrf()

        assert exc_info.value.status_code == 401
        assert "Not logged in" in str(exc_info.value)
        assert not nekoweb["csrf"].called

    async def test_csrf_rejected(self, cookie_client: NekowebClient, nekoweb: respx.MockRouter):
        nekoweb["csrf"].respond(403, text="Forbidden")

        with pytest.raises(CSRFError) as exc_info:
            await SiteMetadataClient(cookie_client).authenticate_for_csrf()

        assert exc_info.value.status_code == 403

    async def test_empty_token(self, cookie_client: NekowebClient, nekoweb: respx.MockRouter):
        nekoweb["csrf"].respond(200, text="  \n")

        with pytest.raises(CSRFError):
            await SiteMetadataClient(cookie_client).authenticate_for_csrf()


class TestEditFile:
    """Tests for file edits."""

    async def test_edit(self, cookie_client: NekowebClient, nekoweb: respx.MockRouter):
        csrf = CSRFContext(token="csrf-token", site_identifier="neko")

        await SiteMetadataClient(cookie_client).edit_file("/build/rss.xml", "<rss/>", csrf)

        request = nekoweb["edit"].calls.last.request
        body = request.read()
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert request.headers["Cookie"] == "token=test-cookie"
        assert "Authorization" not in request.headers
        for name in ("pathname", "content", "site", "csrf"):
            assert f'name="{name}"'.encode() in body
        assert b"/build/rss.xml" in body
        assert b"<rss/>" in body
        assert b"csrf-token" in body

    async def test_edit_failure(self, cookie_client: NekowebClient, nekoweb: respx.MockRouter):
        nekoweb["edit"].respond(400, json={"message": "Invalid CSRF token"})
        csrf = CSRFContext(token="stale", site_identifier="neko")

        with pytest.raises(MetadataEditError) as exc_info:
            await SiteMetadataClient(cookie_client).edit_file("/x.html", "x", csrf)

        assert exc_info.value.reason == "Invalid CSRF token"
