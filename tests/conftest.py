"""Pytest configuration and fixtures."""

import re
from pathlib import Path

import httpx
import pytest
import respx

from nekoweb_deploy.config import Settings
from nekoweb_deploy.core.events import EventBus
from nekoweb_deploy.models.deployment import Credentials, DeploymentRequest
from nekoweb_deploy.services.nekoweb import NekowebClient

BASE_URL = "https://nekoweb.test/api"
SESSION_ID = "big-123"
FEED_CONTENT = '<?xml version="1.0"?>\n<rss version="2.0"><channel><title>Neko</title></channel></rss>'


def form_fields(request: httpx.Request) -> dict[str, str]:
    """Decode the text fields of a multipart/form-data request body."""
    boundary = request.headers["Content-Type"].split("boundary=", 1)[1].encode()
    fields: dict[str, str] = {}
    for part in request.read().split(b"--" + boundary):
        head, sep, value = part.partition(b"\r\n\r\n")
        if not sep:
            continue
        name = re.search(rb'name="([^"]+)"', head).group(1).decode()
        fields[name] = value.removesuffix(b"\r\n").decode()
    return fields


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A finished static build."""
    site = tmp_path / "dist"
    (site / "assets" / "img").mkdir(parents=True)
    (site / "index.html").write_text("<h1>Home</h1>")
    (site / "404.html").write_text("<h1>Lost</h1>")
    (site / "rss.xml").write_text(FEED_CONTENT)
    (site / "assets" / "style.css").write_text("body { color: pink; }")
    (site / "assets" / "img" / "cat.svg").write_text("<svg/>")
    return site


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment."""
    return Settings(
        _env_file=None,
        api_key="",
        cookie=None,
        folder=None,
        site_name=None,
        rss_feed_path=None,
        discover_rss=False,
        base_url=BASE_URL,
        staging_dir=tmp_path / "work" / ".build-temp",
        marker_path="/.nekoweb-deploy.html",
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(api_key="test-api-key")


@pytest.fixture
def cookie_credentials() -> Credentials:
    return Credentials(api_key="test-api-key", cookie="test-cookie")


@pytest.fixture
def make_request(site_dir: Path):
    """Factory for deployment requests against ``site_dir``."""

    def make(**overrides) -> DeploymentRequest:
        values = {
            "source_directory": site_dir,
            "target_folder": "build",
            "credentials": Credentials(api_key="test-api-key"),
        }
        values.update(overrides)
        return DeploymentRequest(**values)

    return make


@pytest.fixture
def events() -> EventBus:
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def api():
    """Mocked Nekoweb API with no routes."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        yield router


@pytest.fixture
def nekoweb(api: respx.MockRouter) -> respx.MockRouter:
    """Mocked Nekoweb API where every endpoint succeeds."""
    api.get("/site/info", name="site_info").respond(
        200,
        json={
            "id": 42,
            "username": "neko",
            "title": "Neko's site",
            "updates": 7,
            "followers": 2,
            "views": 100,
            "created_at": 1700000000000,
            "updated_at": 1700000500000,
        },
    )
    api.get("/files/big/create", name="create").respond(200, json={"id": SESSION_ID})
    api.post("/files/big/append", name="append").respond(200, text="ok")
    api.post("/files/delete", name="delete").respond(200, text="ok")
    api.post(f"/files/import/{SESSION_ID}", name="import").respond(200, text="ok")
    api.get("/csrf", name="csrf").respond(200, text="csrf-token")
    api.post("/files/edit", name="edit").respond(200, text="ok")
    return api


@pytest.fixture
async def client(credentials: Credentials):
    """API-key client against the mocked base URL."""
    async with NekowebClient(credentials, base_url=BASE_URL) as c:
        yield c


@pytest.fixture
async def cookie_client(cookie_credentials: Credentials):
    """Client carrying both credential contexts."""
    async with NekowebClient(cookie_credentials, base_url=BASE_URL) as c:
        yield c
