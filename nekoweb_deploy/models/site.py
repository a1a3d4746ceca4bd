"""Nekoweb site data models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SiteInfo(BaseModel):
    """Site information as returned by ``GET /site/info``."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    username: str
    title: str | None = None
    updates: int = 0
    followers: int = 0
    views: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Only reported by servers that expose the configured serve folder
    folder: str | None = None


class CSRFContext(BaseModel):
    """Anti-forgery token bound to one cookie session.

    Valid for a short server-defined window; fetched once per run.
    """

    model_config = ConfigDict(frozen=True)

    token: str
    site_identifier: str
