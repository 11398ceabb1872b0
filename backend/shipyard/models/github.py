from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class GitHubRepository(BaseModel):
    """Repository entry as listed by ``GET /user/repos``."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    full_name: str
    private: bool = False
    html_url: str | None = None
    description: str | None = None
    language: str | None = None
    updated_at: str | None = None
    default_branch: str = "main"
