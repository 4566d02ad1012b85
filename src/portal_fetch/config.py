"""Configuration management for the portal fetch client.

Loads settings from the environment (.env) and endpoint paths from endpoints.yaml.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from dotenv import load_dotenv


DEFAULT_CREDENTIALS_PATH = "~/.config/portal-fetch/credentials.json"


class Endpoints(BaseModel):
    """Server paths used by the auth pipeline, relative to the base URL."""
    refresh: str = "/refresh"
    oauth: str = "/oauth"


class Settings(BaseModel):
    """Application settings loaded from environment variables."""
    base_url: str = Field(default="", description="Base URL resource paths are resolved against")
    credentials_path: str = Field(
        default=DEFAULT_CREDENTIALS_PATH,
        description="JSON file the session credential is persisted to",
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")


class Config(BaseModel):
    """Full application configuration."""
    settings: Settings
    endpoints: Endpoints = Field(default_factory=Endpoints)

    @property
    def credentials_file(self) -> Path:
        """Expanded path of the persisted credential file."""
        return Path(self.settings.credentials_path).expanduser()


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (where config/ lives)."""
    current = Path(__file__).resolve().parent
    for parent in [current, *current.parents]:
        if (parent / "config" / "endpoints.yaml").exists():
            return parent
    return Path.cwd()


def _load_endpoints(project_root: Path) -> Endpoints:
    """Load endpoint paths from endpoints.yaml, falling back to the defaults."""
    endpoints_path = project_root / "config" / "endpoints.yaml"
    if not endpoints_path.exists():
        return Endpoints()

    with open(endpoints_path) as f:
        data = yaml.safe_load(f) or {}

    return Endpoints(**data.get("endpoints", {}))


def _env(*keys: str, default: str = "") -> str:
    """Try multiple env var names, return the first one found."""
    for key in keys:
        val = os.environ.get(key, "")
        if val:
            return val.strip().strip('"')
    return default


def _load_settings() -> Settings:
    """Load settings from environment variables."""
    return Settings(
        base_url=_env("PORTAL_BASE_URL"),
        credentials_path=_env("PORTAL_CREDENTIALS_PATH", default=DEFAULT_CREDENTIALS_PATH),
        timeout=float(_env("PORTAL_TIMEOUT", default="30")),
    )


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Load and cache the full application configuration."""
    project_root = _find_project_root()

    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Config(settings=_load_settings(), endpoints=_load_endpoints(project_root))
