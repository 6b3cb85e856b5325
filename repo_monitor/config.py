"""
Configuration management for the Repo Monitor application.

Two layers live here: process settings read from the environment, and the
user's monitor config document (token, refresh interval, repositories) which
is stored as JSON on disk.
"""

import json
import os
from pathlib import Path
from typing import List, Optional, Tuple

import structlog
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .exceptions import ConfigValidationError

logger = structlog.get_logger(__name__)

MIN_REFRESH_INTERVAL = 10
MAX_REFRESH_INTERVAL = 3600
DEFAULT_REFRESH_INTERVAL = 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    app_host: str = "127.0.0.1"
    app_port: int = 8000
    app_debug: bool = False

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"

    # Monitor config document override (checked before the default locations)
    config_path: Optional[str] = None

    # GitHub Configuration
    github_api_base_url: str = "https://api.github.com"
    request_timeout: float = 30.0
    approval_refresh_delay: float = 2.0

    # Command Line Configuration
    command_timeout: float = 60.0
    command_history_size: int = 50

    class Config:
        env_prefix = "REPO_MONITOR_"
        env_file = ".env"
        env_file_encoding = "utf-8"


class RepoRef(BaseModel):
    """A configured repository."""
    owner: str = ""
    repo: str = ""

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.repo}"


class MonitorConfig(BaseModel):
    """The user's monitor config document."""
    github_token: str = Field("", alias="githubToken")
    refresh_interval: Optional[int] = Field(DEFAULT_REFRESH_INTERVAL, alias="refreshInterval")
    repos: List[RepoRef] = []
    repos_base_path: Optional[str] = Field(None, alias="reposBasePath")

    class Config:
        populate_by_name = True

    @property
    def effective_refresh_interval(self) -> int:
        """Refresh interval clamped to the supported range."""
        interval = self.refresh_interval or DEFAULT_REFRESH_INTERVAL
        return max(MIN_REFRESH_INTERVAL, min(MAX_REFRESH_INTERVAL, interval))

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


def validate_config(config: MonitorConfig) -> List[str]:
    """Return a list of human readable problems with a monitor config."""
    errors = []

    if not config.github_token:
        errors.append("GitHub token is required")

    for index, repo in enumerate(config.repos):
        if not repo.owner or not repo.repo:
            errors.append(f"Repo at index {index} must have owner and repo fields")

    interval = config.refresh_interval
    if interval is not None and not MIN_REFRESH_INTERVAL <= interval <= MAX_REFRESH_INTERVAL:
        errors.append(
            f"Refresh interval must be between {MIN_REFRESH_INTERVAL} "
            f"and {MAX_REFRESH_INTERVAL} seconds"
        )

    return errors


def parse_repos_input(text: str) -> List[RepoRef]:
    """Parse repositories from text input, one ``owner/repo`` per line."""
    repos = []
    for line in text.split("\n"):
        line = line.strip()
        if not line or "/" not in line:
            continue
        owner, repo = line.split("/")[:2]
        repos.append(RepoRef(owner=owner.strip(), repo=repo.strip()))
    return repos


def format_repos_for_display(repos: List[RepoRef]) -> str:
    return "\n".join(repo.key for repo in repos)


def user_config_path() -> Path:
    """Canonical location the config document is saved to."""
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "repo-monitor" / "config.json"


def default_config_paths() -> List[Path]:
    """Candidate config locations, in lookup order."""
    paths = []
    if settings.config_path:
        paths.append(Path(settings.config_path).expanduser())
    paths.extend([
        Path.home() / ".repo-monitor" / "config.json",
        user_config_path(),
        Path.cwd() / "config.json",
    ])
    return paths


class ConfigStore:
    """Loads and saves the monitor config document."""

    def __init__(
        self,
        candidate_paths: Optional[List[Path]] = None,
        save_path: Optional[Path] = None
    ):
        self.candidate_paths = candidate_paths if candidate_paths is not None else default_config_paths()
        if save_path is None:
            save_path = Path(settings.config_path).expanduser() if settings.config_path else user_config_path()
        self.save_path = save_path
        self.loaded_from: Optional[Path] = None

    def load(self) -> Tuple[MonitorConfig, Optional[Path]]:
        """
        Load the first candidate that exists and parses.

        Returns:
            The config and the path it came from, or the default config and
            None when no candidate could be used.
        """
        for path in self.candidate_paths:
            if not path.exists():
                continue
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                config = MonitorConfig.model_validate(data)
            except (OSError, ValueError) as e:
                logger.error("Error reading config", path=str(path), error=str(e))
                continue

            self.loaded_from = path
            logger.info("Loaded config", path=str(path), repo_count=len(config.repos))
            return config, path

        logger.info("No config found, using defaults")
        return MonitorConfig(), None

    def save(self, config: MonitorConfig) -> Path:
        """
        Write the config document to the canonical location.

        Raises:
            ConfigValidationError: the config is not valid; nothing is written
        """
        errors = validate_config(config)
        if errors:
            raise ConfigValidationError(errors)

        self.save_path.parent.mkdir(parents=True, exist_ok=True)
        self.save_path.write_text(json.dumps(config.to_document(), indent=2), encoding="utf-8")
        self.loaded_from = self.save_path
        logger.info("Saved config", path=str(self.save_path))
        return self.save_path


# Global settings instance
settings = Settings()
