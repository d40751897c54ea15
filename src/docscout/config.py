"""Application configuration defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from docscout.errors import DocsPathNotFoundError

LOGGER = logging.getLogger(__name__)

DEFAULT_GITHUB_REPO = "CleanSlice/docs"
DEFAULT_GITHUB_BRANCH = "main"
DEFAULT_CACHE_TTL = 3600
DEFAULT_HTTP_TIMEOUT = 15.0
DISCOVERY_MAX_LEVELS = 10

SUPPORTED_FRAMEWORKS: tuple[str, ...] = ("nestjs", "nuxt")

# Sub-topic name -> path/name keywords, tried in order.
DEFAULT_GETTING_STARTED_TOPICS: dict[str, tuple[str, ...]] = {
    "overview": ("overview", "slice-creation-rules"),
    "when_to_use": ("when-to-use", "overview"),
    "checklist": ("checklist",),
}


def discover_docs_path(start: Path | None = None, *, max_levels: int = DISCOVERY_MAX_LEVELS) -> Path:
    """Walk up from ``start`` looking for a directory named ``docs``."""
    current = Path(start) if start is not None else Path(__file__).resolve().parent
    for _ in range(max_levels):
        candidate = current / "docs"
        if candidate.is_dir():
            return candidate
        current = current.parent
    raise DocsPathNotFoundError(
        "Could not locate docs directory. "
        "Set DOCS_PATH environment variable or ensure docs/ folder exists."
    )


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


@dataclass(slots=True)
class AppConfig:
    docs_path: Path | None = None
    github_repo: str = DEFAULT_GITHUB_REPO
    github_branch: str = DEFAULT_GITHUB_BRANCH
    github_token: str | None = None
    cache_ttl: int = DEFAULT_CACHE_TTL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    github_enabled: bool = True
    supported_frameworks: tuple[str, ...] = SUPPORTED_FRAMEWORKS
    getting_started_topics: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_GETTING_STARTED_TOPICS)
    )

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AppConfig":
        env = os.environ if env is None else env
        docs_path = env.get("DOCS_PATH")
        return cls(
            docs_path=Path(docs_path) if docs_path else None,
            github_repo=env.get("GITHUB_REPO") or DEFAULT_GITHUB_REPO,
            github_branch=env.get("GITHUB_BRANCH") or DEFAULT_GITHUB_BRANCH,
            github_token=env.get("GITHUB_TOKEN") or None,
            cache_ttl=_env_int(env, "GITHUB_CACHE_TTL", DEFAULT_CACHE_TTL),
            http_timeout=_env_float(env, "DOCSCOUT_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            github_enabled=_env_bool(env, "DOCSCOUT_GITHUB_ENABLED", True),
        )

    def resolve_docs_path(self, start: Path | None = None) -> Path:
        """Return the configured docs root, discovering one when unset or missing."""
        if self.docs_path is not None and Path(self.docs_path).is_dir():
            return Path(self.docs_path)
        if self.docs_path is not None:
            LOGGER.warning("Configured docs path %s does not exist, falling back to discovery", self.docs_path)
        return discover_docs_path(start)
