"""
Configuration loading for gitsaver

Copyright 2025 HyperSec

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from dotenv import find_dotenv, load_dotenv

from .base import BackupMethod, BackupPolicy
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off", "")


def get_env_default(env_var: str, fallback=None):
    """Get value from environment or .env file"""
    return os.getenv(env_var, fallback)


def parse_bool(value: Any, name: str = "value") -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {name}: {value!r}")


def parse_headers(value: Union[str, Mapping[str, Any], None]) -> Dict[str, str]:
    """
    Parse webhook headers given either as a mapping, a JSON object string or
    a comma-separated list of Key:Value pairs.
    """
    if not value:
        return {}
    if isinstance(value, Mapping):
        return {str(k): str(v) for k, v in value.items()}

    text = str(value).strip()
    if text.startswith("{"):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in webhook headers: {e}") from e
        if not isinstance(parsed, dict):
            raise ConfigurationError("Webhook headers JSON must be an object")
        return {str(k): str(v) for k, v in parsed.items()}

    headers = {}
    for pair in text.split(","):
        pair = pair.strip()
        if not pair:
            continue
        if ":" not in pair:
            raise ConfigurationError(
                f"Invalid webhook header '{pair}'. Use Key:Value pairs"
            )
        key, header_value = pair.split(":", 1)
        headers[key.strip()] = header_value.strip()
    return headers


def get_github_token() -> Optional[str]:
    """
    Discover GitHub token from the environment.

    Priority:
    1. GITHUB_TOKEN environment variable
    2. GH_TOKEN environment variable
    """
    token = os.getenv("GITHUB_TOKEN")
    if token:
        logger.debug("[TOKEN] GitHub token found in GITHUB_TOKEN env var")
        return token

    token = os.getenv("GH_TOKEN")
    if token:
        logger.debug("[TOKEN] GitHub token found in GH_TOKEN env var")
        return token

    return None


@dataclass(frozen=True)
class BackupConfig:
    method: BackupMethod = BackupMethod.ARCHIVE
    run_on_startup: bool = False
    cron: str = ""
    username: str = ""
    token: Optional[str] = field(default=None, repr=False)
    include_other_users_repos: bool = False
    include_forked_repos: bool = False
    include_archived_repos: bool = False
    extract_archive: bool = False
    destination: Path = Path("./output")
    success_webhook_url: Optional[str] = None
    failure_webhook_url: Optional[str] = None
    webhook_headers: Dict[str, str] = field(default_factory=dict)
    max_workers: int = 0
    api_url: str = "https://api.github.com"

    @property
    def policy(self) -> BackupPolicy:
        return BackupPolicy(
            include_other_users_repos=self.include_other_users_repos,
            include_forked_repos=self.include_forked_repos,
            include_archived_repos=self.include_archived_repos,
            method=self.method,
            extract_archive=self.extract_archive,
            destination_root=self.destination,
        )

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "BackupConfig":
        """Build configuration from environment variables (and a .env file)"""
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv(find_dotenv(usecwd=True))

        return cls.from_mapping(
            {
                "method": get_env_default("GITHUB_BACKUP_METHOD", "tarball"),
                "run_on_startup": get_env_default("GITHUB_RUN_ON_STARTUP"),
                "cron": get_env_default("GITHUB_CRON", ""),
                "username": get_env_default("GITHUB_USERNAME", ""),
                "token": get_github_token(),
                "include_other_users_repos": get_env_default(
                    "GITHUB_INCLUDE_OTHER_USERS_REPOS"
                ),
                "include_forked_repos": get_env_default("GITHUB_INCLUDE_FORKED_REPOS"),
                "include_archived_repos": get_env_default(
                    "GITHUB_INCLUDE_ARCHIVED_REPOS"
                ),
                "extract_archive": get_env_default("GITHUB_EXTRACT_TARBALL"),
                "destination": get_env_default("DESTINATION_PATH", "./output"),
                "success_webhook_url": get_env_default("WEBHOOK_SUCCESS_URL"),
                "failure_webhook_url": get_env_default("WEBHOOK_FAILURE_URL"),
                "webhook_headers": get_env_default("WEBHOOK_HEADERS"),
                "max_workers": get_env_default("PARALLEL_WORKERS", "0"),
                "api_url": get_env_default("GITHUB_API_URL", "https://api.github.com"),
            }
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "BackupConfig":
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Configuration in {path} must be a mapping")
        return cls.from_mapping(raw)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "BackupConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration key(s): {', '.join(sorted(unknown))}"
            )
        return cls()._apply(values)

    def with_overrides(self, **overrides: Any) -> "BackupConfig":
        """Return a copy with every non-None override applied"""
        return self._apply({k: v for k, v in overrides.items() if v is not None})

    def _apply(self, values: Mapping[str, Any]) -> "BackupConfig":
        parsed: Dict[str, Any] = {}
        for key, value in values.items():
            if key == "method":
                parsed[key] = BackupMethod.parse(value)
            elif key in (
                "run_on_startup",
                "include_other_users_repos",
                "include_forked_repos",
                "include_archived_repos",
                "extract_archive",
            ):
                parsed[key] = parse_bool(value, key)
            elif key == "destination":
                parsed[key] = Path(str(value)).expanduser()
            elif key == "webhook_headers":
                parsed[key] = parse_headers(value)
            elif key == "max_workers":
                try:
                    parsed[key] = max(0, int(value or 0))
                except (TypeError, ValueError) as e:
                    raise ConfigurationError(f"Invalid worker count: {value!r}") from e
            elif key in ("cron", "username"):
                parsed[key] = str(value or "").strip()
            elif key in ("token", "success_webhook_url", "failure_webhook_url"):
                text = str(value).strip() if value else ""
                parsed[key] = text or None
            else:
                parsed[key] = value
        return replace(self, **parsed)
