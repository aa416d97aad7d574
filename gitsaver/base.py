"""
Core data model and base classes for repository backup

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

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple, Union

from .errors import ConfigurationError


@dataclass(frozen=True)
class RepositoryRef:
    owner: str
    name: str
    clone_url: str
    archive_url: str = ""
    is_fork: bool = False
    is_archived: bool = False
    is_private: bool = False
    default_branch: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.owner, self.name)


@dataclass(frozen=True)
class Session:
    authenticated: bool
    username: str
    client: Any = field(repr=False, compare=False)
    token: Optional[str] = field(default=None, repr=False)


class BackupMethod(Enum):
    ARCHIVE = "tarball"
    CLONE = "git"

    @classmethod
    def parse(cls, value: Union[str, "BackupMethod"]) -> "BackupMethod":
        """Accept either the config spelling (tarball/git) or the member name"""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
        raise ConfigurationError(
            f"Unknown backup method '{value}'. Use 'tarball' or 'git'"
        )


@dataclass(frozen=True)
class BackupPolicy:
    include_other_users_repos: bool = False
    include_forked_repos: bool = False
    include_archived_repos: bool = False
    method: BackupMethod = BackupMethod.ARCHIVE
    extract_archive: bool = False
    destination_root: Path = Path("./output")


@dataclass(frozen=True)
class TransferOutcome:
    repository: str
    succeeded: bool
    error: Optional[str] = None

    @classmethod
    def success(cls, repo: RepositoryRef) -> "TransferOutcome":
        return cls(repository=repo.full_name, succeeded=True)

    @classmethod
    def failure(cls, repo: RepositoryRef, error: Any) -> "TransferOutcome":
        return cls(repository=repo.full_name, succeeded=False, error=str(error))


@dataclass
class RunResult:
    total_considered: int = 0
    skipped: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: List[TransferOutcome] = field(default_factory=list)
    fatal_error: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def eligible(self) -> int:
        return self.succeeded + self.failed

    @property
    def ok(self) -> bool:
        return self.fatal_error is None and self.failed == 0

    @property
    def status(self) -> str:
        return "success" if self.ok else "failure"


class RunResultBuilder:
    """Accumulates per-repository decisions into a single RunResult"""

    def __init__(self):
        self._result = RunResult(started_at=datetime.now(timezone.utc))
        self._finalized = False

    def record_considered(self, count: int = 1):
        self._result.total_considered += count

    def record_skip(self):
        self._result.skipped += 1

    def record_outcome(self, outcome: TransferOutcome):
        if outcome.succeeded:
            self._result.succeeded += 1
        else:
            self._result.failed += 1
            self._result.failures.append(outcome)

    def record_fatal(self, error: Any):
        self._result.fatal_error = str(error)

    def finalize(self) -> RunResult:
        if self._finalized:
            raise RuntimeError("RunResult has already been finalized")
        self._finalized = True
        self._result.finished_at = datetime.now(timezone.utc)
        return self._result


class HostingClient(ABC):
    def __init__(self, token: Optional[str] = None, username: Optional[str] = None):
        self.token = token
        self.username = username
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def authenticate(self) -> Session:
        pass

    @abstractmethod
    def list_repositories(self, session: Session) -> Iterator[RepositoryRef]:
        pass

    @abstractmethod
    def get_archive_link(self, session: Session, repo: RepositoryRef) -> str:
        pass

    def clone_credentials(self, session: Session) -> Optional[Tuple[str, str]]:
        if session.authenticated and session.token:
            return ("gitsaver", session.token)
        return None
