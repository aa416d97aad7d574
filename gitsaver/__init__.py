"""
gitsaver - Scheduled GitHub repository backup tool

Mirrors a user's or organization's GitHub repositories to local storage
as tarballs or full git clones.

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

__version__ = "1.1.1"
__license__ = "Apache-2.0"
__description__ = "Scheduled backup of GitHub repositories to local storage"

from .base import (
    BackupMethod,
    BackupPolicy,
    RepositoryRef,
    RunResult,
    Session,
    TransferOutcome,
)
from .config import BackupConfig
from .github_manager import GitHubManager
from .main import main
from .orchestrator import BackupOrchestrator, run_backup

__all__ = [
    "BackupConfig",
    "BackupMethod",
    "BackupOrchestrator",
    "BackupPolicy",
    "GitHubManager",
    "RepositoryRef",
    "RunResult",
    "Session",
    "TransferOutcome",
    "main",
    "run_backup",
]
