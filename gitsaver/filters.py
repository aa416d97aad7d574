"""
Repository eligibility rules

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

from typing import Optional

from .base import BackupPolicy, RepositoryRef

SKIP_ARCHIVED = "archived"
SKIP_FORK = "fork"
SKIP_OTHER_USER = "other-user"


def skip_reason(
    repo: RepositoryRef, policy: BackupPolicy, username: str
) -> Optional[str]:
    """
    Return the first exclusion that applies to a repository, or None.

    The checks are independent; the order only decides which reason is
    reported when several apply.
    """
    if repo.is_archived and not policy.include_archived_repos:
        return SKIP_ARCHIVED

    if repo.is_fork and not policy.include_forked_repos:
        return SKIP_FORK

    if not policy.include_other_users_repos and not is_own_repo(repo, username):
        return SKIP_OTHER_USER

    return None


def should_backup(repo: RepositoryRef, policy: BackupPolicy, username: str) -> bool:
    return skip_reason(repo, policy, username) is None


def is_own_repo(repo: RepositoryRef, username: str) -> bool:
    return repo.owner.lower() == (username or "").lower()
