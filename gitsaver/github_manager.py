"""
GitHub repository manager

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

import threading
from typing import Iterator, Optional

import requests
from github import (
    Auth,
    BadCredentialsException,
    Github,
    GithubException,
    UnknownObjectException,
)

from .base import HostingClient, RepositoryRef, Session
from .errors import AuthError, ListingError, NotFoundError, TransferError

DEFAULT_API_URL = "https://api.github.com"
MAX_PER_PAGE = 100


class GitHubManager(HostingClient):
    def __init__(
        self,
        token: Optional[str] = None,
        username: Optional[str] = None,
        base_url: str = DEFAULT_API_URL,
        timeout: int = 30,
        per_page: int = MAX_PER_PAGE,
        cancel_event: Optional[threading.Event] = None,
    ):
        super().__init__(token, username)
        self.cancel_event = cancel_event
        self.base_url = base_url or DEFAULT_API_URL
        self.timeout = timeout
        self.per_page = max(1, min(per_page, MAX_PER_PAGE))

    def _build_client(self) -> Github:
        kwargs = {
            "base_url": self.base_url,
            "timeout": self.timeout,
            "per_page": self.per_page,
        }
        if self.token:
            kwargs["auth"] = Auth.Token(self.token)
        return Github(**kwargs)

    def authenticate(self) -> Session:
        client = self._build_client()

        if not self.token:
            self.logger.info(
                f"[AUTH] No GitHub token configured, using anonymous access"
                f"{' for ' + self.username if self.username else ''}"
            )
            return Session(
                authenticated=False, username=self.username or "", client=client
            )

        # Force authentication check by accessing a property
        try:
            login = client.get_user().login
        except BadCredentialsException as e:
            self.logger.error("GitHub authentication failed: Invalid or expired token")
            raise AuthError(f"Invalid GitHub token: {e}") from e
        except (GithubException, requests.RequestException) as e:
            self.logger.error(f"GitHub authentication failed: {e}")
            raise AuthError(f"GitHub authentication failed: {e}") from e

        self.logger.info(f"[AUTH] Logged in to GitHub as {login}")
        return Session(
            authenticated=True, username=login, client=client, token=self.token
        )

    def list_repositories(self, session: Session) -> Iterator[RepositoryRef]:
        """
        Lazily list repositories visible to the session.

        Authenticated sessions see everything the token can reach (owned,
        collaborator and organization repositories). Anonymous sessions see
        the public repositories of the configured username. Pages are fetched
        on demand; any paging failure or a set cancel event aborts the listing.
        """
        client = session.client

        if not session.authenticated and not session.username:
            raise ListingError("GITHUB_USERNAME is required for unauthenticated access")

        try:
            if session.authenticated:
                self.logger.info(
                    f"[LIST] Fetching repositories accessible to {session.username}"
                )
                paginated = client.get_user().get_repos()
            else:
                self.logger.info(
                    f"[LIST] Fetching public repositories of {session.username}"
                )
                paginated = client.get_user(session.username).get_repos()

            for repo in paginated:
                if self.cancel_event is not None and self.cancel_event.is_set():
                    raise ListingError("Repository listing cancelled")
                yield self._to_ref(repo)
        except (GithubException, requests.RequestException) as e:
            raise ListingError(f"Failed to list GitHub repositories: {e}") from e

    def get_archive_link(self, session: Session, repo: RepositoryRef) -> str:
        try:
            handle = session.client.get_repo(repo.full_name, lazy=True)
            return handle.get_archive_link("tarball")
        except UnknownObjectException as e:
            raise NotFoundError(f"Archive not found for {repo.full_name}: {e}") from e
        except (GithubException, requests.RequestException) as e:
            raise TransferError(
                f"Failed to get archive link for {repo.full_name}: {e}"
            ) from e

    @staticmethod
    def _to_ref(repo) -> RepositoryRef:
        return RepositoryRef(
            owner=repo.owner.login,
            name=repo.name,
            clone_url=repo.clone_url,
            archive_url=repo.archive_url or "",
            is_fork=bool(repo.fork),
            is_archived=bool(repo.archived),
            is_private=bool(repo.private),
            default_branch=repo.default_branch,
        )
