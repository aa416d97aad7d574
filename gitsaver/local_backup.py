"""
Local filesystem transfer strategies

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
import shutil
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import requests

from .base import BackupMethod, BackupPolicy, HostingClient, RepositoryRef, Session
from .errors import ExtractionError, NotFoundError, TransferError, TransportError
from .git_transport import GitTransport
from .tarball import extract_tarball

CHUNK_SIZE = 1024 * 1024


def robust_rmtree(path: Path, logger: logging.Logger, max_retries: int = 3) -> bool:
    """
    Robustly remove a directory tree with retries.

    Args:
        path: Path to remove
        logger: Logger for messages
        max_retries: Maximum number of retry attempts

    Returns:
        True if successfully removed, False otherwise
    """
    if not path.exists():
        return True

    for attempt in range(max_retries):
        try:
            shutil.rmtree(path)
            return True
        except OSError as e:
            if attempt < max_retries - 1:
                time.sleep(0.5 * (attempt + 1))
                logger.debug(
                    f"[CLEANUP] Retry {attempt + 1}/{max_retries} removing {path}: {e}"
                )
            else:
                logger.warning(
                    f"[CLEANUP] Failed to remove {path} after {max_retries} attempts: {e}"
                )
                return False
    return False


def archive_path_for(destination_root: Path, repo: RepositoryRef) -> Path:
    return Path(destination_root) / repo.owner / f"{repo.name}.tar.gz"


def working_copy_path_for(destination_root: Path, repo: RepositoryRef) -> Path:
    return Path(destination_root) / repo.owner / repo.name


class TransferStrategy(ABC):
    def __init__(self, cancel_event: Optional[threading.Event] = None):
        self.cancel_event = cancel_event
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def transfer(self, repo: RepositoryRef, session: Session, destination_root: Path):
        """Copy one repository below destination_root, raising TransferError"""

    def check_cancelled(self, repo: RepositoryRef):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise TransferError(f"Backup of {repo.full_name} cancelled")


class ArchiveTransfer(TransferStrategy):
    """Download the default branch tarball and optionally unpack it"""

    def __init__(
        self,
        client: HostingClient,
        extract: bool = False,
        cancel_event: Optional[threading.Event] = None,
        timeout: int = 60,
        chunk_size: int = CHUNK_SIZE,
    ):
        super().__init__(cancel_event)
        self.client = client
        self.extract = extract
        self.timeout = timeout
        self.chunk_size = chunk_size

    def transfer(self, repo: RepositoryRef, session: Session, destination_root: Path):
        self.check_cancelled(repo)
        link = self.client.get_archive_link(session, repo)

        archive_path = archive_path_for(destination_root, repo)
        archive_path.parent.mkdir(parents=True, exist_ok=True)

        self.logger.info(f"[DOWNLOAD] Downloading tarball for {repo.full_name}...")
        size = self._download(repo, link, archive_path)
        self.logger.info(
            f"[DOWNLOAD] Saved {repo.full_name} ({size / 1024 / 1024:.2f} MB) to {archive_path}"
        )

        if not self.extract:
            return

        extract_dir = working_copy_path_for(destination_root, repo)
        try:
            extract_tarball(archive_path, extract_dir)
        except ExtractionError as e:
            self.logger.error(
                f"[ERROR] Extraction failed for {repo.full_name}, keeping {archive_path}: {e}"
            )
            raise

        # Extracted tree replaces the archive
        archive_path.unlink()

    def _download(self, repo: RepositoryRef, url: str, target: Path) -> int:
        written = 0
        try:
            with requests.get(url, stream=True, timeout=self.timeout) as response:
                if response.status_code == 404:
                    raise NotFoundError(f"Tarball not found for {repo.full_name}")
                response.raise_for_status()

                with open(target, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        self.check_cancelled(repo)
                        if chunk:
                            f.write(chunk)
                            written += len(chunk)
        except requests.RequestException as e:
            raise TransferError(
                f"Failed to download tarball for {repo.full_name}: {e}"
            ) from e
        except OSError as e:
            raise TransferError(f"Failed to write {target}: {e}") from e
        return written


class CloneTransfer(TransferStrategy):
    """Replace the local working copy with a fresh clone plus all refs"""

    def __init__(
        self,
        client: HostingClient,
        transport: Optional[GitTransport] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        super().__init__(cancel_event)
        self.client = client
        self.transport = transport or GitTransport()

    def transfer(self, repo: RepositoryRef, session: Session, destination_root: Path):
        self.check_cancelled(repo)
        repo_path = working_copy_path_for(destination_root, repo)

        if repo_path.exists():
            self.logger.info(f"[CLEANUP] Removing previous clone at {repo_path}")
            if not robust_rmtree(repo_path, self.logger):
                raise TransferError(f"Could not remove existing clone at {repo_path}")

        repo_path.parent.mkdir(parents=True, exist_ok=True)
        credentials = self.client.clone_credentials(session)

        try:
            self.logger.info(f"[BACKUP] Cloning {repo.full_name}...")
            self.transport.clone(repo.clone_url, repo_path, credentials)

            self.check_cancelled(repo)
            self.logger.debug(f"[BACKUP] Fetching all refs for {repo.full_name}")
            self.transport.fetch_all_refs(repo_path, credentials=credentials)
        except TransportError as e:
            # Partial clone is left on disk for inspection
            raise TransferError(f"Clone failed for {repo.full_name}: {e}") from e


def build_transfer(
    policy: BackupPolicy,
    client: HostingClient,
    transport: Optional[GitTransport] = None,
    cancel_event: Optional[threading.Event] = None,
) -> TransferStrategy:
    if policy.method == BackupMethod.CLONE:
        return CloneTransfer(client, transport=transport, cancel_event=cancel_event)
    return ArchiveTransfer(
        client, extract=policy.extract_archive, cancel_event=cancel_event
    )
