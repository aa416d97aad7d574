"""
Backup orchestration: list, filter, fan out, collect

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
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import List, Optional

from loguru import logger
from tqdm import tqdm

from .base import (
    HostingClient,
    RepositoryRef,
    RunResult,
    RunResultBuilder,
    Session,
    TransferOutcome,
)
from .config import BackupConfig
from .errors import FatalRunError
from .filters import skip_reason
from .github_manager import GitHubManager
from .local_backup import TransferStrategy, build_transfer
from .notifier import WebhookNotifier
from .reporter import OutcomeReporter


class RunState(Enum):
    IDLE = "idle"
    LISTING = "listing"
    FILTERING = "filtering"
    DISPATCHING = "dispatching"
    AWAITING = "awaiting"
    REPORTING = "reporting"
    DONE = "done"


class BackupOrchestrator:
    def __init__(
        self,
        config: BackupConfig,
        client: Optional[HostingClient] = None,
        transfer: Optional[TransferStrategy] = None,
        reporter: Optional[OutcomeReporter] = None,
        cancel_event: Optional[threading.Event] = None,
        show_progress: bool = True,
    ):
        self.config = config
        self.policy = config.policy
        self.cancel_event = cancel_event or threading.Event()
        self.client = client or GitHubManager(
            token=config.token,
            username=config.username,
            base_url=config.api_url,
            cancel_event=self.cancel_event,
        )
        self.transfer = transfer or build_transfer(
            self.policy, self.client, cancel_event=self.cancel_event
        )
        self.reporter = reporter or OutcomeReporter(
            WebhookNotifier(
                success_url=config.success_webhook_url,
                failure_url=config.failure_webhook_url,
                headers=config.webhook_headers,
            )
        )
        self.show_progress = show_progress
        self.state = RunState.IDLE

    def _enter(self, state: RunState):
        logger.debug(f"[STATE] {self.state.value} -> {state.value}")
        self.state = state

    def run(self) -> RunResult:
        """Run one complete backup pass and return its summary"""
        builder = RunResultBuilder()
        logger.info(
            f"[START] Starting GitHub backup ({self.policy.method.value}) "
            f"to {self.policy.destination_root}"
        )

        try:
            self._enter(RunState.LISTING)
            self._check_cancelled()
            session = self.client.authenticate()
            self._check_cancelled()
            repos = self._list(session)
        except FatalRunError as e:
            logger.error(f"[FATAL] Backup run aborted: {e}")
            builder.record_fatal(e)
            return self._finish(builder)
        except Exception as e:
            logger.exception(f"[FATAL] Unexpected error while listing repositories: {e}")
            builder.record_fatal(f"Repository listing failed: {e}")
            return self._finish(builder)

        self._enter(RunState.FILTERING)
        builder.record_considered(len(repos))
        eligible = self._filter(repos, session, builder)

        if eligible:
            outcomes = self._dispatch(eligible, session)
            for outcome in outcomes:
                builder.record_outcome(outcome)
        else:
            logger.warning("[WARN] No repositories eligible for backup")

        return self._finish(builder)

    def _check_cancelled(self):
        if self.cancel_event.is_set():
            raise FatalRunError("Backup run cancelled before listing completed")

    def _finish(self, builder: RunResultBuilder) -> RunResult:
        self._enter(RunState.REPORTING)
        result = builder.finalize()
        self.reporter.report(result)
        self._enter(RunState.DONE)
        return result

    def _list(self, session: Session) -> List[RepositoryRef]:
        logger.info("[DISCOVER] Discovering accessible repositories...")
        repos = list(self.client.list_repositories(session))
        logger.info(f"[OK] Found {len(repos)} repositories on GITHUB")
        return repos

    def _filter(
        self, repos: List[RepositoryRef], session: Session, builder: RunResultBuilder
    ) -> List[RepositoryRef]:
        eligible = []
        for repo in repos:
            reason = skip_reason(repo, self.policy, session.username)
            if reason is None:
                eligible.append(repo)
            else:
                logger.info(f"[SKIP] Skipping {repo.full_name} ({reason})")
                builder.record_skip()
        logger.info(
            f"[TOTAL] Total repositories to backup: {len(eligible)} "
            f"({len(repos) - len(eligible)} skipped)"
        )
        return eligible

    def _dispatch(
        self, repos: List[RepositoryRef], session: Session
    ) -> List[TransferOutcome]:
        self._enter(RunState.DISPATCHING)
        max_workers = self.config.max_workers or len(repos)
        logger.info(f"[PROCESS] Using parallel processing with {max_workers} workers...")

        outcomes: List[TransferOutcome] = []
        successful = 0
        failed = 0

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self.backup_repository, repo, session): repo
                for repo in repos
            }

            self._enter(RunState.AWAITING)
            with tqdm(
                total=len(repos),
                desc="Backing up",
                unit="repo",
                disable=not self.show_progress,
            ) as pbar:
                for future in as_completed(futures):
                    repo = futures[future]
                    try:
                        outcome = future.result()
                    except KeyboardInterrupt:
                        raise
                    except BaseException as e:
                        logger.error(f"[ERROR] Error backing up {repo.full_name} - {e}")
                        outcome = TransferOutcome.failure(repo, e)
                    outcomes.append(outcome)
                    if outcome.succeeded:
                        successful += 1
                    else:
                        failed += 1
                    pbar.update(1)
                    pbar.set_postfix({"OK": successful, "FAIL": failed})

        return outcomes

    def backup_repository(
        self, repo: RepositoryRef, session: Session
    ) -> TransferOutcome:
        """Back up a single repository; any failure becomes a failed outcome"""
        if self.cancel_event.is_set():
            logger.warning(f"[CANCEL] Skipping {repo.full_name}, run cancelled")
            return TransferOutcome.failure(repo, "cancelled")

        try:
            logger.info(f"[BACKUP] Backing up {repo.full_name}")
            self.transfer.transfer(repo, session, self.policy.destination_root)
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            # SystemExit raised inside a transfer still becomes an outcome
            logger.error(f"[FAIL] Failed to backup {repo.full_name}: {e}")
            return TransferOutcome.failure(repo, e)

        logger.info(f"[SUCCESS] Successfully backed up {repo.full_name}")
        return TransferOutcome.success(repo)


def run_backup(
    config: BackupConfig,
    cancel_event: Optional[threading.Event] = None,
    show_progress: bool = True,
) -> RunResult:
    """Entry point used by the CLI and the scheduler"""
    orchestrator = BackupOrchestrator(
        config, cancel_event=cancel_event, show_progress=show_progress
    )
    return orchestrator.run()
