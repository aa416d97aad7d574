"""
Run summary and notification dispatch

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

from loguru import logger

from .base import RunResult
from .errors import NotificationError
from .notifier import WebhookNotifier


class OutcomeReporter:
    def __init__(
        self, notifier: Optional[WebhookNotifier] = None, max_listed_failures: int = 5
    ):
        self.notifier = notifier
        self.max_listed_failures = max_listed_failures

    def summarize(self, result: RunResult) -> str:
        if result.fatal_error:
            return f"Backup could not start: {result.fatal_error}"

        message = (
            f"Backup completed: {result.succeeded} succeeded, {result.failed} failed, "
            f"{result.skipped} skipped of {result.total_considered} repositories"
        )
        if result.failures:
            shown = result.failures[: self.max_listed_failures]
            details = "; ".join(f"{o.repository}: {o.error}" for o in shown)
            message += f". Failures: {details}"
            remaining = len(result.failures) - len(shown)
            if remaining > 0:
                message += f" ... and {remaining} more"
        return message

    def report(self, result: RunResult):
        """Log the run summary and notify; never raises"""
        message = self.summarize(result)

        logger.info("=" * 60)
        logger.info("[SUMMARY] BACKUP SUMMARY")
        logger.info("=" * 60)
        logger.info(f"[TOTAL] Repositories listed: {result.total_considered}")
        logger.info(f"[SKIP] Skipped by filter: {result.skipped}")
        logger.info(f"[SUCCESS] Successful backups: {result.succeeded}")
        logger.info(f"[FAIL] Failed backups: {result.failed}")
        for outcome in result.failures:
            logger.error(f"[FAIL] {outcome.repository}: {outcome.error}")
        if result.fatal_error:
            logger.error(f"[FATAL] {result.fatal_error}")
        elif result.ok:
            logger.info("[COMPLETE] All repositories backed up successfully!")

        if self.notifier is None:
            return

        try:
            self.notifier.notify(result.status, message)
        except NotificationError as e:
            logger.warning(f"[NOTIFY] Webhook notification failed: {e}")
        except Exception as e:
            logger.warning(f"[NOTIFY] Unexpected error sending notification: {e}")
