"""
Cron-driven scheduling of backup runs

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
from datetime import datetime
from typing import Callable, Optional

from croniter import CroniterBadCronError, croniter
from loguru import logger

from .base import RunResult
from .errors import ConfigurationError


def validate_cron(expression: str) -> str:
    try:
        croniter(expression, datetime.now())
    except (CroniterBadCronError, ValueError, KeyError) as e:
        raise ConfigurationError(f"Invalid cron expression '{expression}': {e}") from e
    return expression


class BackupScheduler:
    """Runs a job on a cron cadence until stop_event is set"""

    def __init__(
        self,
        cron: str,
        job: Callable[[], object],
        run_on_startup: bool = False,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.cron = validate_cron(cron) if cron else ""
        self.job = job
        self.run_on_startup = run_on_startup
        self.stop_event = stop_event or threading.Event()
        self.clock = clock
        self.runs = 0

    def next_run(self, after: Optional[datetime] = None) -> datetime:
        if not self.cron:
            raise ConfigurationError("No cron expression configured")
        return croniter(self.cron, after or self.clock()).get_next(datetime)

    def run_job(self):
        """Run the job once; failures are logged and never stop the schedule"""
        self.runs += 1
        try:
            result = self.job()
        except Exception as e:
            logger.exception(f"[SCHEDULE] GitHub backup job failed: {e}")
            return

        if isinstance(result, RunResult) and not result.ok:
            reason = result.fatal_error or f"{result.failed} repositories failed"
            logger.error(f"[SCHEDULE] GitHub backup job failed: {reason}")
        else:
            logger.info("[SCHEDULE] GitHub backup job completed")

    def run_forever(self):
        if self.run_on_startup:
            logger.info("[SCHEDULE] Running GitHub backup job on startup")
            self.run_job()

        if not self.cron:
            logger.info("[SCHEDULE] No backup jobs scheduled. Exiting.")
            return

        logger.info(f"[SCHEDULE] Scheduled GitHub backup job with cron: {self.cron}")
        while not self.stop_event.is_set():
            now = self.clock()
            fire_at = self.next_run(now)
            logger.info(f"[SCHEDULE] Next backup at {fire_at.isoformat()}")
            if self.stop_event.wait(max(0.0, (fire_at - now).total_seconds())):
                break
            self.run_job()

        logger.info("[SCHEDULE] Scheduler stopped")
