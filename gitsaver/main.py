#!/usr/bin/env python3
"""
Scheduled GitHub repository backup tool
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from loguru import logger
from rich.console import Console
from rich.table import Table
from rich_argparse import ArgumentDefaultsRichHelpFormatter

from .base import RunResult
from .config import BackupConfig
from .errors import ConfigurationError
from .orchestrator import run_backup
from .scheduler import BackupScheduler

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2


class InterceptHandler(logging.Handler):
    """Route stdlib logging records (components, PyGithub, urllib3) into loguru"""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(verbose: bool = False, log_file: str = "gitsaver.log"):
    """Setup console and file logging with loguru"""

    # Remove default loguru handler
    logger.remove()

    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)
    log_file_path = log_dir / log_file

    log_level = "DEBUG" if verbose else "INFO"

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<level>{message}</level>"
    )

    logger.add(sys.stdout, format=console_format, level=log_level, colorize=True)

    file_format = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"

    logger.add(
        log_file_path,
        format=file_format,
        level=log_level,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        encoding="utf-8",
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # PyGithub and urllib3 are chatty at DEBUG
    for noisy in ("github", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)

    logger.info("[CONFIG] Logging configured")
    logger.debug(f"Log file: {log_file_path}")

    return logger


def print_summary(result: RunResult, console: Optional[Console] = None):
    console = console or Console()
    table = Table(title="GitHub backup summary")
    table.add_column("Metric")
    table.add_column("Count", justify="right")
    table.add_row("Listed", str(result.total_considered))
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Succeeded", str(result.succeeded))
    table.add_row("Failed", str(result.failed))
    console.print(table)

    if result.failures:
        failures = Table(title="Failed repositories")
        failures.add_column("Repository")
        failures.add_column("Error")
        for outcome in result.failures:
            failures.add_row(outcome.repository, outcome.error or "")
        console.print(failures)

    if result.fatal_error:
        console.print(f"[bold red]Backup could not start:[/bold red] {result.fatal_error}")


def exit_code_for(result: RunResult) -> int:
    if result.fatal_error:
        return EXIT_FATAL
    if result.failed:
        return EXIT_FAILURES
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitsaver",
        description="[bold blue]gitsaver[/bold blue] - Mirror GitHub repositories to local storage",
        epilog="""
[bold green]Examples:[/bold green]
  [dim]# Back up now as tarballs, unpacked[/dim]
  [yellow]%(prog)s[/yellow] [cyan]run[/cyan] [magenta]--destination[/magenta] /backups [cyan]--extract[/cyan]

  [dim]# Full git clones on a nightly schedule[/dim]
  [yellow]%(prog)s[/yellow] [cyan]schedule[/cyan] [magenta]--method[/magenta] git [magenta]--cron[/magenta] "0 3 * * *"
        """,
        formatter_class=ArgumentDefaultsRichHelpFormatter,
    )

    parser.add_argument(
        "command",
        choices=["run", "schedule"],
        help="run: back up once now; schedule: run on the configured cron expression",
    )

    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument(
        "--config",
        metavar="FILE",
        help="YAML configuration file (otherwise environment variables / .env are used)",
    )
    config_group.add_argument(
        "--env-file", metavar="FILE", help="Explicit .env file to load"
    )
    config_group.add_argument(
        "--destination",
        metavar="DIR",
        help="Backup destination root (env: DESTINATION_PATH)",
    )
    config_group.add_argument(
        "--method",
        choices=["tarball", "git"],
        help="Transfer method (env: GITHUB_BACKUP_METHOD)",
    )
    config_group.add_argument(
        "--extract",
        action="store_true",
        default=None,
        help="Unpack downloaded tarballs (env: GITHUB_EXTRACT_TARBALL)",
    )
    config_group.add_argument(
        "--cron",
        metavar="EXPR",
        help="Cron expression for schedule mode (env: GITHUB_CRON)",
    )
    config_group.add_argument(
        "--run-on-startup",
        action="store_true",
        default=None,
        help="In schedule mode, also run once immediately (env: GITHUB_RUN_ON_STARTUP)",
    )

    perf_group = parser.add_argument_group("Performance Options")
    perf_group.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Cap on parallel transfers, 0 for one per repository (env: PARALLEL_WORKERS)",
    )
    perf_group.add_argument(
        "--no-progress", action="store_true", help="Disable the progress bar"
    )

    log_group = parser.add_argument_group("Logging Options")
    log_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    log_group.add_argument(
        "--log-file",
        default="gitsaver.log",
        metavar="FILE",
        help="Log file name under logs/",
    )

    return parser


def load_config(args: argparse.Namespace) -> BackupConfig:
    if args.config:
        config = BackupConfig.from_yaml(args.config)
    else:
        config = BackupConfig.from_env(args.env_file)

    return config.with_overrides(
        destination=args.destination,
        method=args.method,
        extract_archive=args.extract,
        cron=args.cron,
        run_on_startup=args.run_on_startup,
        max_workers=args.workers,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        logger.error(f"[CONFIG] {e}")
        return EXIT_FATAL

    stop_event = threading.Event()

    def handle_signal(signum, frame):
        logger.warning("[STOP] Interrupt received, stopping after in-flight transfers")
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    if args.command == "run":
        result = run_backup(
            config, cancel_event=stop_event, show_progress=not args.no_progress
        )
        print_summary(result)
        return exit_code_for(result)

    try:
        scheduler = BackupScheduler(
            cron=config.cron,
            job=lambda: run_backup(
                config, cancel_event=stop_event, show_progress=not args.no_progress
            ),
            run_on_startup=config.run_on_startup,
            stop_event=stop_event,
        )
    except ConfigurationError as e:
        logger.error(f"[CONFIG] {e}")
        return EXIT_FATAL

    scheduler.run_forever()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
