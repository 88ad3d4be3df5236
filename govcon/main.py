"""Main entry point for the GovCon opportunity tracker service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from govcon.adapters import get_fetcher
from govcon.config.environment import EnvironmentConfig
from govcon.config.exceptions import ConfigurationError
from govcon.config.loader import load_config
from govcon.config.models import AppConfig
from govcon.ingestion import IngestionCoordinator
from govcon.logging import get_logger
from govcon.logging.config import configure_logging
from govcon.persistence.database import close_database, init_database
from govcon.scheduler import SchedulerService
from govcon.scoring import MatchScorer

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="GovCon Tracker - government contracting opportunity ingestion and matching"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Run one full ingestion immediately and exit",
    )
    parser.add_argument(
        "--sources-sought",
        action="store_true",
        help="Run one Sources Sought ingestion immediately and exit",
    )
    parser.add_argument(
        "--score-tenant",
        metavar="TENANT_ID",
        default=None,
        help="Score all active opportunities for a tenant and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def run_once(args: argparse.Namespace, coordinator: IngestionCoordinator, app_config: AppConfig) -> int:
    """Execute the one-shot modes requested on the command line."""
    exit_code = 0

    if args.manual_run:
        logger.info("Executing manual ingestion", extra={"event": "service.manual_run.starting"})
        result = coordinator.run_full_ingestion()
        logger.info(
            f"Manual ingestion completed: {result.new_count} new, "
            f"{result.updated_count} updated, {result.skipped_count} skipped, "
            f"{result.failed_count} failed",
            extra={
                "event": "service.manual_run.completed",
                "new_count": result.new_count,
                "updated_count": result.updated_count,
                "skipped_count": result.skipped_count,
                "failed_count": result.failed_count,
                "failed_partitions": result.failed_partitions,
                "duration_ms": result.duration_ms,
            },
        )
        if result.failed_count or result.failed_partitions:
            exit_code = 1

    if args.sources_sought:
        saved = coordinator.ingest_sources_sought()
        logger.info(
            f"Sources Sought ingestion saved {saved} opportunities",
            extra={"event": "service.sources_sought.completed", "saved_count": saved},
        )

    if args.score_tenant:
        scorer = MatchScorer(page_size=app_config.scoring.page_size)
        batch = scorer.calculate_all_matches(args.score_tenant)
        logger.info(
            f"Scoring completed for tenant {args.score_tenant}: "
            f"{batch.processed} processed, {batch.failed} failed",
            extra={
                "event": "service.score_tenant.completed",
                "tenant_id": args.score_tenant,
                "processed": batch.processed,
                "failed": batch.failed,
                "profile_missing": batch.profile_missing,
            },
        )
        if batch.failed or batch.profile_missing:
            exit_code = 1

    return exit_code


def run_daemon(coordinator: IngestionCoordinator, app_config: AppConfig) -> int:
    """Start the scheduler and block until a signal asks us to stop."""
    shutdown_event = threading.Event()
    schedule = app_config.schedule

    scheduler_service = SchedulerService(
        ingestion_callable=coordinator.run_full_ingestion,
        cron_hour=schedule.ingestion_cron_hour,
        cron_minute=schedule.ingestion_cron_minute,
        startup_callable=(
            coordinator.ingest_sources_sought if schedule.sources_sought_on_startup else None
        ),
        shutdown_event=shutdown_event,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        scheduler_service.shutdown(wait=False)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler_service.start()
    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info(
            "Keyboard interrupt received, shutting down",
            extra={"event": "service.keyboard_interrupt"},
        )
        scheduler_service.shutdown(wait=False)

    return 0


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the GovCon tracker.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)
    one_shot = args.manual_run or args.sources_sought or bool(args.score_tenant)
    fetcher = None

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "GovCon tracker starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "one_shot": one_shot,
            },
        )

        init_database(env_config.database_url)

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "naics_count": len(app_config.ingestion.naics_codes),
                "posted_within_days": app_config.ingestion.posted_within_days,
                "sbir_enabled": app_config.ingestion.sbir_enabled,
                "log_format": app_config.logging.format,
            },
        )

        fetcher = get_fetcher(app_config, env_config)
        coordinator = IngestionCoordinator.from_config(app_config, fetcher)

        if one_shot:
            return run_once(args, coordinator, app_config)
        return run_daemon(coordinator, app_config)

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1
    finally:
        if fetcher is not None:
            fetcher.close()
        close_database()
        logger.info(
            "GovCon tracker stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )


if __name__ == "__main__":
    sys.exit(main())
