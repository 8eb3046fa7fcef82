#!/usr/bin/env python3
"""
PR Comment Radar - Main CLI entrypoint

Polls the monitored GitHub repositories through the `gh` CLI, classifies
pull-request comments as actionable or not, and caches the result as JSON
for the dashboard API.

Usage:
    python main.py fetch                      # refresh the cache once
    python main.py fetch --state open         # only open PRs
    python main.py watch                      # scheduled refreshes in the foreground
    python main.py status                     # show the last update summary
    python main.py serve --port 3611          # start the API (with scheduler)
"""

import argparse
import sys

from pipeline.refresher import Refresher
from pipeline.scheduler import RefreshScheduler
from utils.config_loader import load_config
from utils.logger import setup_logger

logger = setup_logger()


def fetch_now(refresher: Refresher, pr_state: str = None) -> bool:
    """
    Run one full refresh and log a summary.

    Args:
        refresher: Refresher built from config
        pr_state: Optional PR state filter overriding the configured one

    Returns:
        bool: True if the snapshot was written, False otherwise
    """
    logger.info("=" * 80)
    logger.info("FETCHING ACTIONABLE PR COMMENTS")
    logger.info("=" * 80)

    snapshot = refresher.refresh_all(pr_state=pr_state)

    logger.info("\n" + "=" * 80)
    logger.info("SUMMARY")
    logger.info("=" * 80)
    for repository in snapshot.repositories:
        logger.info(
            f"{repository.full_name}: {len(repository.pull_requests)} PRs, "
            f"{repository.actionable_count} actionable comments"
        )
    if not snapshot.repositories:
        logger.info("No actionable comments found in any monitored repository")

    metadata = refresher.get_metadata()
    if metadata is None or metadata.last_update != snapshot.last_update:
        logger.error("✗ Cache files were not updated")
        return False

    logger.info(f"\n✓ Cache written to {refresher.store.snapshot_path}")
    return True


def show_status(refresher: Refresher) -> bool:
    """Print the last-update metadata; False when no cache exists."""
    metadata = refresher.get_metadata()
    if metadata is None:
        logger.warning("No cached data yet. Run: python main.py fetch")
        return False

    logger.info(f"Last update:              {metadata.last_update.isoformat()}")
    logger.info(f"Repositories:             {metadata.repository_count}")
    logger.info(f"Pull requests:            {metadata.total_prs}")
    logger.info(f"Actionable comments:      {metadata.total_actionable_comments}")
    return True


def main():
    """Main CLI entrypoint with subcommands."""
    parser = argparse.ArgumentParser(
        description="PR Comment Radar - track actionable pull-request comments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py fetch
  python main.py fetch --state open
  python main.py watch
  python main.py status
  python main.py serve --host 0.0.0.0 --port 3611
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    fetch_parser = subparsers.add_parser(
        "fetch",
        help="Refresh the cache now, regardless of the active window"
    )
    fetch_parser.add_argument(
        "--state",
        choices=["open", "closed", "merged", "all"],
        default=None,
        help="PR state filter (default: PR_STATE from config)"
    )

    watch_parser = subparsers.add_parser(
        "watch",
        help="Run scheduled refreshes in the foreground"
    )
    watch_parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also append log records to this file"
    )

    subparsers.add_parser(
        "status",
        help="Show the last update summary"
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Start the dashboard API (runs the scheduler unless disabled)"
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=3611,
        help="Port to run the API server on (default: 3611)"
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload (development only)"
    )

    args = parser.parse_args()

    # Show help if no command provided
    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = load_config()
    # Reconfigure with the configured level; returns the same named logger
    setup_logger(config.log_level, log_file=getattr(args, "log_file", None))

    if args.command == "serve":
        logger.info(f"API will be available at: http://{args.host}:{args.port}")
        logger.info(f"API docs available at: http://{args.host}:{args.port}/docs")
        from backend.server import run_server
        run_server(args.host, args.port, reload=args.reload, log_level=config.log_level.lower())
        sys.exit(0)

    refresher = Refresher.from_config(config)

    if args.command == "fetch":
        success = fetch_now(refresher, pr_state=args.state)
        sys.exit(0 if success else 1)

    elif args.command == "watch":
        scheduler = RefreshScheduler.from_config(config.scheduler)
        try:
            scheduler.run_forever(refresher.refresh_if_idle)
        except KeyboardInterrupt:
            logger.info("👋 Shutting down scheduler...")
        sys.exit(0)

    elif args.command == "status":
        sys.exit(0 if show_status(refresher) else 1)


if __name__ == "__main__":
    main()
