"""
Main CLI entry point for the FAAB waiver resolution engine.
"""

import argparse
import logging
import sys
from pathlib import Path

from . import config
from .waivers.errors import WaiverError
from .waivers.league_store import JsonLeagueStore
from .waivers.reporting import export_transactions_csv, team_summary
from .waivers.waiver_engine import WaiverEngine


def setup_logging(verbose: bool = False):
    """
    Configure logging for the application.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL)
    logging.basicConfig(
        level=level,
        format=config.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='FAAB Waiver Resolution Engine',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process all pending waiver claims in a league
  python -m src.main --league-id my_league --process

  # Show budgets, roster sizes, and pending bids
  python -m src.main --league-id my_league --summary

  # Export the waiver transaction log
  python -m src.main --league-id my_league --export-transactions waivers.csv

  # Start the HTTP API
  python -m src.main --serve --port 8000
        """
    )

    parser.add_argument(
        '--league-id',
        type=str,
        default=None,
        help='League identifier'
    )

    parser.add_argument(
        '--data-dir',
        type=str,
        default=config.LEAGUES_DIR,
        help=f'Directory holding league documents (default: {config.LEAGUES_DIR})'
    )

    parser.add_argument(
        '--process',
        action='store_true',
        help='Process all pending waiver claims for the league'
    )

    parser.add_argument(
        '--summary',
        action='store_true',
        help='Print the team summary for the league'
    )

    parser.add_argument(
        '--export-transactions',
        type=str,
        default=None,
        help='Write the waiver transaction log to this CSV path'
    )

    parser.add_argument(
        '--workers',
        type=int,
        default=config.ALLOCATOR_MAX_WORKERS,
        help='Thread pool size for per-team allocation (default: sequential)'
    )

    parser.add_argument(
        '--serve',
        action='store_true',
        help='Run the waiver HTTP API'
    )

    parser.add_argument(
        '--host',
        type=str,
        default=config.API_HOST,
        help=f'API host (default: {config.API_HOST})'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=config.API_PORT,
        help=f'API port (default: {config.API_PORT})'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


def run_process_mode(args, store: JsonLeagueStore) -> int:
    """Process waivers once and print the outcome table."""
    logger = logging.getLogger(__name__)

    engine = WaiverEngine(store, max_workers=args.workers)
    result = engine.process_waivers(args.league_id)

    if result.is_empty:
        logger.info("No pending waiver claims")
        return 0

    print(result.to_dataframe().to_string(index=False))

    for team_id, reason in result.settlement_failures.items():
        logger.warning(f"Settlement failed for {team_id}: {reason}")

    return 0 if not result.settlement_failures else 2


def run_server_mode(args):
    """Run the FastAPI app with uvicorn."""
    import uvicorn
    from .waivers.api_server import create_app

    app = create_app(JsonLeagueStore(Path(args.data_dir)))
    uvicorn.run(app, host=args.host, port=args.port)


def main(argv=None):
    """Main execution function with mode branching."""
    args = parse_arguments(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if args.serve:
        run_server_mode(args)
        return

    if not args.league_id:
        logger.error("--league-id is required")
        sys.exit(1)

    if not (args.process or args.summary or args.export_transactions):
        logger.error("Nothing to do: pass --process, --summary, or --export-transactions")
        sys.exit(1)

    store = JsonLeagueStore(Path(args.data_dir))
    exit_code = 0

    try:
        if args.process:
            logger.info("="*60)
            logger.info("FAAB Waiver Processing")
            logger.info("="*60)
            exit_code = run_process_mode(args, store)

        if args.summary:
            print(team_summary(store.load_league(args.league_id)).to_string(index=False))

        if args.export_transactions:
            export_transactions_csv(
                store.load_league(args.league_id),
                Path(args.export_transactions)
            )

    except WaiverError as e:
        logger.error(f"Waiver run failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Error during execution: {e}")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


if __name__ == '__main__':
    main()
