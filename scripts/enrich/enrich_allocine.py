"""
AlloCine Enrichment Script

Matches every title of an IMDb watchlist export against AlloCine's search,
then pulls the large-profile movie sheet (press/user ratings, French title,
directors, synopsis) for the best hit.

Rows already present in the output CSV are skipped, so a run that was cut
short, or stopped by AlloCine rejecting the signature, can simply be
started again.

Usage:
    python scripts/enrich/enrich_allocine.py
    python scripts/enrich/enrich_allocine.py --watchlist exports/imdb.csv --output data/allocine.csv
    python scripts/enrich/enrich_allocine.py --force --limit 20
"""
import argparse
import logging
import sys
from pathlib import Path

from allocine.core.config import settings
from allocine.core.data_loader import DataLoader
from allocine.enrichment.watchlist import AlloCineEnricher

settings.ensure_directories()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(settings.LOG_FILE)
    ]
)
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Look up IMDb watchlist titles on AlloCine and save their movie sheets to CSV."
    )
    parser.add_argument(
        '--watchlist',
        type=Path,
        default=settings.WATCHLIST_FILE,
        help=f"IMDb watchlist export to read (default: {settings.WATCHLIST_FILE})."
    )
    parser.add_argument(
        '--output',
        type=Path,
        help="CSV to write; rows already in it are not looked up again."
    )
    parser.add_argument(
        '--force',
        action='store_true',
        help="Ignore the existing output and query AlloCine for every title again."
    )
    parser.add_argument(
        '--limit',
        type=int,
        help="Send at most this many titles to AlloCine in this run."
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logger.info(f"AlloCine partner {settings.ALLOCINE_PARTNER}, endpoint {settings.ALLOCINE_BASE_URL}")

    try:
        enricher = AlloCineEnricher(loader=DataLoader(args.watchlist), output_file=args.output)
        processed = enricher.run(force=args.force, limit=args.limit)
        logger.info(f"{processed} titles looked up on AlloCine. Output: {enricher.output_file}")
    except KeyboardInterrupt:
        logger.info("Stopped. Titles already written are kept; rerun to look up the rest.")
        sys.exit(0)
    except FileNotFoundError as e:
        logger.error(f"{e}. Export your IMDb watchlist or pass --watchlist.")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"AlloCine enrichment aborted: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
