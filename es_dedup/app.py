# app.py

import argparse
import logging
import sys
from es_dedup.config import DEFAULT_CONFIG_PATH, KEEP_POLICIES, load_settings
from es_dedup.tasks.cleanup import remove_duplicates_from_indices
from es_dedup.utils.es_utils import build_client
from es_dedup.utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="es-dedup",
        description="Remove documents sharing the same databaseId from Elasticsearch indices, keeping one per group."
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config.ini")
    parser.add_argument("--index", action="append", dest="indices", metavar="NAME",
                        help="Index to clean, may be repeated. Replaces the configured list.")
    parser.add_argument("--dry-run", action="store_true", help="Report duplicates without deleting them")
    parser.add_argument("--keep", choices=KEEP_POLICIES, help="Which document of a duplicate group survives")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "INFO")

    try:
        settings = load_settings(args.config)
        if args.indices:
            settings.indices = args.indices
        if args.dry_run:
            settings.dry_run = True
        if args.keep:
            settings.keep = args.keep
        if not args.verbose:
            setup_logging(settings.log_level)

        es = build_client(settings)
        summary = remove_duplicates_from_indices(es, settings)
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        return 1

    if summary.failed:
        logger.warning(f"{len(summary.failed)} deletions failed, rerun to retry them")
    return 0

if __name__ == "__main__":
    sys.exit(main())
