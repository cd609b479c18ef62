"""
Demo script: parse NEMWEB MMS CSV exports via the public API.

Usage:
    uv run python scripts/run_ingest.py inputs/PUBLIC_TRADINGIS_*.zip
    uv run python scripts/run_ingest.py --nemweb /Reports/Current/TradingIS_Reports/ --limit 3
    uv run python scripts/run_ingest.py --config ingest.yaml inputs/*.zip

Local ``.zip`` files are parsed entry by entry; plain ``.csv`` files are
parsed as a single entry. With ``--nemweb`` the directory listing is
fetched and the newest ``--limit`` reports are downloaded and parsed.
A summary line is logged per source.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("run_ingest")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("paths", nargs="*", help="local .zip or .csv files")
    parser.add_argument("--config", help="ingest YAML config")
    parser.add_argument("--nemweb", metavar="DIR", help="NEMWEB directory path to fetch")
    parser.add_argument("--limit", type=int, default=1, help="newest N reports from --nemweb")
    return parser.parse_args()


def _report(collection) -> None:
    log.info("  %s", collection.summary())
    for kind, n in collection.counts_by_kind().items():
        log.info("  %-22s %s records", kind, f"{n:,}")
    for failure in collection.failures:
        log.warning("  FAILED %s: %s", failure.entry_name, failure.message)
    for block in collection.unrecognized:
        log.warning("  unrecognized %s in %s (line %d)", block.key, block.entry, block.line_number)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    import nem_mms_ingest
    from nem_mms_ingest.report_names import build_report_lookup

    args = _parse_args()
    config = nem_mms_ingest.load_config(args.config) if args.config else nem_mms_ingest.IngestConfig()

    for raw_path in args.paths:
        path = Path(raw_path)
        if not path.exists():
            log.warning("SKIP  %s  (file not found)", path)
            continue

        log.info("=" * 70)
        log.info("Processing: %s", path)
        if path.suffix.lower() == ".zip":
            collection = nem_mms_ingest.parse_zip(path, config=config)
        else:
            collection = nem_mms_ingest.parse_entries(
                [(path.name, path.read_bytes())],
                config=config,
                source=str(path),
            )
        _report(collection)

    if args.nemweb:
        client = nem_mms_ingest.NemwebClient(config.nemweb)
        lookup = build_report_lookup(client.list_zip_links(args.nemweb))
        newest = list(lookup.values())[-args.limit:] if args.limit > 0 else []
        for href in newest:
            log.info("=" * 70)
            log.info("Fetching: %s", href)
            _report(client.fetch_and_parse(href, config=config))

    log.info("All sources processed.")


if __name__ == "__main__":
    main()
