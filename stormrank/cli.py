"""
stormrank Command Line Interface (CLI)
======================================

One-shot analysis you run like:

    python -m stormrank.cli --csv data/StormData.csv.bz2 --download --charts out/ --report out/storms.docx

Steps:
1) Fetch the dataset if asked and it is not on disk yet
2) Load + normalize + aggregate (optionally streamed in chunks)
3) Rank by fatalities, injuries, property damage and crop damage
4) Print the tables, and optionally write charts / a DOCX report

The CLI never modifies the dataset file.
"""

from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import List, Optional

from .engine import aggregate, aggregate_chunks
from .loader import DEFAULT_PATH, download_if_absent, iter_storm_chunks, load_storm_csv
from .models import HEALTH_METRICS, ECONOMIC_METRICS
from .normalize import normalize, normalize_all
from .report import (
    DatasetCitation, ReportConfig, METRIC_LABELS,
    build_report, generate_docx_report, render_table, write_charts,
)

logger = logging.getLogger(__name__)


def _parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="stormrank", description="Rank storm event types by health and economic impact.")
    ap.add_argument("--csv", default=DEFAULT_PATH, help=f"Path to the storm data CSV (default: {DEFAULT_PATH})")
    ap.add_argument("--download", action="store_true", help="Download the dataset if it is missing")
    ap.add_argument("--top", type=int, default=10, help="Rows per ranked table (default: 10)")
    ap.add_argument("--chunksize", type=int, default=0, help="Stream the CSV in chunks of this many rows")
    ap.add_argument("--charts", metavar="DIR", help="Write health.png and economic.png into DIR")
    ap.add_argument("--report", metavar="OUT.docx", help="Write a DOCX report")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    return ap


def run(args: argparse.Namespace) -> None:
    path = args.csv
    if args.download:
        path = download_if_absent(path)

    print("Loading dataset...")
    if args.chunksize > 0:
        n = 0

        def _normalized_chunks():
            nonlocal n
            for chunk in iter_storm_chunks(path, chunksize=args.chunksize):
                n += len(chunk)
                yield [normalize(r) for r in chunk]

        table = aggregate_chunks(_normalized_chunks())
    else:
        raw = load_storm_csv(path)
        n = len(raw)
        table = aggregate(normalize_all(raw))
    print(f"Loaded {n} records, {len(table)} distinct event types.")

    report = build_report(table, top_n=args.top, records_in_scope=n)
    for question, metrics in (("Population health", HEALTH_METRICS), ("Economic consequences", ECONOMIC_METRICS)):
        print()
        print(f"== {question} ==")
        for m in metrics:
            print()
            print(render_table(report.ranked[m], m, title=f"Top {args.top} by {METRIC_LABELS[m]}"))

    if args.charts:
        for question, p in write_charts(report, args.charts).items():
            print(f"{question} chart written to {p}")

    if args.report:
        cfg = ReportConfig(top_n=args.top, citation=DatasetCitation(file_name=os.path.basename(path)))
        generate_docx_report(report, args.report, config=cfg)
        print(f"Report written to {args.report}")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the stormrank CLI."""
    args = _parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        run(args)
    except Exception as e:
        logger.debug("Run failed", exc_info=True)
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
