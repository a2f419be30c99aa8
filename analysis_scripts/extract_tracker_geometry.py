#!/usr/bin/env python3
"""
Run the geometry extraction on the reference tracker layout and report what
was produced.

Usage:
    python analysis_scripts/extract_tracker_geometry.py
    python analysis_scripts/extract_tracker_geometry.py --standalone --report extraction.json --plot tracker_rz
"""

import argparse
import logging

from tkextract import analyse, get_extractor_config, setup_logging
from tkextract.errors import ExtractionError
from tkextract.geometry_parsing.plotting import plot_rz_envelopes
from tkextract.testing import create_inactive_surfaces, create_material_table, create_simple_tracker
from tkextract.utils.report_helper import print_summary, save_extraction_report, summarize_bundle


def main():
    parser = argparse.ArgumentParser(description="Extract tracker geometry records from the reference layout")
    parser.add_argument("--standalone", action="store_true",
                        help="Write records for a standalone tracker description (no containers)")
    parser.add_argument("--epsilon", type=float, default=None, help="Clearance around enclosing volumes [mm]")
    parser.add_argument("--report", default=None, help="Save a JSON summary to this path")
    parser.add_argument("--plot", default=None, help="Save an r-z plot as <prefix>.png/.pdf")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    parser.add_argument("--debug", action="store_true", help="Log the module decompositions")
    args = parser.parse_args()

    logger = setup_logging(logging.DEBUG if args.debug else logging.INFO, args.log_file)

    overrides = {} if args.epsilon is None else {"epsilon": args.epsilon}
    config = get_extractor_config(standalone=args.standalone, **overrides)
    logger.info("Using %r", config)

    try:
        bundle = analyse(create_material_table(), create_simple_tracker(), create_inactive_surfaces(), config)
    except ExtractionError as exc:
        logger.error("Extraction failed: %s", exc)
        raise SystemExit(1) from exc

    summary = summarize_bundle(bundle, config)
    print_summary(summary)

    if args.report:
        save_extraction_report(args.report, summary, assumptions=[
            "reference layout from tkextract.testing.simple_layout",
        ])
        print(f"\nReport saved to {args.report}")
    if args.plot:
        plot_rz_envelopes(bundle, config, output_prefix=args.plot)
        print(f"r-z plot saved to {args.plot}.png")


if __name__ == "__main__":
    main()
