"""CLI entry point for merging test result reports."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from report_merger.merger import ReportMerger, ReportSource
from report_merger.models.config import MergeConfig
from report_merger.models.result import ParseResult
from report_merger.parsers.mobly import MoblyReportInfo

STATUS_SYMBOLS = {
    True: "✓",
    False: "✗",
}


def log_parse_summary(
    log: logging.Logger, parse_results: Sequence[ParseResult[ReportSource]]
) -> None:
    """Log one line per input with its parse outcome."""
    log.info("=" * 80)
    log.info("Parsed Reports:")
    log.info("=" * 80)

    for parse_result in parse_results:
        symbol = STATUS_SYMBOLS[parse_result.ok]
        if parse_result.report is not None:
            log.info(
                "%s #%d %s: %d module(s)",
                symbol,
                parse_result.index,
                parse_result.source,
                len(parse_result.report.modules),
            )
        else:
            log.info("%s #%d %s", symbol, parse_result.index, parse_result.source)
            log.info("  Error: %s", parse_result.error)


def parse_mobly_inputs(values: Sequence[Sequence[str]]) -> Sequence[MoblyReportInfo]:
    """Build Mobly report bundles from ``--mobly`` argument groups."""
    return [
        MoblyReportInfo(
            tag=tag,
            summary_file=Path(summary_file),
            result_attributes_file=Path(result_attributes_file),
            build_fingerprint=build_fingerprint,
            build_attributes_file=Path(build_attributes_file),
        )
        for (
            tag,
            summary_file,
            result_attributes_file,
            build_fingerprint,
            build_attributes_file,
        ) in values
    ]


async def run(inputs: Sequence[ReportSource], config: MergeConfig) -> int:
    """Merge the given inputs, print the merged report and return exit code."""
    log = logging.getLogger("report_merger")

    merger = ReportMerger(config=config)
    parse_results = await merger.parse_reports(inputs)
    log_parse_summary(log, parse_results)

    merged = merger.merge_parsed(parse_results)
    if merged is None:
        log.error("No report could be merged")
        return 1

    print(merged.model_dump_json(indent=2))
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Merge XML and Mobly test result reports into one report"
    )
    parser.add_argument(
        "--xml",
        type=Path,
        action="append",
        default=[],
        help="Path to a test_result.xml report (repeatable)",
    )
    parser.add_argument(
        "--mobly",
        nargs=5,
        action="append",
        default=[],
        metavar=("TAG", "SUMMARY", "RESULT_ATTRS", "FINGERPRINT", "BUILD_ATTRS"),
        help="Mobly run: tag, summary file, attribute files and fingerprint "
        "(repeatable)",
    )
    parser.add_argument(
        "--config",
        default="{}",
        help="JSON configuration for the merger",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = MergeConfig.model_validate_json(args.config)
    except ValidationError as e:
        parser.error(f"Invalid --config: {e}")

    inputs: list[ReportSource] = [*args.xml, *parse_mobly_inputs(args.mobly)]
    sys.exit(asyncio.run(run(inputs, config)))


if __name__ == "__main__":  # pragma: no cover
    main()
