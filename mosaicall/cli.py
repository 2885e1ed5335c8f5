"""Command-line interface for mosaicall."""

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .aggregate import aggregate_calls
from .config import load_config, validate_config
from .exclusion import load_panel_of_normals
from .pipeline import AGGREGATE_MODES, run_pipeline, sample_ids_from_list
from .pipeline_core.error_handling import ConfigError
from .pipeline_core.workspace import LOG_DATE_FORMAT, LOG_FORMAT, Workspace
from .validators import validate_output_dir, validate_sample_list
from .version import __version__

logger = logging.getLogger("mosaicall")

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_SUBMISSION_FAILURES = 3

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

DESCRIPTION = """\
Phase 1 of the mosaic variant finding pipeline. For every family in the
sample list this submits, as dependent Slurm jobs:
  1. MosaicHunter: proband (trio mode when both parents are listed) and parents
  2. Mutect2 and FilterMutect2: every sample not in the panel of normals
  3. MosaicForecast on the Mutect2 call set
  4. GATK HaplotypeCaller germline calling (scatter/gather)
and then aggregates the per-sample call sets.
"""


class UsageArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that prints usage to stdout and exits 1 on misuse."""

    def error(self, message: str):
        self.print_help(sys.stdout)
        sys.stdout.write(f"\n## ERROR: {message}\n")
        sys.exit(EXIT_USAGE)


def add_logging_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        choices=list(LOG_LEVELS),
        default="INFO",
        help="Set the logging level",
    )
    parser.add_argument(
        "--log-file", help="Path to a file to write logs to (in addition to stderr)."
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser for the mosaicall CLI."""
    parser = UsageArgumentParser(
        prog="mosaicall",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"mosaicall {__version__}",
        help="Show the current version and exit",
    )

    required = parser.add_argument_group("Required")
    required.add_argument(
        "-s",
        "--sample-list",
        required=True,
        help="Sample list: one header row, then tab-delimited columns "
        "BAM directory, proband ID, gender, mother ID, father ID",
    )
    required.add_argument(
        "-o",
        "--output-dir",
        required=True,
        help="Output directory (all variant call outputs in a single directory)",
    )
    required.add_argument(
        "-c",
        "--config",
        required=True,
        help="Configuration file (KEY=value lines or JSON) defining at least "
        "PON, CONFIG_for_GATKHC and SCRIPTDIR",
    )

    run_group = parser.add_argument_group("Run Options")
    run_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Build and log every job without submitting anything",
    )
    run_group.add_argument(
        "--aggregate",
        choices=AGGREGATE_MODES,
        default="job",
        help="How to aggregate call sets: 'job' submits aggregation as a job that runs "
        "after all other jobs end (default), 'wait' polls the scheduler and aggregates "
        "locally, 'now' aggregates immediately, 'none' skips aggregation",
    )
    run_group.add_argument(
        "--poll-interval",
        type=float,
        default=60.0,
        help="Seconds between scheduler polls with --aggregate wait (default: 60)",
    )
    run_group.add_argument(
        "--max-polls",
        type=int,
        default=1440,
        help="Maximum number of scheduler polls with --aggregate wait (default: 1440)",
    )

    general_group = parser.add_argument_group("General Options")
    add_logging_args(general_group)
    return parser


def create_aggregate_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the stand-alone aggregation command."""
    parser = UsageArgumentParser(
        prog="mosaicall-aggregate",
        description="Append per-sample Mutect2, MosaicForecast and MosaicHunter results "
        "to the consolidated call set files of an output directory.",
    )
    parser.add_argument("-s", "--sample-list", required=True, help="Sample list of the run")
    parser.add_argument("-o", "--output-dir", required=True, help="Output directory of the run")
    parser.add_argument(
        "-c",
        "--config",
        help="Configuration of the run; when given, panel-of-normals samples are not "
        "expected to have Mutect2 or MosaicForecast results",
    )
    add_logging_args(parser)
    return parser


def configure_logging(log_level: str, log_file: Optional[str]) -> None:
    # --log-level filters the console and --log-file; per-proband logs keep INFO.
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(LOG_LEVELS[log_level])
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[console],
    )
    logger.setLevel(min(LOG_LEVELS[log_level], logging.INFO))

    if log_file:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(log_file)
        fh.setLevel(LOG_LEVELS[log_level])
        fh.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(fh)
        logger.debug(f"Logging to file enabled: {log_file}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run main entry point for the mosaicall CLI.

    Steps:
        1. Parse arguments; usage errors exit 1 before anything else.
        2. Configure logging.
        3. Validate the sample list and output location.
        4. Load configuration and the panel of normals (ConfigError exits 1).
        5. Submit every family's chains and arrange aggregation.

    Returns 0 when every job was accepted by the scheduler and 3 when at
    least one sample had a rejected submission.
    """
    args = create_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    start_time = datetime.datetime.now()
    logger.info(f"Run started at {start_time.isoformat()}")
    logger.debug(f"CLI arguments: {args}")

    validate_sample_list(args.sample_list, logger)
    validate_output_dir(args.output_dir, logger)

    try:
        context = run_pipeline(
            args.sample_list,
            args.output_dir,
            args.config,
            dry_run=args.dry_run,
            aggregate=args.aggregate,
            poll_interval=args.poll_interval,
            max_polls=args.max_polls,
        )
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_USAGE

    for sample in context.failed_samples:
        logger.error(
            f"{sample.sample_id}: {len(sample.errors)} submission(s) rejected, "
            f"not submitted: {', '.join(sample.abandoned) or 'none'}"
        )
    for bad in context.malformed:
        logger.error(f"Skipped sample list row: {bad}")

    if context.has_submission_errors:
        return EXIT_SUBMISSION_FAILURES
    return EXIT_OK


def aggregate_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for ``mosaicall-aggregate``."""
    args = create_aggregate_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    validate_sample_list(args.sample_list, logger)

    excluded = set()
    if args.config:
        try:
            cfg = load_config(args.config)
            validate_config(cfg)
            exclusion = load_panel_of_normals(str(cfg["PON"]), bcftools=str(cfg["BCFTOOLS"]))
        except ConfigError as e:
            logger.error(f"Configuration error: {e}")
            return EXIT_USAGE
        excluded = set(exclusion.sample_ids)

    workspace = Workspace(args.output_dir, create=False)
    if not workspace.output_dir.is_dir():
        logger.error(f"Output directory not found: {workspace.output_dir}")
        return EXIT_USAGE

    aggregate_calls(workspace, sample_ids_from_list(args.sample_list), excluded)
    return EXIT_OK


def run() -> None:
    sys.exit(main())


def run_aggregate() -> None:
    sys.exit(aggregate_main())


if __name__ == "__main__":
    run()
