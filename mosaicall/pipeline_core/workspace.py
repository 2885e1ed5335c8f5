"""
Workspace - Centralized file path management for an orchestration run.

All per-sample results, consolidated call sets and per-proband logs live
in one output directory. The file names here are the ones the cluster
scripts write, so they must not change independently of those scripts.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, NamedTuple, Union

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class CallSet(NamedTuple):
    """One tool's per-sample result file and the run-wide file it feeds."""

    label: str
    result_suffix: str
    consolidated_name: str


CALL_SETS: Dict[str, CallSet] = {
    "mutect2": CallSet("Mut", ".mutect2.singlemode.PASS.aaf.vcf", "Mutect2.calls"),
    "mosaicforecast": CallSet(
        "MF", ".mosaicforecast.genotype.predictions.refined.bed", "MosaicForecast.calls"
    ),
    "mosaichunter": CallSet("MH", ".final.passed.tsv", "MosaicHunter.calls.txt"),
}


class Workspace:
    """Manages all file paths for a run.

    Attributes
    ----------
    output_dir : Path
        Directory shared by every sample of the run
    """

    MANIFEST_NAME = ".mosaicall_aggregated.json"
    SUMMARY_NAME = "mosaicall_submission_summary.txt"

    def __init__(self, output_dir: Union[str, Path], create: bool = True):
        self.output_dir = Path(output_dir)
        if create and not self.output_dir.is_dir():
            self.output_dir.mkdir(parents=True, exist_ok=True)
            logger.info(
                "Output directory created, you'll find all of the outputs and log files in "
                f"here: {self.output_dir}"
            )

    def result_path(self, sample_id: str, call_set: str) -> Path:
        return self.output_dir / f"{sample_id}{CALL_SETS[call_set].result_suffix}"

    def consolidated_path(self, call_set: str) -> Path:
        return self.output_dir / CALL_SETS[call_set].consolidated_name

    def proband_log_path(self, proband_id: str) -> Path:
        return self.output_dir / f"{proband_id}.pipeline.log"

    @property
    def manifest_path(self) -> Path:
        return self.output_dir / self.MANIFEST_NAME

    @property
    def summary_path(self) -> Path:
        return self.output_dir / self.SUMMARY_NAME

    @contextmanager
    def proband_log(self, proband_id: str, level: int = logging.INFO) -> Iterator[Path]:
        """Append everything logged while the block runs to the proband's log.

        The file gets every record at ``level`` or above even when the
        package logger is set to a quieter level for the console; the
        logger level is lowered for the duration of the block.

        Parameters
        ----------
        proband_id : str
            Proband of the family being processed
        level : int
            Minimum level written to the file

        Yields
        ------
        Path
            The log file path
        """
        path = self.proband_log_path(proband_id)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        package_logger = logging.getLogger("mosaicall")
        previous_level = package_logger.level
        if package_logger.getEffectiveLevel() > level:
            package_logger.setLevel(level)
        package_logger.addHandler(handler)
        try:
            yield path
        finally:
            package_logger.removeHandler(handler)
            package_logger.setLevel(previous_level)
            handler.close()

    def __repr__(self) -> str:
        return f"Workspace(output_dir={self.output_dir})"
