"""Shared pytest fixtures for all test modules."""

from pathlib import Path
from typing import Iterable, List, Sequence

import pytest

from mosaicall.scheduler import DryRunScheduler

HEADER = "BAMdir\tProbandID\tGender\tMother\tFather"


def write_sample_list(path: Path, rows: Iterable[Sequence[str]], header: str = HEADER) -> Path:
    """Write a tab-delimited sample list with a header row."""
    lines = [header] + ["\t".join(row) for row in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def script_dir(tmp_path) -> Path:
    path = tmp_path / "scripts"
    path.mkdir()
    return path


@pytest.fixture
def pon_file(tmp_path) -> Path:
    """Plain-text panel of normals; empty unless a test writes to it."""
    path = tmp_path / "pon_samples.txt"
    path.write_text("")
    return path


@pytest.fixture
def config_file(tmp_path, script_dir, pon_file) -> Path:
    path = tmp_path / "Mosaic-All.config"
    path.write_text(
        "# Mosaic-All configuration\n"
        f"SCRIPTDIR={script_dir}\n"
        f'PON="{pon_file}"\n'
        "CONFIG_for_GATKHC=GATK.HC.config\n"
    )
    return path


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path / "Outputs"


@pytest.fixture
def trio_list(tmp_path) -> Path:
    return write_sample_list(tmp_path / "trio.list", [("/bam/fam1", "P1", "M", "MO1", "FA1")])


@pytest.fixture
def scheduler() -> DryRunScheduler:
    return DryRunScheduler()


def job_names(scheduler: DryRunScheduler) -> List[str]:
    return [job.job_name for job in scheduler.submitted]
