# File: mosaicall/scheduler.py
# Location: mosaicall/mosaicall/scheduler.py

"""
Batch scheduler boundary.

Every submission returns a SubmissionResult, either Success carrying the
scheduler's job id or Failure carrying the reason, so callers branch on a
type instead of scraping the last word of sbatch's output.
"""

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .pipeline_core.error_handling import retry_on_failure
from .pipeline_core.job import AFTER_ANY, AFTER_OK, Failure, SubmissionResult, Success
from .utils import run_command

logger = logging.getLogger(__name__)

__all__ = [
    "AFTER_ANY",
    "AFTER_OK",
    "DryRunScheduler",
    "Failure",
    "Scheduler",
    "SlurmScheduler",
    "SubmissionResult",
    "Success",
]


class Scheduler:
    """Interface of a batch scheduler that understands job dependencies."""

    def submit(
        self,
        command: Sequence[str],
        dependencies: Sequence[str] = (),
        array_size: Optional[int] = None,
        dependency_type: str = AFTER_OK,
        job_name: Optional[str] = None,
        wrap: bool = False,
    ) -> SubmissionResult:
        """Register one job.

        Parameters
        ----------
        command : sequence of str
            Script followed by its arguments, or a shell command line when
            ``wrap`` is set
        dependencies : sequence of str
            Job ids that must reach the ``dependency_type`` condition first
        array_size : int, optional
            Submit as an array of this many tasks, indexed from 0
        dependency_type : str
            ``afterok`` (start only if all succeeded) or ``afterany``
        job_name : str, optional
            Name shown in the queue
        wrap : bool
            Submit ``command`` as an inline shell command
        """
        raise NotImplementedError

    def active_jobs(self, job_ids: Iterable[str]) -> Set[str]:
        """Return the subset of ``job_ids`` that is still pending or running."""
        raise NotImplementedError


def parse_parsable_output(stdout: str) -> Optional[str]:
    """
    Extract the job id from ``sbatch --parsable`` output.

    The output is ``jobid`` or ``jobid;cluster``; anything else yields None.
    """
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    if not lines:
        return None
    job_id = lines[-1].split(";", 1)[0].strip()
    return job_id if job_id.isdigit() else None


def _base_job_id(task_id: str) -> str:
    # Array tasks are listed as 1234_7 or 1234_[8-23].
    return task_id.split("_", 1)[0]


class SlurmScheduler(Scheduler):
    """Submits jobs with ``sbatch`` and queries them with ``squeue``."""

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        sbatch: str = "sbatch",
        squeue: str = "squeue",
    ):
        self.env = dict(env) if env is not None else None
        self.sbatch = sbatch
        self.squeue = squeue

    def build_command(
        self,
        command: Sequence[str],
        dependencies: Sequence[str] = (),
        array_size: Optional[int] = None,
        dependency_type: str = AFTER_OK,
        job_name: Optional[str] = None,
        wrap: bool = False,
    ) -> List[str]:
        cmd = [self.sbatch, "--parsable", "--export=ALL"]
        if job_name:
            cmd.append(f"--job-name={job_name}")
        if array_size:
            cmd.append(f"--array=0-{array_size - 1}")
        if dependencies:
            cmd.append(f"--dependency={dependency_type}:" + ":".join(dependencies))
        if wrap:
            cmd.append("--wrap=" + shlex.join(command))
        else:
            cmd.extend(command)
        return cmd

    def submit(
        self,
        command: Sequence[str],
        dependencies: Sequence[str] = (),
        array_size: Optional[int] = None,
        dependency_type: str = AFTER_OK,
        job_name: Optional[str] = None,
        wrap: bool = False,
    ) -> SubmissionResult:
        cmd = self.build_command(command, dependencies, array_size, dependency_type, job_name, wrap)
        try:
            stdout = run_command(cmd, env=self.env)
        except FileNotFoundError as e:
            return Failure(f"scheduler executable not found: {e}")
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip() or f"exit code {e.returncode}"
            return Failure(f"sbatch rejected the job: {detail}")

        job_id = parse_parsable_output(stdout)
        if job_id is None:
            return Failure(f"could not read a job id from sbatch output: {stdout.strip()!r}")
        return Success(job_id)

    @retry_on_failure(
        max_attempts=3, delay=5.0, exceptions=(subprocess.CalledProcessError, FileNotFoundError)
    )
    def active_jobs(self, job_ids: Iterable[str]) -> Set[str]:
        wanted = {str(j) for j in job_ids}
        if not wanted:
            return set()
        # squeue -j errors out on ids already purged from the queue, so list
        # the whole queue (for this user where known) and intersect.
        cmd = [self.squeue, "-h", "-o", "%i"]
        user = (self.env if self.env is not None else os.environ).get("USER")
        if user:
            cmd.extend(["-u", user])
        stdout = run_command(cmd, env=self.env)
        listed = {_base_job_id(line.strip()) for line in stdout.splitlines() if line.strip()}
        return wanted & listed


@dataclass
class SubmittedJob:
    job_id: str
    command: List[str]
    dependencies: List[str]
    array_size: Optional[int]
    dependency_type: str
    job_name: Optional[str]
    wrap: bool = False


@dataclass
class DryRunScheduler(Scheduler):
    """Records submissions instead of sending them anywhere.

    Ids are sequential integers starting at ``first_id``. Job names listed
    in ``reject`` come back as Failure, which is how tests exercise the
    dependent-abandonment path.
    """

    first_id: int = 1000
    reject: Set[str] = field(default_factory=set)
    submitted: List[SubmittedJob] = field(default_factory=list)
    running: Set[str] = field(default_factory=set)

    def submit(
        self,
        command: Sequence[str],
        dependencies: Sequence[str] = (),
        array_size: Optional[int] = None,
        dependency_type: str = AFTER_OK,
        job_name: Optional[str] = None,
        wrap: bool = False,
    ) -> SubmissionResult:
        if job_name in self.reject:
            logger.debug(f"[dry-run] rejecting {job_name}")
            return Failure(f"rejected {job_name}")
        job_id = str(self.first_id + len(self.submitted))
        self.submitted.append(
            SubmittedJob(
                job_id=job_id,
                command=list(command),
                dependencies=list(dependencies),
                array_size=array_size,
                dependency_type=dependency_type,
                job_name=job_name,
                wrap=wrap,
            )
        )
        logger.debug(f"[dry-run] {job_id}: {' '.join(command)}")
        return Success(job_id)

    def active_jobs(self, job_ids: Iterable[str]) -> Set[str]:
        return {str(j) for j in job_ids} & self.running

    def by_name(self) -> Dict[Optional[str], SubmittedJob]:
        return {job.job_name: job for job in self.submitted}
