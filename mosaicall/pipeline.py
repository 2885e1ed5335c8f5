# File: mosaicall/pipeline.py
# Location: mosaicall/mosaicall/pipeline.py

"""
Top-level orchestration.

Reads the sample list, decides per sample which chains apply, submits
them through the scheduler and finally arranges for the per-sample call
sets to be aggregated.

Pre-flight problems (configuration, panel of normals) raise before the
first submission. Everything after that is isolated per sample: a rejected
job abandons its own dependents and is reported, but other samples carry
on.
"""

import logging
import os
import subprocess
import time
from typing import Any, Dict, Iterable, List, Optional

from .aggregate import AggregationResult, aggregate_calls
from .branches import select_branches
from .config import export_config, load_config, validate_config
from .dag import StageSettings, build_chains
from .exclusion import ExclusionFilter, load_panel_of_normals
from .pipeline_core.context import FamilyReport, PipelineContext, SampleReport
from .pipeline_core.error_handling import ConfigError, SubmissionError
from .pipeline_core.runner import SubmissionEngine, submit_all
from .pipeline_core.workspace import Workspace
from .report import write_summary
from .sample_list import FamilyRecord, read_sample_list
from .scheduler import AFTER_ANY, DryRunScheduler, Failure, Scheduler, SlurmScheduler, Success
from .utils import check_external_tools

logger = logging.getLogger(__name__)

AGGREGATE_MODES = ("job", "wait", "now", "none")
AGGREGATE_STAGE = "Aggregate"


def prepare(config_file: str, output_dir: str) -> Dict[str, Any]:
    """Load and validate configuration and create run directories.

    Raises
    ------
    ConfigError
        If the configuration is missing, unreadable or incomplete
    """
    cfg = load_config(config_file)
    validate_config(cfg)
    logger.debug(f"Configuration loaded: {cfg}")

    log_dir = cfg.get("LOGDIR")
    if log_dir and not os.path.isdir(log_dir):
        os.makedirs(log_dir, exist_ok=True)
        logger.info(f"Slurm log files will be placed in this location {log_dir}")
    return cfg


def make_scheduler(cfg: Dict[str, Any], env: Dict[str, str], dry_run: bool) -> Scheduler:
    """Return the scheduler for this run; a real one needs ``sbatch`` on the PATH."""
    if dry_run:
        return DryRunScheduler()
    if not check_external_tools([str(cfg["SBATCH"])]):
        raise ConfigError(f"Slurm submission command '{cfg['SBATCH']}' not found")
    return SlurmScheduler(env=env, sbatch=str(cfg["SBATCH"]), squeue=str(cfg["SQUEUE"]))


def process_family(
    record: FamilyRecord,
    exclusion: ExclusionFilter,
    settings: StageSettings,
    engine: SubmissionEngine,
) -> FamilyReport:
    """Build and submit every chain of every sample in one family."""
    report = FamilyReport(record=record)
    logger.info(
        f"Pipeline for {record.proband_id},{record.mother_id or ''},{record.father_id or ''} "
        f"in {record.bam_dir}"
    )
    for branch in select_branches(record):
        sample = SampleReport(branch=branch, excluded=exclusion.is_excluded(branch.sample_id))
        chains = build_chains(branch, exclusion, settings)
        sample.outcomes = submit_all(engine, chains)
        for error in sample.errors:
            logger.error(f"{branch.sample_id}: {error}")
        report.samples.append(sample)
    return report


def submit_aggregation_job(
    context: PipelineContext, scheduler: Scheduler, config_file: str
) -> Optional[str]:
    """Submit aggregation as one more job that starts once every leaf job has ended.

    ``afterany`` is used rather than ``afterok``: a failed sample only
    leaves its own outputs missing, which aggregation already tolerates.
    """
    command = [
        str(context.config.get("AGGREGATE_COMMAND", "mosaicall-aggregate")),
        "-s", os.path.abspath(context.sample_list),
        "-o", os.path.abspath(str(context.workspace.output_dir)),
        "-c", os.path.abspath(config_file),
    ]
    leaf_ids = context.leaf_ids
    result = scheduler.submit(
        command,
        dependencies=leaf_ids,
        dependency_type=AFTER_ANY,
        job_name="mosaicall.aggregate",
        wrap=True,
    )
    if isinstance(result, Success):
        context.aggregation_job_id = result.job_id
        logger.info(
            f"Submitted aggregation as job {result.job_id} after {len(leaf_ids)} leaf jobs"
        )
        return result.job_id
    if isinstance(result, Failure):
        context.aggregation_error = SubmissionError(AGGREGATE_STAGE, result.reason)
        logger.error(str(context.aggregation_error))
    return None


def wait_for_jobs(
    scheduler: Scheduler,
    job_ids: Iterable[str],
    poll_interval: float = 60.0,
    max_polls: int = 1440,
) -> bool:
    """
    Poll the scheduler until none of ``job_ids`` is pending or running.

    Returns
    -------
    bool
        True once every job has left the queue, False if ``max_polls``
        was reached first or the queue could not be listed
    """
    remaining = set(job_ids)
    for attempt in range(1, max_polls + 1):
        try:
            remaining = scheduler.active_jobs(remaining)
        except (subprocess.CalledProcessError, OSError) as e:
            logger.error(
                f"Could not query the scheduler ({e}); aggregating without waiting for "
                f"{len(remaining)} jobs"
            )
            return False
        if not remaining:
            logger.info("All submitted jobs have finished")
            return True
        logger.info(f"Poll {attempt}/{max_polls}: {len(remaining)} jobs still queued or running")
        if attempt < max_polls:
            time.sleep(poll_interval)

    logger.warning(
        f"Gave up waiting after {max_polls} polls; {len(remaining)} jobs still active: "
        f"{', '.join(sorted(remaining))}"
    )
    return False


def aggregate_context(context: PipelineContext) -> AggregationResult:
    excluded = [sample.sample_id for sample in context.samples if sample.excluded]
    return aggregate_calls(
        context.workspace, [sample.sample_id for sample in context.samples], excluded
    )


def run_pipeline(
    sample_list: str,
    output_dir: str,
    config_file: str,
    dry_run: bool = False,
    aggregate: str = "job",
    poll_interval: float = 60.0,
    max_polls: int = 1440,
    scheduler: Optional[Scheduler] = None,
) -> PipelineContext:
    """
    Run the whole orchestration for one sample list.

    Parameters
    ----------
    sample_list : str
        Sample list path
    output_dir : str
        Output directory for every sample of the run
    config_file : str
        Configuration file path
    dry_run : bool
        Record submissions without contacting the scheduler
    aggregate : str
        One of ``job``, ``wait``, ``now`` or ``none``
    poll_interval, max_polls
        Polling bounds for ``aggregate="wait"``
    scheduler : Scheduler, optional
        Scheduler to use instead of the one derived from configuration

    Returns
    -------
    PipelineContext
        Reports for every family and sample

    Raises
    ------
    ConfigError
        On missing configuration or panel of normals, before any submission
    """
    if aggregate not in AGGREGATE_MODES:
        raise ValueError(f"Unknown aggregation mode '{aggregate}'")

    cfg = prepare(config_file, output_dir)
    env = export_config(cfg)
    exclusion = load_panel_of_normals(str(cfg["PON"]), bcftools=str(cfg["BCFTOOLS"]), env=env)
    if scheduler is None:
        scheduler = make_scheduler(cfg, env, dry_run)

    workspace = Workspace(output_dir)
    context = PipelineContext(
        config=cfg, workspace=workspace, sample_list=sample_list, dry_run=dry_run
    )
    records, context.malformed = read_sample_list(sample_list)

    engine = SubmissionEngine(scheduler)
    settings = StageSettings.from_config(cfg, os.path.abspath(output_dir))

    for record in records:
        with workspace.proband_log(record.proband_id):
            context.families.append(process_family(record, exclusion, settings, engine))

    logger.info(
        f"Submitted {len(context.submitted_ids)} jobs for {len(context.samples)} samples "
        f"in {len(context.families)} families"
    )

    if aggregate == "job":
        submit_aggregation_job(context, scheduler, config_file)
    elif aggregate == "wait":
        wait_for_jobs(scheduler, context.submitted_ids, poll_interval, max_polls)
        aggregate_context(context)
    elif aggregate == "now":
        logger.warning(
            "Aggregating immediately; results of jobs that have not finished yet will be missing"
        )
        aggregate_context(context)

    write_summary(context)
    return context


def sample_ids_from_list(sample_list: str) -> List[str]:
    """Every present sample of every well-formed family, in list order."""
    records, _ = read_sample_list(sample_list)
    return [branch.sample_id for record in records for branch in select_branches(record)]
