"""Rendering of the per-run submission summary."""

import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from .pipeline_core.context import PipelineContext
from .version import __version__

logger = logging.getLogger(__name__)


def render_summary(context: PipelineContext) -> str:
    templates_dir = Path(__file__).parent / "templates"
    if not templates_dir.exists():
        raise FileNotFoundError(f"Templates directory not found at: {templates_dir}")

    env = Environment(
        loader=FileSystemLoader(str(templates_dir)), trim_blocks=True, lstrip_blocks=True
    )
    template = env.get_template("submission_summary.txt")
    return template.render(
        version=__version__,
        start_time=context.start_time.isoformat(timespec="seconds"),
        sample_list=context.sample_list,
        output_dir=str(context.workspace.output_dir),
        dry_run=context.dry_run,
        families=context.families,
        malformed=[str(error) for error in context.malformed],
        sample_count=len(context.samples),
        job_count=len(context.submitted_ids),
        failed_count=len(context.failed_samples),
        aggregation_job_id=context.aggregation_job_id,
        aggregation_error=context.aggregation_error,
        leaf_count=len(context.leaf_ids),
    )


def write_summary(context: PipelineContext) -> Path:
    """Write the submission summary into the output directory."""
    output_path = context.workspace.summary_path
    with open(output_path, "w", encoding="utf-8") as out_f:
        out_f.write(render_summary(context))
    logger.info(f"Submission summary written to {output_path}")
    return output_path
