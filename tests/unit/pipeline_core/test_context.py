"""Unit tests for run, family and sample reports."""

from mosaicall.branches import select_branches
from mosaicall.pipeline_core.context import FamilyReport, PipelineContext, SampleReport
from mosaicall.pipeline_core.error_handling import SubmissionError
from mosaicall.pipeline_core.job import Chain, JobNode
from mosaicall.pipeline_core.runner import ChainOutcome
from mosaicall.pipeline_core.workspace import Workspace
from mosaicall.sample_list import FamilyRecord, Gender


def outcome(sample_id, job_ids, errors=(), abandoned=()):
    first = JobNode("first", ("first.sh",))
    second = JobNode("second", ("second.sh",), depends_on=(first,))
    return ChainOutcome(
        chain=Chain.of("chain", sample_id, [first, second]),
        job_ids=dict(job_ids),
        errors={stage: SubmissionError(stage, "no", sample_id) for stage in errors},
        abandoned=list(abandoned),
    )


def test_reports_roll_up(tmp_path):
    record = FamilyRecord("/bam", "P1", Gender.FEMALE, None, "FA1")
    proband, father = select_branches(record)
    good = SampleReport(branch=proband, outcomes=[outcome("P1", {"first": "1", "second": "2"})])
    bad = SampleReport(
        branch=father,
        excluded=True,
        outcomes=[outcome("FA1", {}, errors=["first"], abandoned=["second"])],
    )
    context = PipelineContext(
        config={}, workspace=Workspace(tmp_path), sample_list="s.list",
        families=[FamilyReport(record=record, samples=[good, bad])],
    )

    assert good.job_ids == {"first": "1", "second": "2"}
    assert good.leaf_ids == ["2"]
    assert bad.abandoned == ["second"]
    assert [s.sample_id for s in context.samples] == ["P1", "FA1"]
    assert context.submitted_ids == ["1", "2"]
    assert context.leaf_ids == ["2"]
    assert context.failed_samples == [bad]
    assert context.has_submission_errors


def test_clean_run_has_no_submission_errors(tmp_path):
    context = PipelineContext(config={}, workspace=Workspace(tmp_path), sample_list="s.list")

    assert not context.has_submission_errors
    assert context.samples == []
