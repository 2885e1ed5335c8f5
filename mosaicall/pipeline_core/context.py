"""
PipelineContext - State of one orchestration run.

Holds configuration, the workspace and a report per family and per sample,
so that per-sample failures are recorded and reported instead of aborting
the whole run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .error_handling import MalformedRecord, SubmissionError
from .runner import ChainOutcome
from .workspace import Workspace

if TYPE_CHECKING:
    from ..branches import SampleBranch
    from ..sample_list import FamilyRecord

logger = logging.getLogger(__name__)


@dataclass
class SampleReport:
    """Decisions and submissions for one sample of a family."""

    branch: "SampleBranch"
    excluded: bool = False
    outcomes: List[ChainOutcome] = field(default_factory=list)

    @property
    def sample_id(self) -> str:
        return self.branch.sample_id

    @property
    def job_ids(self) -> Dict[str, str]:
        ids: Dict[str, str] = {}
        for outcome in self.outcomes:
            ids.update(outcome.job_ids)
        return ids

    @property
    def errors(self) -> List[SubmissionError]:
        return [error for outcome in self.outcomes for error in outcome.errors.values()]

    @property
    def abandoned(self) -> List[str]:
        return [stage for outcome in self.outcomes for stage in outcome.abandoned]

    @property
    def leaf_ids(self) -> List[str]:
        return [job_id for outcome in self.outcomes for job_id in outcome.leaf_ids]

    @property
    def chain_names(self) -> List[str]:
        return [outcome.chain.name for outcome in self.outcomes]


@dataclass
class FamilyReport:
    record: "FamilyRecord"
    samples: List[SampleReport] = field(default_factory=list)


@dataclass
class PipelineContext:
    """Container for the state of one run.

    Attributes
    ----------
    config : Dict[str, Any]
        Loaded configuration
    workspace : Workspace
        Output directory layout
    sample_list : str
        Path of the sample list being processed
    start_time : datetime
        Run start time
    families : List[FamilyReport]
        One report per parsed family, in sample list order
    malformed : List[MalformedRecord]
        Sample list rows that could not be parsed
    aggregation_job_id : str, optional
        Scheduler id of the terminal aggregation job, when one was submitted
    aggregation_error : SubmissionError, optional
        Rejection of the terminal aggregation job
    """

    config: Dict[str, Any]
    workspace: Workspace
    sample_list: str
    start_time: datetime = field(default_factory=datetime.now)
    dry_run: bool = False
    families: List[FamilyReport] = field(default_factory=list)
    malformed: List[MalformedRecord] = field(default_factory=list)
    aggregation_job_id: Optional[str] = None
    aggregation_error: Optional[SubmissionError] = None

    @property
    def samples(self) -> List[SampleReport]:
        return [sample for family in self.families for sample in family.samples]

    @property
    def leaf_ids(self) -> List[str]:
        return [job_id for sample in self.samples for job_id in sample.leaf_ids]

    @property
    def submitted_ids(self) -> List[str]:
        return [job_id for sample in self.samples for job_id in sample.job_ids.values()]

    @property
    def failed_samples(self) -> List[SampleReport]:
        return [sample for sample in self.samples if sample.errors]

    @property
    def has_submission_errors(self) -> bool:
        return bool(self.failed_samples) or self.aggregation_error is not None
