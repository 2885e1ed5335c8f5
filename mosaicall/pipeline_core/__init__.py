"""
Orchestration infrastructure for mosaicall.

This package provides the core abstractions for chain submission:
- JobNode / Chain: schedulable units and their dependencies
- SubmissionEngine: submits chains in dependency order
- PipelineContext: per-run, per-family and per-sample state
- Workspace: output directory layout and per-proband logs
"""

from .context import FamilyReport, PipelineContext, SampleReport
from .job import Chain, JobNode
from .runner import ChainOutcome, SubmissionEngine
from .workspace import Workspace

__all__ = [
    "Chain",
    "ChainOutcome",
    "FamilyReport",
    "JobNode",
    "PipelineContext",
    "SampleReport",
    "SubmissionEngine",
    "Workspace",
]
