"""
JobNode - one schedulable unit of a per-sample chain.

This module mirrors the stage abstraction of the pipeline core: a node has
a unique name within its chain and declares the nodes it depends on. Nodes
are immutable; the submission engine, not the node, records what the
scheduler assigned to it.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class JobNode:
    """A single batch job and its predecessors.

    Attributes
    ----------
    stage_name : str
        Unique name of the stage within its chain
    command : tuple of str
        Script path followed by its arguments
    depends_on : tuple of JobNode
        Nodes that must finish successfully before this one may start
    array_size : int, optional
        Number of scatter tasks for array jobs; None for plain jobs
    """

    stage_name: str
    command: Tuple[str, ...]
    depends_on: Tuple["JobNode", ...] = field(default_factory=tuple)
    array_size: Optional[int] = None

    @property
    def dependencies(self) -> List[str]:
        return [node.stage_name for node in self.depends_on]

    def __repr__(self) -> str:
        deps = f", depends_on={self.dependencies}" if self.depends_on else ""
        array = f", array_size={self.array_size}" if self.array_size else ""
        return f"JobNode(stage_name='{self.stage_name}'{deps}{array})"


@dataclass(frozen=True)
class Chain:
    """An independent group of nodes submitted for one sample."""

    name: str
    sample_id: str
    nodes: Tuple[JobNode, ...]

    def __iter__(self) -> Iterator[JobNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def stage_names(self) -> List[str]:
        return [node.stage_name for node in self.nodes]

    @classmethod
    def of(cls, name: str, sample_id: str, nodes: Sequence[JobNode]) -> "Chain":
        return cls(name=name, sample_id=sample_id, nodes=tuple(nodes))


AFTER_OK = "afterok"
AFTER_ANY = "afterany"


@dataclass(frozen=True)
class Success:
    """The scheduler accepted a job and assigned it ``job_id``."""

    job_id: str


@dataclass(frozen=True)
class Failure:
    """The scheduler refused a job."""

    reason: str


SubmissionResult = Union[Success, Failure]
