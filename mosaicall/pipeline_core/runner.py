"""
SubmissionEngine - Submits job chains in dependency order.

This module provides the SubmissionEngine class that hands each node of a
chain to the batch scheduler, turning the node's predecessors into
scheduler-level "start only after these succeeded" conditions. The engine
never waits for jobs to run; ordering is enforced by the scheduler.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Set

from .error_handling import SubmissionError
from .job import AFTER_OK, Chain, Failure, JobNode, Success

if TYPE_CHECKING:
    from ..scheduler import Scheduler

logger = logging.getLogger(__name__)


@dataclass
class ChainOutcome:
    """What happened to every node of one chain.

    Attributes
    ----------
    chain : Chain
        The chain that was submitted
    job_ids : Dict[str, str]
        Stage name to scheduler job id, for nodes that were accepted
    errors : Dict[str, SubmissionError]
        Stage name to the rejection, for nodes the scheduler refused
    abandoned : List[str]
        Stages never submitted because a predecessor was not accepted
    """

    chain: Chain
    job_ids: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, SubmissionError] = field(default_factory=dict)
    abandoned: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and not self.abandoned

    @property
    def leaf_ids(self) -> List[str]:
        """Ids of accepted nodes that no accepted node depends on."""
        has_submitted_dependent: Set[str] = set()
        for node in self.chain:
            if node.stage_name in self.job_ids:
                has_submitted_dependent.update(node.dependencies)
        return [
            self.job_ids[node.stage_name]
            for node in self.chain
            if node.stage_name in self.job_ids and node.stage_name not in has_submitted_dependent
        ]


class SubmissionEngine:
    """Submits chains to a scheduler, one node at a time, in topological order.

    A node is submitted only once every predecessor has a job id. If the
    scheduler rejects a node, the node is recorded as failed and every node
    that depends on it, directly or transitively, is abandoned without being
    submitted.
    """

    def __init__(self, scheduler: "Scheduler", dependency_type: str = AFTER_OK):
        self.scheduler = scheduler
        self.dependency_type = dependency_type

    def submit(self, chain: Chain) -> ChainOutcome:
        """Submit every node of ``chain``.

        Parameters
        ----------
        chain : Chain
            Nodes to submit

        Returns
        -------
        ChainOutcome
            Job ids, rejections and abandoned stages for the chain

        Raises
        ------
        ValueError
            If the chain has duplicate stage names, references a node outside
            the chain, or contains a dependency cycle
        """
        outcome = ChainOutcome(chain=chain)
        for node in self.topological_order(chain):
            blocked = [dep for dep in node.dependencies if dep not in outcome.job_ids]
            if blocked:
                logger.warning(
                    f"{chain.sample_id}: not submitting {node.stage_name}, "
                    f"predecessor(s) {', '.join(blocked)} were not submitted"
                )
                outcome.abandoned.append(node.stage_name)
                continue

            dependency_ids = [outcome.job_ids[dep] for dep in node.dependencies]
            result = self.scheduler.submit(
                node.command,
                dependencies=dependency_ids,
                array_size=node.array_size,
                dependency_type=self.dependency_type,
                job_name=f"{chain.sample_id}.{node.stage_name}",
            )
            if isinstance(result, Success):
                outcome.job_ids[node.stage_name] = result.job_id
                after = ""
                if dependency_ids:
                    after = f" after {self.dependency_type}:{':'.join(dependency_ids)}"
                logger.info(
                    f"{chain.sample_id}: submitted {node.stage_name} as job {result.job_id}{after}"
                )
            elif isinstance(result, Failure):
                error = SubmissionError(node.stage_name, result.reason, sample_id=chain.sample_id)
                outcome.errors[node.stage_name] = error
                logger.error(str(error))
            else:
                raise TypeError(f"Unexpected submission result: {result!r}")

        return outcome

    @staticmethod
    def topological_order(chain: Chain) -> List[JobNode]:
        """Order the chain's nodes so that predecessors come first.

        Nodes with no ordering constraint between them keep their order of
        appearance in the chain.
        """
        graph: Dict[str, JobNode] = {}
        for node in chain:
            if node.stage_name in graph:
                raise ValueError(
                    f"Duplicate stage name '{node.stage_name}' in chain '{chain.name}'"
                )
            graph[node.stage_name] = node

        dependents = defaultdict(list)
        in_degree: Dict[str, int] = {}
        for node in chain:
            for dep in node.dependencies:
                if dep not in graph:
                    raise ValueError(
                        f"Stage '{node.stage_name}' depends on '{dep}', which is not part of "
                        f"chain '{chain.name}'"
                    )
                dependents[dep].append(node.stage_name)
            in_degree[node.stage_name] = len(node.dependencies)

        queue = deque(name for name in graph if in_degree[name] == 0)
        ordered: List[JobNode] = []
        while queue:
            name = queue.popleft()
            ordered.append(graph[name])
            for dependent in dependents[name]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(ordered) != len(graph):
            unprocessed = set(graph) - {node.stage_name for node in ordered}
            raise ValueError(f"Circular dependency detected involving stages: {unprocessed}")

        return ordered


def submit_all(engine: SubmissionEngine, chains: List[Chain]) -> List[ChainOutcome]:
    """Submit independent chains one after another."""
    return [engine.submit(chain) for chain in chains]

