"""
Per-sample branch selection for a family.

The proband is analysed in trio mode only when both parents are known;
each parent that is present gets its own single-sample analysis.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .sample_list import FamilyRecord, Gender

logger = logging.getLogger(__name__)


class BranchKind(str, Enum):
    TRIO = "trio"
    SINGLE = "single"


class Role(str, Enum):
    PROBAND = "proband"
    MOTHER = "mother"
    FATHER = "father"


@dataclass(frozen=True)
class SampleBranch:
    """One sample of a family together with the analysis mode it gets.

    ``mother_id``/``father_id`` are only filled for trio branches, where
    MosaicHunter needs the parents' BAMs as well.
    """

    sample_id: str
    role: Role
    kind: BranchKind
    gender: Gender
    bam_dir: str
    mother_id: Optional[str] = None
    father_id: Optional[str] = None


def select_branches(record: FamilyRecord) -> List[SampleBranch]:
    """
    Enumerate the analysis branches for one family.

    Args:
        record: Parsed sample list row

    Returns:
        Branches in the order proband, mother, father. Absent parents
        produce no branch at all.
    """
    if record.is_trio:
        proband = SampleBranch(
            sample_id=record.proband_id,
            role=Role.PROBAND,
            kind=BranchKind.TRIO,
            gender=record.proband_gender,
            bam_dir=record.bam_dir,
            mother_id=record.mother_id,
            father_id=record.father_id,
        )
    else:
        proband = SampleBranch(
            sample_id=record.proband_id,
            role=Role.PROBAND,
            kind=BranchKind.SINGLE,
            gender=record.proband_gender,
            bam_dir=record.bam_dir,
        )

    branches = [proband]
    if record.mother_id is not None:
        branches.append(
            SampleBranch(
                sample_id=record.mother_id,
                role=Role.MOTHER,
                kind=BranchKind.SINGLE,
                gender=Gender.FEMALE,
                bam_dir=record.bam_dir,
            )
        )
    if record.father_id is not None:
        branches.append(
            SampleBranch(
                sample_id=record.father_id,
                role=Role.FATHER,
                kind=BranchKind.SINGLE,
                gender=Gender.MALE,
                bam_dir=record.bam_dir,
            )
        )

    logger.debug(
        f"Family {record.proband_id}: "
        + ", ".join(f"{b.sample_id}={b.kind.value}" for b in branches)
    )
    return branches
