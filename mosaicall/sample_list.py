"""
Sample list reader for family records.

The sample list has one header row followed by one row per family with the
columns BAM directory, proband ID, proband gender, mother ID and father ID.
Mother and father may be left blank. Rows are tab-delimited; files without
any tab are split on runs of whitespace instead.
"""

import csv
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .pipeline_core.error_handling import MalformedRecord

logger = logging.getLogger(__name__)

COLUMNS = ["bam_dir", "proband_id", "proband_gender", "mother_id", "father_id"]


class Gender(str, Enum):
    """Gender codes understood by the MosaicHunter scripts."""

    MALE = "M"
    FEMALE = "F"


@dataclass(frozen=True)
class FamilyRecord:
    """One row of the sample list.

    Absent relatives are ``None``, never an empty string.
    """

    bam_dir: str
    proband_id: str
    proband_gender: Gender
    mother_id: Optional[str] = None
    father_id: Optional[str] = None
    line_number: int = 0

    @property
    def is_trio(self) -> bool:
        return self.mother_id is not None and self.father_id is not None

    @property
    def sample_ids(self) -> List[str]:
        """Proband first, then mother and father when present."""
        return [s for s in (self.proband_id, self.mother_id, self.father_id) if s is not None]


def _clean(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


def parse_family_row(values: Sequence, line_number: int = 0, line: str = "") -> FamilyRecord:
    """
    Build a FamilyRecord from the positional fields of one row.

    Args:
        values: Column values in sample list order; missing trailing
            values are treated as blank
        line_number: 1-based line number in the source file, for messages
        line: Raw line text, for messages

    Returns:
        The parsed FamilyRecord

    Raises:
        MalformedRecord: If the BAM directory, proband ID or gender is
            missing, or the gender is not M/F
    """
    padded = list(values) + [None] * (len(COLUMNS) - len(values))
    fields = dict(zip(COLUMNS, (_clean(v) for v in padded[: len(COLUMNS)])))

    for required in ("bam_dir", "proband_id", "proband_gender"):
        if fields[required] is None:
            raise MalformedRecord(f"missing required field '{required}'", line_number, line)

    try:
        gender = Gender(fields["proband_gender"].upper())
    except ValueError:
        raise MalformedRecord(
            f"proband gender must be M or F, got '{fields['proband_gender']}'", line_number, line
        )

    return FamilyRecord(
        bam_dir=fields["bam_dir"],
        proband_id=fields["proband_id"],
        proband_gender=gender,
        mother_id=fields["mother_id"],
        father_id=fields["father_id"],
        line_number=line_number,
    )


def read_sample_list(file_path: str) -> Tuple[List[FamilyRecord], List[MalformedRecord]]:
    """
    Parse a sample list file into family records.

    Malformed rows do not stop parsing; they are logged and returned
    separately so that the remaining families can still be processed.

    Args:
        file_path: Path to the sample list

    Returns:
        Tuple of (records, malformed row errors), both in file order
    """
    with open(file_path, "r", encoding="utf-8") as f:
        lines = f.read().splitlines()

    # Header row is discarded; blank lines carry no family.
    numbered = [(n, line) for n, line in enumerate(lines[1:], start=2) if line.strip()]
    if not numbered:
        logger.warning(f"Sample list {file_path} has no family rows")
        return [], []

    tabbed = any("\t" in line for _, line in numbered)
    sep = "\t" if tabbed else r"\s+"
    width = max(len(line.split("\t") if tabbed else line.split()) for _, line in numbered)

    df = pd.read_csv(
        io.StringIO("\n".join(line for _, line in numbered)),
        sep=sep,
        header=None,
        names=list(range(max(width, len(COLUMNS)))),
        dtype=str,
        keep_default_na=False,
        quoting=csv.QUOTE_NONE,
    )

    records: List[FamilyRecord] = []
    errors: List[MalformedRecord] = []
    for (line_number, line), row in zip(numbered, df.itertuples(index=False)):
        try:
            records.append(parse_family_row(list(row)[: len(COLUMNS)], line_number, line))
        except MalformedRecord as e:
            logger.error(f"Skipping malformed sample list row: {e}")
            errors.append(e)

    logger.info(f"Parsed sample list with {len(records)} families ({len(errors)} malformed rows)")
    return records, errors
