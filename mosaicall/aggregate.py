# File: mosaicall/aggregate.py
# Location: mosaicall/mosaicall/aggregate.py

"""
Consolidation of per-sample call sets.

Each sample's Mutect2, MosaicForecast and MosaicHunter result file is
appended to a run-wide file, one row per input line, prefixed with the
sample id and a tool label. ``##`` meta lines are dropped; the ``#CHROM``
header of each VCF is kept, as it marks where each sample's block starts.

Appending is driven by the existence of result files. A manifest in the
output directory records every source already appended, so aggregation
can be re-run as often as needed without duplicating rows.
"""

import json
import logging
import os
import uuid
from dataclasses import asdict, dataclass, field
from typing import Collection, Dict, Iterable, List, Optional, Tuple

from .pipeline_core.error_handling import MissingOutput
from .pipeline_core.workspace import CALL_SETS, Workspace
from .utils import smart_open

logger = logging.getLogger(__name__)

SOMATIC_CALL_SETS = ("mutect2", "mosaicforecast")


@dataclass
class FileInfo:
    """Size and modification time of an aggregated source file."""

    path: str
    size: int
    mtime: float

    @classmethod
    def from_file(cls, filepath: str) -> "FileInfo":
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"File not found: {filepath}")
        stat = os.stat(filepath)
        return cls(path=filepath, size=stat.st_size, mtime=stat.st_mtime)

    def matches(self, other: "FileInfo") -> bool:
        # Allow some tolerance for mtime (filesystem precision)
        return self.size == other.size and abs(self.mtime - other.mtime) <= 1.0


class AggregationManifest:
    """Sources already appended to the consolidated files."""

    VERSION = "1.0"

    def __init__(self, path: str):
        self.path = path
        self.entries: Dict[str, FileInfo] = {}

    def load(self) -> "AggregationManifest":
        if not os.path.exists(self.path):
            return self
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if data.get("version") != self.VERSION:
            logger.warning(
                f"Aggregation manifest version mismatch: {data.get('version')} != {self.VERSION}"
            )
        self.entries = {key: FileInfo(**value) for key, value in data.get("sources", {}).items()}
        return self

    def save(self) -> None:
        payload = {
            "version": self.VERSION,
            "sources": {key: asdict(info) for key, info in self.entries.items()},
        }
        temp_file = f"{self.path}.tmp.{uuid.uuid4().hex[:8]}"
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(temp_file, self.path)
        finally:
            if os.path.exists(temp_file):
                os.remove(temp_file)

    @staticmethod
    def key(sample_id: str, call_set: str) -> str:
        return f"{sample_id}\t{call_set}"

    def __contains__(self, key: str) -> bool:
        return key in self.entries


@dataclass
class AggregationResult:
    appended: Dict[Tuple[str, str], int] = field(default_factory=dict)
    missing: List[MissingOutput] = field(default_factory=list)
    already_aggregated: List[Tuple[str, str]] = field(default_factory=list)
    unreadable: List[Tuple[str, str, str]] = field(default_factory=list)

    @property
    def rows_written(self) -> int:
        return sum(self.appended.values())


def _labelled_rows(source: str, sample_id: str, label: str) -> List[str]:
    # The whole source is read before anything is appended, so a file that
    # fails halfway leaves the consolidated file untouched.
    rows = []
    with smart_open(source, "r") as f:
        for line in f:
            line = line.rstrip("\r\n")
            if not line or line.startswith("##"):
                continue
            rows.append(f"{sample_id}\t{label}\t{line}\n")
    return rows


def aggregate_calls(
    workspace: Workspace,
    sample_ids: Iterable[str],
    excluded: Optional[Collection[str]] = None,
) -> AggregationResult:
    """
    Append every available per-sample result to the consolidated files.

    Parameters
    ----------
    workspace : Workspace
        Output directory holding the per-sample results
    sample_ids : iterable of str
        Samples to collect, in output order; duplicates are collected once
    excluded : collection of str, optional
        Panel-of-normals samples. They have no Mutect2 or MosaicForecast
        results, so those files are not looked for.

    Returns
    -------
    AggregationResult
        Rows appended per (sample, call set), missing outputs, sources
        skipped because they were appended by an earlier run, and sources
        that could not be read. Unreadable sources are left out of the
        manifest so a later run tries them again.
    """
    excluded = set(excluded or ())
    manifest = AggregationManifest(str(workspace.manifest_path)).load()
    result = AggregationResult()

    seen = set()
    for sample_id in sample_ids:
        if sample_id in seen:
            continue
        seen.add(sample_id)

        for call_set, files in CALL_SETS.items():
            if call_set in SOMATIC_CALL_SETS and sample_id in excluded:
                continue

            source = workspace.result_path(sample_id, call_set)
            if not source.exists():
                missing = MissingOutput(source, sample_id, stage=call_set)
                logger.warning(f"{missing}; skipping")
                result.missing.append(missing)
                continue

            key = AggregationManifest.key(sample_id, call_set)
            info = FileInfo.from_file(str(source))
            if key in manifest:
                if not manifest.entries[key].matches(info):
                    logger.warning(
                        f"{source} changed after it was aggregated; not appending it again. "
                        f"Remove its entry from {workspace.manifest_path} to re-aggregate."
                    )
                result.already_aggregated.append((sample_id, call_set))
                continue

            try:
                rows = _labelled_rows(str(source), sample_id, files.label)
            except (OSError, UnicodeDecodeError, EOFError) as e:
                logger.error(f"Could not read {source}: {e}; skipping")
                result.unreadable.append((sample_id, call_set, str(e)))
                continue

            target = workspace.consolidated_path(call_set)
            with open(target, "a", encoding="utf-8") as out:
                out.writelines(rows)

            manifest.entries[key] = info
            manifest.save()
            result.appended[(sample_id, call_set)] = len(rows)
            logger.info(
                f"Appended {len(rows)} {files.label} rows for {sample_id} to {target.name}"
            )

    logger.info(
        f"Aggregation finished: {result.rows_written} rows appended, "
        f"{len(result.missing)} outputs missing, "
        f"{len(result.already_aggregated)} already aggregated, "
        f"{len(result.unreadable)} unreadable"
    )
    return result
