"""
Panel-of-normals exclusion lookup.

A sample that is already part of the panel of normals must not be run
through Mutect2: calling it against a panel containing itself removes its
own variants. Membership is decided by exact identifier equality, so that
a sample named ``P1`` is not excluded just because ``P10`` is in the panel.
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import FrozenSet, Iterable, Mapping, Optional

from .pipeline_core.error_handling import ConfigError
from .utils import run_command, smart_open

logger = logging.getLogger(__name__)

VCF_FIXED_COLUMNS = 9
_SAMPLE_META = re.compile(r"^##SAMPLE=<.*?\bID=([^,>]+)")


class ExclusionFilter:
    """Read-only set of sample identifiers that must skip somatic calling."""

    def __init__(self, sample_ids: Iterable[str] = ()):
        self._sample_ids: FrozenSet[str] = frozenset(s.strip() for s in sample_ids if s.strip())

    def is_excluded(self, sample_id: str) -> bool:
        return sample_id in self._sample_ids

    @property
    def sample_ids(self) -> FrozenSet[str]:
        return self._sample_ids

    def __len__(self) -> int:
        return len(self._sample_ids)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({len(self)} samples)"


def _samples_from_vcf_header(path: str) -> set:
    samples = set()
    with smart_open(path, "r") as f:
        for line in f:
            if line.startswith("##"):
                match = _SAMPLE_META.match(line)
                if match:
                    samples.add(match.group(1))
                continue
            if line.startswith("#CHROM"):
                columns = line.rstrip("\n").split("\t")
                samples.update(columns[VCF_FIXED_COLUMNS:])
            break
    return samples


def load_panel_of_normals(
    path: str,
    bcftools: str = "bcftools",
    env: Optional[Mapping[str, str]] = None,
) -> ExclusionFilter:
    """
    Build an ExclusionFilter from the panel-of-normals dataset.

    Parameters
    ----------
    path : str
        Panel of normals. ``.vcf``/``.vcf.gz`` files are read directly
        (sample columns of the ``#CHROM`` line plus any ``##SAMPLE`` IDs),
        ``.bcf`` files are listed with ``bcftools query -l``, and any other
        file is read as a whitespace-separated list of sample IDs.
    bcftools : str
        bcftools executable, only used for BCF input.
    env : mapping, optional
        Environment for the bcftools call.

    Returns
    -------
    ExclusionFilter
        The panel's sample identifiers.

    Raises
    ------
    ConfigError
        If the panel file does not exist or cannot be listed.
    """
    if not Path(path).is_file():
        raise ConfigError(f"Panel of normals not found: {path}")

    if path.endswith(".bcf"):
        try:
            output = run_command([bcftools, "query", "-l", path], env=env)
        except (OSError, subprocess.CalledProcessError) as e:
            raise ConfigError(f"Could not list samples in panel of normals {path}: {e}")
        samples = output.split()
    elif path.endswith(".vcf") or path.endswith(".vcf.gz"):
        samples = _samples_from_vcf_header(path)
    else:
        with smart_open(path, "r") as f:
            samples = f.read().split()

    exclusion = ExclusionFilter(samples)
    if not exclusion and path.endswith((".vcf", ".vcf.gz", ".bcf")):
        logger.warning(
            f"Panel of normals {path} lists no samples (sites-only VCF?); "
            f"no sample will be excluded from somatic calling"
        )
    logger.info(f"Loaded {len(exclusion)} panel-of-normals samples from {path}")
    return exclusion
