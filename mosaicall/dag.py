"""
Job chain construction for a single sample.

Three independent chains are built per sample:

1. ``mosaic_detection``: one MosaicHunter job, trio or single mode.
2. ``somatic_calling``: Mutect2, then FilterMutect2 and the three
   MosaicForecast steps. Both FilterMutect2 and MF1 hang off Mutect2
   directly. Skipped entirely for panel-of-normals samples.
3. ``germline``: a GATK HaplotypeCaller scatter array followed by a gather
   job that waits for the whole array.

Every dependency is an explicit JobNode reference built here, so no job id
from one sample can leak into another sample's chain.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, List, Mapping

from .branches import BranchKind, SampleBranch
from .config import germline_config_path
from .exclusion import ExclusionFilter
from .pipeline_core.job import Chain, JobNode

logger = logging.getLogger(__name__)

MOSAIC_HUNTER = "MosaicHunter"
MUTECT2 = "Mutect2"
FILTER_MUTECT2 = "FilterMutect2"
MF_PROCESS_INPUT = "MF1_ProcessInput"
MF_EXTRACT_READ_LEVEL = "MF2_ExtractReadLevel"
MF_GENOTYPE_PREDICTION = "MF3_GenotypePrediction"
GATK_HC = "GATKHC"
GATK_HC_GATHER = "GATKHC_Gather"

SOMATIC_STAGES = (
    MUTECT2,
    FILTER_MUTECT2,
    MF_PROCESS_INPUT,
    MF_EXTRACT_READ_LEVEL,
    MF_GENOTYPE_PREDICTION,
)

SCRIPTS = {
    "mosaic_hunter_trio": "MosaicHunter_WES_Trio.sh",
    "mosaic_hunter_single": "MosaicHunter_WES_Singlemode.sh",
    MUTECT2: "Mutect2.singlemode.sh",
    FILTER_MUTECT2: "Mutect2.FilterMutect2.sh",
    MF_PROCESS_INPUT: "MF1_ProcessInput.sh",
    MF_EXTRACT_READ_LEVEL: "MF2_Extractreadlevel-singularity.sh",
    MF_GENOTYPE_PREDICTION: "MF3.GenotypePredictionsl-singularity.sh",
    GATK_HC: "GATK.HC_Universal_phoenix.sh",
    GATK_HC_GATHER: "GATK.gatherVCFs_Universal_phoenix.sh",
}


@dataclass(frozen=True)
class StageSettings:
    """Run-wide values every stage command needs."""

    script_dir: str
    output_dir: str
    config_file: str
    germline_config: str
    scatter_count: int = 24

    @classmethod
    def from_config(cls, config: Mapping[str, Any], output_dir: str) -> "StageSettings":
        return cls(
            script_dir=str(config["SCRIPTDIR"]),
            output_dir=str(output_dir),
            config_file=str(config["CONFIG_FILE"]),
            germline_config=germline_config_path(config),
            scatter_count=int(config.get("GATKHC_SCATTER_COUNT", 24)),
        )

    def script(self, key: str) -> str:
        return os.path.join(self.script_dir, SCRIPTS[key])


def mosaic_detection_chain(branch: SampleBranch, settings: StageSettings) -> Chain:
    s = branch.sample_id
    if branch.kind is BranchKind.TRIO:
        command = (
            settings.script("mosaic_hunter_trio"),
            "-s", s,
            "-b", branch.bam_dir,
            "-d", settings.output_dir,
            "-g", branch.gender.value,
            "-f", branch.father_id,
            "-m", branch.mother_id,
            "-c", settings.config_file,
        )
    else:
        command = (
            settings.script("mosaic_hunter_single"),
            "-s", s,
            "-b", branch.bam_dir,
            "-d", settings.output_dir,
            "-g", branch.gender.value,
            "-c", settings.config_file,
        )
    return Chain.of("mosaic_detection", s, [JobNode(MOSAIC_HUNTER, command)])


def somatic_calling_chain(branch: SampleBranch, settings: StageSettings) -> Chain:
    s, bam, out, cfg = branch.sample_id, branch.bam_dir, settings.output_dir, settings.config_file

    mutect2 = JobNode(
        MUTECT2,
        (settings.script(MUTECT2), "-b", bam, "-s", s, "-c", cfg, "-o", out),
    )
    filter_mutect2 = JobNode(
        FILTER_MUTECT2,
        (settings.script(FILTER_MUTECT2), "-s", s, "-v", out, "-c", cfg),
        depends_on=(mutect2,),
    )
    # MosaicForecast reads the raw Mutect2 calls, not the filtered set.
    mf1 = JobNode(
        MF_PROCESS_INPUT,
        (settings.script(MF_PROCESS_INPUT), "-s", s, "-b", bam, "-o", out, "-c", cfg),
        depends_on=(mutect2,),
    )
    mf2 = JobNode(
        MF_EXTRACT_READ_LEVEL,
        (settings.script(MF_EXTRACT_READ_LEVEL), "-b", bam, "-s", s, "-c", cfg, "-o", out),
        depends_on=(mf1,),
    )
    mf3 = JobNode(
        MF_GENOTYPE_PREDICTION,
        (settings.script(MF_GENOTYPE_PREDICTION), "-s", s, "-c", cfg, "-o", out),
        depends_on=(mf2,),
    )
    return Chain.of("somatic_calling", s, [mutect2, filter_mutect2, mf1, mf2, mf3])


def germline_chain(branch: SampleBranch, settings: StageSettings) -> Chain:
    s = branch.sample_id
    scatter = JobNode(
        GATK_HC,
        (settings.script(GATK_HC), "-S", s, "-o", branch.bam_dir, "-c", settings.germline_config),
        array_size=settings.scatter_count,
    )
    gather = JobNode(
        GATK_HC_GATHER,
        (
            settings.script(GATK_HC_GATHER),
            "-c", settings.germline_config,
            "-S", s,
            "-o", settings.output_dir,
        ),
        depends_on=(scatter,),
    )
    return Chain.of("germline", s, [scatter, gather])


def build_chains(
    branch: SampleBranch, exclusion: ExclusionFilter, settings: StageSettings
) -> List[Chain]:
    """
    Build every job chain for one sample.

    Args:
        branch: The sample and its analysis mode
        exclusion: Panel-of-normals lookup
        settings: Script directory, output directory and config paths

    Returns:
        The mosaic detection chain, the somatic calling chain unless the
        sample is in the panel of normals, and the germline chain
    """
    chains = [mosaic_detection_chain(branch, settings)]
    if exclusion.is_excluded(branch.sample_id):
        logger.info(
            f"{branch.sample_id} is present. No Mutect2 will be performed. "
            "Provide another Panel Of Normal."
        )
    else:
        chains.append(somatic_calling_chain(branch, settings))
    chains.append(germline_chain(branch, settings))
    return chains
