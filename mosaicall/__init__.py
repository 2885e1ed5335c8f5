# File: mosaicall/__init__.py
# Location: mosaicall/mosaicall/__init__.py

"""
mosaicall Package.

This package orchestrates phase 1 of the mosaic variant finding pipeline:
per-family MosaicHunter, Mutect2/MosaicForecast and GATK HaplotypeCaller
job submission on a Slurm cluster, followed by aggregation of the
per-sample call sets.
"""

from .version import __version__
