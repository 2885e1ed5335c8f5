# File: mosaicall/validators.py
# Location: mosaicall/mosaicall/validators.py

"""
Validation module for mosaicall.

These checks run before anything is submitted, so that a bad sample list
or output location stops the run while the cluster is still untouched.
"""

import logging
import os
import sys
from typing import Optional

logger = logging.getLogger("mosaicall")


def validate_sample_list(sample_list: Optional[str], logger: logging.Logger) -> None:
    """
    Validate that the sample list exists, is non-empty and is readable.

    Parameters
    ----------
    sample_list : str or None
        Path to the sample list.
    logger : logging.Logger
        Logger instance for logging errors and debug information.

    Raises
    ------
    SystemExit
        If the sample list is missing, empty or unreadable.
    """
    if not sample_list or not os.path.isfile(sample_list):
        logger.error("Sample list not found: %s", sample_list)
        sys.exit(1)
    if os.path.getsize(sample_list) == 0:
        logger.error("Sample list %s is empty.", sample_list)
        sys.exit(1)
    if not os.access(sample_list, os.R_OK):
        logger.error("Sample list %s is not readable.", sample_list)
        sys.exit(1)
    logger.debug("Sample list validated: %s", sample_list)


def validate_output_dir(output_dir: Optional[str], logger: logging.Logger) -> None:
    """
    Validate that the output directory can be used.

    The directory may not exist yet, but the path must not be a regular
    file and its nearest existing parent must be writable.

    Raises
    ------
    SystemExit
        If the output location is unusable.
    """
    if not output_dir:
        logger.error("No output directory given.")
        sys.exit(1)
    if os.path.exists(output_dir) and not os.path.isdir(output_dir):
        logger.error("Output path %s exists and is not a directory.", output_dir)
        sys.exit(1)

    probe = os.path.abspath(output_dir)
    while not os.path.exists(probe):
        probe = os.path.dirname(probe)
    if not os.access(probe, os.W_OK):
        logger.error("Cannot write to output location %s.", probe)
        sys.exit(1)
