# File: mosaicall/utils.py
# Location: mosaicall/mosaicall/utils.py

"""
Utility functions module.

Provides helper functions for running commands, checking tool availability
and opening (optionally gzipped) text files.
"""

import gzip
import logging
import shutil
import subprocess
from typing import List, Mapping, Optional

logger = logging.getLogger("mosaicall")


def check_external_tools(tools: List[str]) -> bool:
    """
    Check if external tools are available in PATH.

    Parameters
    ----------
    tools : List[str]
        List of tool names to check for availability

    Returns
    -------
    bool
        True if all tools are available, False otherwise
    """
    for tool in tools:
        if not shutil.which(tool):
            logger.error(f"Required tool not found in PATH: {tool}")
            return False
        logger.debug(f"Found tool in PATH: {tool}")
    return True


def smart_open(filename: str, mode: str = "r", encoding: str = "utf-8"):
    """
    Open a file with automatic gzip support based on file extension.

    Parameters
    ----------
    filename : str
        Path to the file
    mode : str
        File opening mode ('r', 'w', 'rt', 'wt', etc.)
    encoding : str
        Text encoding (for text modes)

    Returns
    -------
    file object
        Opened file handle
    """
    filename = str(filename)
    if filename.endswith(".gz"):
        if "t" not in mode and "b" not in mode:
            mode = mode + "t"
        return gzip.open(filename, mode, encoding=encoding)
    else:
        if "b" not in mode:
            return open(filename, mode, encoding=encoding)
        else:
            return open(filename, mode)


def run_command(cmd: list, env: Optional[Mapping[str, str]] = None) -> str:
    """
    Run a command and return its stdout.

    Parameters
    ----------
    cmd : list of str
        Command and its arguments.
    env : mapping, optional
        Environment for the child process. Inherits the current one if None.

    Returns
    -------
    str
        The command stdout.

    Raises
    ------
    subprocess.CalledProcessError
        If the command returns a non-zero exit code.
    FileNotFoundError
        If the executable does not exist.
    """
    logger.debug("Running command: %s", " ".join(cmd))
    result = subprocess.run(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env=dict(env) if env is not None else None,
    )

    if result.returncode != 0:
        logger.error("Command failed: %s\nError: %s", " ".join(cmd), result.stderr)
        raise subprocess.CalledProcessError(result.returncode, cmd, result.stdout, result.stderr)

    logger.debug("Command completed successfully.")
    return result.stdout
