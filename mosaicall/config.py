# File: mosaicall/config.py
# Location: mosaicall/mosaicall/config.py

"""
Configuration management module.

This module handles loading the run configuration. Two formats are
accepted: a JSON object, or the shell-style ``KEY=value`` file that the
cluster scripts themselves source. Required keys are checked up front so
that a missing setting surfaces as a ConfigError before any job is
submitted.
"""

import json
import os
import re
import shlex
from typing import Any, Dict, Mapping, Optional

from .pipeline_core.error_handling import ConfigError

REQUIRED_KEYS = ("PON", "CONFIG_for_GATKHC", "SCRIPTDIR")

DEFAULTS: Dict[str, Any] = {
    "GATKHC_SCATTER_COUNT": 24,
    "SBATCH": "sbatch",
    "SQUEUE": "squeue",
    "BCFTOOLS": "bcftools",
}

_ASSIGNMENT = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$")
_REFERENCE = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))")


def _expand(value: str, known: Mapping[str, str]) -> str:
    def lookup(match):
        name = match.group(1) or match.group(2)
        if name in known:
            return str(known[name])
        return os.environ.get(name, "")

    return _REFERENCE.sub(lookup, value)


def parse_shell_config(text: str) -> Dict[str, str]:
    """
    Parse a shell-style ``KEY=value`` configuration file.

    Blank lines and ``#`` comments are skipped, an optional leading
    ``export`` is accepted, quotes around values are removed and
    ``$VAR``/``${VAR}`` references are expanded against keys defined
    earlier in the file, then against the process environment. Single
    quoted values are taken literally.

    Parameters
    ----------
    text : str
        Raw file contents.

    Returns
    -------
    dict
        Mapping of configuration keys to string values.

    Raises
    ------
    ConfigError
        If a non-comment line is not a valid assignment.
    """
    config: Dict[str, str] = {}
    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        match = _ASSIGNMENT.match(line)
        if not match:
            raise ConfigError(f"Invalid configuration line {line_number}: {raw!r}")
        key, value = match.group(1), match.group(2).strip()

        literal = value.startswith("'")
        try:
            parts = shlex.split(value, comments=True)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration line {line_number}: {e}")
        value = " ".join(parts)
        config[key] = value if literal else _expand(value, config)
    return config


def load_config(config_file: Optional[str]) -> Dict[str, Any]:
    """
    Load configuration from a JSON or shell-style key-value file.

    Parameters
    ----------
    config_file : str
        Path to the configuration file. Files ending in ``.json`` are read
        as JSON, anything else as ``KEY=value`` lines.

    Returns
    -------
    dict
        Configuration dictionary with defaults filled in for optional keys.

    Raises
    ------
    ConfigError
        If the file does not exist or cannot be parsed.
    """
    if not config_file:
        raise ConfigError("No configuration file given.")

    if not os.path.exists(config_file):
        raise ConfigError(f"Configuration file '{config_file}' not found.")

    with open(config_file, "r", encoding="utf-8") as f:
        text = f.read()

    if config_file.endswith(".json"):
        try:
            loaded = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Error parsing JSON configuration: {e}")
        if not isinstance(loaded, dict):
            raise ConfigError("JSON configuration must be an object.")
    else:
        loaded = parse_shell_config(text)

    config = dict(DEFAULTS)
    config.update(loaded)
    config["CONFIG_FILE"] = os.path.abspath(config_file)
    return config


def validate_config(config: Mapping[str, Any]) -> None:
    """
    Check that every required key is present and non-empty.

    Also normalises ``GATKHC_SCATTER_COUNT`` to a positive integer.

    Raises
    ------
    ConfigError
        Listing every missing key, or describing an invalid value.
    """
    missing = [key for key in REQUIRED_KEYS if not str(config.get(key) or "").strip()]
    if missing:
        raise ConfigError(
            f"Missing required configuration keys: {', '.join(missing)}", missing_keys=missing
        )

    try:
        scatter = int(config.get("GATKHC_SCATTER_COUNT", DEFAULTS["GATKHC_SCATTER_COUNT"]))
    except (TypeError, ValueError):
        raise ConfigError(
            f"GATKHC_SCATTER_COUNT must be an integer, got {config.get('GATKHC_SCATTER_COUNT')!r}"
        )
    if scatter < 1:
        raise ConfigError(f"GATKHC_SCATTER_COUNT must be at least 1, got {scatter}")


def germline_config_path(config: Mapping[str, Any]) -> str:
    """Return the GATK HaplotypeCaller sub-configuration path."""
    path = str(config["CONFIG_for_GATKHC"])
    if os.path.isabs(path):
        return path
    return os.path.join(str(config["SCRIPTDIR"]), path)


def export_config(
    config: Mapping[str, Any], base_env: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """
    Build the environment handed to scheduler calls.

    The process environment (or ``base_env``) is extended with every
    scalar configuration value, which is what sourcing the file before
    ``sbatch --export=ALL`` achieves.
    """
    env = dict(os.environ if base_env is None else base_env)
    for key, value in config.items():
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            env[key] = str(value)
    return env
