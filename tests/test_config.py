"""Tests for configuration loading."""

import json
import os

import pytest

from mosaicall.config import (
    DEFAULTS,
    export_config,
    germline_config_path,
    load_config,
    parse_shell_config,
    validate_config,
)
from mosaicall.pipeline_core.error_handling import ConfigError


class TestParseShellConfig:

    def test_assignments_comments_and_quotes(self):
        text = """
# comment
export SCRIPTDIR=/opt/mosaic
PON="/ref/pon.vcf.gz"   # trailing comment
CONFIG_for_GATKHC='$SCRIPTDIR/GATK.config'
LOGDIR=${SCRIPTDIR}/logs
"""
        config = parse_shell_config(text)

        assert config["SCRIPTDIR"] == "/opt/mosaic"
        assert config["PON"] == "/ref/pon.vcf.gz"
        assert config["CONFIG_for_GATKHC"] == "$SCRIPTDIR/GATK.config"
        assert config["LOGDIR"] == "/opt/mosaic/logs"

    def test_environment_expansion(self, monkeypatch):
        monkeypatch.setenv("MOSAIC_HOME", "/home/mosaic")

        assert parse_shell_config("SCRIPTDIR=$MOSAIC_HOME/scripts")["SCRIPTDIR"] == (
            "/home/mosaic/scripts"
        )

    def test_invalid_line(self):
        with pytest.raises(ConfigError, match="line 2"):
            parse_shell_config("PON=/x\nthis is not an assignment\n")


class TestLoadConfig:

    def test_shell_file_gets_defaults(self, config_file):
        config = load_config(str(config_file))

        assert config["GATKHC_SCATTER_COUNT"] == DEFAULTS["GATKHC_SCATTER_COUNT"]
        assert config["SBATCH"] == "sbatch"
        assert config["CONFIG_FILE"] == os.path.abspath(str(config_file))

    def test_json_file(self, tmp_path):
        path = tmp_path / "run.json"
        path.write_text(
            json.dumps(
                {"PON": "pon.txt", "CONFIG_for_GATKHC": "hc", "SCRIPTDIR": "/s",
                 "GATKHC_SCATTER_COUNT": 4}
            )
        )

        config = load_config(str(path))

        assert config["GATKHC_SCATTER_COUNT"] == 4
        validate_config(config)

    def test_json_must_be_object(self, tmp_path):
        path = tmp_path / "run.json"
        path.write_text("[1, 2]")

        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "absent.config"))


class TestValidateConfig:

    def test_reports_every_missing_key(self):
        with pytest.raises(ConfigError) as excinfo:
            validate_config({"PON": "/ref/pon.txt", "SCRIPTDIR": " "})

        assert excinfo.value.missing_keys == ["CONFIG_for_GATKHC", "SCRIPTDIR"]

    @pytest.mark.parametrize("value", ["zero", 0, -3])
    def test_bad_scatter_count(self, value):
        config = {"PON": "p", "CONFIG_for_GATKHC": "c", "SCRIPTDIR": "s",
                  "GATKHC_SCATTER_COUNT": value}

        with pytest.raises(ConfigError, match="GATKHC_SCATTER_COUNT"):
            validate_config(config)


def test_germline_config_path():
    assert germline_config_path({"CONFIG_for_GATKHC": "hc.config", "SCRIPTDIR": "/s"}) == (
        "/s/hc.config"
    )
    assert germline_config_path({"CONFIG_for_GATKHC": "/abs/hc.config", "SCRIPTDIR": "/s"}) == (
        "/abs/hc.config"
    )


def test_export_config_extends_base_environment():
    env = export_config(
        {"PON": "/ref/pon", "GATKHC_SCATTER_COUNT": 24, "FLAG": True, "LIST": [1]},
        base_env={"PATH": "/bin"},
    )

    assert env == {"PATH": "/bin", "PON": "/ref/pon", "GATKHC_SCATTER_COUNT": "24"}
