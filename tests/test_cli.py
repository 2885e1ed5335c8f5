# File: tests/test_cli.py
# Location: mosaicall/tests/test_cli.py

"""
Tests for CLI module.

This file contains tests ensuring the CLI shows usage, rejects misuse and
maps run outcomes to exit codes.
"""

import subprocess
import sys
from unittest.mock import patch

import pytest

from conftest import write_sample_list
from mosaicall.cli import aggregate_main, create_parser, main
from mosaicall.scheduler import DryRunScheduler


def test_cli_help():
    """Test that the CLI help message can be displayed."""
    cmd = [sys.executable, "-m", "mosaicall.cli", "--help"]
    result = subprocess.run(cmd, capture_output=True, text=True)
    assert result.returncode == 0
    assert "usage:" in result.stdout
    assert "--sample-list" in result.stdout


def test_aggregate_mode_in_help(capsys):
    """Test that the aggregation modes are documented in the help text."""
    with pytest.raises(SystemExit) as exc_info:
        create_parser().parse_args(["--help"])

    assert exc_info.value.code == 0
    out = capsys.readouterr().out
    for mode in ("job", "wait", "now", "none"):
        assert f"'{mode}'" in out


class TestUsageErrors:

    def test_missing_required_argument(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-s", "samples.list", "-o", "out"])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "usage:" in out
        assert "## ERROR:" in out
        assert "--config" in out

    def test_unknown_argument(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-s", "a", "-o", "b", "-c", "c", "--bogus"])

        assert exc_info.value.code == 1
        assert "## ERROR:" in capsys.readouterr().out

    def test_missing_sample_list(self, tmp_path, config_file, output_dir):
        with pytest.raises(SystemExit) as exc_info:
            main(["-s", str(tmp_path / "absent.list"), "-o", str(output_dir),
                  "-c", str(config_file)])

        assert exc_info.value.code == 1
        assert not output_dir.exists()


class TestExitCodes:

    def test_dry_run_succeeds(self, trio_list, output_dir, config_file):
        code = main(["-s", str(trio_list), "-o", str(output_dir), "-c", str(config_file),
                     "--dry-run"])

        assert code == 0
        assert (output_dir / "mosaicall_submission_summary.txt").exists()
        assert (output_dir / "P1.pipeline.log").exists()

    def test_config_error(self, tmp_path, trio_list, output_dir):
        config = tmp_path / "empty.config"
        config.write_text("# nothing here\n")

        code = main(["-s", str(trio_list), "-o", str(output_dir), "-c", str(config)])

        assert code == 1
        assert not output_dir.exists()

    def test_rejected_submission(self, trio_list, output_dir, config_file):
        scheduler = DryRunScheduler(reject={"MO1.Mutect2"})

        with patch("mosaicall.pipeline.make_scheduler", return_value=scheduler):
            code = main(["-s", str(trio_list), "-o", str(output_dir), "-c", str(config_file)])

        assert code == 3
        assert "P1.Mutect2" in scheduler.by_name()
        assert "mosaicall.aggregate" in scheduler.by_name()

    def test_log_file(self, tmp_path, trio_list, output_dir, config_file):
        log_file = tmp_path / "logs" / "run.log"

        code = main(["-s", str(trio_list), "-o", str(output_dir), "-c", str(config_file),
                     "--dry-run", "--log-level", "DEBUG", "--log-file", str(log_file)])

        assert code == 0
        assert "Submitted 24 jobs for 3 samples in 1 families" in log_file.read_text()

    def test_quiet_console_keeps_proband_log(self, trio_list, output_dir, config_file, pon_file):
        pon_file.write_text("FA1\n")

        code = main(["-s", str(trio_list), "-o", str(output_dir), "-c", str(config_file),
                     "--dry-run", "--log-level", "ERROR"])

        log_text = (output_dir / "P1.pipeline.log").read_text()
        assert code == 0
        assert "Pipeline for P1,MO1,FA1 in /bam/fam1" in log_text
        assert "FA1 is present. No Mutect2 will be performed." in log_text


class TestAggregateCommand:

    def test_appends_available_results(self, trio_list, output_dir, config_file, pon_file):
        pon_file.write_text("MO1\n")
        output_dir.mkdir()
        (output_dir / "MO1.final.passed.tsv").write_text("chr1\t5\tA\tG\n")
        (output_dir / "P1.mutect2.singlemode.PASS.aaf.vcf").write_text("chr1\t9\t.\tC\tT\n")

        code = aggregate_main(["-s", str(trio_list), "-o", str(output_dir),
                               "-c", str(config_file)])

        assert code == 0
        assert (output_dir / "MosaicHunter.calls.txt").read_text() == "MO1\tMH\tchr1\t5\tA\tG\n"
        assert (output_dir / "Mutect2.calls").read_text() == "P1\tMut\tchr1\t9\t.\tC\tT\n"

    def test_missing_output_dir(self, tmp_path, trio_list):
        code = aggregate_main(["-s", str(trio_list), "-o", str(tmp_path / "absent")])

        assert code == 1

    def test_without_config_aggregates_every_sample(self, tmp_path, output_dir):
        sample_list = write_sample_list(tmp_path / "s.list", [("/bam", "P9", "F", "", "")])
        output_dir.mkdir()
        (output_dir / "P9.final.passed.tsv").write_text("chrX\t1\tG\tA\n")

        assert aggregate_main(["-s", str(sample_list), "-o", str(output_dir)]) == 0
        assert (output_dir / "MosaicHunter.calls.txt").read_text().startswith("P9\tMH\t")
