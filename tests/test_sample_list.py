"""Tests for the sample list reader."""

import pytest

from conftest import write_sample_list
from mosaicall.pipeline_core.error_handling import MalformedRecord
from mosaicall.sample_list import FamilyRecord, Gender, parse_family_row, read_sample_list


class TestParseFamilyRow:

    def test_trio_row(self):
        record = parse_family_row(["/bam/fam1", "P1", "M", "MO1", "FA1"], line_number=2)

        assert record == FamilyRecord("/bam/fam1", "P1", Gender.MALE, "MO1", "FA1", 2)
        assert record.is_trio
        assert record.sample_ids == ["P1", "MO1", "FA1"]

    def test_blank_parents_are_absent(self):
        record = parse_family_row(["/bam/fam2", "P2", "F", "", "  "])

        assert record.mother_id is None
        assert record.father_id is None
        assert not record.is_trio
        assert record.sample_ids == ["P2"]

    def test_short_row_pads_parents(self):
        record = parse_family_row(["/bam/fam3", "P3", "f"])

        assert record.proband_gender is Gender.FEMALE
        assert record.mother_id is None

    @pytest.mark.parametrize(
        "values,field",
        [
            (["", "P1", "M"], "bam_dir"),
            (["/bam", "", "M"], "proband_id"),
            (["/bam", "P1"], "proband_gender"),
        ],
    )
    def test_missing_required_field(self, values, field):
        with pytest.raises(MalformedRecord) as excinfo:
            parse_family_row(values, line_number=5, line="bad")

        assert field in str(excinfo.value)
        assert str(excinfo.value).startswith("Line 5: ")
        assert excinfo.value.line == "bad"

    def test_invalid_gender(self):
        with pytest.raises(MalformedRecord, match="must be M or F"):
            parse_family_row(["/bam", "P1", "X"], line_number=3)


class TestReadSampleList:

    def test_header_is_skipped(self, tmp_path):
        path = write_sample_list(
            tmp_path / "samples.list",
            [("/bam/fam1", "P1", "M", "MO1", "FA1"), ("/bam/fam2", "P2", "F", "", "")],
        )

        records, errors = read_sample_list(str(path))

        assert errors == []
        assert [r.proband_id for r in records] == ["P1", "P2"]
        assert records[0].line_number == 2
        assert records[1].line_number == 3

    def test_blank_mother_keeps_father_column(self, tmp_path):
        path = write_sample_list(tmp_path / "samples.list", [("/bam/fam1", "P1", "M", "", "FA1")])

        records, _ = read_sample_list(str(path))

        assert records[0].mother_id is None
        assert records[0].father_id == "FA1"

    def test_whitespace_delimited_file(self, tmp_path):
        path = tmp_path / "samples.list"
        path.write_text(
            "BAMdir ProbandID Gender Mother Father\n/bam/fam1  P1 M MO1 FA1\n/bam/fam2 P2 F\n"
        )

        records, errors = read_sample_list(str(path))

        assert errors == []
        assert records[0].is_trio
        assert records[1].sample_ids == ["P2"]

    def test_malformed_rows_are_reported_and_skipped(self, tmp_path):
        path = write_sample_list(
            tmp_path / "samples.list",
            [
                ("/bam/fam1", "P1", "M", "MO1", "FA1"),
                ("/bam/fam2", "P2", "Q", "", ""),
                ("", "", "", "", ""),
                ("/bam/fam3", "P3", "F", "", ""),
            ],
        )

        records, errors = read_sample_list(str(path))

        assert [r.proband_id for r in records] == ["P1", "P3"]
        assert len(errors) == 1
        assert errors[0].line_number == 3

    def test_header_only(self, tmp_path):
        path = write_sample_list(tmp_path / "samples.list", [])

        assert read_sample_list(str(path)) == ([], [])

    def test_quote_characters_are_literal(self, tmp_path):
        path = write_sample_list(
            tmp_path / "samples.list",
            [('"/bam/fam1', "P1", "M", "", ""), ("/bam/fam2", "P2", "F", "", "")],
        )

        records, errors = read_sample_list(str(path))

        assert errors == []
        assert [(r.proband_id, r.line_number) for r in records] == [("P1", 2), ("P2", 3)]
        assert records[0].bam_dir == '"/bam/fam1'
